"""Error types and user-facing error formatting for envctl."""

from __future__ import annotations

from typing import Any, Optional


class EnvError(RuntimeError):
    """Base class for every error raised by envlib."""

    def __init__(self, message: str, *, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.key = key


# Ingestion


class LoadError(EnvError):
    pass


class EnvFileNotFoundError(LoadError):
    def __init__(self, path: Any):
        super().__init__(f"env file does not exist: {path}")
        self.path = path


class RootNotFoundError(LoadError):
    def __init__(self, start: Any, markers: Any):
        super().__init__(
            f"project root not found above {start} (looked for: {', '.join(markers)})"
        )
        self.start = start
        self.markers = tuple(markers)


class EnvReadError(LoadError):
    def __init__(self, path: Any, reason: str):
        super().__init__(f"failed to read env file {path}: {reason}")
        self.path = path


# Retrieval: coercion


class CoercionError(EnvError):
    pass


class InvalidTypeError(CoercionError):
    def __init__(self, value: str, kind: str, *, key: Optional[str] = None):
        super().__init__(
            f"you are attempting to convert {value!r} into {kind!r}, which is not a valid type",
            key=key,
        )
        self.kind = kind


class ConversionError(CoercionError):
    def __init__(self, value: str, kind: str, *, key: Optional[str] = None):
        super().__init__(f"unable to convert value {value!r} to {kind}", key=key)
        self.value = value
        self.kind = kind


class MapFormatError(CoercionError):
    pass


class StringConversionError(CoercionError):
    def __init__(self, value: Any, *, key: Optional[str] = None):
        super().__init__(f"unable to convert {value!r} to string", key=key)
        self.value = value


# Retrieval: decryption


class DecryptionError(EnvError):
    pass


class NotEncryptedError(DecryptionError):
    def __init__(self, value: Any, *, key: Optional[str] = None):
        super().__init__(f"value {value!r} is not an encrypted value", key=key)
        self.value = value


class Base64DecodeError(DecryptionError):
    pass


class TooShortError(DecryptionError):
    pass


class CipherInitError(DecryptionError):
    pass


def with_key(error: EnvError, key: str) -> EnvError:
    """Attach the store key to an error raised below the Store."""
    if error.key is None:
        error.key = key
    return error


def format_error_message(operation: str, error: Exception, context: dict[str, Any] | None = None) -> str:
    """Format a user-friendly error message based on the exception type and context."""
    context = context or {}
    key = context.get("key") or getattr(error, "key", None)
    error_str = str(error)

    if isinstance(error, RootNotFoundError):
        return (
            "Could not locate the project root. "
            "Run from inside a project, pass --no-root, or set ENVCTL_FILE. "
            f"Original error: {error_str}"
        )

    if isinstance(error, EnvFileNotFoundError):
        return (
            f"Env file not found: {error.path}. "
            "Check the --file option or the ENVCTL_FILE environment variable."
        )

    if isinstance(error, EnvReadError):
        return f"Env file could not be read. Original error: {error_str}"

    if isinstance(error, InvalidTypeError):
        return (
            f"Unknown type '{error.kind}'. "
            "Use one of: str, bool, float, int, list, tuple, map. "
            f"Original error: {error_str}"
        )

    if isinstance(error, (ConversionError, MapFormatError, StringConversionError)):
        target = f"'{key}'" if key else "value"
        return f"The {target} does not have the requested shape. Original error: {error_str}"

    if isinstance(error, NotEncryptedError):
        target = f"'{key}'" if key else "The value"
        return f"{target} is not wrapped in ENC(...). Use 'envctl get' for plain values."

    if isinstance(error, (CipherInitError, TooShortError)):
        return (
            "Decryption key or payload is invalid. "
            "AES keys must be 16, 24 or 32 bytes long. "
            f"Original error: {error_str}"
        )

    if isinstance(error, Base64DecodeError):
        return f"Encrypted payload is not valid base64. Original error: {error_str}"

    # Generic error with helpful context
    return f"Failed to {operation}: {error_str}"


def suggest_troubleshooting_steps(operation: str, error: Exception) -> list[str]:
    """Suggest troubleshooting steps based on the operation and error."""
    suggestions = []

    if isinstance(error, RootNotFoundError):
        suggestions.extend([
            "Create a marker file at the project root: touch .project-root",
            "Pass --no-root to read the file path as given",
            "Point ENVCTL_FILE at the env file directly",
        ])

    elif isinstance(error, LoadError):
        suggestions.extend([
            "Check that the env file exists and is readable",
            "Verify the file is UTF-8 encoded",
            "List the lookup root with: envctl root",
        ])

    elif isinstance(error, DecryptionError):
        if "decrypt" in operation.lower():
            suggestions.extend([
                "Check the --key value or ENVCTL_DECRYPTION_KEY",
                "Omit the key for base64-only values",
                "Re-create the value with: envctl encrypt <value> --key <key>",
            ])
        else:
            suggestions.append("Use 'envctl decrypt <KEY>' for ENC(...) values")

    elif isinstance(error, CoercionError):
        suggestions.extend([
            "Retry without --type to see the inferred value",
            "Quote map keys and values: {\"a\": 1}",
        ])

    if not suggestions:
        suggestions.extend([
            "Check the logs with -v/--verbose flag for more details",
            "Verify your env file syntax is KEY=value",
        ])

    return suggestions
