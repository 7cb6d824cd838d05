"""Core library for envctl.

Loads `.env` files into a Store with variable substitution, on-demand type
coercion and decryption of ENC(...) values. Used by the CLI.
"""

from .coerce import TypedValue, ValueKind, coerce
from .crypto import decrypt, encrypt, is_encrypted
from .errors import EnvError
from .resolver import VariableResolver, resolve
from .sniff import Shape, classify
from .store import BulkResult, LoadResult, Store

__all__ = [
    "BulkResult",
    "EnvError",
    "LoadResult",
    "Shape",
    "Store",
    "TypedValue",
    "ValueKind",
    "VariableResolver",
    "classify",
    "coerce",
    "decrypt",
    "encrypt",
    "is_encrypted",
    "resolve",
]
