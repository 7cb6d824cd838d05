from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import click
import yaml
from tabulate import tabulate

from envlib.coerce import TypedValue
from envlib.crypto import encrypt
from envlib.errors import EnvError, format_error_message, suggest_troubleshooting_steps
from envlib.files import DEFAULT_MARKERS, find_root
from envlib.store import Store


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-f",
    "--file",
    "files",
    multiple=True,
    help="Env file to read (repeatable; earlier files win). Defaults to ENVCTL_FILE or <root>/.env",
)
@click.option(
    "--no-root",
    is_flag=True,
    help="Use --file paths as given instead of relative to the project root",
)
@click.option(
    "--json-output",
    "json_output",
    is_flag=True,
    help="Output JSON instead of tables (pretty-printed)",
)
@click.option(
    "--yaml-output",
    "yaml_output",
    is_flag=True,
    help="Output YAML instead of tables",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose logging to stderr (what the CLI is doing)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    files: Tuple[str, ...],
    no_root: bool,
    json_output: bool,
    yaml_output: bool,
    verbose: bool,
) -> None:
    """Env file CLI.

    Reads KEY=value files found at the project root (or via --file and the
    ENVCTL_FILE environment variable), substitutes ${VARS}, infers types and
    decrypts ENC(...) values.
    """
    ctx.ensure_object(dict)
    ctx.obj["files"] = list(files)
    ctx.obj["use_root"] = not no_root
    ctx.obj["json"] = json_output
    ctx.obj["yaml"] = yaml_output
    ctx.obj["verbose"] = verbose

    # Configure logging once per process
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _fail(ctx: click.Context, operation: str, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    click.echo(format_error_message(operation, error, context), err=True)
    if ctx.obj.get("verbose"):
        suggestions = suggest_troubleshooting_steps(operation, error)
        if suggestions:
            click.echo("\nTroubleshooting suggestions:", err=True)
            for suggestion in suggestions[:3]:  # Show top 3 suggestions
                click.echo(f"  • {suggestion}", err=True)
    raise SystemExit(2)


def _load_store(ctx: click.Context) -> Store:
    log = logging.getLogger("envctl.load")
    files: List[str] = ctx.obj["files"]
    log.info("Loading env files: %s", ", ".join(files) or "<default>")
    store = Store.from_files(
        filename=files[-1] if files else None,
        use_root=ctx.obj["use_root"],
        extra_files=files[:-1],
    )
    if store.error is not None:
        _fail(ctx, "load env file", store.error)
    log.info("Loaded %d keys", len(store))
    return store


def _cell(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def _emit(ctx: click.Context, items: Dict[str, TypedValue]) -> None:
    if ctx.obj.get("json") or ctx.obj.get("yaml"):
        out = {
            key: {"type": tv.kind.value, "value": tv.to_python()}
            for key, tv in items.items()
        }
        if ctx.obj.get("json"):
            click.echo(json.dumps(out, indent=2, sort_keys=True))
        else:
            click.echo(yaml.safe_dump(out, sort_keys=True, default_flow_style=False), nl=False)
        return

    rows = [[key, tv.kind.value, _cell(tv.to_python())] for key, tv in sorted(items.items())]
    click.echo(tabulate(rows, headers=["KEY", "TYPE", "VALUE"]))


@cli.command("get")
@click.argument("key")
@click.option("-t", "--type", "kind", help="Requested type (str, bool, float, int, list, tuple, map)")
@click.option("-d", "--default", "default", help="Value used when KEY is not defined")
@click.pass_context
def get_cmd(ctx: click.Context, key: str, kind: Optional[str], default: Optional[str]) -> None:
    """Show one value, converted to its inferred or requested type."""
    log = logging.getLogger("envctl.get")
    store = _load_store(ctx)

    try:
        log.info("Getting '%s' as %s", key, kind or "<inferred>")
        value = store.get_value(key, kind, default)
    except EnvError as e:
        _fail(ctx, "get value", e, {"key": key})

    if value is None:
        click.echo(f"Key not found: {key}", err=True)
        raise SystemExit(2)

    _emit(ctx, {key: value})


@cli.command("decrypt")
@click.argument("key")
@click.option("-t", "--type", "kind", help="Requested type of the decrypted value")
@click.option("-d", "--default", "default", help="Encrypted value used when KEY is not defined")
@click.option(
    "-k",
    "--key",
    "decryption_key",
    default="",
    envvar="ENVCTL_DECRYPTION_KEY",
    help="AES key (16, 24 or 32 bytes); omit for base64-only values",
)
@click.pass_context
def decrypt_cmd(
    ctx: click.Context,
    key: str,
    kind: Optional[str],
    default: Optional[str],
    decryption_key: str,
) -> None:
    """Decrypt an ENC(...) value and show it."""
    log = logging.getLogger("envctl.decrypt")
    store = _load_store(ctx)

    try:
        log.info("Decrypting '%s' (%s)", key, "aes" if decryption_key else "base64")
        value = store.get_encrypted_value(key, kind, default, decryption_key)
    except EnvError as e:
        _fail(ctx, "decrypt value", e, {"key": key})

    _emit(ctx, {key: value})


@cli.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """List every value with its inferred type."""
    log = logging.getLogger("envctl.list")
    store = _load_store(ctx)

    try:
        result = store.get_all_resolved()
    except EnvError as e:
        _fail(ctx, "list values", e)

    log.info("Rendering %d values", len(result.values))
    if not result.values and not (ctx.obj.get("json") or ctx.obj.get("yaml")):
        click.echo("No values found")
    else:
        _emit(ctx, result.values)

    if result.errors:
        for key, error in sorted(result.errors.items()):
            click.echo(f"{key}: {error}", err=True)
        raise SystemExit(1)


@cli.command("encrypt")
@click.argument("value")
@click.option(
    "-k",
    "--key",
    "encryption_key",
    default="",
    envvar="ENVCTL_DECRYPTION_KEY",
    help="AES key (16, 24 or 32 bytes); omit for base64 encoding",
)
@click.option("--lowercase", is_flag=True, help="Use the enc(...) envelope")
@click.pass_context
def encrypt_cmd(ctx: click.Context, value: str, encryption_key: str, lowercase: bool) -> None:
    """Print VALUE wrapped in an ENC(...) envelope."""
    try:
        wrapped = encrypt(value, encryption_key, prefix="enc" if lowercase else "ENC")
    except EnvError as e:
        _fail(ctx, "encrypt value", e)

    if ctx.obj.get("json"):
        click.echo(json.dumps({"value": wrapped}, indent=2))
    else:
        click.echo(wrapped)


@cli.command("root")
@click.pass_context
def root_cmd(ctx: click.Context) -> None:
    """Show the project root used to locate env files."""
    try:
        root = find_root(markers=DEFAULT_MARKERS)
    except EnvError as e:
        _fail(ctx, "find project root", e)

    if ctx.obj.get("json"):
        click.echo(json.dumps({"root": str(root)}, indent=2))
    else:
        click.echo(str(root))


def main() -> None:  # entry point
    cli(standalone_mode=True)


if __name__ == "__main__":  # pragma: no cover
    main()
