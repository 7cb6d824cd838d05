from __future__ import annotations

import json
from pathlib import Path

import yaml
from click.testing import CliRunner

from envctl.cli import cli
from envlib.crypto import encrypt

AES_KEY = "0123456789abcdef"


def write_env(tmp_path: Path) -> Path:
    env = tmp_path / "app.env"
    env.write_text(
        f"""
# service settings
HOST=db.internal
PORT=5432
DEBUG=false
URL=postgres://${{HOST}}:${{PORT}}/app
REPLICAS=[r1, r2]
LIMITS={{'cpu': 2}}
TOKEN=ENC(aGVsbG8=)
PASSWORD={encrypt('hunter2', AES_KEY)}
NAME=abc
        """.strip()
    )
    return env


def invoke(env_file: Path, *args: str, **kwargs):
    runner = CliRunner()
    return runner.invoke(cli, ["--no-root", "-f", str(env_file), *args], **kwargs)  # type: ignore[arg-type]


def test_get_json(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "--json-output", "get", "PORT")
    assert res.exit_code == 0, res.output
    assert json.loads(res.output) == {"PORT": {"type": "integer", "value": 5432}}


def test_get_table(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "get", "URL")
    assert res.exit_code == 0, res.output
    assert "KEY" in res.output and "TYPE" in res.output and "VALUE" in res.output
    assert "postgres://db.internal:5432/app" in res.output


def test_get_yaml(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "--yaml-output", "get", "REPLICAS")
    assert res.exit_code == 0, res.output
    assert yaml.safe_load(res.output) == {"REPLICAS": {"type": "list", "value": ["r1", "r2"]}}


def test_get_with_type(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "--json-output", "get", "PORT", "--type", "float")
    assert res.exit_code == 0, res.output
    assert json.loads(res.output)["PORT"] == {"type": "float", "value": 5432.0}


def test_get_with_bad_type(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "get", "NAME", "--type", "int")
    assert res.exit_code == 2
    assert "does not have the requested shape" in res.output


def test_get_missing_key_and_default(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "get", "NOPE")
    assert res.exit_code == 2
    assert "Key not found: NOPE" in res.output

    res = invoke(env, "--json-output", "get", "NOPE", "--default", "true")
    assert res.exit_code == 0, res.output
    assert json.loads(res.output) == {"NOPE": {"type": "boolean", "value": True}}


def test_missing_env_file(tmp_path):
    res = invoke(tmp_path / "missing.env", "get", "PORT")
    assert res.exit_code == 2
    assert "Env file not found" in res.output


def test_missing_env_file_verbose_suggestions(tmp_path):
    runner = CliRunner()
    res = runner.invoke(cli, ["-v", "--no-root", "-f", str(tmp_path / "missing.env"), "list"])
    assert res.exit_code == 2
    assert "Troubleshooting suggestions" in res.output


def test_decrypt_base64(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "--json-output", "decrypt", "TOKEN")
    assert res.exit_code == 0, res.output
    assert json.loads(res.output) == {"TOKEN": {"type": "string", "value": "hello"}}


def test_decrypt_aes_key_from_environment(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "--json-output", "decrypt", "PASSWORD", env={"ENVCTL_DECRYPTION_KEY": AES_KEY})
    assert res.exit_code == 0, res.output
    assert json.loads(res.output)["PASSWORD"]["value"] == "hunter2"


def test_decrypt_plain_value(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "decrypt", "HOST")
    assert res.exit_code == 2
    assert "not wrapped in ENC(...)" in res.output


def test_list_json(tmp_path):
    env = write_env(tmp_path)
    res = invoke(env, "--json-output", "list")
    assert res.exit_code == 0, res.output
    data = json.loads(res.output)
    assert data["DEBUG"] == {"type": "boolean", "value": False}
    assert data["LIMITS"] == {"type": "map", "value": {"cpu": 2}}
    assert data["TOKEN"] == {"type": "string", "value": "ENC(aGVsbG8=)"}


def test_list_reports_failures(tmp_path):
    env = tmp_path / "app.env"
    env.write_text("GOOD=1\nBAD={not json}\n")
    res = invoke(env, "list")
    assert res.exit_code == 1
    assert "GOOD" in res.output
    assert "BAD:" in res.output


def test_list_empty(tmp_path):
    env = tmp_path / "app.env"
    env.write_text("# nothing here\n")
    res = invoke(env, "list")
    assert res.exit_code == 0, res.output
    assert "No values found" in res.output


def test_earlier_file_wins(tmp_path):
    first = tmp_path / "first.env"
    first.write_text("PORT=1\n")
    second = write_env(tmp_path)
    runner = CliRunner()
    res = runner.invoke(cli, ["--no-root", "-f", str(first), "-f", str(second), "--json-output", "get", "PORT"])
    assert res.exit_code == 0, res.output
    assert json.loads(res.output)["PORT"]["value"] == 1


def test_env_file_from_environment(tmp_path, monkeypatch):
    env = write_env(tmp_path)
    monkeypatch.setenv("ENVCTL_FILE", str(env))
    runner = CliRunner()
    res = runner.invoke(cli, ["--json-output", "get", "HOST"])
    assert res.exit_code == 0, res.output
    assert json.loads(res.output)["HOST"]["value"] == "db.internal"


def test_encrypt_then_decrypt(tmp_path):
    runner = CliRunner()
    res = runner.invoke(cli, ["encrypt", "s3cret", "--key", AES_KEY])
    assert res.exit_code == 0, res.output
    wrapped = res.output.strip()
    assert wrapped.startswith("ENC(")

    env = tmp_path / "app.env"
    env.write_text(f"SECRET={wrapped}\n")
    res = invoke(env, "--json-output", "decrypt", "SECRET", "--key", AES_KEY)
    assert res.exit_code == 0, res.output
    assert json.loads(res.output)["SECRET"]["value"] == "s3cret"


def test_encrypt_base64_lowercase():
    runner = CliRunner()
    res = runner.invoke(cli, ["encrypt", "hello", "--lowercase"], env={"ENVCTL_DECRYPTION_KEY": ""})
    assert res.exit_code == 0, res.output
    assert res.output.strip() == "enc(aGVsbG8=)"


def test_encrypt_bad_key():
    runner = CliRunner()
    res = runner.invoke(cli, ["encrypt", "hello", "--key", "short"])
    assert res.exit_code == 2
    assert "AES keys must be 16, 24 or 32 bytes long" in res.output


def test_root(tmp_path, monkeypatch):
    (tmp_path / ".project-root").touch()
    nested = tmp_path / "svc"
    nested.mkdir()
    monkeypatch.chdir(nested)
    runner = CliRunner()
    res = runner.invoke(cli, ["--json-output", "root"])
    assert res.exit_code == 0, res.output
    assert Path(json.loads(res.output)["root"]) == tmp_path.resolve()
