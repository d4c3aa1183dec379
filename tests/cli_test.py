"""Tests for the command-line interface.

The click command handling code starts its own event loop for async
commands, so none of these tests can be async.
"""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from ldapstore.cli import main
from ldapstore.config import Config

from .support.config import config_path
from .support.ldap import MockLDAP
from .support.users import add_openldap_user

_ENV = {"LDAPSTORE_LOG_LEVEL": "WARNING"}


def test_help() -> None:
    runner = CliRunner()

    result = runner.invoke(main, ["-h"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Commands:" in result.output

    result = runner.invoke(main, ["help"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Commands:" in result.output

    result = runner.invoke(main, ["help", "find"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Commands:" not in result.output
    assert "--subject-id" in result.output

    result = runner.invoke(main, ["help", "unknown-command"])
    assert result.exit_code != 0
    assert "Unknown help topic unknown-command" in result.output


def test_check_config() -> None:
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["check-config", "--config-path", str(config_path("multiple"))],
        env=_ENV,
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert result.output == (
        "corp: ldaps://dc1.corp.example.com:636 @corp\\.example\\.com$\n"
        "partners: ldap://ldap.partners.example.com:3389 (all usernames)\n"
    )


def test_check_config_invalid(tmp_path: Path) -> None:
    runner = CliRunner()

    path = tmp_path / "missing.yaml"
    result = runner.invoke(
        main, ["check-config", "--config-path", str(path)], env=_ENV
    )
    assert result.exit_code == 1
    assert f"Cannot read {path}" in result.output

    path = tmp_path / "invalid.yaml"
    path.write_text("connections: []\n")
    result = runner.invoke(
        main, ["check-config", "--config-path", str(path)], env=_ENV
    )
    assert result.exit_code == 1
    assert f"Invalid configuration in {path}" in result.output


def test_find(config: Config, mock_ldap: MockLDAP) -> None:
    add_openldap_user(
        mock_ldap, config.connections[0], "alice", employeeNumber=["4123"]
    )
    runner = CliRunner()
    path = str(config_path("openldap"))

    result = runner.invoke(
        main,
        ["find", "alice", "--config-path", path],
        env=_ENV,
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    user = json.loads(result.output)
    assert user["username"] == "alice"
    assert user["display_name"] == "Alice Example"
    assert user["provider_name"] == "local"
    assert {"type": "employeeNumber", "value": "4123"} in user["claims"]

    result = runner.invoke(
        main,
        ["find", "--subject-id", "alice", "--config-path", path],
        env=_ENV,
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert json.loads(result.output)["subject_id"] == "alice"

    result = runner.invoke(
        main, ["find", "bob", "--config-path", path], env=_ENV
    )
    assert result.exit_code == 1
    assert "User not found" in result.output
    mock_ldap.assert_all_closed()


def test_validate(config: Config, mock_ldap: MockLDAP) -> None:
    add_openldap_user(
        mock_ldap, config.connections[0], "alice", password="hunter2"
    )
    runner = CliRunner()
    path = str(config_path("openldap"))

    result = runner.invoke(
        main,
        ["validate", "alice", "--password", "hunter2", "--config-path", path],
        env=_ENV,
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    user = json.loads(result.output)
    assert user["username"] == "alice"
    assert user["provider_name"] == "local"

    result = runner.invoke(
        main,
        [
            "validate",
            "alice",
            "--password",
            "hunter2",
            "--domain",
            "people",
            "--config-path",
            path,
        ],
        env=_ENV,
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert json.loads(result.output)["provider_name"] == "people"

    result = runner.invoke(
        main,
        ["validate", "alice", "--password", "wrong", "--config-path", path],
        env=_ENV,
    )
    assert result.exit_code == 1
    assert "User not found" in result.output
    mock_ldap.assert_all_closed()


def test_validate_prompt(config: Config, mock_ldap: MockLDAP) -> None:
    add_openldap_user(
        mock_ldap, config.connections[0], "alice", password="hunter2"
    )
    runner = CliRunner()
    path = str(config_path("openldap"))

    result = runner.invoke(
        main,
        ["validate", "alice", "--config-path", path],
        input="hunter2\n",
        env=_ENV,
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert "hunter2" not in result.output
    output = result.output[result.output.index("{") :]
    assert json.loads(output)["username"] == "alice"
