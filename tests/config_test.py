"""Tests for the configuration model."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from ldapstore.config import Config, LDAPConnectionConfig, UserType

from .support.config import config_path


def test_load() -> None:
    config = Config.from_file(config_path("multiple"))
    assert config.user_type == UserType.active_directory
    assert [c.friendly_name for c in config.connections] == [
        "corp",
        "partners",
    ]
    corp, partners = config.connections
    assert corp.final_port == 636
    assert corp.ldap_url == "ldaps://dc1.corp.example.com:636"
    assert partners.final_port == 3389
    assert partners.ldap_url == "ldap://ldap.partners.example.com:3389"
    assert partners.extra_attributes == ("testfield",)
    assert corp.bind_credentials
    assert corp.bind_credentials.get_secret_value() == "corp-service-password"
    assert config.cache.enabled is False


def test_defaults() -> None:
    config = Config.from_file(config_path("fallback"))
    primary = config.connections[0]
    assert primary.final_port == 389
    assert primary.bind_dn is None
    assert primary.search_filter == "(&(objectClass=posixAccount)(uid={0}))"
    assert primary.extra_attributes == ()
    assert primary.is_concerned("anyone")
    assert config.timeout == 5.0


def test_is_concerned() -> None:
    config = Config.from_file(config_path("multiple"))
    corp = config.connections[0]
    assert corp.is_concerned("alice@corp.example.com")
    assert not corp.is_concerned("alice@partners.example.com")
    assert not corp.is_concerned("alice")


def test_cache_lifetimes() -> None:
    config = Config.from_file(config_path("cache"))
    assert config.cache.enabled
    assert config.cache.lifetime == timedelta(minutes=5)
    assert config.cache.negative_lifetime == timedelta(seconds=30)
    assert config.cache.size == 100


def test_log_level_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LDAPSTORE_LOG_LEVEL", "DEBUG")
    config = Config.from_file(config_path("openldap"))
    assert config.log_level.value == "DEBUG"


def test_invalid(tmp_path: Path) -> None:
    connection = {
        "friendly_name": "people",
        "url": "ldap.example.com",
        "search_base": "ou=people,dc=example,dc=com",
    }

    with pytest.raises(ValidationError):
        Config.model_validate({"connections": []})
    with pytest.raises(ValidationError):
        Config.model_validate({"connections": [connection, connection]})
    with pytest.raises(ValidationError):
        LDAPConnectionConfig.model_validate(
            {**connection, "search_filter": "(uid=alice)"}
        )
    with pytest.raises(ValidationError):
        LDAPConnectionConfig.model_validate(
            {**connection, "search_filter": "(&(uid={0})(cn={1}))"}
        )
    with pytest.raises(ValidationError):
        LDAPConnectionConfig.model_validate(
            {**connection, "pre_filter_regex": "(unclosed"}
        )
    with pytest.raises(ValidationError):
        LDAPConnectionConfig.model_validate({**connection, "port": 0})
    with pytest.raises(ValidationError):
        LDAPConnectionConfig.model_validate({**connection, "unknown": True})

    path = tmp_path / "config.yaml"
    settings = {
        "connections": [connection],
        "cache": {"lifetime": "30s", "negative_lifetime": "5m"},
    }
    path.write_text(yaml.safe_dump(settings))
    with pytest.raises(ValidationError):
        Config.from_file(path)


def test_immutable() -> None:
    config = Config.from_file(config_path("openldap"))
    with pytest.raises(ValidationError):
        config.connections[0].url = "other.example.com"  # type: ignore[misc]
    with pytest.raises(ValidationError):
        config.timeout = 10.0  # type: ignore[misc]

    # The directory list and attribute lists cannot be changed in place.
    extra = LDAPConnectionConfig(
        friendly_name="other",
        url="other.example.com",
        search_base="ou=people,dc=example,dc=com",
    )
    with pytest.raises(AttributeError):
        config.connections.append(extra)  # type: ignore[attr-defined]
    attributes = config.connections[0].extra_attributes
    with pytest.raises(AttributeError):
        attributes.append("mail")  # type: ignore[attr-defined]
    assert [c.friendly_name for c in config.connections] == ["people"]
    assert config.connections[0].extra_attributes == (
        "employeeNumber",
        "departmentNumber",
    )
