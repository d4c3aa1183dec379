"""Test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from ldapstore.config import Config
from ldapstore.factory import Factory

from .support.config import build_factory, configure
from .support.ldap import MockLDAP, patch_ldap


@pytest.fixture
def config() -> Config:
    """Set up and return the default test configuration.

    The default configuration has a single OpenLDAP directory.
    """
    return configure("openldap")


@pytest.fixture
def factory(config: Config) -> Factory:
    """Return a component factory for the default configuration."""
    return build_factory(config)


@pytest.fixture
def mock_ldap() -> Iterator[MockLDAP]:
    """Replace the bonsai client with a mock."""
    yield from patch_ldap()
