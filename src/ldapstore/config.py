"""Configuration for ldapstore.

ldapstore is configured by a YAML file listing the directories to search, in
priority order. Top-level settings may be overridden by environment variables
with the ``LDAPSTORE_`` prefix, such as ``LDAPSTORE_LOG_LEVEL``.

The configuration is loaded once and is not modified afterwards. Every lookup
sees the same ordered list of directories for the lifetime of the process.
"""

from __future__ import annotations

import re
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Self, override

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, Profile, configure_logging
from safir.pydantic import HumanTimedelta

from .constants import (
    LDAP_PORT,
    LDAP_TIMEOUT,
    LDAPS_PORT,
    USER_CACHE_LIFETIME,
    USER_CACHE_NEGATIVE_LIFETIME,
    USER_CACHE_SIZE,
)

__all__ = [
    "CacheConfig",
    "Config",
    "LDAPConnectionConfig",
    "UserType",
]


class UserType(Enum):
    """Flavor of directory, which determines how entries become users."""

    openldap = "openldap"
    active_directory = "active_directory"


class LDAPConnectionConfig(BaseModel):
    """Configuration for one directory.

    A directory is only searched for a username if `is_concerned` returns
    true for that username, and, if the caller asked for a specific domain,
    if its ``friendly_name`` matches that domain.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    friendly_name: str = Field(
        ...,
        title="Friendly name",
        description=(
            "Unique name of this directory. Callers may pass this as the"
            " domain to restrict a lookup to this directory, and it is"
            " recorded as the provider of users found with an explicit"
            " domain."
        ),
        examples=["corp"],
        min_length=1,
    )

    url: str = Field(
        ...,
        title="LDAP server host",
        description="Host name or IP address of the LDAP server",
        examples=["ldap.example.com"],
        min_length=1,
    )

    port: int | None = Field(
        None,
        title="LDAP server port",
        description=(
            "Port of the LDAP server. If not set, defaults to 636 if ``ssl``"
            " is true and 389 otherwise."
        ),
        ge=1,
        le=65535,
    )

    ssl: bool = Field(
        False,
        title="Use LDAP over SSL",
        description="Whether to connect with ``ldaps`` rather than ``ldap``",
    )

    start_tls: bool = Field(
        False,
        title="Use StartTLS",
        description=(
            "Whether to upgrade an ``ldap`` connection with StartTLS. Ignored"
            " if ``ssl`` is true."
        ),
    )

    bind_dn: str | None = Field(
        None,
        title="Service account DN",
        description=(
            "DN of the service account used to search the directory. If not"
            " set, searches use an anonymous bind."
        ),
        examples=["cn=ldapstore,ou=services,dc=example,dc=com"],
    )

    bind_credentials: SecretStr | None = Field(
        None,
        title="Service account password",
        description="Password for ``bind_dn``. Only used if that is set.",
    )

    search_base: str = Field(
        ...,
        title="Search base",
        description="DN of the subtree searched for users",
        examples=["ou=people,dc=example,dc=com"],
    )

    search_filter: str = Field(
        "(&(objectClass=posixAccount)(uid={0}))",
        title="Search filter",
        description=(
            "Filter used to find a user. ``{0}`` is replaced by the escaped"
            " username."
        ),
        examples=["(&(objectClass=user)(sAMAccountName={0}))"],
    )

    pre_filter_regex: str | None = Field(
        None,
        title="Username pattern",
        description=(
            "If set, only usernames matching this regular expression are"
            " looked up in this directory. Otherwise every username is."
        ),
        examples=[r"@example\.com$"],
    )

    extra_attributes: tuple[str, ...] = Field(
        (),
        title="Extra attributes",
        description=(
            "Additional attributes to retrieve for each user. Each one that"
            " is present is added to the user as a claim of the same name."
        ),
        examples=[("employeeNumber", "department")],
    )

    @field_validator("search_filter")
    @classmethod
    def _validate_search_filter(cls, v: str) -> str:
        if "{0}" not in v:
            raise ValueError("search filter must contain {0}")
        try:
            v.format("test")
        except (IndexError, KeyError, ValueError) as e:
            msg = f"search filter has invalid placeholders: {e!s}"
            raise ValueError(msg) from e
        return v

    @field_validator("pre_filter_regex")
    @classmethod
    def _validate_pre_filter_regex(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid regular expression: {e!s}") from e
        return v

    @property
    def final_port(self) -> int:
        """Port to connect to, applying the SSL-dependent default."""
        if self.port:
            return self.port
        return LDAPS_PORT if self.ssl else LDAP_PORT

    @property
    def ldap_url(self) -> str:
        """URL of the LDAP server in the form expected by bonsai."""
        scheme = "ldaps" if self.ssl else "ldap"
        return f"{scheme}://{self.url}:{self.final_port}"

    def is_concerned(self, username: str) -> bool:
        """Whether this directory should be searched for a username.

        Parameters
        ----------
        username
            Username being looked up.

        Returns
        -------
        bool
            `True` if there is no username pattern or if the pattern matches
            anywhere in the username.
        """
        if not self.pre_filter_regex:
            return True
        return re.search(self.pre_filter_regex, username) is not None


class CacheConfig(BaseModel):
    """Configuration for the in-memory user cache."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(
        False,
        title="Whether to cache user lookups",
        description=(
            "If true, results of lookups by username and subject ID are"
            " cached in memory. Credential validation is never cached."
        ),
    )

    lifetime: HumanTimedelta = Field(
        USER_CACHE_LIFETIME,
        title="Cache lifetime",
        description="How long to cache a user that was found",
        examples=["5m"],
    )

    negative_lifetime: HumanTimedelta = Field(
        USER_CACHE_NEGATIVE_LIFETIME,
        title="Negative cache lifetime",
        description="How long to remember that a user was not found",
        examples=["30s"],
    )

    size: int = Field(
        USER_CACHE_SIZE,
        title="Cache size",
        description="Maximum number of lookups to cache",
        ge=1,
    )

    @model_validator(mode="after")
    def _validate_lifetimes(self) -> Self:
        if self.negative_lifetime > self.lifetime:
            msg = "negative_lifetime must not be longer than lifetime"
            raise ValueError(msg)
        if self.negative_lifetime <= timedelta(seconds=0):
            raise ValueError("negative_lifetime must be positive")
        return self


class Config(BaseSettings):
    """Configuration for ldapstore."""

    model_config = SettingsConfigDict(
        env_prefix="LDAPSTORE_", extra="forbid", frozen=True
    )

    connections: tuple[LDAPConnectionConfig, ...] = Field(
        ...,
        title="Directories",
        description=(
            "Directories to search, in priority order. The first directory"
            " that has a matching entry for a user wins."
        ),
        min_length=1,
    )

    user_type: UserType = Field(
        UserType.openldap,
        title="Directory flavor",
        description=(
            "Determines which attributes are retrieved for each user and how"
            " they are turned into user fields and claims"
        ),
    )

    timeout: float = Field(
        LDAP_TIMEOUT,
        title="LDAP timeout",
        description=(
            "Timeout in seconds for each connect, bind, and search against a"
            " directory"
        ),
        gt=0,
    )

    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        title="User cache",
        description="Configuration for the in-memory user cache",
    )

    log_level: LogLevel = Field(
        LogLevel.INFO,
        title="Log level",
        description="Log level of the ldapstore logger",
    )

    log_profile: Profile = Field(
        Profile.production,
        title="Logging profile",
        description=(
            "Use ``production`` for JSON logs and ``development`` for"
            " human-readable logs"
        ),
    )

    @override
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate :file:`.env` and secret file support. Allow environment
        variables to override init parameters, since init parameters come
        from the YAML configuration file and the environment should take
        precedence.
        """
        return (env_settings, init_settings)

    @field_validator("connections")
    @classmethod
    def _validate_connections(
        cls, v: tuple[LDAPConnectionConfig, ...]
    ) -> tuple[LDAPConnectionConfig, ...]:
        seen = set()
        for connection in v:
            if connection.friendly_name in seen:
                name = connection.friendly_name
                raise ValueError(f"duplicate friendly name {name}")
            seen.add(connection.friendly_name)
        return v

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Construct a Config object from a configuration file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML.

        Returns
        -------
        Config
            The corresponding `Config` object.
        """
        with path.open("r") as f:
            return cls(**yaml.safe_load(f))

    def configure_logging(self) -> None:
        """Configure logging based on the ldapstore configuration."""
        configure_logging(
            name="ldapstore",
            log_level=self.log_level,
            profile=self.log_profile,
        )
