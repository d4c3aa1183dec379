"""Create ldapstore components."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Self

import structlog
from structlog.stdlib import BoundLogger

from .cache import UserCache
from .config import Config, UserType
from .projectors import ActiveDirectoryProjector, OpenLDAPProjector
from .projectors.base import UserProjector
from .services.ldap import LDAPService
from .services.userstore import UserStoreService
from .storage.ldap import LDAPStorage

__all__ = ["Factory", "ProcessContext"]


@dataclass(frozen=True, slots=True)
class ProcessContext:
    """Per-process application context.

    This object holds all of the per-process singletons that can be reused
    for every lookup and only need to be recreated if the configuration
    changes. There is no connection pool. Every lookup opens and closes its
    own directory connections.
    """

    config: Config
    """ldapstore's configuration."""

    user_cache: UserCache | None
    """Cache of user lookups, if enabled."""

    @classmethod
    def from_config(cls, config: Config) -> Self:
        """Create a new process context from the ldapstore configuration.

        Parameters
        ----------
        config
            The ldapstore configuration.

        Returns
        -------
        ProcessContext
            Shared context for an ldapstore process.
        """
        user_cache = None
        if config.cache.enabled:
            user_cache = UserCache(config.cache)
        return cls(config=config, user_cache=user_cache)

    async def aclose(self) -> None:
        """Clean up a process context.

        Called during shutdown, or before recreating the process context using
        a different configuration.
        """
        if self.user_cache:
            await self.user_cache.clear()


class Factory:
    """Build ldapstore components.

    Uses the contents of a `ProcessContext` to construct the components of the
    application on demand.

    Parameters
    ----------
    context
        Shared process context.
    logger
        Logger to use for errors.
    """

    @classmethod
    @asynccontextmanager
    async def standalone(cls, config: Config) -> AsyncIterator[Self]:
        """Async context manager for ldapstore components.

        Intended for the command-line interface and other one-off uses.

        Parameters
        ----------
        config
            ldapstore configuration.

        Yields
        ------
        Factory
            The factory. Must be used as an async context manager.
        """
        logger = structlog.get_logger("ldapstore")
        context = ProcessContext.from_config(config)
        try:
            yield cls(context, logger)
        finally:
            await context.aclose()

    def __init__(self, context: ProcessContext, logger: BoundLogger) -> None:
        self._context = context
        self._logger = logger

    def create_projector(self) -> UserProjector:
        """Create the projector for the configured directory flavor.

        Returns
        -------
        UserProjector
            Newly-created projector.
        """
        match self._context.config.user_type:
            case UserType.active_directory:
                return ActiveDirectoryProjector()
            case UserType.openldap:
                return OpenLDAPProjector()

    def create_ldap_storage(self) -> LDAPStorage:
        """Create the LDAP storage layer.

        Returns
        -------
        LDAPStorage
            Newly-created LDAP storage.
        """
        config = self._context.config
        return LDAPStorage(
            config.connections,
            self.create_projector(),
            config.timeout,
            self._logger,
        )

    def create_ldap_service(self) -> LDAPService:
        """Create a service for authenticating and finding LDAP users.

        Returns
        -------
        LDAPService
            Newly-created LDAP service.
        """
        return LDAPService(
            ldap=self.create_ldap_storage(),
            projector=self.create_projector(),
            logger=self._logger,
        )

    def create_user_store_service(self) -> UserStoreService:
        """Create the user store used by an identity provider.

        Returns
        -------
        UserStoreService
            Newly-created user store.
        """
        return UserStoreService(
            ldap=self.create_ldap_service(),
            user_cache=self._context.user_cache,
            logger=self._logger,
        )
