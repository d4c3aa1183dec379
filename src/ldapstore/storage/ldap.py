"""LDAP storage layer for ldapstore."""

from __future__ import annotations

from types import TracebackType
from typing import Literal, Self

import bonsai
from bonsai import LDAPClient, LDAPSearchScope
from bonsai.utils import escape_filter_exp
from structlog.stdlib import BoundLogger

from ..config import LDAPConnectionConfig
from ..exceptions import (
    LDAPError,
    LoginFailedError,
    NoSearchableDirectoryError,
    UserNotFoundError,
)
from ..models.ldap import DirectoryEntry
from ..projectors import UserProjector

TRANSPORT_ERRORS = (bonsai.ConnectionError, bonsai.TimeoutError, TimeoutError)
"""Errors that mean a directory could not be reached in time."""

__all__ = ["TRANSPORT_ERRORS", "LDAPSearchSession", "LDAPStorage"]


def _create_client(config: LDAPConnectionConfig) -> LDAPClient:
    """Create a bonsai client for a directory without credentials."""
    return LDAPClient(config.ldap_url, tls=config.start_tls and not config.ssl)


def _decode(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _to_directory_entry(entry: bonsai.LDAPEntry) -> DirectoryEntry:
    attributes = {
        name: [_decode(v) for v in values]
        for name, values in entry.items()
        if name.lower() != "dn"
    }
    return DirectoryEntry(dn=str(entry.dn), attributes=attributes)


class LDAPSearchSession:
    """An open directory connection holding the results of a user search.

    The session owns the connection. It must be closed by the caller, which
    is easiest done by using it as an async context manager.

    Parameters
    ----------
    config
        Configuration of the directory that returned the results.
    connection
        Connection, bound as the service account, used for the search.
    entries
        Entries returned by the search. Never empty.
    timeout
        Timeout for further operations against the directory.
    logger
        Logger for debug messages and errors.
    """

    def __init__(
        self,
        *,
        config: LDAPConnectionConfig,
        connection: bonsai.LDAPConnection,
        entries: list[DirectoryEntry],
        timeout: float,
        logger: BoundLogger,
    ) -> None:
        self.config = config
        self.entries = entries
        self._connection = connection
        self._timeout = timeout
        self._logger = logger
        self._closed = False

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> Literal[False]:
        self.close()
        return False

    @property
    def closed(self) -> bool:
        """Whether the connection of this session has been closed."""
        return self._closed

    def close(self) -> None:
        """Close the connection. Further calls do nothing."""
        if self._closed:
            return
        self._closed = True
        self._connection.close()
        self._logger.debug("Closed LDAP connection")

    async def verify_password(self, dn: str, password: str) -> bool:
        """Check a password by binding to the same directory as a user.

        bonsai cannot rebind an open connection, so this binds a second,
        short-lived connection to the directory that returned the entry and
        checks the identity the server reports for it.

        Parameters
        ----------
        dn
            DN of the entry to bind as.
        password
            Password to check.

        Returns
        -------
        bool
            `True` if the server reports the connection as bound to a
            non-anonymous identity.

        Raises
        ------
        bonsai.AuthenticationError
            Raised if the server rejected the credentials.
        bonsai.LDAPError
            Raised if some other error occurred talking to the directory.
        TimeoutError
            Raised if the directory did not respond in time.
        """
        client = _create_client(self.config)
        client.set_credentials("SIMPLE", user=dn, password=password)
        logger = self._logger.bind(ldap_bind_dn=dn)
        logger.debug("Binding to LDAP as user")
        connection = await client.connect(is_async=True, timeout=self._timeout)
        try:
            identity = await connection.whoami(timeout=self._timeout)
        finally:
            connection.close()
        logger.debug("LDAP bind succeeded", ldap_identity=identity)
        return bool(identity) and identity != "anonymous"


class LDAPStorage:
    """LDAP storage layer.

    Searches the configured directories in order for a user. Every search
    uses its own connection. No state is shared between searches.

    Parameters
    ----------
    connections
        Configuration for each directory, in priority order.
    projector
        Projector for the configured directory flavor, which determines the
        attributes that are always requested.
    timeout
        Timeout for each connect, bind, and search.
    logger
        Logger for debug messages and errors.
    """

    def __init__(
        self,
        connections: tuple[LDAPConnectionConfig, ...],
        projector: UserProjector,
        timeout: float,
        logger: BoundLogger,
    ) -> None:
        self._connections = connections
        self._projector = projector
        self._timeout = timeout
        self._logger = logger

    async def search(
        self, username: str, domain: str | None = None
    ) -> LDAPSearchSession:
        """Find the first directory that has an entry for a user.

        Candidate directories are those whose username pattern matches and,
        if ``domain`` is given, whose friendly name is ``domain``. They are
        tried strictly in configured order. A directory that cannot be
        reached in time is skipped.

        Parameters
        ----------
        username
            Username to search for.
        domain
            If given, only search the directory with this friendly name.

        Returns
        -------
        LDAPSearchSession
            Open session for the first directory with at least one matching
            entry. The caller must close it.

        Raises
        ------
        LDAPError
            Raised if a directory returned an error other than a connection
            failure or timeout, such as rejecting the service account.
        LoginFailedError
            Raised with a cause of `NoSearchableDirectoryError` if no
            directory applies, or `UserNotFoundError` if no applicable
            directory has an entry for the user.
        """
        logger = self._logger.bind(user=username, domain=domain)
        candidates = [
            c for c in self._connections if c.is_concerned(username)
        ]
        if domain:
            candidates = [c for c in candidates if c.friendly_name == domain]
        if not candidates:
            msg = "No searchable LDAP directory"
            logger.info(msg)
            exc = NoSearchableDirectoryError(msg)
            raise LoginFailedError("Login failed") from exc

        failed = []
        for config in candidates:
            logger = logger.bind(
                friendly_name=config.friendly_name, ldap_url=config.ldap_url
            )
            try:
                session = await self._search_directory(
                    config, username, logger
                )
            except TRANSPORT_ERRORS as e:
                msg = "Cannot reach LDAP, trying next directory"
                logger.warning(msg, error=str(e) or type(e).__name__)
                failed.append(config.friendly_name)
                continue
            except bonsai.LDAPError as e:
                logger.exception("Cannot query LDAP", error=str(e))
                msg = "Error querying LDAP"
                raise LDAPError(msg, config.friendly_name) from e
            if session:
                return session

        if len(failed) == len(candidates):
            logger.error("No LDAP directory reachable", ldap_failed=failed)
        msg = "User not found in any LDAP directory"
        exc = UserNotFoundError(msg)
        raise LoginFailedError("Login failed") from exc

    async def _search_directory(
        self,
        config: LDAPConnectionConfig,
        username: str,
        logger: BoundLogger,
    ) -> LDAPSearchSession | None:
        """Search one directory for a user.

        Parameters
        ----------
        config
            Configuration of the directory.
        username
            Username to search for.
        logger
            Logger with the directory bound.

        Returns
        -------
        LDAPSearchSession or None
            Session holding the open connection if there were results,
            otherwise `None`, in which case the connection has been closed.
        """
        client = _create_client(config)
        if config.bind_dn:
            password = ""
            if config.bind_credentials:
                password = config.bind_credentials.get_secret_value()
            client.set_credentials(
                "SIMPLE", user=config.bind_dn, password=password
            )
        attrlist = [
            *self._projector.required_attributes,
            *config.extra_attributes,
        ]
        filter_exp = config.search_filter.format(escape_filter_exp(username))
        logger = logger.bind(
            ldap_attrs=attrlist,
            ldap_base=config.search_base,
            ldap_search=filter_exp,
        )

        logger.debug("Querying LDAP")
        connection = await client.connect(is_async=True, timeout=self._timeout)
        session = None
        try:
            results = await connection.search(
                base=config.search_base,
                scope=LDAPSearchScope.SUB,
                filter_exp=filter_exp,
                attrlist=attrlist,
                timeout=self._timeout,
            )
            if results:
                entries = [_to_directory_entry(r) for r in results]
                session = LDAPSearchSession(
                    config=config,
                    connection=connection,
                    entries=entries,
                    timeout=self._timeout,
                    logger=logger,
                )
        finally:
            if not session:
                connection.close()

        if session:
            dns = [e.dn for e in session.entries]
            logger.debug("LDAP entries found", ldap_results=dns)
        else:
            logger.debug("No LDAP entries found")
        return session
