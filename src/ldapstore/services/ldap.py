"""Login and lookup of users in LDAP."""

from __future__ import annotations

import bonsai
from structlog.stdlib import BoundLogger

from ..constants import DEFAULT_PROVIDER
from ..exceptions import InvalidCredentialsError, LoginFailedError
from ..models.user import AppUser
from ..projectors import UserProjector
from ..storage.ldap import TRANSPORT_ERRORS, LDAPStorage

__all__ = ["LDAPService"]


class LDAPService:
    """Authenticate and look up users in the configured directories.

    This collects the login and lookup logic on top of the directory search.
    It is primarily intended to be used by the user store service rather than
    called directly.

    Parameters
    ----------
    ldap
        The underlying LDAP query layer.
    projector
        Converts directory entries into users.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        ldap: LDAPStorage,
        projector: UserProjector,
        logger: BoundLogger,
    ) -> None:
        self._ldap = ldap
        self._projector = projector
        self._logger = logger

    async def login(
        self, username: str, password: str, domain: str | None = None
    ) -> AppUser | None:
        """Authenticate a user with a password.

        Parameters
        ----------
        username
            Username of the user.
        password
            Password to verify against the directory entry of the user.
        domain
            If given, only search the directory with this friendly name.

        Returns
        -------
        AppUser or None
            The authenticated user, or `None` if the search returned no
            entries.

        Raises
        ------
        LDAPError
            Raised if a directory returned an unexpected error while
            searching.
        LoginFailedError
            Raised if no directory applies, the user was not found, or the
            password could not be verified. The reason is the ``__cause__``
            of the exception.
        """
        logger = self._logger.bind(user=username, domain=domain)
        session = await self._ldap.search(username, domain)
        async with session:
            if not session.entries:
                return None
            entry = session.entries[0]
            logger = logger.bind(
                friendly_name=session.config.friendly_name, ldap_dn=entry.dn
            )

            # An LDAP simple bind with an empty password is an anonymous bind
            # and succeeds, so it must never reach the directory.
            try:
                if not password:
                    raise InvalidCredentialsError("Empty password")
                if not await session.verify_password(entry.dn, password):
                    msg = "Directory did not report a bound identity"
                    raise InvalidCredentialsError(msg)
            except TRANSPORT_ERRORS as e:
                msg = "Login failed, cannot reach LDAP"
                logger.warning(msg, error=str(e) or type(e).__name__)
                raise LoginFailedError("Login failed") from e
            except (InvalidCredentialsError, bonsai.LDAPError) as e:
                logger.info("Login failed", error=str(e) or type(e).__name__)
                raise LoginFailedError("Login failed") from e

            provider = domain or DEFAULT_PROVIDER
            user = self._projector.project(
                entry, provider, session.config.extra_attributes
            )
        logger.info("Login succeeded", provider=provider)
        return user

    async def find_user(
        self, username: str, domain: str | None = None
    ) -> AppUser | None:
        """Look up a user without verifying any credentials.

        This never raises an exception for a failed lookup. Any error is
        logged and treated as the user not existing.

        Parameters
        ----------
        username
            Username of the user.
        domain
            If given, only search the directory with this friendly name.

        Returns
        -------
        AppUser or None
            The user, or `None` if the user could not be found.
        """
        logger = self._logger.bind(user=username, domain=domain)
        try:
            async with await self._ldap.search(username, domain) as session:
                if not session.entries:
                    return None
                entry = session.entries[0]
                provider = domain or DEFAULT_PROVIDER
                return self._projector.project(
                    entry, provider, session.config.extra_attributes
                )
        except LoginFailedError as e:
            logger.debug("User not found in LDAP", error=str(e.__cause__))
            return None
        except Exception as e:
            logger.exception("Unable to look up user in LDAP", error=str(e))
            return None
