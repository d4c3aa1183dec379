"""User store used by an identity provider."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ..cache import UserCache
from ..exceptions import LoginFailedError
from ..models.user import AppUser
from .ldap import LDAPService

__all__ = ["UserStoreService"]


class UserStoreService:
    """Operations an identity provider needs from its user store.

    Every operation returns either a user or `None`. A failed credential
    check is indistinguishable from a user that does not exist. Errors other
    than a failed login are not absorbed, so that outages and configuration
    problems remain visible.

    Parameters
    ----------
    ldap
        Service to authenticate and look up users in LDAP.
    user_cache
        Cache of lookups by username and subject ID, or `None` to disable
        caching.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        ldap: LDAPService,
        user_cache: UserCache | None,
        logger: BoundLogger,
    ) -> None:
        self._ldap = ldap
        self._user_cache = user_cache
        self._logger = logger

    async def validate_credentials(
        self, username: str, password: str, domain: str | None = None
    ) -> AppUser | None:
        """Check a username and password.

        Parameters
        ----------
        username
            Username of the user.
        password
            Password of the user.
        domain
            If given, only authenticate against the directory with this
            friendly name.

        Returns
        -------
        AppUser or None
            The authenticated user, or `None` if the credentials were not
            valid or the user does not exist.

        Raises
        ------
        LDAPError
            Raised if a directory returned an unexpected error while
            searching.
        """
        try:
            return await self._ldap.login(username, password, domain)
        except LoginFailedError as e:
            self._logger.debug(
                "Invalid credentials",
                user=username,
                domain=domain,
                error=str(e.__cause__),
            )
            return None

    async def find_by_subject_id(self, subject_id: str) -> AppUser | None:
        """Find a user by subject ID.

        Parameters
        ----------
        subject_id
            Subject ID of the user.

        Returns
        -------
        AppUser or None
            The user, or `None` if the user could not be found.
        """
        return await self._find("subject_id", subject_id)

    async def find_by_username(self, username: str) -> AppUser | None:
        """Find a user by username.

        Parameters
        ----------
        username
            Username of the user.

        Returns
        -------
        AppUser or None
            The user, or `None` if the user could not be found.
        """
        return await self._find("username", username)

    async def _find(self, operation: str, name: str) -> AppUser | None:
        if not self._user_cache:
            return await self._ldap.find_user(name)
        key = self._user_cache.build_key(operation, name)
        cached = self._user_cache.get(key)
        if cached:
            return cached.user
        async with await self._user_cache.lock(key):
            cached = self._user_cache.get(key)
            if cached:
                return cached.user
            user = await self._ldap.find_user(name)
            self._user_cache.store(key, user)
            return user
