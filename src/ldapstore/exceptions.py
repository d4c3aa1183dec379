"""Exceptions for ldapstore."""

from __future__ import annotations

__all__ = [
    "DirectoryError",
    "InvalidCredentialsError",
    "LDAPError",
    "LoginFailedError",
    "NoSearchableDirectoryError",
    "UserNotFoundError",
]


class DirectoryError(Exception):
    """Base class for errors from the directory lookup layer."""


class NoSearchableDirectoryError(DirectoryError):
    """No configured directory applies to the username and domain."""


class UserNotFoundError(DirectoryError):
    """All applicable directories were searched and none had the user."""


class InvalidCredentialsError(DirectoryError):
    """The directory did not accept the password for a user."""


class LoginFailedError(DirectoryError):
    """Authentication of a user against a directory failed.

    The underlying reason is always available as ``__cause__``. It may be
    `NoSearchableDirectoryError`, `UserNotFoundError`,
    `InvalidCredentialsError`, or an error from the directory while verifying
    the password. Callers that only need to know whether the credentials were
    accepted should treat all of these the same way.
    """


class LDAPError(DirectoryError):
    """A directory returned an unexpected error while searching.

    This is not a credential failure. It usually means the service account
    credentials or the search filter for a directory are wrong, and is
    therefore propagated rather than reported as an invalid login.

    Parameters
    ----------
    message
        Summary of the error.
    friendly_name
        Friendly name of the directory that failed.
    """

    def __init__(self, message: str, friendly_name: str) -> None:
        super().__init__(f"{message} ({friendly_name})")
        self.friendly_name = friendly_name
