"""Base class for converting directory entries to users."""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from collections.abc import Iterable

from ..models.ldap import DirectoryEntry
from ..models.user import AppUser, Claim

__all__ = ["UserProjector"]


class UserProjector(metaclass=ABCMeta):
    """Abstract base class for turning a directory entry into a user.

    Each flavor of directory names the standard user attributes differently,
    so there is one implementation per flavor. The configured flavor selects
    the implementation when the service is created.
    """

    @property
    @abstractmethod
    def required_attributes(self) -> list[str]:
        """Attributes that must be requested for every search.

        Extra attributes from the directory configuration are requested in
        addition to these.
        """

    @abstractmethod
    def project(
        self,
        entry: DirectoryEntry,
        provider: str,
        extra_attributes: Iterable[str] = (),
    ) -> AppUser:
        """Build a user from a directory entry.

        Missing attributes never cause an error. The corresponding field of
        the user is left as `None` and the corresponding claim is omitted.

        Parameters
        ----------
        entry
            Entry returned by the directory search.
        provider
            Provider name to record in the user.
        extra_attributes
            Additional attributes to add as claims, in order, if the entry
            has them.

        Returns
        -------
        AppUser
            The corresponding user.
        """

    def build_claims(
        self,
        entry: DirectoryEntry,
        base_claims: Iterable[tuple[str, str | None]],
        extra_attributes: Iterable[str],
    ) -> tuple[Claim, ...]:
        """Assemble the claims for a user.

        Parameters
        ----------
        entry
            Entry returned by the directory search.
        base_claims
            Pairs of claim type and value for the base claims, in order. Pairs
            whose value is `None` are skipped.
        extra_attributes
            Additional attributes to add as claims after the base claims and
            role claims.

        Returns
        -------
        tuple of Claim
            Claims for the user.
        """
        claims = [Claim(type=t, value=v) for t, v in base_claims if v]
        claims.extend(
            Claim(type="role", value=g) for g in entry.get_all("memberOf")
        )
        seen = set()
        for attribute in extra_attributes:
            if attribute.lower() in seen:
                continue
            seen.add(attribute.lower())
            value = entry.get(attribute)
            if value is not None:
                claims.append(Claim(type=attribute, value=value))
        return tuple(claims)
