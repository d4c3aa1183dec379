"""Conversion of Active Directory entries to users."""

from __future__ import annotations

from collections.abc import Iterable

from ..models.ldap import DirectoryEntry
from ..models.user import AppUser
from .base import UserProjector

__all__ = ["ActiveDirectoryProjector"]


class ActiveDirectoryProjector(UserProjector):
    """Build users from Active Directory entries.

    The username and subject ID come from ``sAMAccountName``. The user
    principal name is added as a ``upn`` claim when present.
    """

    @property
    def required_attributes(self) -> list[str]:
        return [
            "distinguishedName",
            "cn",
            "name",
            "displayName",
            "givenName",
            "sn",
            "mail",
            "userPrincipalName",
            "sAMAccountName",
            "memberOf",
        ]

    def project(
        self,
        entry: DirectoryEntry,
        provider: str,
        extra_attributes: Iterable[str] = (),
    ) -> AppUser:
        username = entry.get("sAMAccountName")
        display_name = entry.get("displayName")
        base_claims = [
            ("sub", username),
            ("name", display_name),
            ("given_name", entry.get("givenName")),
            ("family_name", entry.get("sn")),
            ("email", entry.get("mail")),
            ("upn", entry.get("userPrincipalName")),
        ]
        claims = self.build_claims(entry, base_claims, extra_attributes)
        return AppUser(
            subject_id=username,
            username=username,
            display_name=display_name,
            provider_name=provider,
            provider_subject_id=username,
            claims=claims,
        )
