"""Conversion of OpenLDAP entries to users."""

from __future__ import annotations

from collections.abc import Iterable

from ..models.ldap import DirectoryEntry
from ..models.user import AppUser
from .base import UserProjector

__all__ = ["OpenLDAPProjector"]


class OpenLDAPProjector(UserProjector):
    """Build users from entries in OpenLDAP or another RFC 2307 directory.

    The username and subject ID come from the ``uid`` attribute.
    """

    @property
    def required_attributes(self) -> list[str]:
        return [
            "uid",
            "cn",
            "displayName",
            "givenName",
            "sn",
            "mail",
            "memberOf",
        ]

    def project(
        self,
        entry: DirectoryEntry,
        provider: str,
        extra_attributes: Iterable[str] = (),
    ) -> AppUser:
        username = entry.get("uid")
        display_name = entry.get("displayName")
        base_claims = [
            ("sub", username),
            ("name", display_name),
            ("given_name", entry.get("givenName")),
            ("family_name", entry.get("sn")),
            ("email", entry.get("mail")),
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
