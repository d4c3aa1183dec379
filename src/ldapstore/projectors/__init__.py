"""Conversion of directory entries to users, one variant per directory."""

from .active_directory import ActiveDirectoryProjector
from .base import UserProjector
from .openldap import OpenLDAPProjector

__all__ = [
    "ActiveDirectoryProjector",
    "OpenLDAPProjector",
    "UserProjector",
]
