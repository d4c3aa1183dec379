"""Data models for LDAP."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["DirectoryEntry"]


@dataclass(frozen=True)
class DirectoryEntry:
    """An entry returned by a directory search.

    Attribute names in LDAP are case-insensitive, so all lookups ignore case.
    The entry is never modified after it has been read from the directory.
    """

    dn: str
    """Distinguished name of the entry."""

    attributes: dict[str, list[str]] = field(default_factory=dict)
    """Attribute values keyed by attribute name as returned by the server."""

    def get(self, name: str) -> str | None:
        """Return the first value of an attribute.

        Parameters
        ----------
        name
            Name of the attribute, in any case.

        Returns
        -------
        str or None
            First value of the attribute, or `None` if the entry does not have
            that attribute or it has no values.
        """
        values = self.get_all(name)
        return values[0] if values else None

    def get_all(self, name: str) -> list[str]:
        """Return all values of an attribute.

        Parameters
        ----------
        name
            Name of the attribute, in any case.

        Returns
        -------
        list of str
            Values of the attribute, or the empty list if it is not present.
        """
        wanted = name.lower()
        for key, values in self.attributes.items():
            if key.lower() == wanted:
                return list(values)
        return []

    def has(self, name: str) -> bool:
        """Whether the entry has at least one value for an attribute."""
        return bool(self.get_all(name))
