"""Constants for ldapstore."""

from datetime import timedelta

__all__ = [
    "CONFIG_PATH",
    "DEFAULT_PROVIDER",
    "LDAP_PORT",
    "LDAP_TIMEOUT",
    "LDAPS_PORT",
    "USER_CACHE_LIFETIME",
    "USER_CACHE_NEGATIVE_LIFETIME",
    "USER_CACHE_SIZE",
]

CONFIG_PATH = "/etc/ldapstore/ldapstore.yaml"
"""Default configuration path."""

DEFAULT_PROVIDER = "local"
"""Provider recorded for users found without an explicit domain."""

LDAP_PORT = 389
"""Default port for unencrypted (or StartTLS) LDAP connections."""

LDAPS_PORT = 636
"""Default port for LDAP over SSL."""

LDAP_TIMEOUT = 5.0
"""Default timeout (in seconds) for each LDAP connect, bind, and search."""

# The following constants define per-process cache defaults.

USER_CACHE_LIFETIME = timedelta(minutes=5)
"""How long to cache users found in LDAP."""

USER_CACHE_NEGATIVE_LIFETIME = timedelta(seconds=30)
"""How long to remember that a user was not found in LDAP.

Shorter than `USER_CACHE_LIFETIME` so that a newly created directory entry
becomes visible quickly.
"""

USER_CACHE_SIZE = 5000
"""How many user lookups to cache in memory."""
