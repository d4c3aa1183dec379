"""Multi-directory credential validation and user lookup over LDAP."""

from importlib.metadata import PackageNotFoundError, version

__all__ = ["__version__"]

try:
    __version__ = version("ldapstore")
except PackageNotFoundError:
    # package is not installed
    __version__ = "0.0.0"
