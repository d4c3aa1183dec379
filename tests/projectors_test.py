"""Tests for converting directory entries to users."""

from __future__ import annotations

from ldapstore.models.ldap import DirectoryEntry
from ldapstore.models.user import Claim
from ldapstore.projectors import ActiveDirectoryProjector, OpenLDAPProjector

_AD_DN = "cn=testuser,cn=users,dc=example,dc=com"


def _ad_entry(**extra: list[str]) -> DirectoryEntry:
    attributes = {
        "distinguishedName": [_AD_DN],
        "cn": ["testuser"],
        "givenName": ["Test"],
        "name": ["testuser"],
        "userPrincipalName": ["testuser@example.com"],
        "sAMAccountName": ["testuser"],
    }
    attributes.update(extra)
    return DirectoryEntry(dn=_AD_DN, attributes=attributes)


def test_active_directory_missing_display_name() -> None:
    user = ActiveDirectoryProjector().project(_ad_entry(), "local")

    assert user.display_name is None
    assert user.get_claim("name") is None
    assert user.username == "testuser"
    assert user.subject_id == "testuser"
    assert user.provider_subject_id == "testuser"
    assert user.provider_name == "local"
    assert list(user.claims) == [
        Claim(type="sub", value="testuser"),
        Claim(type="given_name", value="Test"),
        Claim(type="upn", value="testuser@example.com"),
    ]


def test_active_directory_extra_attributes() -> None:
    entry = _ad_entry(displayName=["TestUser"], testfield=["extrafield"])
    projector = ActiveDirectoryProjector()

    user = projector.project(entry, "local", ["testfield"])
    assert user.display_name == "TestUser"
    assert user.get_claim("name") == "TestUser"
    assert user.get_claim("testfield") == "extrafield"
    assert user.claims[-1] == Claim(type="testfield", value="extrafield")

    # Attributes in the entry that weren't requested are not claims.
    user = projector.project(entry, "local")
    assert user.get_claim("testfield") is None

    # Requested attributes missing from the entry are skipped.
    user = projector.project(entry, "corp", ["missing", "testfield"])
    assert user.get_claim("missing") is None
    assert user.get_claim("testfield") == "extrafield"
    assert user.provider_name == "corp"


def test_openldap() -> None:
    entry = DirectoryEntry(
        dn="uid=alice,ou=people,dc=example,dc=com",
        attributes={
            "uid": ["alice"],
            "cn": ["Alice Example"],
            "displayName": ["Alice Example"],
            "givenName": ["Alice"],
            "sn": ["Example"],
            "mail": ["alice@example.com"],
            "memberOf": [
                "cn=admins,ou=groups,dc=example,dc=com",
                "cn=staff,ou=groups,dc=example,dc=com",
            ],
            "employeeNumber": ["4123"],
            "departmentNumber": ["17"],
        },
    )

    user = OpenLDAPProjector().project(
        entry, "people", ["departmentNumber", "employeeNumber"]
    )
    assert user.username == "alice"
    assert user.subject_id == "alice"
    assert user.display_name == "Alice Example"
    assert user.provider_name == "people"
    assert [(c.type, c.value) for c in user.claims] == [
        ("sub", "alice"),
        ("name", "Alice Example"),
        ("given_name", "Alice"),
        ("family_name", "Example"),
        ("email", "alice@example.com"),
        ("role", "cn=admins,ou=groups,dc=example,dc=com"),
        ("role", "cn=staff,ou=groups,dc=example,dc=com"),
        ("departmentNumber", "17"),
        ("employeeNumber", "4123"),
    ]
    assert user.get_claims("role") == [
        "cn=admins,ou=groups,dc=example,dc=com",
        "cn=staff,ou=groups,dc=example,dc=com",
    ]


def test_openldap_empty_entry() -> None:
    entry = DirectoryEntry(dn="uid=ghost,ou=people,dc=example,dc=com")

    user = OpenLDAPProjector().project(entry, "local", ["employeeNumber"])
    assert user.username is None
    assert user.subject_id is None
    assert user.display_name is None
    assert user.claims == ()


def test_deterministic() -> None:
    entry = _ad_entry(
        displayName=["TestUser"],
        memberOf=["cn=a,dc=example,dc=com"],
        testfield=["extrafield"],
    )
    projector = ActiveDirectoryProjector()

    first = projector.project(entry, "local", ["testfield", "testfield"])
    second = projector.project(entry, "local", ["testfield"])
    assert first == second
    assert first.get_claims("testfield") == ["extrafield"]


def test_required_attributes() -> None:
    assert "sAMAccountName" in ActiveDirectoryProjector().required_attributes
    assert "distinguishedName" in (
        ActiveDirectoryProjector().required_attributes
    )
    assert "uid" in OpenLDAPProjector().required_attributes
    assert "displayName" in OpenLDAPProjector().required_attributes
