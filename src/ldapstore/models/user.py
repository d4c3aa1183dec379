"""Models for users found in a directory."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "AppUser",
    "Claim",
]


class Claim(BaseModel):
    """A single identity claim about a user."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(
        ..., title="Claim type", examples=["given_name"], min_length=1
    )

    value: str = Field(..., title="Claim value", examples=["Alice"])


class AppUser(BaseModel):
    """A user as seen by the identity provider.

    Built fresh from a directory entry for every lookup and never modified
    afterwards. Fields whose source attribute was missing from the entry are
    `None`.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: str | None = Field(
        None,
        title="Subject ID",
        description="Stable identifier for the user",
        examples=["alice"],
    )

    username: str | None = Field(
        None,
        title="Username",
        description="Login name of the user in the directory",
        examples=["alice"],
    )

    display_name: str | None = Field(
        None,
        title="Display name",
        examples=["Alice Example"],
    )

    provider_name: str = Field(
        ...,
        title="Provider",
        description=(
            "Friendly name of the domain that was explicitly requested, or"
            " ``local`` if the lookup was not restricted to a domain"
        ),
        examples=["local", "corp"],
    )

    provider_subject_id: str | None = Field(
        None,
        title="Subject ID at the provider",
        examples=["alice"],
    )

    claims: tuple[Claim, ...] = Field(
        (),
        title="Claims",
        description=(
            "Base identity claims in a fixed order followed by one claim per"
            " extra attribute that was present"
        ),
    )

    def get_claim(self, claim_type: str) -> str | None:
        """Return the value of the first claim of a given type, if any."""
        for claim in self.claims:
            if claim.type == claim_type:
                return claim.value
        return None

    def get_claims(self, claim_type: str) -> list[str]:
        """Return the values of all claims of a given type."""
        return [c.value for c in self.claims if c.type == claim_type]
