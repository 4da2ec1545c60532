from __future__ import annotations

from pydantic import BaseModel, Field

from src.domain.entities.identity import IdentityEntity


class IdentityResponse(BaseModel):
    """The signed-in user merged with their stored profile."""
    uid: str = Field(..., description="Unique identifier issued by the auth provider")
    full_name: str = Field("", description="Full name", example="Ada Lovelace")
    date_of_birth: str = Field("", description="Date of birth, empty if unknown", example="1815-12-10")
    username: str = Field("", description="Public username", example="ada")
    email: str = Field("", description="Email address", example="ada@example.com")
    profile_pic: str = Field("", description="Profile picture URL, empty if unset")

    @classmethod
    def from_entity(cls, identity: IdentityEntity) -> IdentityResponse:
        return cls(
            uid=identity.uid,
            full_name=identity.full_name,
            date_of_birth=identity.date_of_birth,
            username=identity.username,
            email=identity.email,
            profile_pic=identity.profile_pic,
        )


class GoogleSignInBody(BaseModel):
    """ID token produced by the Google popup flow in the browser."""
    id_token: str = Field(..., min_length=1, description="Google ID token")


class LoginBody(BaseModel):
    email: str = Field(..., min_length=3, description="Account email", example="ada@example.com")
    password: str = Field(..., min_length=1, description="Account password")


class SignupBody(BaseModel):
    email: str = Field(..., min_length=3, description="Account email", example="ada@example.com")
    password: str = Field(..., min_length=6, description="Account password")
    full_name: str = Field("", max_length=100, description="Full name")
    date_of_birth: str = Field("", description="Date of birth")
    username: str = Field("", max_length=50, description="Public username")


class UpdateProfileBody(BaseModel):
    """Fields left out keep their current value."""
    full_name: str | None = Field(None, max_length=100, description="Full name")
    date_of_birth: str | None = Field(None, description="Date of birth")
    username: str | None = Field(None, max_length=50, description="Public username")
    profile_pic: str | None = Field(None, description="Profile picture URL")
