from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class ProfileRecord:
    """Profile extension stored at ``users/{uid}``."""

    full_name: str = ""
    date_of_birth: str = ""
    username: str = ""
    email: str = ""
    profile_pic: str = ""

    @classmethod
    def from_record(cls, record: Any) -> ProfileRecord:
        data = record if isinstance(record, Mapping) else {}
        return cls(
            full_name=_text(data.get("fullName")),
            date_of_birth=_text(data.get("dateOfBirth")),
            username=_text(data.get("username")),
            email=_text(data.get("email")),
            profile_pic=_text(data.get("profilePic")),
        )

    def to_record(self) -> dict[str, str]:
        return {
            "fullName": self.full_name,
            "dateOfBirth": self.date_of_birth,
            "username": self.username,
            "email": self.email,
            "profilePic": self.profile_pic,
        }


@dataclass(frozen=True)
class IdentityEntity:
    uid: str  # user id from the auth provider
    full_name: str = ""
    date_of_birth: str = ""
    username: str = ""
    email: str = ""
    profile_pic: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.uid, str) or not self.uid:
            raise ValueError("Identity requires a non-empty uid")

    @classmethod
    def merge(
        cls,
        uid: str,
        email: str | None,
        display_name: str | None,
        profile: ProfileRecord | None,
    ) -> IdentityEntity:
        """Merge a provider user with its stored profile, field by field.

        Stored profile values win, then provider defaults, then "". The email
        always comes from the provider.
        """
        ext = profile or ProfileRecord()
        return cls(
            uid=uid,
            full_name=ext.full_name or display_name or "",
            date_of_birth=ext.date_of_birth,
            username=ext.username,
            email=email or "",
            profile_pic=ext.profile_pic,
        )

    def to_profile(self) -> ProfileRecord:
        return ProfileRecord(
            full_name=self.full_name,
            date_of_birth=self.date_of_birth,
            username=self.username,
            email=self.email,
            profile_pic=self.profile_pic,
        )
