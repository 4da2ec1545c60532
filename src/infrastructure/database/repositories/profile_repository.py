from __future__ import annotations

from src.domain.entities.identity import ProfileRecord
from src.infrastructure.database.remote_gateway import COLLECTION_USERS, RemoteDataGateway


class ProfileRepository:
    def __init__(self, gateway: RemoteDataGateway) -> None:
        self.gateway = gateway

    def _path(self, uid: str) -> str:
        if not uid:
            raise ValueError("Profile lookup needs a uid")
        return f"{COLLECTION_USERS}/{uid}"

    async def get(self, uid: str) -> ProfileRecord | None:
        record = await self.gateway.fetch_once(self._path(uid))
        return ProfileRecord.from_record(record) if record is not None else None

    async def save(self, uid: str, profile: ProfileRecord) -> ProfileRecord:
        """Overwrite the whole profile record of ``uid``."""
        await self.gateway.overwrite(self._path(uid), profile.to_record())
        return profile
