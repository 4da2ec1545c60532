"""Session state: who is signed in, merged with their stored profile."""
from __future__ import annotations

import logging
from collections.abc import Callable

from src.domain.entities.identity import IdentityEntity, ProfileRecord
from src.domain.errors import RemoteFailure, Unauthenticated
from src.infrastructure.database.repositories.profile_repository import ProfileRepository
from src.infrastructure.database.supabase_client import ProviderUser, SupabaseAuthAdapter

logger = logging.getLogger(__name__)


class IdentitySessionManager:
    """Holds the current identity and follows the provider's auth-state changes.

    Every auth notification supersedes the previous one: a profile fetch that
    finishes after a newer notification arrived is discarded.
    """

    def __init__(self, auth: SupabaseAuthAdapter, profiles: ProfileRepository) -> None:
        self.auth = auth
        self.profiles = profiles
        self._identity: IdentityEntity | None = None
        self._generation = 0
        self._listening = False
        self._signing_up = False
        self._unsubscribe: Callable[[], None] | None = None

    def current_identity(self) -> IdentityEntity | None:
        return self._identity

    @property
    def authenticated(self) -> bool:
        return self._identity is not None

    async def listen(self) -> None:
        if self._listening:
            return
        self._listening = True
        self._unsubscribe = await self.auth.on_auth_state_change(self._on_auth_state)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = None
        self._listening = False
        self._clear()

    async def sign_in_with_google(self, id_token: str) -> IdentityEntity:
        user = await self.auth.sign_in_with_google(id_token)
        await self._ensure_default_profile(user)
        return await self._apply(user)

    async def sign_in_with_email(self, email: str, password: str) -> IdentityEntity:
        user = await self.auth.sign_in_with_password(email, password)
        return await self._apply(user)

    async def sign_up_with_email(
        self,
        email: str,
        password: str,
        full_name: str = "",
        date_of_birth: str = "",
        username: str = "",
    ) -> IdentityEntity:
        # no session until the profile record exists
        self._signing_up = True
        try:
            user = await self.auth.sign_up(email, password)
            self._clear()
            display_name = full_name or username
            if display_name:
                user = await self.auth.update_display_name(display_name, user)
            profile = ProfileRecord(
                full_name=full_name,
                date_of_birth=date_of_birth,
                username=username,
                email=email,
            )
            await self.profiles.save(user.id, profile)
            logger.info("Created profile for new user %s", user.id)
        finally:
            self._signing_up = False
        return await self._apply(user)

    async def update_profile(
        self,
        full_name: str | None = None,
        date_of_birth: str | None = None,
        username: str | None = None,
        profile_pic: str | None = None,
    ) -> IdentityEntity:
        identity = self._identity
        if identity is None:
            raise Unauthenticated("Sign in to update your profile")
        profile = ProfileRecord(
            full_name=identity.full_name if full_name is None else full_name,
            date_of_birth=identity.date_of_birth if date_of_birth is None else date_of_birth,
            username=identity.username if username is None else username,
            email=identity.email,
            profile_pic=identity.profile_pic if profile_pic is None else profile_pic,
        )
        await self.profiles.save(identity.uid, profile)
        user = await self.auth.update_display_name(profile.full_name or profile.username)
        return await self._apply(user)

    async def sign_out(self) -> None:
        await self.auth.sign_out()
        # clear right away, the provider notification may come later
        self._clear()

    async def _on_auth_state(self, user: ProviderUser | None) -> None:
        if user is None or self._signing_up:
            self._clear()
            return
        await self._apply(user)

    async def _apply(self, user: ProviderUser) -> IdentityEntity:
        self._generation += 1
        generation = self._generation
        identity = await self._hydrate(user)
        if generation != self._generation:
            logger.debug("Dropping superseded profile for %s", user.id)
            return identity
        if self._identity is None or self._identity.uid != user.id:
            logger.info("Session started for %s", user.id)
        self._identity = identity
        return identity

    async def _hydrate(self, user: ProviderUser) -> IdentityEntity:
        try:
            profile = await self.profiles.get(user.id)
        except RemoteFailure as exc:
            logger.warning("Profile fetch for %s failed, using provider data only: %s", user.id, exc)
            profile = None
        return IdentityEntity.merge(user.id, user.email, user.display_name, profile)

    async def _ensure_default_profile(self, user: ProviderUser) -> None:
        try:
            if await self.profiles.get(user.id) is not None:
                return
            username = user.email.split("@")[0] if user.email else ""
            await self.profiles.save(
                user.id,
                ProfileRecord(
                    full_name=user.display_name or "",
                    username=username,
                    email=user.email or "",
                ),
            )
            logger.info("Created default profile for %s", user.id)
        except RemoteFailure as exc:
            logger.warning("Could not create default profile for %s: %s", user.id, exc)

    def _clear(self) -> None:
        self._generation += 1
        if self._identity is not None:
            logger.info("Session ended for %s", self._identity.uid)
        self._identity = None
