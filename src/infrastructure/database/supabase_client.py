from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import logging
import os
import secrets
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any

from supabase import AsyncClient, acreate_client

from src.domain.errors import AuthenticationError

logger = logging.getLogger(__name__)

_PBKDF2_ROUNDS = 100_000


@dataclass(frozen=True, slots=True)
class ProviderUser:
    id: str
    email: str | None
    display_name: str | None = None


AuthListener = Callable[[ProviderUser | None], Awaitable[None]]


@dataclass(slots=True)
class _LocalAccount:
    user: ProviderUser
    password_hash: str


def _hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ROUNDS)
    return f"{base64.b64encode(salt).decode('ascii')}${base64.b64encode(digest).decode('ascii')}"


def _verify_password(password: str, hashed: str) -> bool:
    salt_b64, digest_b64 = hashed.split("$", 1)
    salt = base64.b64decode(salt_b64)
    expected = base64.b64decode(digest_b64)
    calculated = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ROUNDS)
    return hmac.compare_digest(expected, calculated)


def _to_provider_user(user: Any) -> ProviderUser:
    metadata = getattr(user, "user_metadata", None) or {}
    name = metadata.get("full_name") or metadata.get("name")
    return ProviderUser(id=user.id, email=user.email, display_name=name)


class SupabaseAuthAdapter:
    """Wrapper around Supabase Auth with push notifications of the current user.

    When SUPABASE_DISABLED=1 (or no client is configured) accounts are kept in
    memory and every sign-in/sign-out is notified from within the call itself.
    """

    def __init__(self, client: AsyncClient | None = None) -> None:
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self._client = client
        self._current: ProviderUser | None = None
        self._listeners: list[AuthListener] = []
        self._accounts: dict[str, _LocalAccount] = {}
        self._supabase_subscription: Any = None
        self._pending: set[asyncio.Task] = set()

    @property
    def local(self) -> bool:
        return self.disabled or self._client is None

    @property
    def current_user(self) -> ProviderUser | None:
        return self._current

    async def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register ``listener``; it is called right away with the current user."""
        self._listeners.append(listener)
        if not self.local and self._supabase_subscription is None:
            self._supabase_subscription = self._client.auth.on_auth_state_change(
                self._on_supabase_event
            )
        await listener(self._current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sign_in_with_google(self, id_token: str) -> ProviderUser:
        """Finish the Google popup flow with the ID token it produced."""
        if not id_token:
            raise AuthenticationError("Missing Google ID token")
        if self.local:
            # deterministic fake user derived from the token
            email = id_token if "@" in id_token else None
            user = ProviderUser(
                id=f"google-{uuid.uuid5(uuid.NAMESPACE_URL, id_token).hex[:20]}",
                email=email,
                display_name=email.split("@")[0] if email else None,
            )
            await self._set_current(user)
            return user
        try:  # pragma: no cover - network
            res = await self._client.auth.sign_in_with_id_token(
                {"provider": "google", "token": id_token}
            )
        except Exception as exc:  # pragma: no cover - network
            raise AuthenticationError(f"Google sign-in failed: {exc}") from exc
        return self._signed_in(res)  # pragma: no cover - network

    async def sign_in_with_password(self, email: str, password: str) -> ProviderUser:
        if self.local:
            account = self._accounts.get(email.strip().lower())
            if account is None or not _verify_password(password, account.password_hash):
                raise AuthenticationError("Invalid login credentials")
            await self._set_current(account.user)
            return account.user
        try:
            res = await self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as exc:
            raise AuthenticationError(f"Sign-in failed: {exc}") from exc
        return self._signed_in(res)

    async def sign_up(self, email: str, password: str) -> ProviderUser:
        if not email or not password:
            raise AuthenticationError("Email and password are required")
        if self.local:
            key = email.strip().lower()
            if key in self._accounts:
                raise AuthenticationError("User already registered")
            user = ProviderUser(id=f"local-{uuid.uuid4().hex[:20]}", email=email.strip())
            self._accounts[key] = _LocalAccount(user=user, password_hash=_hash_password(password))
            await self._set_current(user)
            return user
        try:
            res = await self._client.auth.sign_up({"email": email, "password": password})
        except Exception as exc:
            raise AuthenticationError(f"Signup failed: {exc}") from exc
        return self._signed_in(res)

    async def update_display_name(self, name: str, user: ProviderUser | None = None) -> ProviderUser:
        """Set the provider display name of ``user`` (default: the current user)."""
        target = user or self._current
        if target is None:
            raise AuthenticationError("No signed-in user")
        if self.local:
            updated = replace(target, display_name=name)
            if updated.email:
                account = self._accounts.get(updated.email.lower())
                if account is not None:
                    account.user = updated
            self._current = updated
            return updated
        try:
            res = await self._client.auth.update_user({"data": {"full_name": name}})
        except Exception as exc:
            raise AuthenticationError(f"Profile update failed: {exc}") from exc
        return self._signed_in(res)

    async def sign_out(self) -> None:
        if self.local:
            await self._set_current(None)
            return
        try:  # pragma: no cover - network
            await self._client.auth.sign_out()
        except Exception as exc:  # pragma: no cover - network
            raise AuthenticationError(f"Sign-out failed: {exc}") from exc

    def _signed_in(self, res: Any) -> ProviderUser:
        if getattr(res, "user", None) is None:
            raise AuthenticationError("Supabase Auth did not return a user")
        self._current = _to_provider_user(res.user)
        return self._current

    async def _set_current(self, user: ProviderUser | None) -> None:
        self._current = user
        await self._notify(user)

    async def _notify(self, user: ProviderUser | None) -> None:
        for listener in list(self._listeners):
            await listener(user)

    def _on_supabase_event(self, event: Any, session: Any) -> None:
        # gotrue calls this synchronously from inside the auth call
        user = _to_provider_user(session.user) if session and session.user else None
        logger.debug("Supabase auth event %s", event)
        self._current = user
        task = asyncio.get_running_loop().create_task(self._notify(user))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


# Simple reusable singleton client getter for the gateway and the auth adapter
_CLIENT_SINGLETON: AsyncClient | None = None


async def get_supabase_client() -> AsyncClient | None:
    global _CLIENT_SINGLETON
    disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if disabled or not url or not key:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = await acreate_client(url, key)
    return _CLIENT_SINGLETON
