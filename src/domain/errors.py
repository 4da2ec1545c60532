from __future__ import annotations


class PaletteSyncError(Exception):
    """Base class for errors raised by the palette synchronization layer."""


class Unauthenticated(PaletteSyncError):
    """A mutation was attempted without a signed-in identity."""


class Unauthorized(PaletteSyncError):
    """A mutation was attempted on a record owned by someone else."""


class ValidationError(PaletteSyncError, ValueError):
    """Input failed validation before reaching the remote store."""


class RemoteFailure(PaletteSyncError, RuntimeError):
    """The remote store or its transport rejected a call."""


class AuthenticationError(PaletteSyncError):
    """The auth provider rejected a sign-in, signup or profile update."""
