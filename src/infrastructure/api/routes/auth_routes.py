from __future__ import annotations

from fastapi import APIRouter, Depends, status

from src.application.dtos.auth_dto import (
    GoogleSignInBody,
    IdentityResponse,
    LoginBody,
    SignupBody,
    UpdateProfileBody,
)
from src.application.dtos.common_dto import SuccessResponse
from src.application.services.identity_session import IdentitySessionManager
from src.domain.entities.identity import IdentityEntity
from src.infrastructure.api.dependencies import get_current_identity, get_session

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized - Not signed in or credentials rejected"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.post(
    "/google",
    response_model=IdentityResponse,
    summary="Sign In With Google",
    description="""
    Finish the Google popup flow with the ID token it returned.

    A default profile (full name and username taken from the Google account) is
    created on first sign-in.
    """,
    response_description="The merged identity of the signed-in user",
)
async def sign_in_google(
    body: GoogleSignInBody,
    session: IdentitySessionManager = Depends(get_session),
):
    """Sign in with a Google ID token."""
    identity = await session.sign_in_with_google(body.id_token)
    return IdentityResponse.from_entity(identity)


@router.post(
    "/login",
    response_model=IdentityResponse,
    summary="Sign In With Email",
    description="Sign in with email and password and load the stored profile.",
    response_description="The merged identity of the signed-in user",
)
async def login(
    body: LoginBody,
    session: IdentitySessionManager = Depends(get_session),
):
    """Sign in with email and password."""
    identity = await session.sign_in_with_email(body.email, body.password)
    return IdentityResponse.from_entity(identity)


@router.post(
    "/signup",
    response_model=IdentityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Account",
    description="""
    Create an email/password account and its profile record.

    The provider display name is set to the full name (or the username when no
    full name is given).
    """,
    response_description="The identity of the new user",
)
async def signup(
    body: SignupBody,
    session: IdentitySessionManager = Depends(get_session),
):
    """Create an account and sign in."""
    identity = await session.sign_up_with_email(
        body.email,
        body.password,
        full_name=body.full_name,
        date_of_birth=body.date_of_birth,
        username=body.username,
    )
    return IdentityResponse.from_entity(identity)


@router.post(
    "/logout",
    response_model=SuccessResponse,
    summary="Sign Out",
)
async def logout(session: IdentitySessionManager = Depends(get_session)):
    """Sign out and forget the current identity."""
    await session.sign_out()
    return {"ok": True}


@router.get(
    "/me",
    response_model=IdentityResponse,
    summary="Get Current Identity",
    response_description="The signed-in user merged with their profile",
)
async def get_me(identity: IdentityEntity = Depends(get_current_identity)):
    """Get the current user's identity."""
    return IdentityResponse.from_entity(identity)


@router.patch(
    "/profile",
    response_model=IdentityResponse,
    summary="Update User Profile",
    description="""
    Overwrite the stored profile of the signed-in user. Fields left out keep
    their current value; the email cannot be changed here.
    """,
    response_description="Updated identity",
)
async def update_profile(
    body: UpdateProfileBody,
    session: IdentitySessionManager = Depends(get_session),
):
    """Update the current user's profile."""
    identity = await session.update_profile(
        full_name=body.full_name,
        date_of_birth=body.date_of_birth,
        username=body.username,
        profile_pic=body.profile_pic,
    )
    return IdentityResponse.from_entity(identity)
