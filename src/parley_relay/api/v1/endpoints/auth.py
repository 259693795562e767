# src/parley_relay/api/v1/endpoints/auth.py
"""Authentication endpoints for the Parley Relay API."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from parley_relay.schemas.user import AuthResponse, CredentialsRequest
from parley_relay.services.identity import Credentials

from ..dependencies import ContextDep, TokenDep

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/anonymous", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def sign_in_anonymously(context: ContextDep) -> AuthResponse:
    """Issue a brand-new anonymous identity and session."""
    result = context.identity.authenticate()
    return AuthResponse.build(result.user_id, result.session_token, created=result.created)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: CredentialsRequest, context: ContextDep) -> AuthResponse:
    """Register an email/secret account and sign it in."""
    result = context.identity.register(Credentials(email=payload.email, secret=payload.secret))
    return AuthResponse.build(result.user_id, result.session_token, created=result.created)


@router.post("/login", response_model=AuthResponse)
async def login(payload: CredentialsRequest, context: ContextDep) -> AuthResponse:
    """Sign in to an existing account."""
    result = context.identity.authenticate(Credentials(email=payload.email, secret=payload.secret))
    return AuthResponse.build(result.user_id, result.session_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(context: ContextDep, token: TokenDep) -> Response:
    """Revoke the caller's session."""
    context.identity.sign_out(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
