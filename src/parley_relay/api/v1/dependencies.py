"""Shared API dependencies for authentication and service access."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from parley_relay.core.context import ServiceContext
from parley_relay.core.errors import NotFound, Unauthenticated
from parley_relay.services.client_sync import ClientSyncAdapter
from parley_relay.utils.hash import decode_id

# Missing credentials are reported by the relay's own error handler.
bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> ServiceContext:
    """Return the service context built at application startup."""
    context: ServiceContext = request.app.state.context
    return context


ContextDep = Annotated[ServiceContext, Depends(get_context)]


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Extract the bearer token from the ``Authorization`` header.

    Raises:
        Unauthenticated: if no bearer token was supplied.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    return credentials.credentials


TokenDep = Annotated[str, Depends(get_bearer_token)]


def get_adapter(context: ContextDep, token: TokenDep) -> ClientSyncAdapter:
    """Build a client adapter for the caller, rejecting invalid sessions early."""
    adapter = ClientSyncAdapter(context, token)
    adapter.current_user_id()
    return adapter


AdapterDep = Annotated[ClientSyncAdapter, Depends(get_adapter)]


def parse_user_id(user_id: str) -> bytes:
    """Decode a user id taken from a path or body.

    Raises:
        NotFound: if the identifier cannot name any user.
    """
    try:
        return decode_id(user_id)
    except ValueError as err:
        raise NotFound("User not found") from err
