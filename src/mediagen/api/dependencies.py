"""FastAPI dependencies for request validation and common operations.

This module provides reusable FastAPI dependencies for:
- Worker trigger authorization (cron header or shared secret)
- Access to the UoW factory and executor collaborators from app state
"""

import hmac
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from mediagen.core.config import Settings
from mediagen.executor.ports import Collaborators
from mediagen.workers.generation_worker import UowFactory


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance loaded from environment variables.
    """
    return Settings()  # type: ignore[call-arg]  # Pydantic loads from env vars


def is_authorized_trigger(
    settings: Settings,
    x_vercel_cron: str | None,
    x_cron_secret: str | None,
    authorization: str | None,
) -> bool:
    """Decide whether a worker trigger request may run jobs.

    Accepted credentials, in order:
    - any `x-vercel-cron` header (scheduled invocation)
    - `x-cron-secret: <CRON_SECRET>`
    - `Authorization: Bearer <CRON_SECRET>`

    An empty CRON_SECRET rejects everything except the cron header.
    """
    if x_vercel_cron:
        return True

    secret = settings.cron_secret
    if not secret:
        return False

    if x_cron_secret and hmac.compare_digest(x_cron_secret, secret):
        return True

    if authorization and authorization.startswith("Bearer "):
        return hmac.compare_digest(authorization[len("Bearer ") :], secret)

    return False


async def verify_worker_trigger(
    x_vercel_cron: Annotated[str | None, Header()] = None,
    x_cron_secret: Annotated[str | None, Header()] = None,
    authorization: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject unauthorized worker trigger requests with 401.

    Raises:
        HTTPException: 401 Unauthorized if no accepted credential is present
    """
    if not is_authorized_trigger(settings, x_vercel_cron, x_cron_secret, authorization):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_uow_factory(request: Request) -> UowFactory:
    """Get UnitOfWork factory from app state."""
    return request.app.state.uow_factory


def get_collaborators(request: Request) -> Collaborators:
    """Get the executor's collaborators wired at startup."""
    return request.app.state.collaborators
