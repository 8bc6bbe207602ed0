import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from passbridge.core.config import settings
from passbridge.managers.event_bus import EventBus
from passbridge.services.auth_service import AuthService
from passbridge.services.orchestrator import PassOrchestrator

# Security scheme
security = HTTPBearer()


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    auth_service = AuthService()
    subject = auth_service.verify_admin_token(credentials.credentials)
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return subject


async def verify_hook_secret(x_hook_secret: Optional[str] = Header(None)) -> None:
    if not settings.HOOK_SECRET:
        return
    if not x_hook_secret or not secrets.compare_digest(x_hook_secret, settings.HOOK_SECRET):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid hook secret",
        )


def get_orchestrator(request: Request) -> PassOrchestrator:
    return request.app.state.orchestrator


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.orchestrator.bus
