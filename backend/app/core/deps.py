from datetime import timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError

from app.core.config import settings
from app.core.session import SessionContext
from app.services.platform import PlatformAPIError, PlatformClient, get_platform_client
from app.services.student_directory import StudentDirectory
from app.services.wizard import WizardRegistry

# Tokens are issued by the platform; the gateway only forwards them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.PLATFORM_API_URL}/auth/login")

_wizard_registry = WizardRegistry(ttl=timedelta(minutes=settings.WIZARD_TTL_MINUTES))
_student_directory = StudentDirectory(ttl=timedelta(minutes=settings.STUDENT_CACHE_TTL_MINUTES))


def get_platform() -> PlatformClient:
    return get_platform_client()


def get_wizard_registry() -> WizardRegistry:
    return _wizard_registry


def get_student_directory() -> StudentDirectory:
    return _student_directory


async def get_session_context(
    token: Annotated[str, Depends(oauth2_scheme)],
    client: Annotated[PlatformClient, Depends(get_platform)],
) -> SessionContext:
    """Resolve the bearer token to the platform's user profile."""
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        profile = await client.get_json("/auth/me", token, fallback="Could not validate credentials")
    except PlatformAPIError as exc:
        if exc.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
            raise credentials_exc
        raise

    if not isinstance(profile, dict):
        raise credentials_exc
    try:
        return SessionContext.from_profile(profile, token)
    except ValidationError:
        raise credentials_exc


def require_role(*roles: str):
    """Dependency factory; raises 403 if the session role is not allowed."""
    async def check(session: SessionContext = Depends(get_session_context)) -> SessionContext:
        if session.user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{session.user.role}' is not permitted for this action.",
            )
        return session
    return check
