"""Shared API dependencies."""

from typing import AsyncGenerator, Optional

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from sellerdash.config import Settings, get_settings
from sellerdash.core.security import decode_access_token
from sellerdash.db.session import async_session_maker
from sellerdash.models.account import Account
from sellerdash.services.amazon.oauth import AmazonOAuthService, oauth_service
from sellerdash.services.dashboard import DashboardService
from sellerdash.services.storage import Storage

# Tokens are issued by the identity layer, not by this API
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session."""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_storage(db: AsyncSession = Depends(get_db)) -> Storage:
    return Storage(db)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> str:
    """Get current authenticated user id from the JWT bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    try:
        return decode_access_token(token)
    except JWTError:
        raise credentials_exception


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for outbound Amazon calls; None uses the network."""
    return None


def get_oauth_service() -> AmazonOAuthService:
    return oauth_service


async def get_dashboard_service(
    storage: Storage = Depends(get_storage),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> DashboardService:
    return DashboardService(storage, transport=transport)


async def get_owned_account(
    account_id: str,
    storage: Storage = Depends(get_storage),
    user_id: str = Depends(get_current_user),
) -> Account:
    """Resolve ``account_id`` from the path, 404 unless the caller owns it."""
    account = await storage.get_owned_account(account_id, user_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found",
        )
    return account


def require_development(settings: Settings = Depends(get_settings)) -> Settings:
    """Dependency that blocks access in production."""
    if settings.ENVIRONMENT == "production":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This endpoint is only available in development mode",
        )
    return settings
