# ============================================================================
# FILE: salon_scheduler/api/dependencies.py
# Business context from JWT bearer tokens, plus shared service dependencies
# ============================================================================
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from salon_scheduler.config.settings import settings
from salon_scheduler.core.exceptions import UnauthorizedError
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher
from salon_scheduler.services.rate_limit.rate_limiter import RateLimiter

# Missing credentials are reported as 401 by UnauthorizedError, not HTTPBearer's 403
jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Access token carrying a business_id claim",
    auto_error=False,
)


@dataclass(frozen=True)
class BusinessContext:
    business_id: UUID
    subject: Optional[str] = None


# ============================================================================
# JWT Token Functions
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims; must include 'business_id' to be accepted by this API
        expires_delta: Optional custom expiration time
    """
    to_encode = {k: str(v) if isinstance(v, UUID) else v for k, v in data.items()}
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access"
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict:
    """
    Decode a JWT access token.

    Raises:
        UnauthorizedError: If token is invalid, expired or not an access token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise UnauthorizedError(f"Could not validate credentials: {str(e)}")

    if payload.get("type") != "access":
        raise UnauthorizedError("Invalid token type")
    return payload


async def get_business_context(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(jwt_security),
) -> BusinessContext:
    """Business the caller acts for; 401 without a valid token carrying one"""
    if credentials is None:
        raise UnauthorizedError()

    payload = verify_access_token(credentials.credentials)
    try:
        business_id = UUID(str(payload["business_id"]))
    except (KeyError, ValueError):
        raise UnauthorizedError("No business context")

    return BusinessContext(business_id=business_id, subject=payload.get("sub"))


# ============================================================================
# Service dependencies
# ============================================================================

def get_rate_limiter(request: Request) -> RateLimiter:
    """The limiter started by the application lifespan"""
    return request.app.state.rate_limiter


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()
