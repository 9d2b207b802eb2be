"""Shared API dependencies: database, clock, collaborators and bearer auth."""
from dataclasses import dataclass, field
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.clock import Clock, utcnow
from app.config import get_settings
from app.database import get_db  # noqa: F401  (re-exported for routers and test overrides)
from app.services.artwork import LocalArtworkStore
from app.services.notifications import EmailNotificationSender, NotificationSender

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Identity extracted from an identity-provider access token."""

    email: str
    name: str
    roles: set[str] = field(default_factory=set)


def get_clock() -> Clock:
    return utcnow


@lru_cache
def get_artwork_store() -> LocalArtworkStore:
    settings = get_settings()
    return LocalArtworkStore(settings.custom_art_dir, settings.premade_art_dir)


@lru_cache
def get_notification_sender() -> NotificationSender:
    return EmailNotificationSender(get_settings())


def extract_roles(payload: dict) -> set[str]:
    """Collect role claims from ``realm_access.roles`` and top-level ``roles``."""
    roles = set()
    realm_access = payload.get("realm_access")
    if isinstance(realm_access, dict) and isinstance(realm_access.get("roles"), list):
        roles.update(r for r in realm_access["roles"] if isinstance(r, str) and r)
    if isinstance(payload.get("roles"), list):
        roles.update(r for r in payload["roles"] if isinstance(r, str) and r)
    return roles


def decode_access_token(token: str) -> dict:
    """Verify and decode a bearer token issued by the identity provider."""
    settings = get_settings()
    return jwt.decode(
        token,
        settings.auth_jwt_key,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
        issuer=settings.auth_issuer,
        options={"verify_aud": bool(settings.auth_audience)},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    """Require a valid bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise credentials_exception

    email = payload.get("email") or payload.get("preferred_username")
    if not email:
        raise credentials_exception

    return CurrentUser(
        email=email,
        name=payload.get("name") or email,
        roles=extract_roles(payload),
    )


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Require the configured admin role."""
    if get_settings().admin_role not in current_user.roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return current_user
