"""Authentication module for Auth0 JWT validation."""
import logging

import httpx
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User
from services.user_service import generate_username
from services.utils import is_unique_violation

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme; anonymous requests are allowed through
security = HTTPBearer(auto_error=False)

# Cache for JWKS client (reuse across requests)
_jwks_clients: dict[str, PyJWKClient] = {}

DEV_AUTH0_ID = "dev|local-development-user"

# Fresh random usernames to try before giving up on provisioning a user
_USERNAME_ATTEMPTS = 3


def get_jwks_client(settings: Settings) -> PyJWKClient:
    """Get or create a cached JWKS client for the given settings."""
    if settings.auth0_jwks_url not in _jwks_clients:
        _jwks_clients[settings.auth0_jwks_url] = PyJWKClient(
            settings.auth0_jwks_url,
            cache_jwk_set=True,
            lifespan=3600,  # Cache keys for 1 hour
        )
    return _jwks_clients[settings.auth0_jwks_url]


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate a JWT token from Auth0.

    Raises:
        HTTPException: If token is invalid, expired, or has wrong audience/issuer.
    """
    try:
        jwks_client = get_jwks_client(settings)
        signing_key = jwks_client.get_signing_key_from_jwt(token)

        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth0_audience,
            issuer=settings.auth0_issuer,
        )

    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidAudienceError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid audience",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidIssuerError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid issuer",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except httpx.HTTPError as e:
        logger.error("Failed to fetch JWKS from Auth0: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not validate credentials",
        )


async def get_or_create_user(
    db: AsyncSession,
    auth0_id: str,
    email: str | None = None,
    name: str | None = None,
    image: str | None = None,
) -> User:
    """
    Get existing user or create new one from Auth0 claims.

    New users get a generated username and the identity provider's name and
    picture. Concurrent first requests for the same subject race on the unique
    auth0_id; the loser's insert is rolled back to its savepoint and the
    winner's row is returned. A collision on the generated username is retried
    with a fresh one.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    result = await db.execute(select(User).where(User.auth0_id == auth0_id))
    user = result.scalar_one_or_none()

    for _ in range(_USERNAME_ATTEMPTS):
        if user is not None:
            break
        username = generate_username(name)
        candidate = User(
            auth0_id=auth0_id,
            email=email,
            name=name,
            image=image,
            username=username,
        )
        try:
            async with db.begin_nested():
                db.add(candidate)
                await db.flush()
            user = candidate
        except IntegrityError as e:
            if is_unique_violation(e, "ix_users_username"):
                logger.warning("Generated username %s already taken", username)
                continue
            # Race condition: another request created the user between our SELECT
            # and INSERT.
            result = await db.execute(select(User).where(User.auth0_id == auth0_id))
            user = result.scalar_one()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not allocate a username",
        )

    # Keep email in sync with Auth0
    if email and user.email != email:
        user.email = email
        await db.flush()

    return user


async def get_or_create_dev_user(db: AsyncSession) -> User:
    """Get or create a development user for DEV_MODE."""
    return await get_or_create_user(
        db,
        auth0_id=DEV_AUTH0_ID,
        email="dev@localhost",
        name="Dev User",
    )


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """
    Dependency that resolves the viewer, or None for anonymous requests.

    A missing Authorization header is anonymous; a present but invalid token
    is still rejected with 401. In DEV_MODE, always returns the dev user.
    """
    if settings.dev_mode:
        return await get_or_create_dev_user(db)

    if credentials is None:
        return None

    payload = decode_jwt(credentials.credentials, settings)

    auth0_id = payload.get("sub")
    if not auth0_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing sub claim",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await get_or_create_user(
        db,
        auth0_id=auth0_id,
        email=payload.get("email"),
        name=payload.get("name"),
        image=payload.get("picture"),
    )


async def get_current_user(
    user: User | None = Depends(get_optional_user),
) -> User:
    """Dependency that requires an authenticated user."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
