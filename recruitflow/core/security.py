from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from recruitflow.core.config import settings
import logging

from recruitflow.models.actor import Actor, ActorRole

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(seconds=settings.access_token_expires)

    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)
    return encoded_jwt


def create_actor_token(actor: Actor, expires_delta: Optional[timedelta] = None) -> str:
    """Issue an access token carrying the actor's identity, role and display name"""
    claims = {"sub": actor.identity, "role": actor.role.value}
    if actor.display_name:
        claims["name"] = actor.display_name
    return create_access_token(claims, expires_delta)


def decode_token(token: str) -> Optional[dict]:
    """Decode JWT token and return payload if valid"""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None


def actor_from_token(token: str) -> Optional[Actor]:
    """
    Resolve the acting user from an access token.

    The session layer that issued the token is trusted; this only checks the
    signature, expiry, token type and that the role is one we know.
    """
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None

    subject = payload.get("sub")
    if not subject:
        logger.debug("Token rejected: no subject")
        return None

    try:
        role = ActorRole(str(payload.get("role", "")).upper())
    except ValueError:
        logger.debug(f"Token rejected: unknown role {payload.get('role')!r}")
        return None

    return Actor(identity=str(subject), role=role, display_name=payload.get("name"))
