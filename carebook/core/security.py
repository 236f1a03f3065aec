"""Security utilities for JWT handling."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from pydantic import ValidationError

from carebook.config import settings
from carebook.schemas.actors import Actor


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update(
        {
            "exp": expire,
            "iat": datetime.now(UTC),
            "type": "access",
        }
    )

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def create_actor_token(actor: Actor, expires_delta: timedelta | None = None) -> str:
    """Create an access token carrying an actor's identity and role."""
    claims: dict[str, Any] = {"sub": str(actor.user_id), "role": actor.role.value}
    if actor.patient_id:
        claims["patient_id"] = str(actor.patient_id)
    if actor.doctor_id:
        claims["doctor_id"] = str(actor.doctor_id)
    return create_access_token(claims, expires_delta)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )

        # Verify token type
        if payload.get("type") != "access":
            return None

        return payload
    except JWTError:
        return None


def actor_from_claims(payload: dict[str, Any]) -> Actor | None:
    """
    Resolve the acting party from decoded token claims.

    Returns:
        Actor, or None if the claims do not name a user and a known role
    """
    try:
        return Actor(
            user_id=payload.get("sub"),
            role=str(payload.get("role", "")).upper(),
            patient_id=payload.get("patient_id"),
            doctor_id=payload.get("doctor_id"),
        )
    except ValidationError:
        return None
