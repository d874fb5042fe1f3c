"""JWT token creation and validation."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from govgen.config import settings

ALGORITHM = "HS256"


def create_access_token(user_id: str | int, role: str) -> str:
    """Create a short-lived access token for an already-authenticated identity."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decode and validate an access token. Raises JWTError on failure."""
    payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    return payload
