import secrets
import string

from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone

from hardtrack.config import settings

INVITE_TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
INVITE_TOKEN_LENGTH = 12

OAUTH_STATE_EXPIRE_MINUTES = 10


def generate_invite_token() -> str:
    return "".join(secrets.choice(INVITE_TOKEN_ALPHABET) for _ in range(INVITE_TOKEN_LENGTH))


def create_oauth_state(user_id: str) -> str:
    """Short-lived signed state for the provider OAuth round trip."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=OAUTH_STATE_EXPIRE_MINUTES)
    return jwt.encode(
        {"sub": user_id, "purpose": "oauth_state", "exp": expire},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


def read_oauth_state(state: str):
    """Returns the user id carried by a state token, or None when it is invalid or expired."""
    try:
        payload = jwt.decode(state, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != "oauth_state":
        return None
    return payload.get("sub")
