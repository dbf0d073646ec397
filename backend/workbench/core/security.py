import hmac
import logging
from typing import Optional

from jose import JWTError, jwt

from workbench.models import User

logger = logging.getLogger("uvicorn.error")

ALGORITHM = "HS256"


def verify_credentials(user: Optional[User], password: str) -> bool:
    """Plaintext comparison against the single stored account."""
    if user is None:
        return False
    return hmac.compare_digest(user.password.encode("utf-8"), password.encode("utf-8"))


def sign_session_id(sid: str, secret: str) -> str:
    return jwt.encode({"sid": sid}, secret, algorithm=ALGORITHM)


def unsign_session_id(token: str, secret: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        logger.warning("Rejected session cookie with invalid signature")
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) else None
