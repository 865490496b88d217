from passlib.context import CryptContext
from datetime import datetime, timedelta
from typing import Optional
import logging
import jwt
from sqlalchemy.orm import Session

from ..common.config import Settings

logger = logging.getLogger(__name__)

# Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(username: str, project: str, settings: Settings) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": username, "project": project, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def check_login_rate_limit(
    client_key: str,
    db: Session,
    max_attempts: int,
    window_minutes: int
) -> tuple[bool, int]:
    """
    Check if a client has used up its login attempts for the current window.

    Args:
        client_key: Client address the attempts are counted against
        db: Database session
        max_attempts: Attempts allowed inside the window
        window_minutes: Length of the sliding window

    Returns:
        Tuple of (is_rate_limited, minutes_until_reset)
        - is_rate_limited: True once max_attempts attempts fall inside the window
        - minutes_until_reset: Minutes until the oldest counted attempt expires (0 if not limited)
    """
    from .models import LoginAttempt

    time_window = datetime.utcnow() - timedelta(minutes=window_minutes)

    attempts = db.query(LoginAttempt).filter(
        LoginAttempt.client_key == client_key,
        LoginAttempt.attempted_at > time_window
    ).order_by(LoginAttempt.attempted_at.asc()).all()

    if len(attempts) >= max_attempts:
        first_attempt_time = attempts[0].attempted_at
        reset_time = first_attempt_time + timedelta(minutes=window_minutes)
        minutes_until_reset = max(0, int((reset_time - datetime.utcnow()).total_seconds() / 60) + 1)

        logger.warning(
            "Login rate limit exceeded: client=%s attempts=%s minutes_until_reset=%s",
            client_key, len(attempts), minutes_until_reset
        )
        return True, minutes_until_reset

    return False, 0


def record_login_attempt(client_key: str, email: Optional[str], success: bool, db: Session) -> None:
    """
    Record a login attempt in the database.

    Args:
        client_key: Client address the attempt is counted against
        email: Email the client tried to log in with
        success: Whether the login succeeded
        db: Database session
    """
    from .models import LoginAttempt

    attempt = LoginAttempt(
        client_key=client_key,
        email=email,
        success=success,
        attempted_at=datetime.utcnow()
    )
    db.add(attempt)
    db.commit()

    status = "successful" if success else "failed"
    logger.info("Login attempt: client=%s email=%s status=%s", client_key, email, status)
