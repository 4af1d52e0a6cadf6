import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from passlib.context import CryptContext

from relay_alarm.core.env_settings import EnvSettings


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)  # Set to DEBUG for more verbose logging

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a hashed one.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unknown or malformed hash
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def secrets_match(presented: Optional[str], expected: str) -> bool:
    """Constant-time comparison of a presented shared secret."""
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode(), expected.encode())


def create_access_token(settings: EnvSettings, data: dict, expires_delta: timedelta = None) -> Optional[str]:
    """
    Create a JWT access token.
    """
    try:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        logger.info(f"🔒 JWT created for user {data['sub']} with expiration at {expire}")
        return encoded_jwt
    except JWTError as e:
        logger.error(f"❌ Error creating access token: {e}")
        return None


def decode_access_token(settings: EnvSettings, token: str) -> dict:
    """
    Decode a JWT token. Returns payload if valid, otherwise raises JWTError.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


if __name__ == "__main__":
    # Produce a hash for data/users.json
    import getpass
    print(get_password_hash(getpass.getpass("Password: ")))
