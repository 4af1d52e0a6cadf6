import logging
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from relay_alarm.core.env_settings import EnvSettings
from relay_alarm.services.commands import AlarmController
from relay_alarm.utils.security import decode_access_token, secrets_match


logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_settings(request: Request) -> EnvSettings:
    return request.app.state.settings


def get_controller(request: Request) -> AlarmController:
    return request.app.state.controller


def _user_from_token(settings: EnvSettings, token: str) -> dict:
    try:
        payload = decode_access_token(settings, token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )
    username: str = payload.get("sub")
    role: str = payload.get("role")
    if username is None or role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"username": username, "role": role}


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    settings: EnvSettings = Depends(get_settings),
):
    """
    Verifies JWT token and returns user payload.
    """
    return _user_from_token(settings, token)


def verify_token_ws(settings: EnvSettings, token: str) -> dict:
    """
    Verifies JWT token for WebSocket connections.
    Similar to get_current_user but doesn't use Depends.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return _user_from_token(settings, token)


async def verify_webhook_secret(
    request: Request,
    secret: str = Query(None),
    settings: EnvSettings = Depends(get_settings),
) -> None:
    """Order webhook callers present the shared secret as a query parameter."""
    if not secrets_match(secret, settings.ORDER_WEBHOOK_SECRET):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"⚠️ Unauthorized order webhook attempt from IP: {client}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
