from fastapi import APIRouter, HTTPException, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from datetime import timedelta
from pydantic import BaseModel
import logging

from relay_alarm.core.dependencies import get_settings
from relay_alarm.core.env_settings import EnvSettings
from relay_alarm.utils.security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

class Token(BaseModel):
    access_token: str
    token_type: str


@router.post("/login", response_model=Token, summary="Operator login and JWT token retrieval")
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    settings: EnvSettings = Depends(get_settings),
):
    """
    Login endpoint that verifies operator credentials and returns a JWT token.
    The token authenticates both the dashboard API and the dashboard WebSocket.
    """
    logger.info(f"🔓 Login attempt for user: {form_data.username}")
    user = request.app.state.users.authenticate(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(
        settings,
        data={"sub": user["username"], "role": user["role"]},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    if access_token is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not issue token",
        )
    logger.info(f"✅ Login successful for user: {user['username']} - Token generated.")
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout", summary="Operator logout")
async def logout():
    """
    Tokens are stateless; the client discards its token.
    """
    logger.info("🔒 Logout requested.")
    return {"message": "Logout successful"}
