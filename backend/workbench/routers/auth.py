from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
import logging

from workbench.core.security import verify_credentials
from workbench.core.storage import Storage, get_storage
from workbench.schemas.auth import LoginRequest, SessionStatus

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api", tags=["auth"])

PUBLIC_PATHS = {"/api/login", "/api/logout", "/api/session"}


def is_authenticated(request: Request) -> bool:
    return bool(request.session.get("authenticated"))


@router.post("/login", response_model=SessionStatus)
async def login(payload: LoginRequest, request: Request, storage: Storage = Depends(get_storage)):
    logger.info(f"=== LOGIN REQUEST === Username: {payload.username}")

    user = storage.get_user_by_username(payload.username)
    if not verify_credentials(user, payload.password):
        logger.warning(f"Login failed for: {payload.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    request.session.clear()
    request.session["authenticated"] = True
    request.session["userId"] = user.id
    request.session["username"] = user.username
    logger.info(f"Login successful for: {user.username}")
    return SessionStatus(authenticated=True)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request):
    request.session.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session", response_model=SessionStatus)
async def session_status(request: Request):
    if not is_authenticated(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return SessionStatus(authenticated=True)
