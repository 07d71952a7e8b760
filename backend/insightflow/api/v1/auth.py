"""
Signup and login endpoints.

Both return a JWT whose subject is the username. Failures are reported as
400 ``{"error": ...}`` so the dashboard can show the message directly.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from insightflow.api.dependencies import DatabaseSession
from insightflow.core.config import settings
from insightflow.core.security import create_access_token, get_password_hash, verify_password
from insightflow.repositories.user import UserRepository
from insightflow.schemas.auth import LoginRequest, SignupRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _issue_token(username: str) -> str:
    return create_access_token(
        data={"sub": username},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@router.post("/signup", response_model=TokenResponse, responses={400: {"description": "Signup rejected"}})
async def signup(request: SignupRequest, db: DatabaseSession):
    """
    Create an account and return a token.

    Example:
        POST /api/signup
        {"firstName": "Ada", "lastName": "Lovelace",
         "email": "ada@example.com", "password": "..."}

        Response:
        {"token": "eyJ...", "message": "User created successfully"}
    """
    username = request.effective_username
    try:
        user = await UserRepository(db).create_user(
            username=username,
            email=request.email,
            hashed_password=get_password_hash(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
        )
    except ValueError as e:
        logger.info("Signup rejected", extra={"username": username, "reason": str(e)})
        return _error(str(e))

    logger.info("User signed up", extra={"user_id": user.id})
    return TokenResponse(token=_issue_token(user.username), message="User created successfully")


@router.post("/login", response_model=TokenResponse, responses={400: {"description": "Invalid credentials"}})
async def login(request: LoginRequest, db: DatabaseSession):
    """
    Log in with ``username`` or ``email`` plus ``password``.

    A successful login updates ``last_login``. The error message does not
    reveal whether the account exists.
    """
    users = UserRepository(db)

    if request.email and request.email.strip():
        user = await users.get_by_email(request.email.strip())
        failure = "Invalid email or password"
    else:
        user = await users.get_by_login((request.username or "").strip())
        failure = "Invalid username or password"

    if user is None or not verify_password(request.password, user.hashed_password):
        logger.info("Login failed", extra={"identifier": request.identifier})
        return _error(failure)

    await users.touch_last_login(user)
    logger.info("User logged in", extra={"user_id": user.id})
    return TokenResponse(token=_issue_token(user.username), message="Login successful")
