import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..schemas import UserRegister, UserLogin, AuthResponse, UserResponse, MessageResponse
from ..services.geo_service import normalize_postal_code
from ..services.jwt_service import JWTService
from ..services.password_service import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
    responses={
        401: {"description": "Invalid credentials"},
        500: {"description": "Internal server error"}
    }
)


def _auth_response(user: User, message: str, response: Response) -> AuthResponse:
    token = JWTService.create_token(user.id, user.nickname)
    JWTService.set_session_cookie(response, token)
    return AuthResponse(
        message=message,
        user=UserResponse.model_validate(user),
        access_token=token,
    )


@router.post("/register", response_model=AuthResponse)
async def register(
    payload: UserRegister,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new collector and open a session.

    **Response:**
    - `user`: the created profile (no password)
    - `access_token`: JWT, also set as the session cookie
    """
    existing = await db.execute(
        select(User).where(func.lower(User.nickname) == payload.nickname.lower())
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nickname already taken"
        )

    if payload.email:
        existing = await db.execute(
            select(User).where(func.lower(User.email) == payload.email.lower())
        )
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

    user = User(
        nickname=payload.nickname,
        email=payload.email,
        password_hash=hash_password(payload.password),
        postal_code=normalize_postal_code(payload.postal_code),
        radius_km=payload.radius_km,
        is_admin=False,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration
        await db.rollback()
        taken = await db.execute(
            select(User.id).where(func.lower(User.nickname) == payload.nickname.lower())
        )
        detail = "Nickname already taken" if taken.first() else "Email already registered"
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    await db.refresh(user)

    logger.info("Registered user %s", user.id)
    return _auth_response(user, "Registration successful", response)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with nickname and password."""
    result = await db.execute(
        select(User).where(func.lower(User.nickname) == payload.nickname.lower())
    )
    user = result.scalar_one_or_none()

    if user is None or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for nickname %s", payload.nickname)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    return _auth_response(user, "Login successful", response)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Clear the session cookie. Bearer tokens simply expire."""
    JWTService.clear_session_cookie(response)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(JWTService.get_current_user),
):
    """
    Get current authenticated user's profile.

    **Authentication Required:** Yes
    """
    return UserResponse.model_validate(current_user)
