from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import Album, User
from ..schemas import UserProfileUpdate, UserResponse, PublicUserResponse
from ..services.geo_service import normalize_postal_code
from ..services.jwt_service import JWTService

router = APIRouter(prefix="/users", tags=["users"])


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    payload: UserProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """
    Update the current collector's profile.

    Only fields present in the body are changed. `selected_album_id` must
    reference an active album; send null to clear it. Passwords cannot be
    changed here.
    """
    updates = payload.model_dump(exclude_unset=True)

    nickname = updates.get("nickname")
    if nickname and nickname.lower() != current_user.nickname.lower():
        taken = await db.execute(
            select(User.id).where(func.lower(User.nickname) == nickname.lower())
        )
        if taken.scalar_one_or_none():
            raise HTTPException(status_code=400, detail="Nickname already taken")

    email = updates.get("email")
    if email and (current_user.email or "").lower() != email.lower():
        taken = await db.execute(
            select(User.id).where(func.lower(User.email) == email.lower())
        )
        if taken.scalar_one_or_none():
            raise HTTPException(status_code=400, detail="Email already registered")

    if updates.get("selected_album_id") is not None:
        album = await db.get(Album, updates["selected_album_id"])
        if album is None or not album.is_active:
            raise HTTPException(status_code=404, detail="Album not found")

    if updates.get("postal_code"):
        updates["postal_code"] = normalize_postal_code(updates["postal_code"])

    for key, value in updates.items():
        if key in ("nickname", "postal_code", "radius_km") and value is None:
            continue
        setattr(current_user, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Nickname or email already taken")
    await db.refresh(current_user)
    return UserResponse.model_validate(current_user)


@router.get("/{user_id}", response_model=PublicUserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """Public profile of another collector."""
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return PublicUserResponse.model_validate(user)
