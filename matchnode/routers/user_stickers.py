from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import Album, Sticker, User, UserSticker
from ..schemas import (
    CollectionSummary,
    StickerResponse,
    StickerStatusUpdate,
    UserStickerResponse,
    UserStickerUpsert,
)
from ..services.jwt_service import JWTService
from ..services.matching_service import collection_summary
from ..services.sticker_status import StickerStatus, parse_status, set_sticker_status
from .albums import sticker_sort_key

router = APIRouter(prefix="/user-stickers", tags=["collection"])


def _to_response(record: UserSticker, sticker: Sticker) -> UserStickerResponse:
    return UserStickerResponse(
        id=record.id,
        user_id=record.user_id,
        sticker_id=record.sticker_id,
        status=record.status,
        owned=record.owned,
        duplicate=record.duplicate,
        updated_at=record.updated_at,
        sticker=StickerResponse.model_validate(sticker),
    )


async def _ensure_album(db: AsyncSession, album_id: int) -> Album:
    album = await db.get(Album, album_id)
    if album is None:
        raise HTTPException(status_code=404, detail="Album not found")
    return album


@router.get("/{album_id}", response_model=list[UserStickerResponse])
async def list_user_stickers(
    album_id: int,
    status: Optional[str] = Query(
        None, description="Filter by missing, owned or duplicate (yes/no/double accepted)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """
    The current collector's ownership records for an album.

    Stickers never marked have no record; they are missing and are not
    listed here. Use `/albums/{id}/stickers` for the full sheet.
    """
    await _ensure_album(db, album_id)
    wanted = parse_status(status) if status else None

    result = await db.execute(
        select(UserSticker, Sticker)
        .join(Sticker, Sticker.id == UserSticker.sticker_id)
        .where(
            UserSticker.user_id == current_user.id,
            Sticker.album_id == album_id,
        )
    )
    rows = sorted(result.all(), key=lambda row: sticker_sort_key(row[1]))
    items = []
    for record, sticker in rows:
        # "owned" also lists duplicates, which are owned too
        if wanted == StickerStatus.owned and not record.owned:
            continue
        if wanted in (StickerStatus.missing, StickerStatus.duplicate) and record.status != wanted.value:
            continue
        items.append(_to_response(record, sticker))
    return items


@router.get("/{album_id}/summary", response_model=CollectionSummary)
async def get_collection_summary(
    album_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    await _ensure_album(db, album_id)
    summary = await collection_summary(db, current_user.id, album_id)
    return CollectionSummary(album_id=album_id, **summary)


@router.post("/", response_model=UserStickerResponse)
async def upsert_user_sticker(
    payload: UserStickerUpsert,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """
    Set the status of one sticker for the current collector.

    `status` is the target state. Marking a sticker `duplicate` that was
    never marked also records it as owned in the same write.
    """
    record = await set_sticker_status(
        db, current_user.id, payload.sticker_id, payload.status, album_id=payload.album_id)
    sticker = await db.get(Sticker, record.sticker_id)
    return _to_response(record, sticker)


@router.put("/{sticker_id}", response_model=UserStickerResponse)
async def update_user_sticker(
    sticker_id: int,
    payload: StickerStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    record = await set_sticker_status(db, current_user.id, sticker_id, payload.status)
    sticker = await db.get(Sticker, record.sticker_id)
    return _to_response(record, sticker)
