from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response
import sqlalchemy as sa
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_current_admin_user
from ..models import Album, Sticker, User
from ..schemas import (
    AlbumCreate,
    AlbumResponse,
    AlbumUpdate,
    BulkImportResponse,
    MessageResponse,
    PaginatedAlbums,
    StickerBulkImport,
    StickerCreate,
    StickerListCreate,
    StickerResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/albums", tags=["albums"])


def parse_sticker_lines(lines: str | List[str]) -> List[StickerCreate]:
    """
    Parse "number|name|team" lines as typed into the admin panel.

    Blank lines are skipped and the team column is optional.
    """
    if isinstance(lines, str):
        lines = lines.splitlines()

    stickers: List[StickerCreate] = []
    for index, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue
        parts = [p.strip() for p in line.split("|")]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise HTTPException(
                status_code=400,
                detail=f"Line {index}: expected 'number|name|team'",
            )
        stickers.append(StickerCreate(
            number=parts[0],
            name=parts[1],
            team=parts[2] if len(parts) > 2 and parts[2] else None,
        ))
    return stickers


async def _get_album_or_404(db: AsyncSession, album_id: int) -> Album:
    album = await db.get(Album, album_id)
    if album is None:
        raise HTTPException(status_code=404, detail="Album not found")
    return album


async def _insert_stickers(
    db: AsyncSession,
    album_id: int,
    stickers: List[StickerCreate],
) -> List[Sticker]:
    numbers = [s.number for s in stickers]
    if len(numbers) != len(set(numbers)):
        raise HTTPException(status_code=400, detail="Duplicate sticker numbers in request")

    created = [
        Sticker(album_id=album_id, number=s.number, name=s.name, team=s.team)
        for s in stickers
    ]
    db.add_all(created)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=409,
            detail="A sticker with the same number already exists in this album",
        )
    for sticker in created:
        await db.refresh(sticker)
    logger.info("Added %s stickers to album %s", len(created), album_id)
    return created


@router.get("/", response_model=PaginatedAlbums)
async def list_albums(
    response: Response,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Active albums, newest first."""
    query = select(Album).where(Album.is_active.is_(True))

    total = await db.scalar(select(func.count()).select_from(query.subquery()))

    result = await db.execute(
        query.order_by(Album.created_at.desc(), Album.id.desc())
        .offset(offset).limit(limit)
    )
    albums = result.scalars().all()

    counts = {}
    if albums:
        counts_result = await db.execute(
            select(Sticker.album_id, func.count(Sticker.id))
            .where(Sticker.album_id.in_([a.id for a in albums]))
            .group_by(Sticker.album_id)
        )
        counts = {row[0]: row[1] for row in counts_result.all()}

    response.headers["Cache-Control"] = "public, max-age=600"
    items = []
    for album in albums:
        item = AlbumResponse.model_validate(album)
        item.sticker_count = counts.get(album.id, 0)
        items.append(item)
    return PaginatedAlbums(items=items, total=total or 0, limit=limit, offset=offset)


@router.get("/{album_id}", response_model=AlbumResponse)
async def get_album(album_id: int, db: AsyncSession = Depends(get_db)):
    album = await _get_album_or_404(db, album_id)
    item = AlbumResponse.model_validate(album)
    item.sticker_count = await db.scalar(
        select(func.count(Sticker.id)).where(Sticker.album_id == album_id)
    ) or 0
    return item


@router.post("/", response_model=AlbumResponse)
async def create_album(
    payload: AlbumCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    album = Album(**payload.model_dump())
    db.add(album)
    await db.commit()
    await db.refresh(album)
    logger.info("Admin %s created album %s", admin.id, album.id)
    item = AlbumResponse.model_validate(album)
    item.sticker_count = 0
    return item


@router.put("/{album_id}", response_model=AlbumResponse)
async def update_album(
    album_id: int,
    payload: AlbumUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    album = await _get_album_or_404(db, album_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None and key != "description":
            continue
        setattr(album, key, value)
    await db.commit()
    await db.refresh(album)
    return AlbumResponse.model_validate(album)


@router.delete("/{album_id}", response_model=MessageResponse)
async def delete_album(
    album_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    """Delete an album; stickers, ownership records and matches cascade."""
    await _get_album_or_404(db, album_id)
    await db.execute(sa.delete(Album).where(Album.id == album_id))
    await db.commit()
    logger.info("Admin %s deleted album %s", admin.id, album_id)
    return MessageResponse(message="Album deleted")


@router.get("/{album_id}/stickers", response_model=list[StickerResponse])
async def list_stickers(
    album_id: int,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    await _get_album_or_404(db, album_id)
    result = await db.execute(
        select(Sticker).where(Sticker.album_id == album_id)
    )
    stickers = sorted(result.scalars().all(), key=sticker_sort_key)
    response.headers["Cache-Control"] = "public, max-age=1800"
    return [StickerResponse.model_validate(s) for s in stickers]


def sticker_sort_key(sticker: Sticker):
    """Numeric labels in numeric order, then alphanumeric ones."""
    number = sticker.number
    if number.isdigit():
        return (0, int(number), "")
    return (1, 0, number)


@router.post("/{album_id}/stickers", response_model=list[StickerResponse])
async def create_stickers(
    album_id: int,
    payload: StickerListCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    await _get_album_or_404(db, album_id)
    created = await _insert_stickers(db, album_id, payload.stickers)
    return [StickerResponse.model_validate(s) for s in created]


@router.post("/{album_id}/stickers/bulk", response_model=BulkImportResponse)
async def bulk_import_stickers(
    album_id: int,
    payload: StickerBulkImport,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    """
    Bulk import stickers into an album.

    Accepts a `stickers` list, `lines` in `number|name|team` form, or both.
    """
    await _get_album_or_404(db, album_id)

    stickers = list(payload.stickers or [])
    if payload.lines:
        stickers.extend(parse_sticker_lines(payload.lines))
    if not stickers:
        raise HTTPException(status_code=400, detail="No stickers to import")

    created = await _insert_stickers(db, album_id, stickers)
    return BulkImportResponse(
        success=True,
        count=len(created),
        stickers=[StickerResponse.model_validate(s) for s in created],
    )


@router.delete("/stickers/{sticker_id}", response_model=MessageResponse)
async def delete_sticker(
    sticker_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    sticker = await db.get(Sticker, sticker_id)
    if sticker is None:
        raise HTTPException(status_code=404, detail="Sticker not found")
    await db.execute(sa.delete(Sticker).where(Sticker.id == sticker_id))
    await db.commit()
    return MessageResponse(message="Sticker deleted")
