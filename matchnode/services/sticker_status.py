from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from ..exceptions import InvalidStickerStatusError, NotFoundError, StickerNotInAlbumError
from ..models import Sticker, UserSticker

logger = logging.getLogger(__name__)


class StickerStatus(str, Enum):
    missing = "missing"
    owned = "owned"
    duplicate = "duplicate"


# Vocabulary used by the album page buttons
LEGACY_ALIASES = {
    "yes": StickerStatus.owned,
    "no": StickerStatus.missing,
    "double": StickerStatus.duplicate,
}

# (owned, duplicate) stored for each target state. Any state may move to
# any other, and the flags written depend only on the target.
STATUS_FLAGS = {
    StickerStatus.missing: (False, False),
    StickerStatus.owned: (True, False),
    StickerStatus.duplicate: (True, True),
}


def parse_status(value) -> StickerStatus:
    """Accept a StickerStatus, its value, or a legacy yes/no/double label."""
    if isinstance(value, StickerStatus):
        return value
    if not isinstance(value, str):
        raise InvalidStickerStatusError(str(value))
    normalized = value.strip().lower()
    if normalized in LEGACY_ALIASES:
        return LEGACY_ALIASES[normalized]
    try:
        return StickerStatus(normalized)
    except ValueError:
        raise InvalidStickerStatusError(value)


def status_from_flags(owned: bool, duplicate: bool) -> StickerStatus:
    if duplicate:
        return StickerStatus.duplicate
    if owned:
        return StickerStatus.owned
    return StickerStatus.missing


def _upsert_statement(dialect_name: str, user_id: int, sticker_id: int, owned: bool, duplicate: bool):
    if dialect_name == "postgresql":
        insert = postgresql.insert
    elif dialect_name == "sqlite":
        insert = sqlite.insert
    else:
        raise RuntimeError(f"Unsupported database dialect: {dialect_name}")

    stmt = insert(UserSticker).values(
        user_id=user_id,
        sticker_id=sticker_id,
        owned=owned,
        duplicate=duplicate,
    )
    return stmt.on_conflict_do_update(
        index_elements=[UserSticker.user_id, UserSticker.sticker_id],
        set_={
            "owned": stmt.excluded.owned,
            "duplicate": stmt.excluded.duplicate,
            "updated_at": func.now(),
        },
    )


async def set_sticker_status(
    db: AsyncSession,
    user_id: int,
    sticker_id: int,
    status,
    album_id: Optional[int] = None,
) -> UserSticker:
    """
    Atomically move a collector's sticker to `status` and return the record.

    The target flags are written with a single INSERT .. ON CONFLICT DO
    UPDATE keyed on (user_id, sticker_id), so concurrent updates for the
    same pair resolve to the last write instead of racing a
    check-then-insert.
    """
    target = parse_status(status)

    sticker = await db.get(Sticker, sticker_id)
    if sticker is None:
        raise NotFoundError("Sticker")
    if album_id is not None and sticker.album_id != album_id:
        raise StickerNotInAlbumError(sticker_id, album_id)

    # The stored flags depend only on the target state, so no prior read
    owned, duplicate = STATUS_FLAGS[target]

    dialect_name = db.get_bind().dialect.name
    await db.execute(_upsert_statement(dialect_name, user_id, sticker_id, owned, duplicate))
    await db.commit()

    result = await db.execute(
        select(UserSticker)
        .where(UserSticker.user_id == user_id, UserSticker.sticker_id == sticker_id)
        .execution_options(populate_existing=True)
    )
    record = result.scalar_one()
    logger.debug("user %s sticker %s -> %s", user_id, sticker_id, target.value)
    return record
