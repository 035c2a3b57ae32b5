"""
Collection compatibility engine.

Two collectors sharing an album are compared through their exchange sets:
what A can give B (A's duplicates that B is missing) and what B can give A.
The compatibility score rewards mutual benefit rather than one-sided gifting:

    score = min(|a_gives_b|, |b_gives_a|) / max(1, avg(missing_a, missing_b))

expressed as an integer percentage. Since a_gives_b is a subset of B's
missing stickers and b_gives_a a subset of A's, the ratio never exceeds 1.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..exceptions import AlbumNotSelectedError
from ..models import Album, Sticker, User, UserSticker
from .geo_service import load_coordinates, postal_code_distance
from .sticker_status import StickerStatus, status_from_flags

logger = logging.getLogger(__name__)

StatusMap = Mapping[int, StickerStatus]


@dataclass(frozen=True)
class ExchangeSets:
    a_gives_b: FrozenSet[int] = field(default_factory=frozenset)
    b_gives_a: FrozenSet[int] = field(default_factory=frozenset)
    a_owned_count: int = 0
    b_owned_count: int = 0

    @property
    def is_mutual(self) -> bool:
        return bool(self.a_gives_b) and bool(self.b_gives_a)

    @property
    def is_empty(self) -> bool:
        return not self.a_gives_b and not self.b_gives_a


@dataclass
class Candidate:
    user: User
    distance_km: float
    exchange: ExchangeSets
    score: int


def _owned(statuses: StatusMap, sticker_id: int) -> bool:
    return statuses.get(sticker_id, StickerStatus.missing) != StickerStatus.missing


def compute_exchange_sets(
    statuses_a: StatusMap,
    statuses_b: StatusMap,
    album_sticker_ids: Iterable[int],
) -> ExchangeSets:
    """
    Exchange sets for two collectors over one album.

    Stickers without a record in a status map are missing for that
    collector. Records for stickers outside the album are ignored.
    """
    album_ids = set(album_sticker_ids)

    a_duplicates = {s for s, st in statuses_a.items()
                    if st == StickerStatus.duplicate and s in album_ids}
    b_duplicates = {s for s, st in statuses_b.items()
                    if st == StickerStatus.duplicate and s in album_ids}

    return ExchangeSets(
        a_gives_b=frozenset(s for s in a_duplicates if not _owned(statuses_b, s)),
        b_gives_a=frozenset(s for s in b_duplicates if not _owned(statuses_a, s)),
        a_owned_count=sum(1 for s in album_ids if _owned(statuses_a, s)),
        b_owned_count=sum(1 for s in album_ids if _owned(statuses_b, s)),
    )


def compatibility_score(exchange: ExchangeSets, total_stickers: int) -> int:
    """Mutual-benefit score as a percentage in 0..100."""
    missing_a = max(0, total_stickers - exchange.a_owned_count)
    missing_b = max(0, total_stickers - exchange.b_owned_count)
    denominator = max(1.0, (missing_a + missing_b) / 2)
    mutual = min(len(exchange.a_gives_b), len(exchange.b_gives_a))
    return min(100, int(round(100 * mutual / denominator)))


async def album_sticker_ids(db: AsyncSession, album_id: int) -> List[int]:
    result = await db.execute(
        select(Sticker.id).where(Sticker.album_id == album_id)
    )
    return [row[0] for row in result.all()]


async def load_album_statuses(
    db: AsyncSession,
    album_id: int,
    user_ids: Iterable[int],
) -> Dict[int, Dict[int, StickerStatus]]:
    """Return {user_id: {sticker_id: status}} for the given collectors."""
    user_ids = list(user_ids)
    statuses: Dict[int, Dict[int, StickerStatus]] = {uid: {} for uid in user_ids}
    if not user_ids:
        return statuses

    result = await db.execute(
        select(UserSticker.user_id, UserSticker.sticker_id,
               UserSticker.owned, UserSticker.duplicate)
        .join(Sticker, Sticker.id == UserSticker.sticker_id)
        .where(
            Sticker.album_id == album_id,
            UserSticker.user_id.in_(user_ids),
        )
    )
    for user_id, sticker_id, owned, duplicate in result.all():
        statuses[user_id][sticker_id] = status_from_flags(owned, duplicate)
    return statuses


async def exchange_between(
    db: AsyncSession,
    user_a_id: int,
    user_b_id: int,
    album_id: int,
) -> Tuple[ExchangeSets, int]:
    """Exchange sets for two collectors plus the album's sticker count."""
    sticker_ids = await album_sticker_ids(db, album_id)
    statuses = await load_album_statuses(db, album_id, [user_a_id, user_b_id])
    exchange = compute_exchange_sets(
        statuses[user_a_id], statuses[user_b_id], sticker_ids)
    return exchange, len(sticker_ids)


async def require_active_album(db: AsyncSession, collector: User) -> Album:
    """The collector's selected album, which must exist and still be active."""
    album_id = collector.selected_album_id
    album = await db.get(Album, album_id) if album_id is not None else None
    if album is None or not album.is_active:
        raise AlbumNotSelectedError()
    return album


def effective_radius(collector: User, radius_km: Optional[float]) -> float:
    radius = radius_km if radius_km is not None else (
        collector.radius_km or settings.default_radius_km)
    return min(float(radius), float(settings.match_max_radius_km))


async def find_candidates(
    db: AsyncSession,
    collector: User,
    radius_km: Optional[float] = None,
) -> List[Candidate]:
    """
    Collectors sharing `collector`'s album within `radius_km` of them.

    Ordered by descending score, then ascending distance, then id.
    """
    album_id = (await require_active_album(db, collector)).id

    radius = effective_radius(collector, radius_km)

    result = await db.execute(
        select(User).where(
            User.selected_album_id == album_id,
            User.id != collector.id,
        )
    )
    others = result.scalars().all()
    if not others:
        return []

    coordinates = await load_coordinates(
        db, [collector.postal_code] + [u.postal_code for u in others])

    in_range: List[Tuple[User, float]] = []
    for other in others:
        distance = postal_code_distance(
            collector.postal_code, other.postal_code, coordinates)
        if distance is None or distance > radius:
            continue
        in_range.append((other, distance))

    if not in_range:
        return []

    sticker_ids = await album_sticker_ids(db, album_id)
    statuses = await load_album_statuses(
        db, album_id, [collector.id] + [u.id for u, _ in in_range])
    mine = statuses[collector.id]

    candidates: List[Candidate] = []
    for other, distance in in_range:
        exchange = compute_exchange_sets(mine, statuses[other.id], sticker_ids)
        candidates.append(Candidate(
            user=other,
            distance_km=round(distance, 2),
            exchange=exchange,
            score=compatibility_score(exchange, len(sticker_ids)),
        ))

    candidates.sort(key=lambda c: (-c.score, c.distance_km, c.user.id))
    logger.info(
        "Candidate search user=%s album=%s radius=%s found=%s",
        collector.id, album_id, radius, len(candidates),
    )
    return candidates


async def collection_summary(db: AsyncSession, user_id: int, album_id: int) -> Dict[str, int]:
    """Owned/missing/duplicate counts for one collector's album."""
    total = await db.scalar(
        select(func.count(Sticker.id)).where(Sticker.album_id == album_id)
    ) or 0
    statuses = await load_album_statuses(db, album_id, [user_id])
    values = list(statuses[user_id].values())
    owned = sum(1 for s in values if s != StickerStatus.missing)
    duplicates = sum(1 for s in values if s == StickerStatus.duplicate)
    return {
        "total": total,
        "owned": owned,
        "missing": total - owned,
        "duplicate": duplicates,
        "completion_percent": int(round(100 * owned / total)) if total else 0,
    }
