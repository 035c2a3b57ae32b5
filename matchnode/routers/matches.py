import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..exceptions import InvalidMatchError
from ..models import Album, Match, Message, Sticker, User
from ..schemas import (
    CandidateResponse,
    ChatMessageCreate,
    ChatMessageResponse,
    ExchangeResponse,
    MatchCreate,
    MatchResponse,
    PaginatedCandidates,
    PaginatedMatches,
    PublicUserResponse,
    StickerResponse,
)
from ..services.jwt_service import JWTService
from ..services.matching_service import (
    compatibility_score,
    effective_radius,
    exchange_between,
    find_candidates,
    require_active_album,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])

# Per-process send log: user_id -> timestamps within the last minute
_message_send_log: Dict[int, List[datetime]] = {}


def _check_rate_limit(user_id: int, log_dict: Dict[int, List[datetime]], limit: int) -> bool:
    """Record a send for `user_id` unless `limit` sends happened in the last minute."""
    now = datetime.now(timezone.utc)
    window_start = now - timedelta(minutes=1)
    recent = [t for t in log_dict.get(user_id, []) if t > window_start]
    if len(recent) >= limit:
        log_dict[user_id] = recent
        return False
    recent.append(now)
    log_dict[user_id] = recent
    return True


async def _get_match_for_participant(db: AsyncSession, match_id: int, user: User) -> Match:
    match = await db.get(Match, match_id)
    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")
    if user.id not in (match.user1_id, match.user2_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a participant in this match",
        )
    return match


async def _match_response(db: AsyncSession, match: Match, viewer_id: int) -> MatchResponse:
    other = await db.get(User, match.other_user_id(viewer_id))
    album = await db.get(Album, match.album_id)
    return MatchResponse(
        id=match.id,
        user1_id=match.user1_id,
        user2_id=match.user2_id,
        initiator_id=match.initiator_id,
        album_id=match.album_id,
        album_name=album.name if album else None,
        status=match.status,
        created_at=match.created_at,
        other_user=PublicUserResponse.model_validate(other) if other else None,
    )


@router.get("/find", response_model=PaginatedCandidates)
async def find_matches(
    radius_km: Optional[float] = Query(
        None, gt=0, description="Defaults to the collector's own search radius"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """
    Nearby collectors of the same album, best exchange partners first.

    **Authentication Required:** Yes

    **Ordering:** descending compatibility score, then ascending distance.
    """
    candidates = await find_candidates(db, current_user, radius_km)
    candidates = candidates[:settings.match_max_candidates]
    page = candidates[offset:offset + limit]

    items = [
        CandidateResponse(
            user=PublicUserResponse.model_validate(c.user),
            distance_km=c.distance_km,
            score=c.score,
            gives_count=len(c.exchange.a_gives_b),
            receives_count=len(c.exchange.b_gives_a),
            is_mutual=c.exchange.is_mutual,
        )
        for c in page
    ]
    return PaginatedCandidates(
        items=items,
        total=len(candidates),
        limit=limit,
        offset=offset,
        radius_km=effective_radius(current_user, radius_km),
    )


async def _pair_match(db: AsyncSession, album_id: int, user1_id: int, user2_id: int) -> Optional[Match]:
    result = await db.execute(
        select(Match)
        .where(
            Match.album_id == album_id,
            Match.user1_id == user1_id,
            Match.user2_id == user2_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _insert_match_statement(dialect_name: str, user1_id: int, user2_id: int, album_id: int, initiator_id: int):
    if dialect_name == "postgresql":
        insert = postgresql.insert
    elif dialect_name == "sqlite":
        insert = sqlite.insert
    else:
        raise RuntimeError(f"Unsupported database dialect: {dialect_name}")

    stmt = insert(Match).values(
        user1_id=user1_id,
        user2_id=user2_id,
        album_id=album_id,
        initiator_id=initiator_id,
        status="active",
    )
    return stmt.on_conflict_do_nothing(
        index_elements=[Match.album_id, Match.user1_id, Match.user2_id])


@router.post("/", response_model=MatchResponse)
async def create_match(
    payload: MatchCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """
    Open a match with another collector of the same album.

    Returns the existing match when the pair already has one for the album,
    reopening it if it was closed.
    """
    album_id = (await require_active_album(db, current_user)).id
    if payload.user2_id == current_user.id:
        raise InvalidMatchError("You cannot match with yourself")

    other = await db.get(User, payload.user2_id)
    if other is None:
        raise HTTPException(status_code=404, detail="User not found")
    if other.selected_album_id != album_id:
        raise InvalidMatchError("This collector is not collecting the same album")

    user1_id, user2_id = sorted((current_user.id, other.id))
    match = await _pair_match(db, album_id, user1_id, user2_id)

    if match is None:
        if settings.match_require_mutual:
            exchange, _ = await exchange_between(db, current_user.id, other.id, album_id)
            if not exchange.is_mutual:
                raise InvalidMatchError("No mutual exchange is possible with this collector")

        dialect_name = db.get_bind().dialect.name
        result = await db.execute(_insert_match_statement(
            dialect_name, user1_id, user2_id, album_id, current_user.id))
        await db.commit()
        match = await _pair_match(db, album_id, user1_id, user2_id)
        if result.rowcount:
            logger.info("Match %s created between %s and %s", match.id, current_user.id, other.id)
    elif match.status != "active":
        match.status = "active"
        await db.commit()
        await db.refresh(match)
        logger.info("Match %s reopened by %s", match.id, current_user.id)

    return await _match_response(db, match, current_user.id)


@router.get("/", response_model=PaginatedMatches)
async def list_matches(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    query = select(Match).where(
        or_(Match.user1_id == current_user.id, Match.user2_id == current_user.id)
    )
    total = await db.scalar(select(func.count()).select_from(query.subquery()))

    result = await db.execute(
        query.order_by(desc(Match.created_at), desc(Match.id)).offset(offset).limit(limit)
    )
    items = [await _match_response(db, m, current_user.id) for m in result.scalars().all()]
    return PaginatedMatches(items=items, total=total or 0, limit=limit, offset=offset)


@router.get("/{match_id}", response_model=MatchResponse)
async def get_match(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    match = await _get_match_for_participant(db, match_id, current_user)
    return await _match_response(db, match, current_user.id)


@router.post("/{match_id}/close", response_model=MatchResponse)
async def close_match(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """
    Close a match. Either participant may close it.

    The history stays readable, but no new messages can be sent until one of
    the two collectors opens the match again with `POST /matches/`.
    """
    match = await _get_match_for_participant(db, match_id, current_user)
    if match.status != "closed":
        match.status = "closed"
        await db.commit()
        await db.refresh(match)
        logger.info("Match %s closed by %s", match.id, current_user.id)
    return await _match_response(db, match, current_user.id)


@router.get("/{match_id}/exchange", response_model=ExchangeResponse)
async def get_match_exchange(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """What each side of the match can give the other, computed from current collections."""
    match = await _get_match_for_participant(db, match_id, current_user)
    other_id = match.other_user_id(current_user.id)

    exchange, total = await exchange_between(db, current_user.id, other_id, match.album_id)

    sticker_ids = exchange.a_gives_b | exchange.b_gives_a
    stickers = {}
    if sticker_ids:
        result = await db.execute(select(Sticker).where(Sticker.id.in_(sticker_ids)))
        stickers = {s.id: s for s in result.scalars().all()}

    def _listing(ids):
        return [StickerResponse.model_validate(stickers[i]) for i in sorted(ids) if i in stickers]

    return ExchangeResponse(
        match_id=match.id,
        album_id=match.album_id,
        score=compatibility_score(exchange, total),
        is_mutual=exchange.is_mutual,
        you_give=_listing(exchange.a_gives_b),
        you_receive=_listing(exchange.b_gives_a),
    )


@router.get("/{match_id}/messages", response_model=list[ChatMessageResponse])
async def list_messages(
    match_id: int,
    after_id: Optional[int] = Query(
        None, ge=0, description="Only messages newer than this id (for polling)"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """Chat history of a match in sending order."""
    await _get_match_for_participant(db, match_id, current_user)

    query = (
        select(Message, User.nickname)
        .join(User, User.id == Message.sender_id)
        .where(Message.match_id == match_id)
    )
    if after_id is not None:
        query = query.where(Message.id > after_id)
    result = await db.execute(
        query.order_by(Message.created_at, Message.id).limit(limit)
    )

    return [
        ChatMessageResponse(
            id=message.id,
            match_id=message.match_id,
            sender_id=message.sender_id,
            sender_nickname=nickname,
            content=message.content,
            created_at=message.created_at,
        )
        for message, nickname in result.all()
    ]


@router.post("/{match_id}/messages", response_model=ChatMessageResponse)
async def send_message(
    match_id: int,
    payload: ChatMessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    match = await _get_match_for_participant(db, match_id, current_user)
    if match.status != "active":
        raise HTTPException(status_code=400, detail="This match is closed")

    content = payload.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Message cannot be empty")
    if len(content) > settings.chat_message_max_length:
        raise HTTPException(
            status_code=400,
            detail=f"Message too long (max {settings.chat_message_max_length} characters)",
        )

    if not _check_rate_limit(current_user.id, _message_send_log, settings.chat_messages_per_min):
        logger.warning("Chat rate limit hit by user %s", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many messages, slow down",
        )

    message = Message(match_id=match.id, sender_id=current_user.id, content=content)
    db.add(message)
    await db.commit()
    await db.refresh(message)

    return ChatMessageResponse(
        id=message.id,
        match_id=message.match_id,
        sender_id=message.sender_id,
        sender_nickname=current_user.nickname,
        content=message.content,
        created_at=message.created_at,
    )
