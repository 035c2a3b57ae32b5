import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import Match, Report, User
from ..schemas import ReportCreate, ReportResponse
from ..services.jwt_service import JWTService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/", response_model=ReportResponse)
async def create_report(
    payload: ReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(JWTService.get_current_user),
):
    """
    Report a collector or a match conversation to the moderators.

    A report about a match must come from one of its participants.
    """
    if payload.reported_user_id is not None:
        if payload.reported_user_id == current_user.id:
            raise HTTPException(status_code=400, detail="You cannot report yourself")
        if await db.get(User, payload.reported_user_id) is None:
            raise HTTPException(status_code=404, detail="User not found")

    if payload.match_id is not None:
        match = await db.get(Match, payload.match_id)
        if match is None:
            raise HTTPException(status_code=404, detail="Match not found")
        if current_user.id not in (match.user1_id, match.user2_id):
            raise HTTPException(status_code=403, detail="Not a participant in this match")

    report = Report(
        reporter_id=current_user.id,
        reported_user_id=payload.reported_user_id,
        match_id=payload.match_id,
        type=payload.type.value,
        description=payload.description,
        status="pending",
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)

    logger.info("Report %s filed by user %s", report.id, current_user.id)
    return ReportResponse(
        id=report.id,
        reporter_id=report.reporter_id,
        reported_user_id=report.reported_user_id,
        match_id=report.match_id,
        type=report.type,
        description=report.description,
        status=report.status,
        created_at=report.created_at,
        reporter_nickname=current_user.nickname,
    )
