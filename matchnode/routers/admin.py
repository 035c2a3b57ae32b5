import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..database import get_db
from ..dependencies import get_current_admin_user
from ..models import Album, Match, PostalCode, Report, User
from ..schemas import (
    AdminStats,
    PaginatedReports,
    PostalCodeEntry,
    PostalCodeImport,
    PostalCodeImportResponse,
    ReportResponse,
    ReportStatusEnum,
    ReportStatusUpdate,
)
from ..services.geo_service import normalize_postal_code

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={403: {"description": "Admin access required"}},
)


def _report_response(report: Report, reporter_nickname: Optional[str], reported_nickname: Optional[str]) -> ReportResponse:
    return ReportResponse(
        id=report.id,
        reporter_id=report.reporter_id,
        reported_user_id=report.reported_user_id,
        match_id=report.match_id,
        type=report.type,
        description=report.description,
        status=report.status,
        created_at=report.created_at,
        reporter_nickname=reporter_nickname,
        reported_user_nickname=reported_nickname,
    )


@router.get("/reports", response_model=PaginatedReports)
async def list_reports(
    status: Optional[ReportStatusEnum] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    """Reports, newest first, with reporter and reported nicknames."""
    reporter = aliased(User)
    reported = aliased(User)

    query = (
        select(Report, reporter.nickname, reported.nickname)
        .join(reporter, reporter.id == Report.reporter_id)
        .outerjoin(reported, reported.id == Report.reported_user_id)
    )
    if status is not None:
        query = query.where(Report.status == status.value)

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(
        query.order_by(desc(Report.created_at), desc(Report.id)).offset(offset).limit(limit)
    )
    items = [_report_response(r, a, b) for r, a, b in result.all()]
    return PaginatedReports(items=items, total=total or 0, limit=limit, offset=offset)


@router.put("/reports/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: int,
    payload: ReportStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    report = await db.get(Report, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")

    report.status = payload.status.value
    await db.commit()
    await db.refresh(report)
    logger.info("Admin %s set report %s to %s", admin.id, report.id, report.status)

    reporter = await db.get(User, report.reporter_id)
    reported = await db.get(User, report.reported_user_id) if report.reported_user_id else None
    return _report_response(
        report,
        reporter.nickname if reporter else None,
        reported.nickname if reported else None,
    )


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    total_users = await db.scalar(select(func.count(User.id)))
    total_matches = await db.scalar(select(func.count(Match.id)))
    active_albums = await db.scalar(
        select(func.count(Album.id)).where(Album.is_active.is_(True)))
    pending_reports = await db.scalar(
        select(func.count(Report.id)).where(Report.status == "pending"))
    return AdminStats(
        total_users=total_users or 0,
        total_matches=total_matches or 0,
        active_albums=active_albums or 0,
        pending_reports=pending_reports or 0,
    )


@router.post("/postal-codes", response_model=PostalCodeImportResponse)
async def import_postal_codes(
    payload: PostalCodeImport,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    """Create or update postal code coordinates used for radius search."""
    entries = {normalize_postal_code(e.code): e for e in payload.postal_codes}

    result = await db.execute(select(PostalCode).where(PostalCode.code.in_(entries.keys())))
    existing = {pc.code: pc for pc in result.scalars().all()}

    for code, entry in entries.items():
        row = existing.get(code)
        if row is None:
            db.add(PostalCode(
                code=code,
                latitude=entry.latitude,
                longitude=entry.longitude,
                place_name=entry.place_name,
            ))
        else:
            row.latitude = entry.latitude
            row.longitude = entry.longitude
            row.place_name = entry.place_name
    await db.commit()

    logger.info("Admin %s imported %s postal codes", admin.id, len(entries))
    return PostalCodeImportResponse(count=len(entries))


@router.get("/postal-codes", response_model=list[PostalCodeEntry])
async def list_postal_codes(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    result = await db.execute(
        select(PostalCode).order_by(PostalCode.code).offset(offset).limit(limit)
    )
    return [PostalCodeEntry.model_validate(pc) for pc in result.scalars().all()]
