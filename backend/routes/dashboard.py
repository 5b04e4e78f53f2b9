"""
Pharma Field Sales - Routes Dashboard
Read-only aggregates, recomputed on every call.
"""

from fastapi import APIRouter, Depends
from typing import Optional

from services import reporting
from services.api_response import ok
from services.permissions import require_admin, require_mr
from services.visit_reports import date_range_query

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats")
async def get_dashboard_stats(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    admin: dict = Depends(require_admin)
):
    stats = await reporting.dashboard_stats(date_range_query(start_date, end_date))
    return ok(stats)


@router.get("/mr")
async def get_mr_dashboard(mr: dict = Depends(require_mr)):
    return ok(await reporting.mr_dashboard(mr))
