"""
Portfolio endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends

from .dependencies import get_system
from .schemas import PortfolioSummaryResponse
from ..system import MicrofinanceSystem


router = APIRouter()


@router.get("/summary")
async def get_portfolio_summary(
    as_of: Optional[date] = None,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Dashboard KPIs for the loan portfolio"""
    summary = system.portfolio_summary(as_of=as_of)
    return PortfolioSummaryResponse.from_summary(summary, system.currency).model_dump()
