"""
Advisory endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import get_system
from .schemas import RiskAnalysisRequest, RiskAnalysisResponse
from ..system import MicrofinanceSystem


router = APIRouter()


@router.post("/risk")
async def analyze_risk(
    request: RiskAnalysisRequest,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Non-binding risk opinion for a prospective loan"""
    client = system.client_manager.require_client(request.client_id)
    analysis = await system.advisory_client.analyze_loan_risk(client, request.amount, request.term)
    return RiskAnalysisResponse(**analysis.to_dict()).model_dump()
