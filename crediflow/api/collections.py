"""
Collections endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends

from .dependencies import get_system
from .schemas import (
    CollectionMessageRequest, CollectionMessageResponse, DebtorResponse,
    DueInstallmentResponse, OverdueSweepRequest
)
from ..system import MicrofinanceSystem


router = APIRouter()


@router.get("/due")
async def get_due_installments(
    as_of: Optional[date] = None,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Next pending or overdue installment of every collectable loan"""
    rows = system.collections.get_due_installments(as_of=as_of)
    return {
        "installments": [DueInstallmentResponse.from_row(row, system.currency).model_dump() for row in rows],
        "count": len(rows)
    }


@router.post("/sweep")
async def run_overdue_sweep(
    request: OverdueSweepRequest,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Mark past-due installments OVERDUE and default their loans"""
    return system.loan_manager.process_overdue(as_of=request.as_of, grace_days=request.grace_days)


@router.post("/message")
async def generate_collection_message(
    request: CollectionMessageRequest,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Draft a collection reminder for an overdue borrower"""
    message = await system.advisory_client.generate_collection_message(
        request.client_name, request.days_overdue, request.amount_due
    )
    return CollectionMessageResponse(message=message).model_dump()


@router.get("/top-debtors")
async def get_top_debtors(
    limit: int = 5,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Defaulted loans with their borrowers"""
    debtors = system.collections.top_debtors(limit=limit)
    return {
        "debtors": [DebtorResponse.from_debtor(d, system.currency).model_dump() for d in debtors],
        "count": len(debtors)
    }
