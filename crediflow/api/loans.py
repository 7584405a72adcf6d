"""
Loan endpoints
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from .dependencies import get_system
from .schemas import CreateLoanRequest, LoanResponse, LoanTermsModel, ScheduleResponse
from ..loans import LoanStatus
from ..schedule import generate_schedule_for_terms
from ..system import MicrofinanceSystem


router = APIRouter()


async def attach_risk_opinion(system: MicrofinanceSystem, loan_id: str) -> None:
    """Fetch an advisory opinion for a committed loan and store it on the loan"""
    loan = system.loan_manager.require_loan(loan_id)
    client = system.client_manager.require_client(loan.client_id)
    analysis = await system.advisory_client.analyze_loan_risk(
        client, loan.terms.principal, loan.terms.term
    )
    system.loan_manager.attach_advisory(loan_id, analysis.to_dict())


@router.post("/preview")
async def preview_schedule(
    terms: LoanTermsModel,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Simulate a schedule for the given terms without creating a loan"""
    schedule = generate_schedule_for_terms(terms.to_loan_terms())
    return ScheduleResponse.from_schedule(schedule, system.currency).model_dump()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    background_tasks: BackgroundTasks,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Originate a new loan with its full schedule"""
    loan = system.loan_manager.create_loan(
        client_id=request.client_id,
        terms=request.terms.to_loan_terms()
    )

    if request.request_advisory:
        background_tasks.add_task(attach_risk_opinion, system, loan.id)

    return LoanResponse.from_loan(loan, system.currency).model_dump()


@router.get("")
async def list_loans(
    client_id: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    system: MicrofinanceSystem = Depends(get_system)
):
    """List loans, optionally filtered by client and status"""
    loan_status = None
    if status_filter:
        try:
            loan_status = LoanStatus(status_filter.lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown loan status: {status_filter}")

    loans = system.loan_manager.list_loans(client_id=client_id, status=loan_status)
    return {
        "loans": [LoanResponse.from_loan(loan, system.currency).model_dump() for loan in loans],
        "count": len(loans)
    }


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Get loan details with its installments"""
    loan = system.loan_manager.require_loan(loan_id)
    return LoanResponse.from_loan(loan, system.currency).model_dump()


@router.get("/{loan_id}/schedule")
async def get_loan_schedule(
    loan_id: str,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Get the stored amortization schedule of a loan"""
    loan = system.loan_manager.require_loan(loan_id)
    response = LoanResponse.from_loan(loan, system.currency)
    return {
        "loan_id": loan.id,
        "status": response.status,
        "progress": response.progress,
        "installments": [i.model_dump() for i in response.installments]
    }


@router.post("/{loan_id}/installments/{installment_number}/pay")
async def pay_installment(
    loan_id: str,
    installment_number: int,
    paid_at: Optional[datetime] = None,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Register full payment of one installment"""
    loan = system.loan_manager.register_payment(loan_id, installment_number, paid_at=paid_at)
    return LoanResponse.from_loan(loan, system.currency).model_dump()
