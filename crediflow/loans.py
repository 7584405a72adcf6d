"""
Loan Module

Handles loan origination, payment registration against scheduled
installments, overdue detection and loan lifecycle management.

Loan status is never set directly by callers: it is re-derived from the
installments after every mutation (payment or overdue sweep).
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime, timezone, date
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum
import logging
import threading
import uuid

from .audit import AuditTrail, AuditEventType
from .clients import ClientManager
from .exceptions import AlreadySettled, InstallmentNotFound, LoanNotFound
from .logging_config import log_action
from .schedule import (
    Installment, InstallmentStatus, LoanTerms, generate_schedule_for_terms
)
from .storage import StorageInterface, StorageRecord

logger = logging.getLogger("crediflow.loans")


class LoanStatus(Enum):
    """Loan lifecycle states"""
    PENDING = "pending"        # Only observable before creation completes
    ACTIVE = "active"          # In regular repayment
    COMPLETED = "completed"    # Every installment paid; terminal
    DEFAULTED = "defaulted"    # At least one installment overdue


@dataclass
class Loan(StorageRecord):
    """Loan with its immutable terms and schedule plus mutable status"""
    client_id: str
    terms: LoanTerms
    installments: List[Installment]
    total_interest: Decimal
    total_payable: Decimal
    status: LoanStatus = LoanStatus.PENDING
    advisory: Optional[Dict[str, Any]] = None   # Display-only risk opinion

    def get_installment(self, number: int) -> Installment:
        """
        Installment by 1-based number

        Raises:
            InstallmentNotFound: If no installment has that number
        """
        if isinstance(number, int) and not isinstance(number, bool) and 1 <= number <= len(self.installments):
            installment = self.installments[number - 1]
            if installment.number == number:
                return installment
        raise InstallmentNotFound(self.id, number)

    @property
    def next_open_installment(self) -> Optional[Installment]:
        """First installment still to be collected (pending or overdue)"""
        for installment in self.installments:
            if installment.is_open:
                return installment
        return None

    @property
    def paid_installments(self) -> int:
        return sum(1 for i in self.installments if i.is_paid)

    @property
    def outstanding_balance(self) -> Decimal:
        """Balance remaining after the first unpaid installment, or zero"""
        for installment in self.installments:
            if not installment.is_paid:
                return installment.balance_remaining
        return Decimal('0')

    @property
    def progress(self) -> int:
        """Paid installments as a whole percentage of the term"""
        ratio = Decimal(self.paid_installments) * Decimal('100') / Decimal(self.terms.term)
        return int(ratio.quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    @property
    def amount_paid(self) -> Decimal:
        return sum((i.paid_amount for i in self.installments), Decimal('0'))


def derive_status(loan: Loan) -> LoanStatus:
    """
    Loan status implied by its installments

    All paid -> COMPLETED. Otherwise any overdue installment -> DEFAULTED.
    A DEFAULTED loan with nothing overdue any more returns to ACTIVE. Any
    other status is kept.
    """
    if loan.installments and all(i.is_paid for i in loan.installments):
        return LoanStatus.COMPLETED
    if loan.status == LoanStatus.COMPLETED:
        return LoanStatus.COMPLETED
    if any(i.status == InstallmentStatus.OVERDUE for i in loan.installments):
        return LoanStatus.DEFAULTED
    if loan.status == LoanStatus.DEFAULTED:
        return LoanStatus.ACTIVE
    return loan.status


class LoanManager:
    """
    Manages the loan lifecycle from origination through completion.

    Mutations on one loan are serialized by a per-loan lock so the
    read-modify-write of an installment and the status recompute happen as
    one step.
    """

    _TRANSITION_EVENTS = {
        LoanStatus.COMPLETED: AuditEventType.LOAN_COMPLETED,
        LoanStatus.DEFAULTED: AuditEventType.LOAN_DEFAULTED,
        LoanStatus.ACTIVE: AuditEventType.LOAN_REACTIVATED,
    }

    def __init__(
        self,
        storage: StorageInterface,
        client_manager: ClientManager,
        audit_trail: AuditTrail,
        overdue_grace_days: int = 0
    ):
        self.storage = storage
        self.client_manager = client_manager
        self.audit_trail = audit_trail
        self.overdue_grace_days = overdue_grace_days

        self.loans_table = "loans"
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _loan_lock(self, loan_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(loan_id)
            if lock is None:
                # Locks exist only for stored loans
                if not self.storage.exists(self.loans_table, loan_id):
                    raise LoanNotFound(loan_id)
                lock = self._locks[loan_id] = threading.Lock()
            return lock

    def create_loan(self, client_id: str, terms: LoanTerms) -> Loan:
        """
        Originate a new loan with its full schedule

        Args:
            client_id: Borrower client ID
            terms: Validated loan terms

        Returns:
            Created Loan in ACTIVE status

        Raises:
            UnknownClient: If the client does not exist
        """
        self.client_manager.require_client(client_id)

        schedule = generate_schedule_for_terms(terms)
        now = datetime.now(timezone.utc)

        loan = Loan(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            client_id=client_id,
            terms=terms,
            installments=schedule.installments,
            total_interest=schedule.total_interest,
            total_payable=schedule.total_payable,
        )
        loan.status = LoanStatus.ACTIVE

        with self.storage.atomic():
            self._save_loan(loan)

        self.audit_trail.log_event(
            event_type=AuditEventType.LOAN_CREATED,
            entity_type="loan",
            entity_id=loan.id,
            metadata={
                "client_id": client_id,
                **terms.to_dict(),
                "total_payable": loan.total_payable,
            }
        )
        log_action(
            logger, "info", "Loan created", action="loan.create", resource=loan.id,
            extra={"client_id": client_id, "principal": str(terms.principal), "term": terms.term}
        )

        return loan

    def register_payment(
        self,
        loan_id: str,
        installment_number: int,
        paid_at: Optional[datetime] = None
    ) -> Loan:
        """
        Settle one installment in full

        Args:
            loan_id: Loan ID
            installment_number: 1-based installment number
            paid_at: Settlement timestamp (defaults to now, UTC)

        Returns:
            Updated Loan

        Raises:
            LoanNotFound: If the loan does not exist
            InstallmentNotFound: If the installment number is not in the loan
            AlreadySettled: If the installment is already PAID; nothing changes
        """
        with self._loan_lock(loan_id):
            loan = self.require_loan(loan_id)
            installment = loan.get_installment(installment_number)

            if installment.is_paid:
                log_action(
                    logger, "warning", "Payment rejected, installment already settled",
                    action="loan.payment", resource=loan_id,
                    extra={"installment": installment_number}
                )
                raise AlreadySettled(loan_id, installment_number)

            installment.status = InstallmentStatus.PAID
            installment.paid_amount = installment.amount
            installment.paid_date = paid_at or datetime.now(timezone.utc)

            previous_status = loan.status
            loan.status = derive_status(loan)
            loan.updated_at = datetime.now(timezone.utc)

            with self.storage.atomic():
                self._save_loan(loan)

            self.audit_trail.log_event(
                event_type=AuditEventType.PAYMENT_REGISTERED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={
                    "installment": installment_number,
                    "amount": installment.paid_amount,
                    "paid_date": installment.paid_date,
                }
            )
            log_action(
                logger, "info", "Payment registered", action="loan.payment", resource=loan.id,
                extra={"installment": installment_number, "amount": str(installment.paid_amount)}
            )
            self._record_transition(loan, previous_status)

            return loan

    def process_overdue(
        self,
        as_of: Optional[date] = None,
        grace_days: Optional[int] = None
    ) -> Dict[str, int]:
        """
        Mark past-due installments OVERDUE and default their loans

        A PENDING installment is overdue once more than ``grace_days`` days
        have passed since its due date.

        Args:
            as_of: Reference date (defaults to today)
            grace_days: Grace period; defaults to the manager's configured value

        Returns:
            Counters: loans_scanned, installments_marked_overdue, loans_defaulted
        """
        as_of = as_of or date.today()
        grace = self.overdue_grace_days if grace_days is None else grace_days

        results = {"loans_scanned": 0, "installments_marked_overdue": 0, "loans_defaulted": 0}

        for candidate in self.list_loans():
            if candidate.status not in (LoanStatus.ACTIVE, LoanStatus.DEFAULTED):
                continue

            with self._loan_lock(candidate.id):
                loan = self.require_loan(candidate.id)
                results["loans_scanned"] += 1

                marked = []
                for installment in loan.installments:
                    if (installment.status == InstallmentStatus.PENDING
                            and (as_of - installment.due_date).days > grace):
                        installment.status = InstallmentStatus.OVERDUE
                        marked.append(installment.number)

                if not marked:
                    continue

                previous_status = loan.status
                loan.status = derive_status(loan)
                loan.updated_at = datetime.now(timezone.utc)

                with self.storage.atomic():
                    self._save_loan(loan)

                results["installments_marked_overdue"] += len(marked)
                if previous_status != LoanStatus.DEFAULTED and loan.status == LoanStatus.DEFAULTED:
                    results["loans_defaulted"] += 1

                self.audit_trail.log_event(
                    event_type=AuditEventType.INSTALLMENT_OVERDUE,
                    entity_type="loan",
                    entity_id=loan.id,
                    metadata={"installments": marked, "as_of": as_of.isoformat(), "grace_days": grace}
                )
                self._record_transition(loan, previous_status)

        log_action(logger, "info", "Overdue sweep finished", action="loan.overdue_sweep", extra=results)
        return results

    def attach_advisory(self, loan_id: str, advisory: Dict[str, Any]) -> Loan:
        """
        Attach a display-only advisory opinion to a committed loan

        Status, terms and schedule are left untouched.

        Raises:
            LoanNotFound: If the loan does not exist
        """
        with self._loan_lock(loan_id):
            loan = self.require_loan(loan_id)
            loan.advisory = dict(advisory)
            loan.updated_at = datetime.now(timezone.utc)
            self._save_loan(loan)

        self.audit_trail.log_event(
            event_type=AuditEventType.ADVISORY_ATTACHED,
            entity_type="loan",
            entity_id=loan_id,
            metadata={"risk_level": advisory.get("risk_level"), "score": advisory.get("score")}
        )
        return loan

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get loan by ID, or None"""
        data = self.storage.load(self.loans_table, loan_id)
        if data:
            return self._loan_from_dict(data)
        return None

    def require_loan(self, loan_id: str) -> Loan:
        """
        Get loan by ID

        Raises:
            LoanNotFound: If the loan does not exist
        """
        loan = self.get_loan(loan_id)
        if loan is None:
            raise LoanNotFound(loan_id)
        return loan

    def list_loans(
        self,
        client_id: Optional[str] = None,
        status: Optional[LoanStatus] = None
    ) -> List[Loan]:
        """Loans in creation order, optionally filtered by client and status"""
        filters: Dict[str, Any] = {}
        if client_id:
            filters['client_id'] = client_id
        if status:
            filters['status'] = status.value
        return [self._loan_from_dict(data) for data in self.storage.find(self.loans_table, filters)]

    def get_outstanding_balance(self, loan_id: str) -> Decimal:
        """Current outstanding balance of a loan"""
        return self.require_loan(loan_id).outstanding_balance

    def get_progress(self, loan_id: str) -> int:
        """Repayment progress of a loan in percent"""
        return self.require_loan(loan_id).progress

    def _record_transition(self, loan: Loan, previous_status: LoanStatus) -> None:
        if loan.status == previous_status:
            return

        event_type = self._TRANSITION_EVENTS.get(loan.status)
        if event_type:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="loan",
                entity_id=loan.id,
                metadata={"from": previous_status.value, "to": loan.status.value}
            )
        log_action(
            logger, "info", f"Loan {previous_status.value} -> {loan.status.value}",
            action="loan.status", resource=loan.id
        )

    def _save_loan(self, loan: Loan) -> None:
        self.storage.save(self.loans_table, loan.id, self._loan_to_dict(loan))

    def _loan_to_dict(self, loan: Loan) -> Dict[str, Any]:
        return {
            'id': loan.id,
            'created_at': loan.created_at.isoformat(),
            'updated_at': loan.updated_at.isoformat(),
            'client_id': loan.client_id,
            'terms': loan.terms.to_dict(),
            'installments': [i.to_dict() for i in loan.installments],
            'total_interest': str(loan.total_interest),
            'total_payable': str(loan.total_payable),
            'status': loan.status.value,
            'advisory': loan.advisory,
        }

    def _loan_from_dict(self, data: Dict[str, Any]) -> Loan:
        return Loan(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            client_id=data['client_id'],
            terms=LoanTerms.from_dict(data['terms']),
            installments=[Installment.from_dict(i) for i in data['installments']],
            total_interest=Decimal(data['total_interest']),
            total_payable=Decimal(data['total_payable']),
            status=LoanStatus(data['status']),
            advisory=data.get('advisory'),
        )
