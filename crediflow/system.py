"""
System Assembly

Wires one storage object into the audit trail and the managers so every
component shares the same explicitly owned state.
"""

from datetime import date
from typing import Optional

from .advisory import AdvisoryClient
from .audit import AuditTrail
from .clients import ClientManager
from .collections import CollectionsQueue
from .config import CrediflowConfig, get_config
from .currency import Currency
from .loans import LoanManager
from .portfolio import PortfolioSummary, summarize_portfolio
from .seed import seed_demo_clients
from .storage import InMemoryStorage, StorageInterface


class MicrofinanceSystem:
    """Back-office system with all components initialized"""

    def __init__(
        self,
        config: Optional[CrediflowConfig] = None,
        storage: Optional[StorageInterface] = None,
        advisory_client: Optional[AdvisoryClient] = None
    ):
        self.config = config or get_config()
        self.currency = Currency[self.config.currency.upper()]

        self.storage = storage or InMemoryStorage()
        self.audit_trail = AuditTrail(self.storage, enabled=self.config.enable_audit_logging)
        self.client_manager = ClientManager(self.storage, self.audit_trail)
        self.loan_manager = LoanManager(
            self.storage, self.client_manager, self.audit_trail,
            overdue_grace_days=self.config.overdue_grace_days
        )
        self.collections = CollectionsQueue(self.loan_manager, self.client_manager)
        self.advisory_client = advisory_client or self._create_advisory_client()

        if self.config.seed_demo_data:
            seed_demo_clients(self.client_manager)

    def _create_advisory_client(self) -> AdvisoryClient:
        """Advisory client from configuration; without a key it only returns fallbacks"""
        return AdvisoryClient(
            api_key=self.config.advisory_api_key,
            base_url=self.config.advisory_base_url,
            model=self.config.advisory_model,
            timeout=self.config.advisory_timeout,
            enabled=self.config.advisory_enabled,
            currency=self.currency
        )

    def portfolio_summary(self, as_of: Optional[date] = None) -> PortfolioSummary:
        return summarize_portfolio(
            self.loan_manager.list_loans(),
            self.client_manager.list_clients(),
            as_of=as_of
        )

    async def aclose(self) -> None:
        """Release network resources held by the advisory client"""
        await self.advisory_client.aclose()
