"""
Client Directory Module

Borrower profiles (identity document, contact data, monthly income and the
internal 0-100 credit score) and the manager that creates, looks up and
searches them. Loans reference clients by id only.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Union
import logging
import re
import uuid

from .audit import AuditTrail, AuditEventType
from .currency import to_decimal
from .exceptions import InvalidClientData, UnknownClient
from .logging_config import log_action
from .storage import StorageInterface, StorageRecord

logger = logging.getLogger("crediflow.clients")

DEFAULT_CREDIT_SCORE = 70
EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


@dataclass
class Client(StorageRecord):
    """
    Borrower profile
    """
    name: str
    document_id: str            # National identity document (DNI/CURP/...)
    phone: str = ""
    email: str = ""
    address: str = ""
    monthly_income: Decimal = Decimal('0')
    credit_score: int = DEFAULT_CREDIT_SCORE  # Internal score, 0-100
    notes: Optional[str] = None
    avatar_url: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise InvalidClientData("Client name is required")
        if not self.document_id or not self.document_id.strip():
            raise InvalidClientData("Client identity document is required")

        try:
            self.monthly_income = to_decimal(self.monthly_income)
        except ValueError as e:
            raise InvalidClientData(str(e))
        if self.monthly_income < 0:
            raise InvalidClientData("Monthly income cannot be negative")

        if not isinstance(self.credit_score, int) or not 0 <= self.credit_score <= 100:
            raise InvalidClientData("Credit score must be an integer between 0 and 100")

        if self.email and not re.match(EMAIL_PATTERN, self.email):
            raise InvalidClientData("Invalid email format")

        if not self.avatar_url:
            self.avatar_url = f"https://picsum.photos/seed/{self.document_id}/200"

    def matches(self, term: str) -> bool:
        """Case-insensitive name match or substring match on the document"""
        return term.lower() in self.name.lower() or term in self.document_id


class ClientManager:
    """
    Manages the client directory
    """

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail):
        self.storage = storage
        self.audit_trail = audit_trail
        self.clients_table = "clients"

    def create_client(
        self,
        name: str,
        document_id: str,
        phone: str = "",
        email: str = "",
        address: str = "",
        monthly_income: Union[Decimal, int, str] = Decimal('0'),
        credit_score: int = DEFAULT_CREDIT_SCORE,
        notes: Optional[str] = None,
        avatar_url: Optional[str] = None,
        client_id: Optional[str] = None
    ) -> Client:
        """
        Register a new client

        Raises:
            InvalidClientData: If the profile fails validation
        """
        now = datetime.now(timezone.utc)

        client = Client(
            id=client_id or str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name.strip() if name else name,
            document_id=document_id.strip() if document_id else document_id,
            phone=phone,
            email=email,
            address=address,
            monthly_income=monthly_income,
            credit_score=credit_score,
            notes=notes,
            avatar_url=avatar_url
        )

        self.storage.save(self.clients_table, client.id, self._client_to_dict(client))

        self.audit_trail.log_event(
            event_type=AuditEventType.CLIENT_CREATED,
            entity_type="client",
            entity_id=client.id,
            metadata={"document_id": client.document_id, "credit_score": client.credit_score}
        )
        log_action(logger, "info", "Client created", action="client.create", resource=client.id)

        return client

    def get_client(self, client_id: str) -> Optional[Client]:
        """Get client by id, or None"""
        data = self.storage.load(self.clients_table, client_id)
        if data:
            return self._client_from_dict(data)
        return None

    def require_client(self, client_id: str) -> Client:
        """
        Get client by id

        Raises:
            UnknownClient: If the id does not resolve
        """
        client = self.get_client(client_id)
        if client is None:
            raise UnknownClient(client_id)
        return client

    def list_clients(self) -> List[Client]:
        """All clients in registration order"""
        return [self._client_from_dict(data) for data in self.storage.load_all(self.clients_table)]

    def search_clients(self, term: Optional[str] = None) -> List[Client]:
        """Clients whose name contains ``term`` (any case) or whose document contains it"""
        clients = self.list_clients()
        if not term:
            return clients
        return [c for c in clients if c.matches(term)]

    def count(self) -> int:
        return self.storage.count(self.clients_table)

    def _client_to_dict(self, client: Client) -> Dict:
        result = client.to_dict()
        result['monthly_income'] = str(client.monthly_income)
        return result

    def _client_from_dict(self, data: Dict) -> Client:
        return Client(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            document_id=data['document_id'],
            phone=data.get('phone', ""),
            email=data.get('email', ""),
            address=data.get('address', ""),
            monthly_income=Decimal(data['monthly_income']),
            credit_score=data['credit_score'],
            notes=data.get('notes'),
            avatar_url=data.get('avatar_url')
        )
