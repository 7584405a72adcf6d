"""
Demo data for local runs: a handful of borrower profiles.

Enable with CREDIFLOW_SEED_DEMO_DATA=true.
"""

from decimal import Decimal
from typing import List

from .clients import Client, ClientManager

DEMO_CLIENTS = [
    {
        "client_id": "1",
        "name": "Roberto Gómez",
        "document_id": "8401923",
        "phone": "+52 55 1234 5678",
        "email": "roberto@email.com",
        "address": "Av. Reforma 222",
        "monthly_income": Decimal('12000'),
        "credit_score": 85,
        "avatar_url": "https://i.pravatar.cc/150?u=1",
    },
    {
        "client_id": "2",
        "name": "María Sanchez",
        "document_id": "9182736",
        "phone": "+52 55 8765 4321",
        "email": "maria@email.com",
        "address": "Calle 5 de Mayo, Centro",
        "monthly_income": Decimal('8500'),
        "credit_score": 60,
        "avatar_url": "https://i.pravatar.cc/150?u=2",
    },
    {
        "client_id": "3",
        "name": "Carlos Ruiz",
        "document_id": "1122334",
        "phone": "+52 55 9988 7766",
        "email": "carlos@email.com",
        "address": "Colonia Roma Norte",
        "monthly_income": Decimal('18000'),
        "credit_score": 92,
        "avatar_url": "https://i.pravatar.cc/150?u=3",
    },
]


def seed_demo_clients(client_manager: ClientManager) -> List[Client]:
    """Create the demo clients that are not registered yet"""
    created = []
    for profile in DEMO_CLIENTS:
        if client_manager.get_client(profile["client_id"]) is None:
            created.append(client_manager.create_client(**profile))
    return created
