"""
Client endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .dependencies import get_system
from .schemas import ClientResponse, CreateClientRequest
from ..system import MicrofinanceSystem


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(
    request: CreateClientRequest,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Register a new client"""
    client = system.client_manager.create_client(
        name=request.name,
        document_id=request.document_id,
        phone=request.phone,
        email=request.email,
        address=request.address,
        monthly_income=request.monthly_income,
        credit_score=request.credit_score,
        notes=request.notes,
        avatar_url=request.avatar_url
    )
    return ClientResponse.from_client(client, system.currency).model_dump()


@router.get("")
async def list_clients(
    q: Optional[str] = None,
    system: MicrofinanceSystem = Depends(get_system)
):
    """List clients, optionally filtered by name or document number"""
    clients = system.client_manager.search_clients(q)
    return {
        "clients": [ClientResponse.from_client(c, system.currency).model_dump() for c in clients],
        "count": len(clients)
    }


@router.get("/{client_id}")
async def get_client(
    client_id: str,
    system: MicrofinanceSystem = Depends(get_system)
):
    """Get client details"""
    client = system.client_manager.require_client(client_id)
    return ClientResponse.from_client(client, system.currency).model_dump()
