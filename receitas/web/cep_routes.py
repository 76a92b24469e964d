"""
CEP lookup route used by the address forms.

Not-found codes, incomplete input and network failures are returned as
data with 200: the form must stay editable and keep what was typed.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from receitas.content import MESSAGES
from receitas.services.postal_service import (
    LookupStatus,
    PostalLookupAdapter,
    PostalLookupResult,
)

router = APIRouter(prefix="/api/cep")

STATUS_MESSAGES = {
    LookupStatus.NOT_FOUND: MESSAGES["cep_not_found"],
    LookupStatus.FAILED: MESSAGES["cep_failed"],
}


def get_postal_adapter(request: Request) -> PostalLookupAdapter:
    return request.app.state.postal_adapter


def lookup_body(result: PostalLookupResult) -> dict:
    address: Optional[dict] = result.address.model_dump() if result.address else None
    return {
        "status": result.status.value,
        "cep": result.postal_code,
        "address": address,
        "message": STATUS_MESSAGES.get(result.status, ""),
    }


@router.get("/{cep}")
async def lookup_cep(
    cep: str, adapter: PostalLookupAdapter = Depends(get_postal_adapter)
):
    result = await adapter.lookup(cep)
    return lookup_body(result)
