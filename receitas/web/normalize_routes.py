"""
Reconciliation routes: canonical identity and address shapes for the UI.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body
from pydantic import BaseModel

from receitas.schemas.address import Address
from receitas.services.address_service import (
    address_fields,
    address_text,
    coerce_address,
    compose,
    decompose,
)
from receitas.services.normalizer import normalize, normalize_identity
from receitas.utils.formatting import format_cep, format_cpf, format_phone

router = APIRouter(prefix="/api/normalize")


class AddressInput(BaseModel):
    address: Any = None
    display: Optional[str] = None


@router.post("/identity")
async def normalize_identity_route(record: dict = Body(...)):
    identity = normalize_identity(record)
    fields = normalize(record)
    return {
        "identity": identity.model_dump(),
        "display": {
            "cpf": format_cpf(identity.tax_id),
            "cep": format_cep(identity.address.postal_code),
            "phone": format_phone(identity.phone),
            "address": fields["address_line"],
        },
    }


@router.post("/address")
async def normalize_address_route(body: AddressInput):
    """
    Structured fields and display line for an address.

    `address` (object or text) is preferred; `display` is only parsed when
    no address is given, since the text form is lossy.
    """
    if body.address is not None:
        value = coerce_address(body.address)
        fields = address_fields(value)
        return {
            "kind": type(value).__name__,
            "fields": fields.model_dump(),
            "display": compose(fields) or address_text(value),
        }

    fields = decompose(body.display or "")
    return {
        "kind": "FreeformAddress" if body.display else "UnknownAddress",
        "fields": fields.model_dump(),
        "display": compose(fields),
    }


@router.post("/address/compose")
async def compose_address_route(address: Address):
    return {"display": compose(address)}
