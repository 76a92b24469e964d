"""
Patient search routes (admin). Results are reconciled to the canonical
identity shape before reaching the UI.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from receitas.dependencies.auth import get_admin_session, get_backend_client
from receitas.services.api_client import ApiError, BackendClient
from receitas.services.normalizer import normalize_identity
from receitas.utils.formatting import digits_only
from receitas.utils.response_utils import raise_api_error

router = APIRouter(prefix="/api/patients", dependencies=[Depends(get_admin_session)])


@router.get("/search")
async def search_patients(
    cpf: Optional[str] = None,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    client: BackendClient = Depends(get_backend_client),
):
    try:
        if cpf:
            found = await client.find_patient_by_cpf(cpf)
            patients = [found] if found else []
        else:
            patients = await client.search_patients(
                name=name, phone=digits_only(phone) or None
            )
    except ApiError as e:
        raise_api_error("search_patients", e)

    return {"patients": [normalize_identity(p).model_dump() for p in patients]}
