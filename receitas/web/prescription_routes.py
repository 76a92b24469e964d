"""
Prescription routes (admin): save with patient sync, status changes with
best-effort notification.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from receitas.dependencies.auth import get_admin_session, get_backend_client
from receitas.schemas.prescription import (
    DeliveryMethod,
    PrescriptionStatus,
    PrescriptionType,
    parse_delivery_method,
)
from receitas.services.api_client import ApiError, BackendClient
from receitas.services.normalizer import normalize_prescription
from receitas.services.prescription_service import PrescriptionService
from receitas.utils.response_utils import operation_response, raise_api_error

router = APIRouter(
    prefix="/api/prescriptions", dependencies=[Depends(get_admin_session)]
)


class PrescriptionForm(BaseModel):
    medication_name: str = ""
    dosage: str = ""
    number_of_boxes: str = "1"
    prescription_type: Optional[PrescriptionType] = None
    delivery_method: DeliveryMethod = DeliveryMethod.RETIRAR_CLINICA
    status: Optional[PrescriptionStatus] = None
    rejection_reason: Optional[str] = None
    observations: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    cpf: Optional[str] = None
    phone: Optional[str] = None
    endereco: Any = None
    cep: Optional[str] = None
    account_type: Optional[str] = None

    @field_validator("delivery_method", mode="before")
    @classmethod
    def legacy_delivery_method(cls, v):
        if v in (None, ""):
            return DeliveryMethod.RETIRAR_CLINICA
        return parse_delivery_method(v)

    @field_validator("prescription_type", "status", mode="before")
    @classmethod
    def blank_as_none(cls, v):
        return v or None


class StatusChange(BaseModel):
    status: PrescriptionStatus
    rejection_reason: Optional[str] = None
    notify: bool = True


@router.get("")
async def list_prescriptions(
    status: Optional[str] = None,
    client: BackendClient = Depends(get_backend_client),
):
    """Prescriptions with display_cpf, display_cep and display_address filled in."""
    try:
        prescriptions = await client.list_prescriptions(status=status)
    except ApiError as e:
        raise_api_error("list_prescriptions", e)
    return {"prescriptions": [normalize_prescription(p) for p in prescriptions]}


@router.post("")
async def create_prescription(
    form: PrescriptionForm, client: BackendClient = Depends(get_backend_client)
):
    result = await PrescriptionService(client).save_prescription(form.model_dump())
    return operation_response(result)


@router.put("/{prescription_id}")
async def update_prescription(
    prescription_id: str,
    form: PrescriptionForm,
    client: BackendClient = Depends(get_backend_client),
):
    result = await PrescriptionService(client).save_prescription(
        form.model_dump(), prescription_id=prescription_id
    )
    return operation_response(result)


@router.patch("/{prescription_id}/status")
async def change_status(
    prescription_id: str,
    change: StatusChange,
    client: BackendClient = Depends(get_backend_client),
):
    result = await PrescriptionService(client).change_status(
        prescription_id, change.status, change.rejection_reason, notify=change.notify
    )
    return operation_response(result)
