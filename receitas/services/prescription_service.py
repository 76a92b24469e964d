"""
Prescription Service - Save and status workflows

Multi-step flows are best-effort sequences with no rollback: the primary
step (saving the prescription, changing its status) decides success, and
later steps (patient upsert, notification e-mail) only add warnings.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from receitas.content import MESSAGES
from receitas.schemas.prescription import PrescriptionRequest, PrescriptionStatus
from receitas.services.api_client import ApiError, BackendClient
from receitas.services.identity_service import (
    IdentityUpsertOrchestrator,
    UpsertOutcome,
    form_address,
)
from receitas.services.address_service import compose
from receitas.services.normalizer import normalize_identity
from receitas.utils.formatting import digits_only
from receitas.utils.validators import (
    validate_prescription_form,
    validate_status_change,
)

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    success: bool
    operation: str
    data: Any = None
    message: str = ""
    warnings: list[str] = field(default_factory=list)
    errors: dict[str, list[str]] = field(default_factory=dict)
    upsert: Optional[UpsertOutcome] = None


def prescription_payload(form: Mapping[str, Any]) -> dict[str, Any]:
    """
    Backend payload for a prescription form (camelCase, digits only).

    Core fields go through PrescriptionRequest, so legacy delivery aliases
    are mapped and a rejection reason only travels with a rejected status.
    """
    request = PrescriptionRequest.model_validate(
        {
            "medicationName": str(form.get("medication_name") or "").strip(),
            "dosage": str(form.get("dosage") or "").strip(),
            "numberOfBoxes": form.get("number_of_boxes"),
            "prescriptionType": _value(form.get("prescription_type")) or None,
            "deliveryMethod": form.get("delivery_method"),
            "status": _value(form.get("status")) or PrescriptionStatus.SOLICITADA,
            "rejectionReason": form.get("rejection_reason"),
        }
    )
    payload: dict[str, Any] = {
        "medicationName": request.medication_name,
        "dosage": request.dosage,
        "numberOfBoxes": request.number_of_boxes,
        "deliveryMethod": request.delivery_method.value,
    }

    cpf = digits_only(form.get("cpf"))
    optional = {
        "prescriptionType": _value(request.prescription_type),
        "patientName": form.get("name"),
        "patientEmail": form.get("email"),
        "patientCpf": cpf if len(cpf) == 11 else None,
        "patientPhone": digits_only(form.get("phone")),
        "observations": form.get("observations"),
        "status": request.status.value if form.get("status") else None,
        "rejectionReason": request.rejection_reason,
    }
    payload.update({k: v for k, v in optional.items() if v})

    address = form_address(form)
    if address.postal_code:
        payload["patientCEP"] = address.postal_code
    line = compose(address)
    if line:
        payload["patientAddress"] = line

    return payload


class PrescriptionService:
    def __init__(
        self,
        client: BackendClient,
        orchestrator: Optional[IdentityUpsertOrchestrator] = None,
    ):
        self.client = client
        self.orchestrator = orchestrator or IdentityUpsertOrchestrator(client)

    async def save_prescription(
        self, form: Mapping[str, Any], prescription_id: Optional[str] = None
    ) -> OperationResult:
        """
        Create or update a prescription, then sync the patient record.

        The patient sync runs only after a successful save and its failure
        is reported as a warning; it never changes `success`. Edits only
        update an existing patient, never register a new one.
        """
        operation = "update_prescription" if prescription_id else "create_prescription"

        errors = validate_prescription_form(form)
        if errors:
            return OperationResult(False, operation, errors=errors)

        payload = prescription_payload(form)
        try:
            if prescription_id:
                envelope = await self.client.update_prescription(prescription_id, payload)
            else:
                envelope = await self.client.create_prescription(payload)
        except ApiError as e:
            logger.error(f"Error on {operation}: {e}")
            return OperationResult(False, operation, message=e.message)

        result = OperationResult(
            True, operation, data=envelope.payload, message=envelope.message or ""
        )

        outcome = await self.orchestrator.execute(
            form, allow_create=prescription_id is None
        )
        result.upsert = outcome
        if not outcome.success:
            result.warnings.append(MESSAGES["identity_failed"])

        return result

    async def change_status(
        self,
        prescription_id: str,
        status: str,
        rejection_reason: Optional[str] = None,
        notify: bool = True,
    ) -> OperationResult:
        """
        Update the workflow status, then sync the patient and e-mail them.

        Both follow-ups are best effort and never roll back the status
        change. The patient sync only runs when the prescription carries a
        CPF and a phone; approval may register a new patient, any other
        status only updates an existing one.
        """
        operation = "update_status"
        status = _value(status)

        errors = validate_status_change(status, rejection_reason)
        if errors:
            return OperationResult(False, operation, errors=errors)

        try:
            envelope = await self.client.update_prescription_status(
                prescription_id, status, rejection_reason
            )
        except ApiError as e:
            logger.error(f"Error updating status of {prescription_id}: {e}")
            return OperationResult(False, operation, message=e.message)

        result = OperationResult(
            True, operation, data=envelope.payload, message=envelope.message or ""
        )

        await self._sync_patient(prescription_id, status, result)

        if notify:
            try:
                await self.client.send_status_email(
                    prescription_id, status, rejection_reason
                )
            except ApiError as e:
                logger.error(
                    f"Status saved but notification failed for {prescription_id}: {e}",
                    exc_info=True,
                )
                result.warnings.append(MESSAGES["notification_failed"])

        return result

    async def _sync_patient(
        self, prescription_id: str, status: str, result: OperationResult
    ) -> None:
        try:
            envelope = await self.client.get_prescription(prescription_id)
        except ApiError as e:
            logger.error(
                f"Could not load {prescription_id} for patient sync: {e}",
                exc_info=True,
            )
            result.warnings.append(MESSAGES["identity_failed"])
            return

        form = patient_form(envelope.payload)
        if not (form["cpf"] and form["phone"]):
            return

        outcome = await self.orchestrator.execute(
            form, allow_create=status == PrescriptionStatus.APROVADA.value
        )
        result.upsert = outcome
        if not outcome.success:
            result.warnings.append(MESSAGES["identity_failed"])


def patient_form(record: Any) -> dict[str, Any]:
    """Patient fields of a stored prescription, shaped like the form."""
    identity = normalize_identity(record)
    return {
        "name": identity.full_name,
        "email": identity.email,
        "cpf": identity.tax_id,
        "phone": identity.phone,
        "endereco": identity.address,
        "cep": identity.address.postal_code,
    }


def _value(value: Any) -> Any:
    return getattr(value, "value", value)
