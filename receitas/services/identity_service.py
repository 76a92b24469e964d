"""
Identity Upsert Service - Patient record sync from the prescription form

When an admin creates, edits or changes the status of a prescription, the
CPF and contact fields of the request are pushed to the patient registry:

- CREATE: no patient found for the CPF, a phone was typed and creation is
  allowed (new prescription or approval). Missing CPF and e-mail are
  replaced by placeholders (random CPF, synthetic e-mail).
- UPDATE: a patient exists for the CPF and a phone was typed. Only the
  phone is patched; name and address edits in the same form are NOT sent.
- SKIP: no phone (no request), or no patient found when creation is not
  allowed. Without creation an incomplete CPF is never replaced.

Known limitations (pending product decision):
- Placeholder CPFs are random and, unless PLACEHOLDER_TAX_ID_UNIQUE_CHECK
  is enabled, never checked for collisions. A collision turns the CREATE
  into an UPDATE of an unrelated patient's phone.
- The UPDATE path ignores name/address changes.

The upsert is a secondary effect: execute() never raises, failures are
logged and reported on the outcome.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from receitas.config import settings
from receitas.schemas.address import Address
from receitas.services.address_service import address_fields, coerce_address
from receitas.services.api_client import ApiError, BackendClient
from receitas.services.normalizer import normalize_identity
from receitas.utils.formatting import digits_only, fit_digits, remove_accents

logger = logging.getLogger(__name__)

ExistingLookup = Callable[[str], Awaitable[Optional[dict]]]


class UpsertAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


@dataclass
class UpsertPlan:
    action: UpsertAction
    tax_id: str = ""
    payload: dict = field(default_factory=dict)
    patient_id: Optional[str] = None
    placeholder_tax_id: bool = False


@dataclass
class UpsertOutcome:
    plan: Optional[UpsertPlan]
    success: bool
    patient: Optional[dict] = None
    error: Optional[str] = None


def generate_placeholder_tax_id() -> str:
    """Random 11-digit CPF placeholder (no check digits, no collision check)."""
    return "".join(str(random.randint(0, 9)) for _ in range(11))


def placeholder_email(tax_id: str) -> str:
    suffix = random.randint(0, 999999)
    return (
        f"{settings.PLACEHOLDER_EMAIL_PREFIX}{tax_id}{suffix}"
        f"@{settings.PLACEHOLDER_EMAIL_DOMAIN}"
    )


def form_address(form: Mapping[str, Any]) -> Address:
    """
    Address object from the form's `endereco` (object or text) and `cep`.

    The CEP typed in the form wins over one nested in the address object.
    """
    address = address_fields(coerce_address(form.get("endereco")))
    cep = fit_digits(form.get("cep"), 8)
    if cep:
        address = address.model_copy(update={"postal_code": cep})
    return address


class IdentityUpsertOrchestrator:
    def __init__(
        self,
        client: BackendClient,
        tax_id_factory: Callable[[], str] = generate_placeholder_tax_id,
        unique_placeholder: Optional[bool] = None,
    ):
        self.client = client
        self.tax_id_factory = tax_id_factory
        self.unique_placeholder = (
            settings.PLACEHOLDER_TAX_ID_UNIQUE_CHECK
            if unique_placeholder is None
            else unique_placeholder
        )

    async def plan(
        self,
        form: Mapping[str, Any],
        existing_lookup: ExistingLookup,
        allow_create: bool = True,
    ) -> UpsertPlan:
        """
        Decide between create, update and skip for the form fields.

        Args:
            form: Form fields (name, email, cpf, phone, endereco, cep, account_type)
            existing_lookup: Async CPF -> patient dict or None
            allow_create: False restricts the plan to UPDATE or SKIP

        Returns:
            UpsertPlan with the payload to send
        """
        phone = digits_only(form.get("phone"))
        tax_id = digits_only(form.get("cpf"))
        placeholder = False

        if not phone:
            return UpsertPlan(action=UpsertAction.SKIP, tax_id=tax_id)

        if len(tax_id) != 11:
            if not allow_create:
                return UpsertPlan(action=UpsertAction.SKIP, tax_id=tax_id)
            tax_id = await self._placeholder_tax_id(existing_lookup)
            placeholder = True
            logger.warning(
                "Form without a valid CPF, using placeholder %s...", tax_id[:3]
            )

        existing = await existing_lookup(tax_id)

        if existing is None and allow_create:
            return UpsertPlan(
                action=UpsertAction.CREATE,
                tax_id=tax_id,
                payload=self._create_payload(form, tax_id, phone),
                placeholder_tax_id=placeholder,
            )

        patient_id = _patient_id(existing)
        if existing is not None and patient_id:
            return UpsertPlan(
                action=UpsertAction.UPDATE,
                tax_id=tax_id,
                payload={"phone": phone},
                patient_id=patient_id,
                placeholder_tax_id=placeholder,
            )

        return UpsertPlan(
            action=UpsertAction.SKIP, tax_id=tax_id, placeholder_tax_id=placeholder
        )

    async def execute(
        self, form: Mapping[str, Any], allow_create: bool = True
    ) -> UpsertOutcome:
        """Plan and apply the upsert against the backend; never raises."""
        plan = None
        try:
            plan = await self.plan(
                form, self.client.find_patient_by_cpf, allow_create=allow_create
            )

            if plan.action == UpsertAction.SKIP:
                return UpsertOutcome(plan, success=True)

            if plan.action == UpsertAction.CREATE:
                await self.client.register(plan.payload)
            else:
                await self.client.update_patient(plan.patient_id, plan.payload)

            patient = await self.client.find_patient_by_cpf(plan.tax_id)
            logger.info(f"Patient {plan.action.value} done for CPF {plan.tax_id[:3]}...")
            return UpsertOutcome(plan, success=True, patient=patient)

        except ApiError as e:
            logger.error(f"Patient upsert failed: {e}", exc_info=True)
            return UpsertOutcome(plan, success=False, error=e.message)
        except Exception as e:
            logger.error(f"Unexpected error in patient upsert: {e}", exc_info=True)
            return UpsertOutcome(plan, success=False, error=str(e))

    async def _placeholder_tax_id(self, existing_lookup: ExistingLookup) -> str:
        tax_id = self.tax_id_factory()
        if not self.unique_placeholder:
            return tax_id

        for _ in range(settings.PLACEHOLDER_TAX_ID_MAX_ATTEMPTS):
            if await existing_lookup(tax_id) is None:
                return tax_id
            logger.warning("Placeholder CPF collided with an existing patient, retrying")
            tax_id = self.tax_id_factory()
        raise ApiError("Não foi possível gerar um CPF temporário único", status=409)

    def _create_payload(
        self, form: Mapping[str, Any], tax_id: str, phone: str
    ) -> dict[str, Any]:
        email = str(form.get("email") or "").strip()
        payload: dict[str, Any] = {
            "name": remove_accents(str(form.get("name") or "")),
            "email": email or placeholder_email(tax_id),
            "Cpf": tax_id,
            "password": settings.PLACEHOLDER_PASSWORD,
            "phone": phone,
            "birthDate": settings.PLACEHOLDER_BIRTH_DATE,
        }

        address = form_address(form)
        if not address.is_empty():
            payload["endereco"] = address.to_backend()

        if str(form.get("account_type") or "").lower() == "administrador":
            payload["role"] = "admin"

        return payload


def _patient_id(patient: Optional[dict]) -> Optional[str]:
    if not patient:
        return None
    return normalize_identity(patient).id
