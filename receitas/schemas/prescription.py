from enum import Enum
from typing import Optional

from pydantic import Field, field_validator, model_validator

from receitas.schemas.base import BaseResponseSchema


class PrescriptionStatus(str, Enum):
    SOLICITADA = "solicitada"
    SOLICITADA_URGENCIA = "solicitada_urgencia"
    EM_ANALISE = "em_analise"
    APROVADA = "aprovada"
    REJEITADA = "rejeitada"
    PRONTA = "pronta"
    ENVIADA = "enviada"
    ENTREGUE = "entregue"


class DeliveryMethod(str, Enum):
    EMAIL = "email"
    RETIRAR_CLINICA = "retirar_clinica"


class PrescriptionType(str, Enum):
    BRANCO = "branco"
    AZUL = "azul"
    AMARELO = "amarelo"


# Aliases sent by older UI versions for pickup at the clinic
DELIVERY_METHOD_ALIASES = {
    "clinic": DeliveryMethod.RETIRAR_CLINICA,
    "pickup": DeliveryMethod.RETIRAR_CLINICA,
}


def parse_delivery_method(value) -> DeliveryMethod:
    """DeliveryMethod for a raw value, accepting legacy aliases; ValueError when unknown."""
    value = getattr(value, "value", value)
    if isinstance(value, str) and value in DELIVERY_METHOD_ALIASES:
        return DELIVERY_METHOD_ALIASES[value]
    return DeliveryMethod(value)


class PrescriptionRequest(BaseResponseSchema):
    """Solicitação de renovação de receita"""

    id: Optional[str] = Field(default=None, validation_alias="_id")
    medication_name: str = Field(validation_alias="medicationName")
    dosage: str = ""
    number_of_boxes: str = Field(default="1", validation_alias="numberOfBoxes")
    prescription_type: Optional[PrescriptionType] = Field(
        default=None, validation_alias="prescriptionType"
    )
    delivery_method: DeliveryMethod = Field(
        default=DeliveryMethod.RETIRAR_CLINICA, validation_alias="deliveryMethod"
    )
    status: PrescriptionStatus = PrescriptionStatus.SOLICITADA
    rejection_reason: Optional[str] = Field(
        default=None, validation_alias="rejectionReason"
    )

    @field_validator("delivery_method", mode="before")
    @classmethod
    def clinic_pickup_alias(cls, v):
        if v in (None, ""):
            return DeliveryMethod.RETIRAR_CLINICA
        return parse_delivery_method(v)

    @field_validator("number_of_boxes", mode="before")
    @classmethod
    def boxes_as_text(cls, v):
        return "1" if v in (None, "") else str(v)

    @model_validator(mode="after")
    def rejection_reason_iff_rejected(self):
        reason = (self.rejection_reason or "").strip()
        if self.status == PrescriptionStatus.REJEITADA and not reason:
            raise ValueError("rejection_reason is required for rejected prescriptions")
        if self.status != PrescriptionStatus.REJEITADA:
            self.rejection_reason = None
        return self
