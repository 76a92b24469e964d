from receitas.schemas.address import (
    Address,
    AddressValue,
    FreeformAddress,
    StructuredAddress,
    UnknownAddress,
)
from receitas.schemas.api import ApiEnvelope
from receitas.schemas.identity import IdentityRecord, Role
from receitas.schemas.prescription import (
    DeliveryMethod,
    PrescriptionRequest,
    PrescriptionStatus,
    PrescriptionType,
    parse_delivery_method,
)

__all__ = [
    # Address schemas
    "Address",
    "AddressValue",
    "FreeformAddress",
    "StructuredAddress",
    "UnknownAddress",
    # Backend envelope
    "ApiEnvelope",
    # Identity schemas
    "IdentityRecord",
    "Role",
    # Prescription schemas
    "DeliveryMethod",
    "PrescriptionRequest",
    "PrescriptionStatus",
    "PrescriptionType",
    "parse_delivery_method",
]
