from enum import Enum
from typing import Optional

from pydantic import field_validator

from receitas.schemas.address import Address
from receitas.schemas.base import BaseResponseSchema
from receitas.utils.formatting import fit_digits


class Role(str, Enum):
    PATIENT = "patient"
    ADMIN = "admin"


class IdentityRecord(BaseResponseSchema):
    """Paciente ou administrador na forma canônica, após reconciliação."""

    id: Optional[str] = None
    full_name: str = ""
    email: str = ""
    tax_id: str = ""
    phone: str = ""
    role: Role = Role.PATIENT
    address: Address = Address()
    profile_image_ref: Optional[str] = None

    @field_validator("tax_id", mode="before")
    @classmethod
    def tax_id_digits(cls, v):
        """CPF sempre com exatamente 11 dígitos quando presente."""
        return fit_digits(v, 11, pad=True)

    @field_validator("role", mode="before")
    @classmethod
    def unknown_role_is_patient(cls, v):
        if v in (Role.ADMIN, Role.ADMIN.value):
            return Role.ADMIN
        return Role.PATIENT
