from dataclasses import dataclass, field
from typing import Union

from pydantic import BaseModel, ConfigDict


class Address(BaseModel):
    """Endereço canônico; todos os campos são opcionais e nunca None."""

    postal_code: str = ""
    street: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state_code: str = ""

    model_config = ConfigDict(str_strip_whitespace=True)

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())

    def to_backend(self) -> dict[str, str]:
        """Formato aceito pelo backend (`endereco` sempre como objeto)."""
        return {
            "cep": self.postal_code,
            "street": self.street,
            "number": self.number,
            "complement": self.complement,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "state": self.state_code,
        }


@dataclass(frozen=True)
class StructuredAddress:
    fields: Address


@dataclass(frozen=True)
class FreeformAddress:
    text: str


@dataclass(frozen=True)
class UnknownAddress:
    raw: object = field(default=None, compare=False)


# The backend returns `address`/`endereco` either as an object or as a
# display string; every reader goes through this union instead of probing types.
AddressValue = Union[StructuredAddress, FreeformAddress, UnknownAddress]
