"""
Field Normalizer - Reconciliation of loosely-typed backend records

The same logical field arrives under several names depending on which
endpoint produced the record (`Cpf`, `cpf`, `patientCpf`; `cep` nested in
`endereco`/`address` or top-level as `cep`, `CEP`, `patientCEP`; ...).

Each canonical field declares an ordered list of FieldAlias entries: a key
path plus an extractor. normalize() walks the list and keeps the first
non-blank value. Nested structured paths come before flat fields, and
structured addresses before parsed display strings.

Digit-only fields are cleaned and fitted to their fixed length:
- tax_id: 11 digits, left-padded with zeros, extra digits dropped
- postal_code: first 8 digits
- phone: first 11 digits

Missing data never raises; absent fields resolve to "".
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from receitas.schemas.address import FreeformAddress, StructuredAddress
from receitas.schemas.identity import IdentityRecord
from receitas.services.address_service import (
    address_text,
    coerce_address,
    decompose,
)
from receitas.utils.formatting import fit_digits

Extractor = Callable[[Any], str]


def as_text(value: Any) -> str:
    """Scalar to stripped string; objects and lists yield ""."""
    if value is None or isinstance(value, (Mapping, list, tuple, bool)):
        return ""
    return str(value).strip()


def structured_part(field_name: str) -> Extractor:
    """Read one address field, only when the value is an address object."""

    def extract(value: Any) -> str:
        address = coerce_address(value)
        if isinstance(address, StructuredAddress):
            return getattr(address.fields, field_name)
        return ""

    return extract


def freeform_part(field_name: str) -> Extractor:
    """Read one address field by parsing a display string (lossy)."""

    def extract(value: Any) -> str:
        address = coerce_address(value)
        if isinstance(address, FreeformAddress):
            return getattr(decompose(address.text), field_name)
        return ""

    return extract


def structured_display(value: Any) -> str:
    """Display line composed from an address object."""
    address = coerce_address(value)
    if isinstance(address, StructuredAddress):
        return address_text(address)
    return ""


@dataclass(frozen=True)
class FieldAlias:
    path: tuple[str, ...]
    extractor: Extractor = as_text


@dataclass(frozen=True)
class DigitPolicy:
    length: int
    pad: bool = False

    def apply(self, value: str) -> str:
        return fit_digits(value, self.length, pad=self.pad)


DIGIT_POLICIES: dict[str, DigitPolicy] = {
    "tax_id": DigitPolicy(11, pad=True),
    "postal_code": DigitPolicy(8),
    "phone": DigitPolicy(11),
}

# Keys holding an address, as an object or as a display string
ADDRESS_SOURCES = ("endereco", "address", "patientAddress")


def _address_aliases(field_name: str) -> list[FieldAlias]:
    aliases = [
        FieldAlias((container,), structured_part(field_name))
        for container in ADDRESS_SOURCES
    ]
    aliases += [
        FieldAlias((container,), freeform_part(field_name))
        for container in ADDRESS_SOURCES
    ]
    return aliases


IDENTITY_ALIASES: dict[str, list[FieldAlias]] = {
    "id": [FieldAlias(("_id",)), FieldAlias(("id",))],
    "full_name": [
        FieldAlias(("name",)),
        FieldAlias(("fullName",)),
        FieldAlias(("patientName",)),
    ],
    "email": [FieldAlias(("email",)), FieldAlias(("patientEmail",))],
    "tax_id": [
        FieldAlias(("Cpf",)),
        FieldAlias(("cpf",)),
        FieldAlias(("patientCpf",)),
        FieldAlias(("taxId",)),
    ],
    "phone": [
        FieldAlias(("phone",)),
        FieldAlias(("patientPhone",)),
        FieldAlias(("telefone",)),
    ],
    "role": [FieldAlias(("role",))],
    "profile_image_ref": [
        FieldAlias(("profileImageAPI",)),
        FieldAlias(("profilePhoto",)),
        FieldAlias(("profileImage",)),
    ],
    "postal_code": [
        *[
            FieldAlias((container,), structured_part("postal_code"))
            for container in ADDRESS_SOURCES
        ],
        FieldAlias(("cep",)),
        FieldAlias(("CEP",)),
        FieldAlias(("patientCEP",)),
        FieldAlias(("postalCode",)),
    ],
    "street": _address_aliases("street"),
    "number": _address_aliases("number"),
    "complement": _address_aliases("complement"),
    "neighborhood": _address_aliases("neighborhood"),
    "city": _address_aliases("city"),
    "state_code": _address_aliases("state_code"),
    "address_line": [
        *[
            FieldAlias((container,), structured_display)
            for container in ADDRESS_SOURCES
        ],
        FieldAlias(("endereco",)),
        FieldAlias(("address",)),
        FieldAlias(("patientAddress",)),
    ],
}


def resolve_path(record: Any, path: Sequence[str]) -> Any:
    """Follow a key path through nested mappings; None when any step is missing."""
    current = record
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def normalize(
    record: Any,
    field_aliases: Mapping[str, Sequence[FieldAlias]] = IDENTITY_ALIASES,
    digit_policies: Optional[Mapping[str, DigitPolicy]] = None,
) -> dict[str, str]:
    """
    Reduce a loosely-typed record to one value per canonical field.

    Args:
        record: Backend object (dict); anything else yields all-empty fields
        field_aliases: Ordered aliases per canonical field name
        digit_policies: Length policies for digit-only fields
            (defaults to DIGIT_POLICIES)

    Returns:
        Dict with every canonical field name; absent values are ""

    Example:
        >>> normalize({"Cpf": "123", "address": {"cep": "96400110"}})["tax_id"]
        '00000000123'
    """
    policies = DIGIT_POLICIES if digit_policies is None else digit_policies
    result: dict[str, str] = {}

    for name, aliases in field_aliases.items():
        policy = policies.get(name)
        value = ""
        for alias in aliases:
            candidate = alias.extractor(resolve_path(record, alias.path))
            if policy is not None:
                candidate = policy.apply(candidate)
            if candidate and candidate.strip():
                value = candidate.strip()
                break
        result[name] = value

    return result


def normalize_identity(record: Any) -> IdentityRecord:
    """Canonical IdentityRecord for a patient/admin object from any endpoint."""
    fields = normalize(record)
    return IdentityRecord(
        id=fields["id"] or None,
        full_name=fields["full_name"],
        email=fields["email"],
        tax_id=fields["tax_id"],
        phone=fields["phone"],
        role=fields["role"],
        profile_image_ref=fields["profile_image_ref"] or None,
        address={
            "postal_code": fields["postal_code"],
            "street": fields["street"],
            "number": fields["number"],
            "complement": fields["complement"],
            "neighborhood": fields["neighborhood"],
            "city": fields["city"],
            "state_code": fields["state_code"],
        },
    )


def normalize_prescription(record: Mapping[str, Any]) -> dict[str, Any]:
    """
    Copy of a prescription with display_cpf, display_cep and display_address.

    A structured address is recomposed into text, so objects never leak
    into the display fields.
    """
    fields = normalize(record)
    return {
        **record,
        "display_cpf": fields["tax_id"],
        "display_cep": fields["postal_code"],
        "display_address": fields["address_line"],
    }
