"""
Address Service - Composition and parsing of patient addresses

The backend stores addresses inconsistently: `address` or `endereco`,
as an object or as a display string, with the CEP nested or top-level.
This module converts any of those shapes into the AddressValue union and
back into either the canonical Address or a single display line.

decompose() is a positional heuristic, not a parser: it is lossy and
depends on the segment order produced by compose(). Whenever a structured
object is available it must be preferred over the display string.
"""

import re
from typing import Any, Mapping

from receitas.schemas.address import (
    Address,
    AddressValue,
    FreeformAddress,
    StructuredAddress,
    UnknownAddress,
)
from receitas.utils.formatting import fit_digits

# Backend and ViaCEP spellings accepted for each canonical field, in priority order
ADDRESS_KEYS: dict[str, tuple[str, ...]] = {
    "postal_code": ("cep", "CEP", "postalCode", "postal_code"),
    "street": ("street", "logradouro", "rua"),
    "number": ("number", "numero"),
    "complement": ("complement", "complemento"),
    "neighborhood": ("neighborhood", "bairro"),
    "city": ("city", "cidade", "localidade"),
    "state_code": ("state", "uf", "estado", "stateCode", "state_code"),
}


def _text(value: Any) -> str:
    if value is None or isinstance(value, (Mapping, list, tuple, bool)):
        return ""
    return str(value).strip()


def address_from_mapping(data: Mapping[str, Any]) -> Address:
    """Build an Address from a backend/ViaCEP object, ignoring unknown keys."""
    values = {}
    for name, keys in ADDRESS_KEYS.items():
        for key in keys:
            text = _text(data.get(key))
            if text:
                values[name] = text
                break
    if "postal_code" in values:
        values["postal_code"] = fit_digits(values["postal_code"], 8)
    return Address(**values)


def coerce_address(value: Any) -> AddressValue:
    """
    Classify a raw address value.

    Returns:
        StructuredAddress for objects with at least one filled field,
        FreeformAddress for non-blank strings, UnknownAddress otherwise
    """
    if isinstance(value, Address):
        return UnknownAddress(value) if value.is_empty() else StructuredAddress(value)
    if isinstance(value, Mapping):
        fields = address_from_mapping(value)
        if fields.is_empty():
            return UnknownAddress(value)
        return StructuredAddress(fields)
    if isinstance(value, str) and value.strip():
        return FreeformAddress(value.strip())
    return UnknownAddress(value)


def address_fields(value: AddressValue) -> Address:
    if isinstance(value, StructuredAddress):
        return value.fields
    if isinstance(value, FreeformAddress):
        return decompose(value.text)
    return Address()


def address_text(value: AddressValue) -> str:
    if isinstance(value, StructuredAddress):
        return compose(value.fields)
    if isinstance(value, FreeformAddress):
        return value.text
    return ""


def compose(address: Address) -> str:
    """
    Join the filled parts of an address into one display line.

    Order: street, number, "- complement", neighborhood, city, "/state".
    The complement attaches to the previous part with " - " and the state
    code to the city with "/", e.g. "Rua A, 10 - apto 2, Centro, Bagé/RS".
    Empty parts are omitted without leaving stray separators.
    """
    clean = {k: v.strip(" ,-/") for k, v in address.model_dump().items()}
    parts = [
        clean["street"],
        clean["number"],
        f"- {clean['complement']}" if clean["complement"] else "",
        clean["neighborhood"],
        clean["city"],
        f"/{clean['state_code']}" if clean["state_code"] else "",
    ]
    text = ", ".join(p for p in parts if p)
    text = text.replace(", - ", " - ").replace(", /", "/")
    text = re.sub(r"\s*,(?:\s*,)+", ",", text)
    text = re.sub(r"\s{2,}", " ", text)
    return re.sub(r"^[\s,\-/]+|[\s,]+$", "", text)


def decompose(display: str) -> Address:
    """
    Split a display line back into address parts by position.

    [0] street, [1] number, [2] neighborhood (3+ segments),
    [3] "city/state" (4+ segments). Complement and CEP are never recovered.
    """
    if not display or not display.strip():
        return Address()

    parts = [p.strip() for p in display.split(",")]
    values = {
        "street": parts[0],
        "number": parts[1] if len(parts) > 1 else "",
    }
    if len(parts) >= 3:
        values["neighborhood"] = parts[2]
    if len(parts) >= 4:
        city_state = [p.strip() for p in parts[3].split("/")]
        values["city"] = city_state[0]
        values["state_code"] = city_state[1] if len(city_state) > 1 else ""
    return Address(**values)


def merge_address(current: Address, incoming: Address) -> Address:
    """Overlay the filled fields of `incoming` onto `current`."""
    updates = {k: v for k, v in incoming.model_dump().items() if v}
    return current.model_copy(update=updates)
