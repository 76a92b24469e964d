"""
Postal Lookup Service - CEP to address via ViaCEP

Provides:
- PostalLookupAdapter: single lookup, only for complete 8-digit codes
- PostalCodeField: form-field state that ignores stale responses
- apply_lookup: merge a result into an address being edited

A "not found" answer is a normal outcome, not an error: the caller keeps
the fields it already has. Network failures are logged and reported as
FAILED so the form stays editable.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from receitas.config import settings
from receitas.schemas.address import Address
from receitas.services.address_service import address_from_mapping, merge_address
from receitas.utils.formatting import digits_only

logger = logging.getLogger(__name__)

CEP_LENGTH = 8


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"  # Incomplete code, no request made
    FAILED = "failed"
    STALE = "stale"  # Field changed while the request was in flight


@dataclass(frozen=True)
class PostalLookupResult:
    status: LookupStatus
    postal_code: str
    address: Optional[Address] = None

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND


class PostalLookupAdapter:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.VIACEP_TIMEOUT
        )
        self.base_url = (base_url or settings.VIACEP_URL).rstrip("/")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def lookup(self, postal_code: str) -> PostalLookupResult:
        """
        Look up an address by CEP.

        Args:
            postal_code: CEP with or without mask

        Returns:
            PostalLookupResult; SKIPPED when the code does not have exactly
            8 digits (no request is made)
        """
        code = digits_only(postal_code)
        if len(code) != CEP_LENGTH:
            return PostalLookupResult(LookupStatus.SKIPPED, code)

        url = f"{self.base_url}/{code}/json/"
        try:
            response = await self._client.get(url)
            if response.status_code == 400:
                return PostalLookupResult(LookupStatus.NOT_FOUND, code)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"CEP lookup failed for {code}: {e}")
            return PostalLookupResult(LookupStatus.FAILED, code)

        if not isinstance(data, dict) or _is_not_found(data.get("erro")):
            logger.info(f"CEP not found: {code}")
            return PostalLookupResult(LookupStatus.NOT_FOUND, code)

        address = address_from_mapping(data).model_copy(update={"postal_code": code})
        return PostalLookupResult(LookupStatus.FOUND, code, address)


def _is_not_found(flag) -> bool:
    return flag is True or str(flag).lower() == "true"


def apply_lookup(current: Address, result: PostalLookupResult) -> Address:
    """
    Merge a lookup result into the address being edited.

    Only FOUND results change anything: street, neighborhood, city and state
    are taken from the service when it returned them. Number and complement
    always stay as typed.
    """
    if not result.found or result.address is None:
        return current
    incoming = result.address.model_copy(update={"number": "", "complement": ""})
    return merge_address(current, incoming)


class PostalCodeField:
    """
    State of a CEP input that triggers lookups as the user types.

    Each lookup remembers the code it was issued for; when the response
    arrives after the field has changed, it is reported as STALE and must
    not be applied.
    """

    def __init__(self, adapter: PostalLookupAdapter, address: Optional[Address] = None):
        self.adapter = adapter
        self.value = ""
        self.address = address or Address()
        self._in_flight = 0

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    async def change(self, raw_value: str) -> PostalLookupResult:
        code = digits_only(raw_value)
        self.value = code
        self.address = self.address.model_copy(
            update={"postal_code": code[:CEP_LENGTH]}
        )
        if len(code) != CEP_LENGTH:
            return PostalLookupResult(LookupStatus.SKIPPED, code)

        self._in_flight += 1
        try:
            result = await self.adapter.lookup(code)
        finally:
            self._in_flight -= 1

        if self.value != code:
            logger.debug(f"Discarding stale CEP response for {code}")
            return PostalLookupResult(LookupStatus.STALE, code)

        self.address = apply_lookup(self.address, result)
        return result
