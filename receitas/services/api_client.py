"""
Backend Client - HTTP access to the remote Receitas REST API

All calls go through BackendClient.request(), which:
- prefixes paths with /api and sends the session bearer token
- wraps bodies without a `success` key as {success: True, data: body}
- converts every failure into ApiError(message, status, data):
  HTTP errors keep the backend status and message, timeouts become 408,
  other transport failures become 500
- clears the session when the backend answers 401
"""

import logging
from typing import Any, Optional

import httpx

from receitas.config import settings
from receitas.content import MESSAGES
from receitas.schemas.api import ApiEnvelope
from receitas.services.session_service import SessionContext
from receitas.utils.formatting import fit_digits

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    def __str__(self) -> str:
        return f"{self.status}: {self.message}"


class BackendClient:
    def __init__(
        self,
        session: Optional[SessionContext] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session or SessionContext()
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.api_base).rstrip("/") + "/api",
            headers={"Content-Type": "application/json"},
            timeout=timeout or settings.HTTP_TIMEOUT,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> ApiEnvelope:
        url = "/" + path.lstrip("/")
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self.session.auth_headers(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._status_error(e.response) from e
        except httpx.TimeoutException as e:
            logger.error("Timeout on %s %s", method, url)
            raise ApiError(MESSAGES["timeout"], status=408) from e
        except httpx.RequestError as e:
            logger.error("Connection error on %s %s: %s", method, url, e)
            raise ApiError(MESSAGES["connection"], status=500) from e

        return self._envelope(response)

    def _envelope(self, response: httpx.Response) -> ApiEnvelope:
        if not response.content:
            return ApiEnvelope(success=True)
        try:
            body = response.json()
        except ValueError:
            return ApiEnvelope(success=True, data=response.text)
        if isinstance(body, dict) and "success" in body:
            return ApiEnvelope.model_validate(body)
        return ApiEnvelope(success=True, data=body, message="")

    def _status_error(self, response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if response.status_code == 401:
            logger.warning("Session expired or invalid token, clearing session")
            self.session.clear()

        return ApiError(
            body.get("message") or MESSAGES["unknown_error"],
            status=response.status_code,
            data=body.get("data"),
        )

    # ============================================
    # Auth
    # ============================================

    async def login(self, email: str, password: str) -> ApiEnvelope:
        """Authenticate and start the session with the returned token/user."""
        envelope = await self.request(
            "POST", "auth/login", json={"email": email, "password": password}
        )
        token = envelope.token or _dig(envelope.data, "token")
        user = envelope.user or _dig(envelope.data, "user")
        if not isinstance(user, dict):
            user = {}
        if not token:
            raise ApiError(envelope.message or MESSAGES["unknown_error"], status=401)
        self.session.start(token, user)
        return envelope

    def logout(self) -> None:
        self.session.clear()

    async def register(self, payload: dict) -> ApiEnvelope:
        return await self.request("POST", "auth/register", json=payload)

    async def me(self) -> ApiEnvelope:
        return await self.request("GET", "auth/me")

    async def update_profile(self, payload: dict) -> ApiEnvelope:
        envelope = await self.request("PATCH", "auth/profile", json=payload)
        user = envelope.payload
        if isinstance(user, dict):
            self.session.update_user(user)
        return envelope

    # ============================================
    # Patients
    # ============================================

    async def list_patients(self) -> list[dict]:
        return _as_list((await self.request("GET", "patients")).payload)

    async def search_patients(
        self,
        cpf: Optional[str] = None,
        name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> list[dict]:
        params = {
            key: value
            for key, value in (("cpf", cpf), ("name", name), ("phone", phone))
            if value
        }
        envelope = await self.request("GET", "patients/search", params=params)
        return _as_list(envelope.payload)

    async def find_patient_by_cpf(self, cpf: str) -> Optional[dict]:
        """First patient matching the CPF (padded to 11 digits), or None."""
        cpf_clean = fit_digits(cpf, 11, pad=True)
        if not cpf_clean:
            return None
        matches = await self.search_patients(cpf=cpf_clean)
        return matches[0] if matches else None

    async def get_patient(self, patient_id: str) -> ApiEnvelope:
        return await self.request("GET", f"patients/{patient_id}")

    async def update_patient(self, patient_id: str, payload: dict) -> ApiEnvelope:
        return await self.request("PATCH", f"patients/{patient_id}", json=payload)

    async def delete_patient(self, patient_id: str) -> ApiEnvelope:
        return await self.request("DELETE", f"patients/{patient_id}")

    # ============================================
    # Prescriptions
    # ============================================

    async def list_prescriptions(self, **filters) -> list[dict]:
        params = {k: v for k, v in filters.items() if v is not None}
        envelope = await self.request("GET", "prescriptions", params=params)
        return _as_list(envelope.payload)

    async def get_prescription(self, prescription_id: str) -> ApiEnvelope:
        return await self.request("GET", f"prescriptions/{prescription_id}")

    async def create_prescription(self, payload: dict) -> ApiEnvelope:
        return await self.request("POST", "prescriptions", json=payload)

    async def update_prescription(
        self, prescription_id: str, payload: dict
    ) -> ApiEnvelope:
        return await self.request(
            "PUT", f"prescriptions/{prescription_id}", json=payload
        )

    async def update_prescription_status(
        self,
        prescription_id: str,
        status: str,
        rejection_reason: Optional[str] = None,
    ) -> ApiEnvelope:
        payload = {"status": status}
        if rejection_reason:
            payload["rejectionReason"] = rejection_reason
        return await self.request(
            "PATCH", f"prescriptions/{prescription_id}/status", json=payload
        )

    async def delete_prescription(self, prescription_id: str) -> ApiEnvelope:
        return await self.request("DELETE", f"prescriptions/{prescription_id}")

    async def send_status_email(
        self,
        prescription_id: str,
        status: str,
        rejection_reason: Optional[str] = None,
    ) -> ApiEnvelope:
        return await self.request(
            "POST",
            "emails/prescription-status",
            json={
                "prescriptionId": prescription_id,
                "status": status,
                "rejectionReason": rejection_reason,
            },
        )

    # ============================================
    # Notes, reports and settings
    # ============================================

    async def list_notes(self) -> list[dict]:
        return _as_list((await self.request("GET", "notes")).payload)

    async def create_note(self, payload: dict) -> ApiEnvelope:
        return await self.request("POST", "notes", json=payload)

    async def get_report(self, name: str, **params) -> ApiEnvelope:
        return await self.request("GET", f"reports/{name}", params=params or None)

    async def get_settings(self) -> ApiEnvelope:
        return await self.request("GET", "settings")

    async def update_settings(self, payload: dict) -> ApiEnvelope:
        return await self.request("PUT", "settings", json=payload)


def _as_list(payload: Any) -> list[dict]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("patients", "prescriptions", "notes", "items"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


def _dig(payload: Any, key: str) -> Any:
    return payload.get(key) if isinstance(payload, dict) else None
