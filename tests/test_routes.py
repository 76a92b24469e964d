import httpx
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from receitas.dependencies.auth import (
    get_anonymous_client,
    get_backend_client,
    get_session,
)
from receitas.main import app
from receitas.schemas.address import Address
from receitas.services.api_client import BackendClient
from receitas.services.postal_service import LookupStatus, PostalLookupResult
from receitas.services.session_service import session_store
from receitas.web.cep_routes import get_postal_adapter

API_BASE = "https://backend.test"


@pytest.fixture
def http(backend):
    def anonymous_client():
        return BackendClient(base_url=API_BASE, transport=httpx.MockTransport(backend))

    def session_client(session=Depends(get_session)):
        return BackendClient(session, base_url=API_BASE, transport=httpx.MockTransport(backend))

    app.dependency_overrides[get_anonymous_client] = anonymous_client
    app.dependency_overrides[get_backend_client] = session_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    session_store.open("admin-token", {"_id": "a1", "name": "Admin", "role": "admin"})
    yield {"Authorization": "Bearer admin-token"}
    session_store.close("admin-token")


@pytest.fixture
def patient_headers():
    session_store.open("patient-token", {"_id": "p1", "name": "Maria", "role": "patient"})
    yield {"Authorization": "Bearer patient-token"}
    session_store.close("patient-token")


def test_health(http):
    assert http.get("/api/health").json() == {"status": "ok"}


def test_login_me_logout(http, backend):
    backend.on(
        "POST",
        "/api/auth/login",
        {
            "success": True,
            "token": "tok-login",
            "user": {"name": "Ana Souza", "role": "admin", "profileImageAPI": "ana.jpg"},
        },
    )

    response = http.post("/api/session/login", json={"email": "a@b.com", "password": "x"})
    assert response.status_code == 200
    body = response.json()
    assert body["token"] == "tok-login"
    assert body["is_admin"] is True
    assert body["user"]["profileImageAPI"].endswith("/uploads/profiles/ana.jpg")

    headers = {"Authorization": "Bearer tok-login"}
    assert http.get("/api/session/me", headers=headers).json()["identity"]["full_name"] == "Ana Souza"

    assert http.post("/api/session/logout", headers=headers).json() == {"success": True}
    assert http.get("/api/session/me", headers=headers).status_code == 401


def test_login_invalido_identifica_a_operacao(http, backend):
    backend.on("POST", "/api/auth/login", (401, {"message": "Credenciais inválidas"}))
    response = http.post("/api/session/login", json={"email": "a@b.com", "password": "x"})
    assert response.status_code == 401
    assert response.json()["detail"] == {
        "operation": "login",
        "message": "Login falhou: Credenciais inválidas",
    }


class StubAdapter:
    def __init__(self, result):
        self.result = result

    async def lookup(self, cep):
        return self.result


def test_cep_nao_encontrado_nao_e_erro(http):
    app.dependency_overrides[get_postal_adapter] = lambda: StubAdapter(
        PostalLookupResult(LookupStatus.NOT_FOUND, "00000000")
    )
    response = http.get("/api/cep/00000000")
    assert response.status_code == 200
    assert response.json() == {
        "status": "not_found",
        "cep": "00000000",
        "address": None,
        "message": "CEP não encontrado.",
    }


def test_cep_encontrado(http):
    address = Address(postal_code="96400110", city="Bagé", state_code="RS")
    app.dependency_overrides[get_postal_adapter] = lambda: StubAdapter(
        PostalLookupResult(LookupStatus.FOUND, "96400110", address)
    )
    body = http.get("/api/cep/96400-110").json()
    assert body["status"] == "found"
    assert body["address"]["city"] == "Bagé"
    assert body["message"] == ""


def test_normalize_identity(http):
    record = {"Cpf": "123", "address": {"cep": "96400110", "street": "Av. X"}, "phone": "53999999999"}
    body = http.post("/api/normalize/identity", json=record).json()
    assert body["identity"]["tax_id"] == "00000000123"
    assert body["identity"]["address"]["street"] == "Av. X"
    assert body["display"]["cpf"] == "000.000.001-23"
    assert body["display"]["cep"] == "96400-110"
    assert body["display"]["address"] == "Av. X"


def test_normalize_address(http):
    body = http.post("/api/normalize/address", json={"address": "Rua A, 10, Centro, Bagé/RS"}).json()
    assert body["kind"] == "FreeformAddress"
    assert body["fields"]["state_code"] == "RS"

    body = http.post("/api/normalize/address", json={"address": {"rua": "Rua B", "uf": "SP"}}).json()
    assert body["kind"] == "StructuredAddress"
    assert body["display"] == "Rua B/SP"

    body = http.post("/api/normalize/address", json={}).json()
    assert body["kind"] == "UnknownAddress"
    assert body["display"] == ""


def test_compose_address(http):
    body = http.post(
        "/api/normalize/address/compose",
        json={"street": "Rua A", "neighborhood": "Centro", "city": "Bagé", "state_code": "RS"},
    ).json()
    assert body == {"display": "Rua A, Centro, Bagé/RS"}


def test_resolve_image(http):
    body = http.get("/api/images/resolve", params={"ref": "https://cdn.test/a.png", "name": "Ana Souza"}).json()
    assert body == {"primary": "https://cdn.test/a.png", "fallbacks": [], "placeholder": "AS"}

    body = http.get("/api/images/resolve").json()
    assert body == {"primary": None, "fallbacks": [], "placeholder": "U"}


def test_prescricao_exige_sessao(http):
    assert http.post("/api/prescriptions", json={}).status_code == 401


def test_prescricao_exige_administrador(http, patient_headers):
    assert http.post("/api/prescriptions", json={}, headers=patient_headers).status_code == 403


def test_prescricao_invalida_retorna_erros_por_campo(http, admin_headers):
    response = http.post("/api/prescriptions", json={"dosage": "1"}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["detail"]["errors"]["medication_name"]


def test_criar_prescricao_com_paciente_novo(http, backend, admin_headers):
    backend.on("POST", "/api/prescriptions", {"success": True, "data": {"_id": "r1"}})
    backend.on("GET", "/api/patients/search", [])
    backend.on("POST", "/api/auth/register", {"success": True})

    response = http.post(
        "/api/prescriptions",
        json={"medication_name": "Losartana", "dosage": "50mg", "phone": "53999999999"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == {"_id": "r1"}
    assert body["patient_sync"] == {"action": "create", "success": True, "placeholder_cpf": True}
    assert backend.requests[0].headers["Authorization"] == "Bearer admin-token"


def test_falha_no_backend_identifica_a_operacao(http, backend, admin_headers):
    backend.on("POST", "/api/prescriptions", (500, {"message": "Erro interno"}))
    response = http.post(
        "/api/prescriptions",
        json={"medication_name": "Losartana", "dosage": "50mg"},
        headers=admin_headers,
    )
    assert response.status_code == 502
    assert response.json()["detail"]["message"] == "Cadastro de receita falhou: Erro interno"


def test_rejeicao_sem_motivo(http, admin_headers):
    response = http.patch(
        "/api/prescriptions/r1/status", json={"status": "rejeitada"}, headers=admin_headers
    )
    assert response.status_code == 422
    assert "rejection_reason" in response.json()["detail"]["errors"]


def test_status_com_aviso_de_notificacao(http, backend, admin_headers):
    backend.on("PATCH", "/api/prescriptions/r1/status", {"success": True})
    backend.on("GET", "/api/prescriptions/r1", {"success": True, "data": {"_id": "r1"}})
    backend.on("POST", "/api/emails/prescription-status", (500, {"message": "SMTP"}))

    response = http.patch(
        "/api/prescriptions/r1/status", json={"status": "aprovada"}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["warnings"] == ["Receita salva, mas o envio da notificação falhou."]


def test_busca_de_pacientes_normalizada(http, backend, admin_headers):
    backend.on(
        "GET",
        "/api/patients/search",
        [{"_id": "p9", "name": "Maria", "patientCpf": "123", "endereco": "Rua A, 10"}],
    )
    response = http.get("/api/patients/search", params={"cpf": "123"}, headers=admin_headers)
    patients = response.json()["patients"]
    assert patients[0]["tax_id"] == "00000000123"
    assert patients[0]["address"]["street"] == "Rua A"


def test_listagem_com_campos_de_exibicao(http, backend, admin_headers):
    backend.on(
        "GET",
        "/api/prescriptions",
        {
            "success": True,
            "data": [
                {
                    "_id": "r1",
                    "patientCpf": "52998224725",
                    "patientCEP": "96400110",
                    "patientAddress": {"street": "Rua A", "city": "Bagé", "state": "RS"},
                }
            ],
        },
    )
    response = http.get("/api/prescriptions", params={"status": "solicitada"}, headers=admin_headers)
    prescription = response.json()["prescriptions"][0]
    assert prescription["display_cpf"] == "52998224725"
    assert prescription["display_cep"] == "96400110"
    assert prescription["display_address"] == "Rua A, Bagé/RS"
    assert backend.requests[0].url.params["status"] == "solicitada"


def test_retirada_legada_chega_ao_backend_mapeada(http, backend, admin_headers):
    backend.on("POST", "/api/prescriptions", {"success": True, "data": {"_id": "r1"}})

    response = http.post(
        "/api/prescriptions",
        json={"medication_name": "Losartana", "dosage": "50mg", "delivery_method": "clinic"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    sent = backend.body(backend.calls("POST", "/api/prescriptions")[0])
    assert sent["deliveryMethod"] == "retirar_clinica"


def test_forma_de_entrega_desconhecida_e_recusada(http, backend, admin_headers):
    response = http.post(
        "/api/prescriptions",
        json={"medication_name": "Losartana", "dosage": "50mg", "delivery_method": "correio"},
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert backend.requests == []


def test_status_fora_do_fluxo_e_recusado(http, backend, admin_headers):
    response = http.patch(
        "/api/prescriptions/r1/status", json={"status": "arquivada"}, headers=admin_headers
    )
    assert response.status_code == 422
    assert backend.requests == []
