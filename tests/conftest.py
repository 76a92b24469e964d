import json

import httpx
import pytest

from receitas.services.api_client import BackendClient
from receitas.services.session_service import SessionContext

API_BASE = "https://backend.test"


class FakeBackend:
    """
    Roteia requisições do BackendClient para respostas registradas.

    routes: {(método, caminho): resposta} onde resposta é um dict/list (200),
    uma tupla (status, corpo), uma exceção httpx a ser lançada
    ou uma função que recebe a requisição e devolve um desses.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, path, response):
        self.routes[(method, path)] = response

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def body(self, request):
        return json.loads(request.content) if request.content else None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        if callable(response):
            response = response(request)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, tuple):
            status, body = response
            return httpx.Response(status, json=body)
        return httpx.Response(200, json=response)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def session():
    return SessionContext("token-admin-123", {"_id": "u1", "name": "Ana", "role": "admin"})


@pytest.fixture
async def client(backend, session):
    api = BackendClient(
        session, base_url=API_BASE, transport=httpx.MockTransport(backend)
    )
    yield api
    await api.aclose()
