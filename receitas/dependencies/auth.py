from typing import AsyncIterator, Optional

from fastapi import Depends, HTTPException, Request, status

from receitas.services.api_client import BackendClient
from receitas.services.session_service import SessionContext, session_store


def bearer_token(request: Request) -> Optional[str]:
    """Extracts the token from `Authorization: Bearer <token>`."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_session(request: Request) -> SessionContext:
    """
    Dependency that resolves the caller's SessionContext.

    Raises HTTPException 401 when the token is missing, unknown or was
    cleared after the backend rejected it.

    Returns:
        The shared SessionContext for the token
    """
    session = session_store.get(bearer_token(request))
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sessão expirada ou token inválido",
        )
    return session


def get_admin_session(session: SessionContext = Depends(get_session)) -> SessionContext:
    if not session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito a administradores",
        )
    return session


async def get_backend_client(
    session: SessionContext = Depends(get_session),
) -> AsyncIterator[BackendClient]:
    """Backend client bound to the caller's session, closed after the request."""
    async with BackendClient(session) as client:
        yield client


async def get_anonymous_client() -> AsyncIterator[BackendClient]:
    async with BackendClient() as client:
        yield client
