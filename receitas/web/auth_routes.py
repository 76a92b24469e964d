"""
Session routes: login/logout against the remote backend.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr

from receitas.dependencies.auth import (
    bearer_token,
    get_anonymous_client,
    get_session,
)
from receitas.services.api_client import ApiError, BackendClient
from receitas.services.image_service import ImageUrlResolver
from receitas.services.session_service import SessionContext, session_store
from receitas.utils.response_utils import raise_api_error

router = APIRouter(prefix="/api/session")


class LoginForm(BaseModel):
    email: EmailStr
    password: str


def _session_body(session: SessionContext) -> dict:
    identity = session.identity
    return {
        "user": ImageUrlResolver().normalize_user_image_data(session.user),
        "identity": identity.model_dump() if identity else None,
        "is_admin": session.is_admin,
    }


@router.post("/login")
async def login(form: LoginForm, client: BackendClient = Depends(get_anonymous_client)):
    try:
        await client.login(form.email, form.password)
    except ApiError as e:
        raise_api_error("login", e)

    session = session_store.open(client.session.token, client.session.user or {})
    return {"token": session.token, **_session_body(session)}


@router.get("/me")
async def me(session: SessionContext = Depends(get_session)):
    return _session_body(session)


@router.post("/logout")
async def logout(request: Request):
    session_store.close(bearer_token(request))
    return {"success": True}
