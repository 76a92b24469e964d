from typing import Any, Optional

from pydantic import BaseModel


class ApiEnvelope(BaseModel):
    """Formato padrão de resposta do backend: {success, data|user, message}"""

    success: bool = True
    data: Any = None
    user: Any = None
    token: Optional[str] = None
    message: Optional[str] = ""

    @property
    def payload(self) -> Any:
        """`data` quando presente, senão `user` (rotas de auth)."""
        return self.data if self.data is not None else self.user
