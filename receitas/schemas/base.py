"""
Schema base com campos e métodos comuns.
"""

from pydantic import BaseModel, ConfigDict, field_serializer


class BaseResponseSchema(BaseModel):
    """
    Schema base para todos os schemas de resposta.
    Serializa enums como strings e ignora campos extras vindos do backend.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_serializer("*")
    def serialize_enum(self, v):
        """Serializa campos enum para seus valores string."""
        if hasattr(v, "value"):
            return v.value
        return v
