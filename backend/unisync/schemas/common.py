"""
Enveloppe commune de toutes les réponses de l'API UniSync.
Format attendu par l'app mobile : {success, data, message, error}.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Modèle dont les champs sont exposés en camelCase (convention des documents mobiles)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None


def success_response(data=None, message: Optional[str] = None) -> dict:
    return {"success": True, "data": data, "message": message, "error": None}


def error_response(error: str, message: Optional[str] = None) -> dict:
    return {"success": False, "data": None, "message": message, "error": error}
