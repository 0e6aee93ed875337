# backend/app/schemas/common_schema.py
"""
Esquemas Pydantic compartidos entre varios dominios: errores por campo,
respuestas de operaciones masivas y direcciones postales.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


# ========================================
# ERRORES
# ========================================

class FieldError(BaseModel):
    """Error asociado a un campo concreto de la petición."""
    field: Optional[str] = None
    message: str
    code: str


class ErrorResponse(BaseModel):
    """Cuerpo uniforme de las respuestas de error."""
    detail: str
    errors: List[FieldError] = []


def reject_null(value):
    """
    Validador para parches: un null explícito en una columna NOT NULL es un
    error de validación, no una orden de borrar el valor.
    """
    if value is None:
        raise ValueError("Field cannot be null")
    return value


# ========================================
# OPERACIONES MASIVAS
# ========================================

class BulkOperationResponse(BaseModel):
    """
    Resultado de una edición o borrado masivo.

    El código HTTP depende del resultado: 200 si todo fue bien, 207 si hubo
    éxitos parciales y 400 si no se aplicó ningún elemento.
    """
    message: str
    success_count: int
    total_requested: int
    errors: List[FieldError] = []
    error_count: int = 0

    def http_status(self) -> int:
        if self.success_count == self.total_requested:
            return 200
        if self.success_count > 0:
            return 207
        return 400


# ========================================
# DIRECCIONES
# ========================================

class Address(BaseModel):
    """Dirección postal de envío o facturación."""
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    province: str = Field(..., min_length=2, max_length=2)
    postal_code: str = Field(..., min_length=3, max_length=10)
    country: str = Field(default="Canada", min_length=2, max_length=100)
    is_default: bool = False
