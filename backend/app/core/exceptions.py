# backend/app/core/exceptions.py
"""
Excepciones de dominio de la aplicación.

Los servicios lanzan estas excepciones y los manejadores registrados en
app/main.py las traducen a respuestas HTTP con un cuerpo uniforme:

    {"detail": "...", "errors": [{"field": "...", "message": "...", "code": "..."}]}

Los errores de caché nunca llegan hasta aquí: el gestor de caché los
registra y los convierte en fallos de lectura o en resultados descartables.
"""

from typing import List, Optional, Dict, Any


class AppError(Exception):
    """Clase base para todos los errores de dominio."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, field: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        if code:
            self.code = code

    def to_error_list(self) -> List[Dict[str, Any]]:
        return [{"field": self.field, "message": self.message, "code": self.code}]


class NotFoundError(AppError):
    """La entidad solicitada no existe."""

    status_code = 404
    code = "not_found"


class ItemNotFoundError(NotFoundError):
    """El SKU indicado no está en el carrito."""

    code = "item_not_found"

    def __init__(self, sku: str):
        super().__init__("item not found in cart", field="sku", code=self.code)
        self.sku = sku


class ConflictError(AppError):
    """Violación de unicidad (SKU, email, reseña duplicada) o stock insuficiente."""

    status_code = 409
    code = "conflict"


class InvalidOperationError(AppError):
    """Petición bien formada pero no aplicable al estado actual."""

    status_code = 400
    code = "invalid_operation"


class StoreError(AppError):
    """Fallo del almacén persistente."""

    status_code = 500
    code = "store_error"
