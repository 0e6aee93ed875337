# backend/app/schemas/product_schema.py
"""
Esquemas Pydantic para el modelo Product.

Incluye los esquemas de creación, de respuesta (también usado como instantánea
serializada en la caché) y el parche tipado para ediciones parciales, que
define de forma explícita qué campos son modificables.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Literal, Tuple
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from .common_schema import reject_null

ProductStatus = Literal["active", "inactive", "deleted"]
Warehouse = Literal["warehouse_main", "warehouse_east", "warehouse_west"]

# ========================================
# ESQUEMAS AUXILIARES
# ========================================

class StockInfo(BaseModel):
    """Stock por almacén. total siempre es la suma de los tres almacenes."""
    warehouse_main: int = Field(default=0, ge=0)
    warehouse_east: int = Field(default=0, ge=0)
    warehouse_west: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    reorder_level: int = Field(default=10, ge=0)


class Ratings(BaseModel):
    average: float = Field(default=0.0, ge=0, le=5)
    count: int = Field(default=0, ge=0)


def _validate_image_urls(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    for url in value:
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid image URL: {url}")
    return value


def _validate_tags(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    for tag in value:
        if not 2 <= len(tag) <= 50:
            raise ValueError(f"Tag '{tag}' must be between 2 and 50 characters")
    return value


# ========================================
# ESQUEMA BASE
# ========================================

class ProductBase(BaseModel):
    """Propiedades comunes compartidas entre esquemas de producto."""
    name: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: str = Field(..., min_length=2, max_length=100)
    subcategory: Optional[str] = Field(default=None, max_length=100)
    brand: str = Field(..., min_length=2, max_length=100)
    price: float = Field(..., gt=0)
    currency: str = Field(default="CAD", min_length=3, max_length=3)
    attributes: Dict[str, str] = {}
    images: List[str] = []
    tags: List[str] = []

    check_images = field_validator("images")(_validate_image_urls)
    check_tags = field_validator("tags")(_validate_tags)


# ========================================
# ESQUEMAS PARA OPERACIONES
# ========================================

class ProductCreate(ProductBase):
    """
    Esquema para crear un producto. El SKU, el id, el stock y las valoraciones
    los genera el servidor.
    """
    pass


class ProductPatch(BaseModel):
    """
    Edición parcial de un producto.

    Solo los campos declarados aquí son modificables; sku, id, created_at y
    cualquier clave desconocida se descartan en from_payload().
    """
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: Optional[str] = Field(default=None, min_length=2, max_length=100)
    subcategory: Optional[str] = Field(default=None, max_length=100)
    brand: Optional[str] = Field(default=None, min_length=2, max_length=100)
    price: Optional[float] = Field(default=None, gt=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    attributes: Optional[Dict[str, str]] = None
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    status: Optional[ProductStatus] = None
    stock: Optional[StockInfo] = None

    check_images = field_validator("images")(_validate_image_urls)
    check_tags = field_validator("tags")(_validate_tags)
    check_not_null = field_validator(
        "name", "category", "brand", "price", "currency", "attributes", "images", "tags", "status", "stock"
    )(reject_null)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Tuple["ProductPatch", List[str]]:
        """
        Construye el parche a partir de un JSON arbitrario.

        Devuelve el parche y la lista de claves descartadas (inmutables o
        desconocidas). Lanza ValidationError si algún campo permitido es inválido.
        """
        allowed = set(cls.model_fields)
        stripped = sorted(key for key in payload if key not in allowed)
        patch = cls.model_validate({k: v for k, v in payload.items() if k in allowed})
        return patch, stripped

    def changes(self) -> Dict[str, Any]:
        """Campos presentes en el parche, listos para persistir."""
        return self.model_dump(exclude_unset=True)


# ========================================
# ESQUEMAS DE RESPUESTA
# ========================================

class ProductResponse(ProductBase):
    """
    Representación completa de un producto. Es también el formato de la
    instantánea guardada en product:{sku}.
    """
    id: str
    sku: str
    stock: StockInfo = StockInfo()
    ratings: Ratings = Ratings()
    status: ProductStatus = "active"
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductCreateResponse(BaseModel):
    products: List[ProductResponse]
    count: int


class ProductDeleteResponse(BaseModel):
    message: str
    deleted_sku: str


class CategoryCount(BaseModel):
    """Categoría distinta del catálogo con el número de productos."""
    category: str
    count: int


class RecentProductsResponse(BaseModel):
    skus: List[str]
    count: int


# ========================================
# INVENTARIO
# ========================================

class StockAdjustment(BaseModel):
    """
    Ajuste de stock de un almacén. Se indica el valor final (quantity_after)
    o la variación (delta), nunca ambos.
    """
    warehouse: Warehouse
    quantity_after: Optional[int] = Field(default=None, ge=0)
    delta: Optional[int] = None
    change_type: Literal["restock", "sale", "adjustment", "return", "damage"] = "adjustment"
    reason: Optional[str] = Field(default=None, max_length=500)
    performed_by: Optional[str] = Field(default=None, max_length=100)

    @model_validator(mode="after")
    def check_quantity_or_delta(self):
        if (self.quantity_after is None) == (self.delta is None):
            raise ValueError("Provide exactly one of quantity_after or delta")
        return self


class InventoryLogResponse(BaseModel):
    log_id: int
    product_id: str
    sku: str
    warehouse: str
    change_type: str
    quantity_before: int
    quantity_after: int
    quantity_change: int
    reason: Optional[str] = None
    performed_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
