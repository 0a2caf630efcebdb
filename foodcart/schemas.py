"""
Pydantic Schemas for Request/Response Validation

Order payloads keep the camelCase field names used by the web client
(dishId, dishName, customerName, orderId); Python code uses the
snake_case attribute names.

Author: Khalil Bannouri
Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import re


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderItemIn(CamelModel):
    """Single line of an order."""
    dish_id: Optional[int] = Field(None, alias="dishId", examples=[1])
    dish_name: str = Field(..., alias="dishName", min_length=1, max_length=200, examples=["Margherita Pizza"])
    quantity: int = Field(..., ge=1, examples=[2])
    price: Decimal = Field(..., ge=0, examples=["12.99"])
    note: Optional[str] = Field("", max_length=500)


class OrderCreate(CamelModel):
    """
    Request schema for POST /order.

    items may be empty here; the service rejects empty orders with 400.
    """
    items: List[OrderItemIn] = Field(default_factory=list)
    customer_name: Optional[str] = Field(None, alias="customerName", max_length=100, examples=["Alice"])
    customer_email: Optional[str] = Field(None, alias="customerEmail", examples=["alice@example.com"])
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        # Basic email validation
        if not re.match(r'^[\w\.+-]+@[\w\.-]+\.\w+$', v):
            raise ValueError('Invalid email format')
        return v


class OrderCreateResponse(CamelModel):
    """Response after successfully creating an order."""
    success: bool
    message: str
    order_id: int = Field(..., serialization_alias="orderId")


class OrderLineResponse(CamelModel):
    dish_id: Optional[int] = Field(None, serialization_alias="dishId")
    dish_name: str = Field(..., serialization_alias="dishName")
    quantity: int
    price: Decimal
    subtotal: Decimal
    note: str = ""


class OrderResponse(CamelModel):
    """Order with its total recomputed from the items."""
    id: int
    customer_name: str
    customer_email: Optional[str]
    notes: str
    created_at: Optional[datetime]
    items: List[OrderLineResponse]
    total: Decimal
    images: List[str]


class OrderListResponse(BaseModel):
    """Response for GET /admin/orders."""
    success: bool = True
    orders: List[OrderResponse]


class PhotoUploadResponse(BaseModel):
    success: bool = True
    order_id: int
    url: str


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class CategoryCreate(BaseModel):
    """Create a category. id is derived from name when omitted."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Main Courses"])
    id: Optional[str] = Field(None, max_length=100, examples=["main"])
    color: Optional[str] = Field(None, max_length=50, examples=["bg-emerald-500"])
    description: Optional[str] = Field(None, max_length=500)


class CategoryResponse(BaseModel):
    id: str
    name: str
    color: str
    description: Optional[str]

    class Config:
        from_attributes = True


class DishCreate(BaseModel):
    """
    Create a dish under one or more categories.

    image may be a URL or a data:image/... data URL; data URLs are
    uploaded to storage first. With allow_placeholder the placeholder
    image is stored when that upload fails instead of returning 503.
    """
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    price: Decimal = Field(..., ge=0, examples=["12.99"])
    image: Optional[str] = None
    category_ids: List[str] = Field(default_factory=list, examples=[["main", "vegetarian"]])
    allow_placeholder: bool = False


class DishRowResponse(BaseModel):
    """One physical dish row."""
    id: int
    group_key: Optional[str]
    name: str
    description: str
    price: Decimal
    image: str
    category_id: str

    class Config:
        from_attributes = True


class DishCreateResponse(BaseModel):
    success: bool = True
    image: str
    image_degraded: bool = False
    rows: List[DishRowResponse]


class MenuDishResponse(BaseModel):
    """Logical dish assembled from its category rows."""
    id: int
    key: str
    name: str
    description: str
    price: Decimal
    image: str
    category_ids: List[str]
    row_ids: List[int]

    class Config:
        from_attributes = True


class MenuResponse(BaseModel):
    categories: List[CategoryResponse]
    dishes: List[MenuDishResponse]


class DeleteResponse(BaseModel):
    success: bool = True
    deleted: int = 1


# =============================================================================
# IMAGE / STORAGE SCHEMAS
# =============================================================================

class ImagePreviewResponse(BaseModel):
    data_url: str
    size: int


class ImageUploadResponse(BaseModel):
    success: bool = True
    url: str


class StorageStatusResponse(BaseModel):
    checked: bool
    ready: bool
    provider: str
    message: Optional[str] = None


# =============================================================================
# GENERIC
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[object] = None
    retryable: bool = False


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    storage_service: str
    notification_service: str
    timestamp: datetime
