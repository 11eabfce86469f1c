"""
Pydantic Schemas for Request/Response Validation

Field names are snake_case in Python and camelCase on the wire
(``tableNumber``, ``totalPrice``, ``selectedOptions`` ...). Both spellings
are accepted on input.
"""

from datetime import datetime
from typing import Any, Optional, List

from pydantic import BaseModel, Field, field_validator

from table_order.models import OrderStatus


def _reject_bool(v: Any) -> Any:
    # pydantic's lax int mode would turn True into 1
    if isinstance(v, bool):
        raise ValueError("must be an integer, not a boolean")
    return v


def _require_number(v: Any) -> Any:
    # lax mode would also accept "500" and True as prices
    if isinstance(v, (bool, str, bytes)):
        raise ValueError("must be a number")
    return v


def _none_to_empty(v: Any) -> Any:
    return "" if v is None else v


# =============================================================================
# CATALOG
# =============================================================================

class MenuOption(BaseModel):
    """Optional add-on of a menu item, also used for selected options."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Extra cheese"])
    price: float = Field(default=0.0, ge=0, allow_inf_nan=False, examples=[100])

    @field_validator("price", mode="before")
    @classmethod
    def price_is_number(cls, v: Any) -> Any:
        return _require_number(v)


class MenuItemCreate(BaseModel):
    """Request schema for creating a menu item."""
    id: str = Field(..., min_length=1, max_length=64, examples=["m1"])
    name: str = Field(..., min_length=1, max_length=100, examples=["Tea"])
    description: str = Field(default="", max_length=1000)
    price: float = Field(..., ge=0, allow_inf_nan=False, examples=[300])
    image: str = Field(default="", max_length=255)
    category: str = Field(..., min_length=1, max_length=64, examples=["Drinks"])
    options: List[MenuOption] = Field(default_factory=list)
    is_recommended: bool = Field(default=False, alias="isRecommended")

    @field_validator("description", "image", mode="before")
    @classmethod
    def blank_to_empty(cls, v: Any) -> Any:
        return _none_to_empty(v)

    class Config:
        populate_by_name = True


class MenuItemUpdate(BaseModel):
    """Partial update; only the fields that are present change."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    image: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=64)
    options: Optional[List[MenuOption]] = None
    is_recommended: Optional[bool] = Field(None, alias="isRecommended")

    class Config:
        populate_by_name = True

    def changes(self) -> dict[str, Any]:
        """Supplied fields only, keyed by attribute name."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class MenuItemResponse(BaseModel):
    """A menu item as served to clients."""
    id: str
    name: str
    description: str = ""
    price: float
    image: str = ""
    category: str
    options: List[MenuOption] = Field(default_factory=list)
    is_recommended: bool = Field(default=False, alias="isRecommended")

    class Config:
        populate_by_name = True


class CategoryResponse(BaseModel):
    name: str
    items: List[MenuItemResponse] = Field(default_factory=list)


class CatalogResponse(BaseModel):
    categories: List[CategoryResponse]


class MenuWriteResponse(BaseModel):
    """Response after a catalog write."""
    message: str
    id: str


# =============================================================================
# ORDERS
# =============================================================================

class OrderLineItem(BaseModel):
    """
    Snapshot of one purchased menu item, taken at order time.

    ``menu_item_id`` is informational only; name and price are copies so
    later catalog edits never change the order.
    """
    menu_item_id: str = Field(default="", alias="menuItemId", max_length=64)
    name: str = Field(default="", max_length=100)
    price: float = Field(..., ge=0, allow_inf_nan=False, examples=[500])
    quantity: int = Field(..., ge=1, examples=[2])
    selected_options: List[MenuOption] = Field(default_factory=list, alias="selectedOptions")

    @field_validator("menu_item_id", mode="before")
    @classmethod
    def stringify_menu_item_id(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("price", mode="before")
    @classmethod
    def price_is_number(cls, v: Any) -> Any:
        return _require_number(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def quantity_is_integer(cls, v: Any) -> Any:
        return _require_number(_reject_bool(v))

    class Config:
        populate_by_name = True


class TableRequest(BaseModel):
    """Request body carrying only a table number (staff calls)."""
    table_number: int = Field(..., ge=1, alias="tableNumber", examples=[5])

    @field_validator("table_number", mode="before")
    @classmethod
    def table_number_not_bool(cls, v: Any) -> Any:
        return _reject_bool(v)

    class Config:
        populate_by_name = True


class OrderCreate(TableRequest):
    """Request schema for placing an order from a table."""
    items: List[OrderLineItem] = Field(..., min_length=1)


class StatusUpdate(BaseModel):
    """Requested status; membership in OrderStatus is checked by the lifecycle manager."""
    status: Optional[Any] = Field(None, examples=["PREPARING"])


class OrderRead(BaseModel):
    """A persisted order."""
    id: int
    table_number: int = Field(..., alias="tableNumber")
    items: List[OrderLineItem]
    total_price: float = Field(..., alias="totalPrice")
    status: OrderStatus
    timestamp: datetime

    class Config:
        populate_by_name = True
        from_attributes = True


class StatusUpdateResponse(BaseModel):
    message: str = "Updated"
    id: int
    status: OrderStatus


class StaffCallResponse(BaseModel):
    id: int


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    storage_backend: str
    timestamp: datetime
