# models/warehouse.py

from typing import Optional
from pydantic import BaseModel, Field

from .enums import MovementType


# -------------------------------------------------
# Categories (hierarchical, soft deleted)
# -------------------------------------------------
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    code: Optional[str] = None
    parent_id: Optional[int] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    code: Optional[str] = None
    parent_id: Optional[int] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None


# -------------------------------------------------
# Consumables
# -------------------------------------------------
class ConsumableCreate(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category_id: int
    unit_of_measure: str = "pieza"
    presentation: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    minimum_stock: float = Field(0, ge=0)
    maximum_stock: Optional[float] = Field(None, ge=0)
    reorder_point: Optional[float] = Field(None, ge=0)
    unit_cost: Optional[float] = Field(None, ge=0)
    perishable: bool = False
    requires_expiration: bool = False
    hazardous: bool = False
    notes: Optional[str] = None


class ConsumableUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    unit_of_measure: Optional[str] = None
    presentation: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    minimum_stock: Optional[float] = Field(None, ge=0)
    maximum_stock: Optional[float] = Field(None, ge=0)
    reorder_point: Optional[float] = Field(None, ge=0)
    unit_cost: Optional[float] = Field(None, ge=0)
    perishable: Optional[bool] = None
    requires_expiration: Optional[bool] = None
    hazardous: Optional[bool] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


# -------------------------------------------------
# Stock rows (one per consumable/park/location)
# -------------------------------------------------
class StockCreate(BaseModel):
    consumable_id: int
    park_id: Optional[int] = None
    warehouse_location: Optional[str] = None
    quantity: float = Field(0, ge=0)
    reserved_quantity: float = Field(0, ge=0)
    batch_number: Optional[str] = None
    expiration_date: Optional[str] = None


class StockUpdate(BaseModel):
    warehouse_location: Optional[str] = None
    quantity: Optional[float] = Field(None, ge=0)
    reserved_quantity: Optional[float] = Field(None, ge=0)
    batch_number: Optional[str] = None
    expiration_date: Optional[str] = None


# -------------------------------------------------
# Movements
# -------------------------------------------------
class MovementCreate(BaseModel):
    consumable_id: int
    movement_type: MovementType
    quantity: float = Field(..., gt=0)
    park_id: Optional[int] = None
    unit_cost: Optional[float] = Field(None, ge=0)
    reference_document: Optional[str] = None
    supplier_name: Optional[str] = None
    notes: Optional[str] = None
