"""
Pydantic schemas for Car request/response validation.

Business ranges (year window, description length, image URL scheme) are
checked again by ``CarService``; these models only enforce shape.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from carmarket.models.car import FuelType, TransmissionType


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class CarCreate(BaseModel):
    brand: str = Field(..., max_length=100)
    model: str = Field(..., max_length=100)
    year: int
    mileage: int = 0
    color: str = Field(..., max_length=50)
    fuel_type: FuelType
    transmission: TransmissionType
    plate: str = Field(..., max_length=20)
    description: Optional[str] = None
    images: list[str] = Field(default_factory=list)


class CarUpdate(BaseModel):
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = None
    mileage: Optional[int] = None
    color: Optional[str] = Field(None, max_length=50)
    fuel_type: Optional[FuelType] = None
    transmission: Optional[TransmissionType] = None
    plate: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    images: Optional[list[str]] = None


class CarAvailabilityUpdate(BaseModel):
    available: bool


class CarSearchParams(BaseModel):
    keyword: Optional[str] = None
    brand: Optional[str] = None
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    fuel_type: Optional[FuelType] = None
    transmission: Optional[TransmissionType] = None
    available: Optional[bool] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class CarResponse(BaseModel):
    id: int
    brand: str
    model: str
    year: int
    full_name: str
    mileage: int
    color: str
    fuel_type: FuelType
    transmission: TransmissionType
    plate: str
    description: Optional[str]
    images: list[str]
    publication_date: datetime
    available: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
