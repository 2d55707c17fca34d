"""
Pydantic schemas for CarOffer request/response validation.
"""
from decimal import Decimal
from datetime import datetime
from typing import Optional
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class CarOfferCreate(BaseModel):
    car_id: int = Field(..., gt=0)
    dealership_id: Optional[int] = Field(
        None, gt=0, description="Defaults to the calling dealership"
    )
    price: Decimal
    dealership_notes: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def coerce_decimal(cls, v):
        logger.trace("Coercing offer price value")
        return Decimal(str(v)) if v is not None else v


class CarOfferUpdate(BaseModel):
    price: Optional[Decimal] = None
    dealership_notes: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def coerce_decimal(cls, v):
        logger.trace("Coercing offer price value")
        return Decimal(str(v)) if v is not None else v


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class CarOfferResponse(BaseModel):
    id: int
    car_id: int
    dealership_id: int
    price: Decimal
    offer_date: datetime
    dealership_notes: Optional[str]
    available: bool
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
