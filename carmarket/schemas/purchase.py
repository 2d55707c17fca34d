"""
Pydantic schemas for Purchase request/response validation.
"""
from decimal import Decimal
from datetime import datetime
from typing import Optional
import logging

from pydantic import BaseModel, Field, field_validator

from carmarket.models.purchase import PaymentMethod, PurchaseStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class PurchaseCreate(BaseModel):
    car_offer_id: int = Field(..., gt=0)
    buyer_id: Optional[int] = Field(
        None, gt=0, description="Defaults to the calling buyer"
    )
    final_price: Decimal
    payment_method: PaymentMethod
    observations: Optional[str] = None

    @field_validator("final_price", mode="before")
    @classmethod
    def coerce_decimal(cls, v):
        logger.trace("Coercing purchase price value")
        return Decimal(str(v)) if v is not None else v


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class PurchaseResponse(BaseModel):
    id: int
    buyer_id: int
    car_offer_id: int
    final_price: Decimal
    purchase_date: datetime
    status: PurchaseStatus
    payment_method: PaymentMethod
    observations: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PurchaseSummaryResponse(BaseModel):
    """Human-readable detail view assembled from the purchase's references."""
    purchase_id: int
    car: str
    buyer: str
    dealership: str
    final_price: Decimal
    purchase_date: datetime
    status: PurchaseStatus
    payment_method: PaymentMethod
    observations: Optional[str]
