"""
Pydantic schemas for User request/response validation.
"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional
from carmarket.models.user import UserRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class _AccountCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field("", max_length=30)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not any(c.isupper() for c in v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v


class BuyerCreate(_AccountCreate):
    national_id: str = Field(..., max_length=20)
    address: str = Field(..., max_length=255)


class DealershipCreate(_AccountCreate):
    business_name: str = Field(..., max_length=150)
    tax_id: str = Field(..., max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class UserUpdate(BaseModel):
    """Partial update; keys that do not apply to the target's role are ignored."""
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    # buyer
    national_id: Optional[str] = Field(None, max_length=20)
    # buyer and dealership
    address: Optional[str] = Field(None, max_length=255)
    # dealership
    business_name: Optional[str] = Field(None, max_length=150)
    tax_id: Optional[str] = Field(None, max_length=30)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class BuyerProfileResponse(BaseModel):
    national_id: str
    address: Optional[str]

    model_config = {"from_attributes": True}


class DealershipProfileResponse(BaseModel):
    business_name: str
    tax_id: str
    address: Optional[str]
    city: Optional[str]
    province: Optional[str]
    description: Optional[str]
    full_address: str

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    display_name: str
    phone: str
    role: UserRole
    is_active: bool
    registration_date: datetime
    buyer: Optional[BuyerProfileResponse] = None
    dealership: Optional[DealershipProfileResponse] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
