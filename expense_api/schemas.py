from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert aware datetimes to naive UTC; naive values are taken as UTC already."""
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


# User Schemas
class UserBase(BaseModel):
    username: str = Field(..., min_length=1)


class UserCreate(UserBase):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserLogin(UserBase):
    password: str = Field(..., min_length=1)


class User(UserBase):
    id: int
    email: str

    model_config = ConfigDict(from_attributes=True)


# Token Schemas
class AuthResponse(BaseModel):
    message: str
    token: str
    user: User


# Expense Schemas
class ExpenseBase(BaseModel):
    # matches the Numeric(12, 2) column, so nothing is rounded on storage
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    description: Optional[str] = None
    category: str


class ExpenseCreate(ExpenseBase):
    created_at: Optional[UTCDateTime] = None


class ExpenseUpdate(ExpenseBase):
    created_at: UTCDateTime


class Expense(ExpenseBase):
    id: int
    category: Optional[str] = None
    created_at: datetime
    user_id: int

    model_config = ConfigDict(from_attributes=True)


# Category Schemas
class CategoryName(BaseModel):
    name: Optional[str] = None


class Message(BaseModel):
    message: str


# Report Schemas
class CategoryTotal(BaseModel):
    category: Optional[str] = None
    total_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class DayOfMonthTotal(BaseModel):
    day: int
    total_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class MonthTotal(BaseModel):
    month: int
    total_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class DailyTotal(BaseModel):
    day: date
    total_amount: Decimal

    model_config = ConfigDict(from_attributes=True)
