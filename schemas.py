from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional
from zoneinfo import ZoneInfo

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
)

from config import get_settings
from models import BudgetPeriod, TransactionType

# Messages for field-level validation failures, keyed by field name.
# Unlisted fields fall back to pydantic's own message.
FIELD_MESSAGES: dict[str, str] = {
    "name": "Name cannot be empty",
    "email": "Please include a valid email",
    "password": "Password must be at least 6 characters",
    "amount": "Amount must be a positive number",
    "description": "Description cannot be empty",
    "category": "Category cannot be empty",
    "date": "Date must be a valid date",
    "type": "Type must be income, expense, or transfer",
    "period": "Period must be monthly or yearly",
}


def _to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(get_settings().timezone)).replace(tzinfo=None)


LocalDateTime = Annotated[datetime, AfterValidator(_to_local_naive)]

# bcrypt only looks at the first 72 bytes.
BCRYPT_MAX_BYTES = 72


def _fits_bcrypt(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password cannot be longer than {BCRYPT_MAX_BYTES} bytes")
    return value


Password = Annotated[str, Field(min_length=6), AfterValidator(_fits_bcrypt)]
UserName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
]
BudgetName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)
]


class RegisterIn(BaseModel):
    name: UserName
    email: EmailStr
    password: Password


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class AuthOut(BaseModel):
    token: str
    user: UserOut


class TransactionIn(BaseModel):
    amount: Decimal = Field(..., ge=Decimal("0.01"), max_digits=12, decimal_places=2)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    date: LocalDateTime
    type: TransactionType


class TransactionUpdate(BaseModel):
    amount: Optional[Decimal] = Field(
        None, ge=Decimal("0.01"), max_digits=12, decimal_places=2
    )
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[LocalDateTime] = None
    type: Optional[TransactionType] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: float
    description: str
    category: str
    date: datetime
    type: TransactionType
    user_id: int = Field(serialization_alias="userId")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class BudgetIn(BaseModel):
    name: BudgetName
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    period: BudgetPeriod


class BudgetUpdate(BaseModel):
    name: Optional[BudgetName] = None
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    period: Optional[BudgetPeriod] = None


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    amount: float
    category: str
    period: BudgetPeriod
    spent: float
    user_id: int = Field(serialization_alias="userId")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class MessageOut(BaseModel):
    message: str
