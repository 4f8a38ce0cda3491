from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def email_fits_column(cls, value: str) -> str:
        if len(value) > 100:
            raise ValueError("email must be at most 100 characters")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class TransactionCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    kind: Literal["income", "expense"]
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    date: date

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("description must not be blank")
        return value

    @field_validator("amount")
    @classmethod
    def round_to_cents(cls, value: Decimal) -> Decimal:
        value = value.quantize(CENT, rounding=ROUND_HALF_UP)
        if value <= 0:
            raise ValueError("amount must be at least 0.01")
        return value


class TransactionOut(BaseModel):
    id: int
    description: str
    kind: str
    amount: float
    date: date

    model_config = ConfigDict(from_attributes=True)


class DashboardOut(BaseModel):
    balance: Decimal
    income30: Decimal
    expense30: Decimal


class UserEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserOut


class TransactionEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    transaction: TransactionOut


class TransactionsList(BaseModel):
    success: bool = True
    transactions: List[TransactionOut]


class DashboardEnvelope(BaseModel):
    success: bool = True
    balance: float
    income30: float
    expense30: float


class MessageOut(BaseModel):
    success: bool = True
    message: str


class HealthOut(BaseModel):
    status: str = "OK"
    message: str
    timestamp: str
