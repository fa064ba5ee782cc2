from datetime import datetime, timezone
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

TransactionType = Literal["income", "expense"]
CategoryType = Literal["income", "expense", "both"]


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case accepted too
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


NonEmptyStr = Annotated[str, AfterValidator(_strip_required)]


def _currency(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise ValueError("currency must be a 3-letter code")
    return value


# User Schemas
class UserSync(CamelModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    username: Optional[str] = None
    currency: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value):
        return _currency(value)

    def display_name(self) -> Optional[str]:
        if self.name:
            return self.name
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or None


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    currency: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value):
        return _currency(value)


class User(CamelModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    username: Optional[str] = None
    currency: str
    created_at: datetime


# Account Schemas
class AccountCreate(CamelModel):
    name: NonEmptyStr
    type: NonEmptyStr


class Account(AccountCreate):
    id: int
    user_id: str
    created_at: datetime


# Transaction Schemas
class TransactionCreate(CamelModel):
    account_id: int
    amount: float = Field(ge=0, allow_inf_nan=False)
    type: TransactionType
    occurred_at: datetime
    note: Optional[str] = None
    category: Optional[str] = None
    category_id: Optional[int] = None

    @field_validator("amount")
    @classmethod
    def whole_cents(cls, value: float) -> float:
        if abs(value * 100 - round(value * 100)) > 1e-6:
            raise ValueError("amount must have at most 2 decimal places")
        return round(value, 2)

    @field_validator("occurred_at")
    @classmethod
    def to_naive_utc(cls, value: datetime) -> datetime:
        # stored naive, in UTC
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @field_validator("category")
    @classmethod
    def blank_category_is_none(cls, value):
        if value is not None:
            value = value.strip() or None
        return value


class Transaction(CamelModel):
    id: int
    user_id: str
    account_id: int
    category_id: Optional[int] = None
    category_name: str
    amount: float
    type: TransactionType
    note: Optional[str] = None
    occurred_at: datetime
    created_at: datetime


# Category Schemas
class CategoryBase(CamelModel):
    name: NonEmptyStr
    icon: NonEmptyStr = "tag"
    color: Optional[str] = None


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(CategoryBase):
    pass


class Category(CamelModel):
    id: Optional[int] = None
    name: str
    icon: str
    color: Optional[str] = None
    type: CategoryType
    kind: Literal["static", "user"]


# Summary Schemas
class BalanceSummary(BaseModel):
    income: float
    expense: float
    balance: float


class CategoryTotal(BaseModel):
    category: str
    amount: float
    percentage: int


class DailyTotal(BaseModel):
    day: int
    amount: float


class Message(BaseModel):
    message: str


class Health(BaseModel):
    status: str

