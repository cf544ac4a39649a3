from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from eventdesk.utils.dates import as_utc

SubscriptionStatusValue = Literal["active", "pending", "cancelled", "expired"]
PaymentStatusValue = Literal["paid", "pending", "failed"]
BillingPeriod = Literal["monthly", "yearly"]
PlanType = Literal["eventManager", "center"]

CENTS = Decimal("0.01")


def _money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class SubscriptionPlanSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    type: PlanType = "eventManager"
    price: Decimal
    billing_period: BillingPeriod
    features: list[str] = Field(default_factory=list)
    max_events_allowed: int = 0
    is_active: bool = True

    @field_validator("price", mode="before")
    @classmethod
    def quantize_price(cls, value: Any) -> Decimal:
        return _money(value)

    @field_validator("features", mode="before")
    @classmethod
    def coerce_features(cls, value: Any) -> list[str]:
        # Older rows stored features as a {name: enabled} map.
        if value is None:
            return []
        if isinstance(value, dict):
            return [str(key) for key, enabled in value.items() if enabled]
        return value


class PlanCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    type: PlanType
    price: Decimal = Field(ge=0)
    billing_period: BillingPeriod
    features: list[str] = Field(default_factory=list)
    max_events_allowed: int = Field(default=0, ge=0)
    is_active: bool = True

    @field_validator("price", mode="before")
    @classmethod
    def quantize_price(cls, value: Any) -> Decimal:
        return _money(value)


class PlanUpdate(BaseModel):
    """Partial plan update; only fields present in the request are applied."""

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    type: Optional[PlanType] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    billing_period: Optional[BillingPeriod] = None
    features: Optional[list[str]] = None
    max_events_allowed: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("price", mode="before")
    @classmethod
    def quantize_price(cls, value: Any) -> Optional[Decimal]:
        return _money(value) if value is not None else None


class RenewRequest(BaseModel):
    end_date: datetime

    @field_validator("end_date")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class SubscriptionSchema(BaseModel):
    id: int
    user_id: int
    plan_id: int
    status: SubscriptionStatusValue
    start_date: datetime
    end_date: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)
    plan: Optional[SubscriptionPlanSchema] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def check_period(self) -> "SubscriptionSchema":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class SubscriptionPaymentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subscription_id: int
    amount: Decimal
    status: PaymentStatusValue
    payment_date: Optional[datetime] = None

    @field_validator("amount", mode="before")
    @classmethod
    def quantize_amount(cls, value: Any) -> Decimal:
        return _money(value)

    @field_validator("payment_date")
    @classmethod
    def normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class CustomerDetails(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str = Field(min_length=8)


class PurchaseRequest(BaseModel):
    plan_id: int = Field(gt=0)
    customer: CustomerDetails


class PurchaseResult(BaseModel):
    subscription: SubscriptionSchema
    session_id: str


class ActiveCheck(BaseModel):
    has_active_subscription: bool
