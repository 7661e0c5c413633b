from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from donation_gateway.services.formatting import sanitize_text


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mode: Literal["payment", "subscription"] = "payment"
    amount: StrictInt = Field(..., ge=1, description="Minor units, no upper bound")
    currency: Literal["USD"] = "USD"
    interval: Literal["week", "month", "year"] = "month"
    interval_count: StrictInt = Field(1, ge=1, le=12)
    prayer_request: str = ""
    public_display: bool = False

    @field_validator("prayer_request", mode="before")
    @classmethod
    def clean_prayer_request(cls, v):
        return sanitize_text(v)


class CheckoutResponse(BaseModel):
    url: str


class SessionSummary(BaseModel):
    id: str
    mode: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    subscription_id: Optional[str] = None
    payment_intent_id: Optional[str] = None


class SessionResponse(BaseModel):
    session: SessionSummary
