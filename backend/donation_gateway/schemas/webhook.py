import enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventKind(enum.Enum):
    CHECKOUT_COMPLETED = "checkout.session.completed"
    INVOICE_PAID = "invoice.paid"
    OTHER = "other"

    @classmethod
    def of(cls, type_tag: str) -> "EventKind":
        try:
            return cls(type_tag)
        except ValueError:
            return cls.OTHER


class EventData(BaseModel):
    # Some Stripe objects (balance) carry no id.
    object: dict[str, Any]


class InboundEvent(BaseModel):
    id: str = Field(..., description="Stripe event ID")
    type: str = Field(..., description="Event type tag")
    created: int = Field(..., description="Epoch seconds")
    data: EventData

    @property
    def kind(self) -> EventKind:
        return EventKind.of(self.type)

    @property
    def object_id(self) -> Optional[str]:
        value = self.data.object.get("id")
        return value if isinstance(value, str) else None


class ForwardPayload(BaseModel):
    """Minimized projection of a verified event; no raw email or full name."""

    event_id: str
    event_type: str
    object_id: str
    session_id: Optional[str] = None
    invoice_id: Optional[str] = None
    created: int
    mode: Optional[str] = None
    is_subscription: bool
    amount: Optional[int] = None
    currency: str
    customer_email_hash: str
    display_name: str
    customer_name_initials: str = ""
    country: Optional[str] = None
    prayer_request: str = ""
    subscription: Optional[str] = None
    display_text: Optional[str] = None


class WebhookAck(BaseModel):
    received: bool = True
    skipped: Optional[str] = None
