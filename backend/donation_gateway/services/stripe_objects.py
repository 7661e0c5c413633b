from typing import Any, Optional


def as_dict(obj: Any) -> dict[str, Any]:
    """Plain dict view of a Stripe API resource."""
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


def linked_id(value: Any) -> Optional[str]:
    # Expandable fields arrive as an id string or an expanded object.
    if value is None or isinstance(value, str):
        return value
    return as_dict(value).get("id")


def custom_full_name(session: dict[str, Any]) -> Optional[str]:
    """Value of the ``full_name`` custom field collected on Checkout."""
    for field in session.get("custom_fields") or []:
        if field.get("key") == "full_name":
            return ((field.get("text") or {}).get("value") or "").strip() or None
    return None


def subscription_details(invoice: dict[str, Any]) -> dict[str, Any]:
    # Newer API versions nest this under ``parent``.
    details = invoice.get("subscription_details")
    if not details:
        details = (invoice.get("parent") or {}).get("subscription_details")
    return details or {}
