import logging
from typing import Optional

import redis.asyncio as redis
import stripe
from fastapi import Depends, FastAPI, Header, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from donation_gateway.core.config import Settings, get_settings
from donation_gateway.errors import AuthenticationFailure, UpstreamFailure, ValidationFailure
from donation_gateway.middleware.body_size import BodySizeLimitMiddleware
from donation_gateway.middleware.fallback_origin import FallbackOriginMiddleware
from donation_gateway.schemas.checkout import CheckoutRequest, CheckoutResponse, SessionResponse
from donation_gateway.schemas.webhook import EventKind, InboundEvent, WebhookAck
from donation_gateway.services import checkout, donations, stripe_verify
from donation_gateway.services.webhooks import process_event

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Donation Gateway",
    description="Checkout, webhook forwarding and public donation feed for the donation forms",
    version="1.0.0",
)

app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
app.add_middleware(FallbackOriginMiddleware, origins=settings.origins)

# CORS restricted to the donation front-ends
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Idempotency-Key"],
)


@app.on_event("startup")
async def startup():
    """Initialize the rate limiter when Redis is reachable."""
    if not settings.rate_limit_enabled:
        logger.info("Rate limiting disabled")
        return
    try:
        redis_conn = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(redis_conn)
    except Exception as e:
        FastAPILimiter.redis = None
        logger.warning(f"Rate limiter unavailable, continuing without it: {e}")


@app.on_event("shutdown")
async def shutdown():
    if FastAPILimiter.redis is not None:
        await FastAPILimiter.close()


# ---------- errors ----------
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc!r}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    field = "request"
    errors = exc.errors()
    if errors:
        names = [p for p in errors[0].get("loc", ()) if isinstance(p, str) and p != "body"]
        if names:
            field = names[-1]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"error": f"Invalid {field}"}
    )


# ---------- dependencies ----------
async def rate_limit(
    request: Request, response: Response, settings: Settings = Depends(get_settings)
):
    if FastAPILimiter.redis is None:
        return
    limiter = RateLimiter(times=settings.rate_limit_times, seconds=settings.rate_limit_seconds)
    await limiter(request, response)


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}


# ---------- checkout ----------
@app.post(
    "/api/create-checkout-session",
    response_model=CheckoutResponse,
    dependencies=[Depends(rate_limit)],
)
def create_checkout_session(
    data: CheckoutRequest,
    idempotency_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
):
    try:
        url = checkout.create_session(data, settings, idempotency_key)
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating checkout session: {e}")
        raise UpstreamFailure()
    return CheckoutResponse(url=url)


@app.get("/api/get-session", response_model=SessionResponse)
def get_session(
    session_id: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings),
):
    if not session_id:
        raise ValidationFailure("Missing session_id")
    try:
        summary = checkout.retrieve_session(session_id, settings)
    except stripe.StripeError as e:
        logger.error(f"Stripe error retrieving session {session_id}: {e}")
        raise UpstreamFailure("Failed to retrieve session")
    return SessionResponse(session=summary)


# ---------- webhook ----------
@app.get("/api/stripe-webhook")
async def stripe_webhook_probe():
    return {"ok": True, "endpoint": "stripe-webhook"}


@app.post("/api/stripe-webhook", response_model=WebhookAck, response_model_exclude_none=True)
async def stripe_webhook(request: Request, settings: Settings = Depends(get_settings)):
    # Verify against the unparsed bytes; any reserialization breaks the signature.
    raw = await request.body()
    if not raw:
        raise ValidationFailure("Empty JSON body")

    if settings.stripe_webhook_secret:
        try:
            stripe_verify.verify(
                raw_body=raw,
                header=request.headers.get("stripe-signature"),
                secret=settings.stripe_webhook_secret,
                tolerance=settings.stripe_webhook_tolerance,
            )
        except stripe_verify.StripeSignatureError as e:
            logger.error(f"Stripe signature verification failed: {e}")
            raise AuthenticationFailure(str(e))
    else:
        logger.warning("STRIPE_WEBHOOK_SECRET missing, skipping signature verification (not recommended)")

    try:
        event = InboundEvent.model_validate_json(raw)
    except ValidationError:
        raise ValidationFailure("Invalid event payload")
    if event.kind is not EventKind.OTHER and event.object_id is None:
        raise ValidationFailure("Invalid event payload")

    try:
        return await run_in_threadpool(process_event, event, settings)
    except Exception:
        # Authenticated already; a non-200 would only make Stripe resend it.
        logger.exception(f"Error handling {event.type} {event.id}")
        return WebhookAck()


# ---------- public feed ----------
@app.get("/api/public-recent-donations", dependencies=[Depends(rate_limit)])
def public_recent_donations(
    response: Response,
    limit: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings),
):
    try:
        items = donations.recent_donations(settings, donations.clamp_limit(limit))
    except Exception as e:
        logger.error(f"public-recent-donations error: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"items": [], "error": "Failed to load recent donations"},
            headers={"Cache-Control": "no-store"},
        )
    response.headers["Cache-Control"] = donations.cache_control(settings.feed_cache_seconds)
    return {"items": [item.model_dump() for item in items]}
