"""
Storefront API - Main FastAPI Application

Serves the static jewelry front end: catalog reads, a session-scoped cart,
order placement, contact intake and Stripe payment intents.
Every error leaves the API in the same envelope (see storefront.errors).
"""

from fastapi import FastAPI, Depends, Header, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional, Union
from decimal import Decimal
import uvicorn
import logging
import traceback
import time as _time
from contextlib import asynccontextmanager
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from storefront import __version__
from storefront import cart, catalog, contact, orders, payments
from storefront.config import get_config, validate_config
from storefront.database import Base, engine, get_db
from storefront.errors import ErrorCode, StorefrontError, ValidationFailed
from storefront.metrics import metrics_collector
from storefront.operations import current_request_id, new_request_id
from storefront.schemas import (
    AddToCartRequest, UpdateCartItemRequest,
    CreateOrderRequest, UpdateOrderRequest,
    ContactRequest, PaymentIntentRequest,
    ProductFilters,
    CategoryOut, ProductOut, CartOut, CartMessage, OrderOut,
    ContactConfirmation, PaymentIntentOut, ErrorResponse,
)
from storefront.session import SESSION_HEADER, get_session_id
from storefront.structured_logger import log_error

logger = logging.getLogger("storefront.main")

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create tables when a database is configured and report config problems.
    In production, run migrations instead of relying on create_all.
    """
    for problem in validate_config():
        logger.warning("Configuration problem: %s", problem)

    if engine is not None:
        try:
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            logger.warning("Could not run Base.metadata.create_all: %s", e)
    yield


app = FastAPI(
    title="Troves & Coves Storefront API",
    description="Catalog, cart, orders, contact and payments for the jewelry storefront",
    version=__version__,
    lifespan=lifespan,
    responses={"4XX": {"model": ErrorResponse}, "5XX": {"model": ErrorResponse}},
)

# Credentials are allowed, so origins must be explicit
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", SESSION_HEADER, "Idempotency-Key"],
    expose_headers=[SESSION_HEADER, REQUEST_ID_HEADER],
)


class LatencyLoggingMiddleware(BaseHTTPMiddleware):
    """Stamps X-Request-ID and logs method, path, status and duration."""

    async def dispatch(self, request: StarletteRequest, call_next) -> StarletteResponse:
        if request.method == "OPTIONS":
            return await call_next(request)
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        token = current_request_id.set(request_id)
        t0 = _time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            current_request_id.reset(token)
        duration_ms = round((_time.perf_counter() - t0) * 1000, 1)
        logger.info(
            "[LATENCY] %s %s -> %d  %.1fms",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


app.add_middleware(LatencyLoggingMiddleware)


#
# Error rendering
#

@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Pydantic failures use the same 400 envelope as service-level validation."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    error = ValidationFailed("Invalid request", details={"errors": errors})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled exceptions and return 500; exception text only in development."""
    err_msg = str(exc)
    log_error(
        type(exc).__name__,
        err_msg,
        request_id=current_request_id.get(),
        stack_trace=traceback.format_exc(),
    )
    is_dev = get_config().env in ("development", "dev", "")
    return JSONResponse(
        status_code=500,
        content={
            "error": err_msg if is_dev else "Internal server error",
            "code": ErrorCode.SERVER_ERROR.value,
            "retryable": True,
            "details": None,
        },
    )


#
# Health Check Endpoints
#

@app.get("/")
def root():
    return {
        "service": "Troves & Coves Storefront API",
        "version": __version__,
        "status": "operational",
    }


@app.get("/health")
def health_check(db: Optional[Session] = Depends(get_db)):
    """
    Database connectivity and payment configuration.
    """
    health_status = {
        "service": "healthy",
        "database": "unknown",
        "payments": "configured" if get_config().stripe_enabled else "not configured",
    }

    if db is None:
        health_status["database"] = "not configured"
        health_status["service"] = "degraded"
        return health_status

    try:
        db.execute(text("SELECT 1"))
        health_status["database"] = "healthy"
    except SQLAlchemyError as e:
        health_status["database"] = f"unhealthy: {e.__class__.__name__}"
        health_status["service"] = "degraded"

    return health_status


@app.get("/metrics")
def get_metrics():
    """
    Latency percentiles (p50, p95, p99), request counts and error rates per
    operation, plus uptime. Per process.
    """
    return metrics_collector.get_summary()


#
# Catalog
#

def _is_true(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in ("true", "1", "yes")


@app.get("/api/products", response_model=Union[ProductOut, List[ProductOut]])
def api_list_products(
    category: Optional[str] = None,
    featured: Optional[str] = None,
    product_id: Optional[str] = Query(None, alias="id"),
    search: Optional[str] = None,
    material: Optional[str] = None,
    gemstone: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice"),
    db: Optional[Session] = Depends(get_db),
):
    """
    id -> single product, featured=true -> featured list, otherwise the
    filtered active list.
    """
    if product_id is not None:
        return ProductOut.from_model(catalog.get_product(db, product_id))
    if _is_true(featured):
        return [ProductOut.from_model(p) for p in catalog.get_featured(db)]

    filters = ProductFilters(
        category=category,
        search=search,
        material=material,
        gemstone=gemstone,
        min_price=min_price,
        max_price=max_price,
    )
    return [ProductOut.from_model(p) for p in catalog.list_products(db, filters)]


@app.get("/api/products/{product_id}", response_model=ProductOut)
def api_get_product(product_id: str, db: Optional[Session] = Depends(get_db)):
    return ProductOut.from_model(catalog.get_product(db, product_id))


@app.get("/api/categories", response_model=List[CategoryOut])
def api_list_categories(db: Optional[Session] = Depends(get_db)):
    return [CategoryOut.from_model(c) for c in catalog.list_categories(db)]


@app.get("/api/categories/{slug}", response_model=CategoryOut)
def api_get_category(slug: str, db: Optional[Session] = Depends(get_db)):
    return CategoryOut.from_model(catalog.get_category(db, slug))


#
# Cart (scoped by session id)
#

@app.get("/api/cart", response_model=CartOut)
def api_get_cart(
    session_id: str = Depends(get_session_id),
    db: Optional[Session] = Depends(get_db),
):
    return cart.get_cart(db, session_id)


@app.post("/api/cart", response_model=CartOut, status_code=201)
def api_add_to_cart(
    request: AddToCartRequest,
    session_id: str = Depends(get_session_id),
    db: Optional[Session] = Depends(get_db),
):
    """Add a product, or increment the existing line for it."""
    return cart.add_item(db, session_id, request.product_id, request.quantity)


@app.put("/api/cart/{item_id}", response_model=CartOut)
def api_update_cart_item(
    item_id: str,
    request: UpdateCartItemRequest,
    session_id: str = Depends(get_session_id),
    db: Optional[Session] = Depends(get_db),
):
    """Set a line's quantity; zero or less removes it."""
    return cart.update_quantity(db, session_id, item_id, request.quantity)


@app.put("/api/cart", response_model=CartOut)
def api_update_cart_item_by_query(
    request: UpdateCartItemRequest,
    item_id: Optional[str] = Query(None, alias="id"),
    session_id: str = Depends(get_session_id),
    db: Optional[Session] = Depends(get_db),
):
    if item_id is None:
        raise ValidationFailed("Cart item ID is required")
    return cart.update_quantity(db, session_id, item_id, request.quantity)


@app.delete("/api/cart/{item_id}", response_model=CartMessage)
def api_remove_cart_item(
    item_id: str,
    session_id: str = Depends(get_session_id),
    db: Optional[Session] = Depends(get_db),
):
    return cart.remove_item(db, session_id, item_id)


@app.delete("/api/cart", response_model=CartMessage)
def api_clear_cart(
    item_id: Optional[str] = Query(None, alias="id"),
    session_id: str = Depends(get_session_id),
    db: Optional[Session] = Depends(get_db),
):
    """With ?id= removes one line, otherwise empties the cart."""
    if item_id is not None:
        return cart.remove_item(db, session_id, item_id)
    return cart.clear_cart(db, session_id)


#
# Orders
#

@app.post("/api/orders", response_model=OrderOut, status_code=201)
def api_create_order(
    request: CreateOrderRequest,
    response: Response,
    idempotency_key: Optional[str] = Header(None),
    session_id: str = Depends(get_session_id),
    db: Optional[Session] = Depends(get_db),
):
    """
    Turn the session's cart into a pending order and empty the cart.
    A repeated Idempotency-Key returns the existing order with 200.
    """
    order, created = orders.create_order(db, session_id, request, idempotency_key=idempotency_key)
    if not created:
        response.status_code = 200
    return OrderOut.from_model(order)


@app.get("/api/orders", response_model=Union[OrderOut, List[OrderOut]])
def api_list_orders(
    order_id: Optional[str] = Query(None, alias="id"),
    session_id: str = Depends(get_session_id),
    db: Optional[Session] = Depends(get_db),
):
    """?id= returns one order; otherwise every order of the session."""
    if order_id is not None:
        return OrderOut.from_model(orders.get_order(db, order_id))
    return [OrderOut.from_model(o) for o in orders.list_orders_for_session(db, session_id)]


@app.get("/api/orders/{order_id}", response_model=OrderOut)
def api_get_order(order_id: str, db: Optional[Session] = Depends(get_db)):
    return OrderOut.from_model(orders.get_order(db, order_id))


@app.put("/api/orders/{order_id}", response_model=OrderOut)
def api_update_order(
    order_id: str,
    request: UpdateOrderRequest,
    db: Optional[Session] = Depends(get_db),
):
    order = orders.update_order_status(
        db, order_id, status=request.status, payment_handle=request.payment_handle
    )
    return OrderOut.from_model(order)


@app.put("/api/orders", response_model=OrderOut)
def api_update_order_by_query(
    request: UpdateOrderRequest,
    order_id: Optional[str] = Query(None, alias="id"),
    db: Optional[Session] = Depends(get_db),
):
    if order_id is None:
        raise ValidationFailed("Order ID is required")
    order = orders.update_order_status(
        db, order_id, status=request.status, payment_handle=request.payment_handle
    )
    return OrderOut.from_model(order)


#
# Contact & Payments
#

@app.post("/api/contact", response_model=ContactConfirmation, status_code=201)
def api_submit_contact(request: ContactRequest, db: Optional[Session] = Depends(get_db)):
    return contact.submit_contact(db, request)


@app.post("/api/payments/create-intent", response_model=PaymentIntentOut)
def api_create_payment_intent(request: PaymentIntentRequest):
    """Returns the Stripe client secret for the browser to confirm the payment."""
    return payments.create_payment_intent(request)


if __name__ == "__main__":
    config = get_config()
    logging.basicConfig(level=config.log_level)
    uvicorn.run("storefront.main:app", host=config.host, port=config.port)
