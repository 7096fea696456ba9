"""
Pydantic v2 schemas for request/response validation.

The static front end speaks camelCase JSON, so every schema uses a camelCase
alias generator; snake_case names are accepted on input too.
All request schemas use extra="forbid" to reject unknown fields.
Money goes out as two-decimal strings plus the integer cents value.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any, Union
from datetime import datetime
from decimal import Decimal
from enum import Enum

from storefront.money import cents_to_decimal


class OrderStatus(str, Enum):
    """
    Order lifecycle. pending -> processing -> shipped -> delivered,
    cancelled from pending or processing only.
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


#
# Request Schemas
#

class ProductFilters(RequestModel):
    """
    Catalog list filters. Every field is optional; an unknown category slug
    drops the category filter instead of failing.
    """
    category: Optional[str] = None
    search: Optional[str] = None
    material: Optional[str] = None
    gemstone: Optional[str] = None
    min_price: Optional[Decimal] = Field(None, description="Minimum price in major units")
    max_price: Optional[Decimal] = Field(None, description="Maximum price in major units")


# Largest quantity one cart line may hold
MAX_LINE_QUANTITY = 99


class AddToCartRequest(RequestModel):
    product_id: int = Field(..., description="Product identifier")
    quantity: int = Field(
        1, le=MAX_LINE_QUANTITY, description="Quantity to add; must be a positive integer"
    )


class UpdateCartItemRequest(RequestModel):
    quantity: int = Field(
        ..., le=MAX_LINE_QUANTITY, description="New quantity; zero or less removes the line"
    )


Address = Union[Dict[str, Any], str]


class CreateOrderRequest(RequestModel):
    """
    Checkout payload. Prices are never accepted from the client: the order
    total comes from the session's cart and the catalog.
    """
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_handle: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("paymentHandle", "payment_handle", "stripePaymentIntentId"),
        description="Opaque payment processor reference",
    )


class UpdateOrderRequest(RequestModel):
    status: Optional[str] = Field(None, description="pending | processing | shipped | delivered | cancelled")
    payment_handle: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("paymentHandle", "payment_handle", "paymentIntentId"),
    )


class ContactRequest(RequestModel):
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    phone: Optional[str] = None
    is_consultation: bool = False
    preferred_date: Optional[datetime] = None


class PaymentIntentRequest(RequestModel):
    amount: Optional[Decimal] = Field(None, description="Amount in major units, e.g. 180.00")
    currency: Optional[str] = Field(None, description="ISO currency code; store currency when omitted")
    metadata: Dict[str, Any] = Field(default_factory=dict)


#
# Response Schemas
#

class CategoryOut(ResponseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_model(cls, category) -> "CategoryOut":
        return cls(
            id=category.id,
            name=category.name,
            slug=category.slug,
            description=category.description,
            image_url=category.image_url,
        )


class ProductOut(ResponseModel):
    id: int
    sku: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: Decimal
    price_cents: int
    stock_quantity: int
    is_active: bool
    is_featured: bool
    category_id: Optional[int] = None
    category: Optional[CategoryOut] = None
    materials: List[str] = Field(default_factory=list)
    gemstones: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)
    care_instructions: Optional[str] = None
    weight_grams: Optional[int] = None

    @classmethod
    def from_model(cls, product, include_category: bool = True) -> "ProductOut":
        category = None
        if include_category and product.category is not None:
            category = CategoryOut.from_model(product.category)
        return cls(
            id=product.id,
            sku=product.sku,
            name=product.name,
            description=product.description,
            price=cents_to_decimal(product.price_cents),
            price_cents=product.price_cents,
            stock_quantity=product.stock_quantity or 0,
            is_active=bool(product.is_active),
            is_featured=bool(product.is_featured),
            category_id=product.category_id,
            category=category,
            materials=list(product.materials or []),
            gemstones=list(product.gemstones or []),
            image_url=product.image_url,
            image_urls=list(product.image_urls or []),
            care_instructions=product.care_instructions,
            weight_grams=product.weight_grams,
        )


class CartProductOut(ResponseModel):
    """Live product data shown next to a cart line. Display only, never charged."""
    id: int
    name: str
    price: Decimal
    price_cents: int
    image_url: Optional[str] = None
    is_active: bool


class CartItemOut(ResponseModel):
    id: int
    product_id: int
    quantity: int
    product: CartProductOut
    line_total: Decimal
    line_total_cents: int


class CartOut(ResponseModel):
    session_id: str
    items: List[CartItemOut]
    item_count: int
    subtotal: Decimal
    subtotal_cents: int
    currency: str


class CartMessage(ResponseModel):
    message: str
    removed: int = 0
    cart: CartOut


class OrderItemOut(ResponseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    product_image: Optional[str] = None
    quantity: int
    unit_price: Decimal
    unit_price_cents: int
    line_total: Decimal

    @classmethod
    def from_model(cls, item) -> "OrderItemOut":
        return cls(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product_name,
            product_image=item.product_image,
            quantity=item.quantity,
            unit_price=cents_to_decimal(item.unit_price_cents),
            unit_price_cents=item.unit_price_cents,
            line_total=cents_to_decimal(item.unit_price_cents * item.quantity),
        )


class OrderOut(ResponseModel):
    id: int
    session_id: str
    status: OrderStatus
    total_amount: Decimal
    total_cents: int
    currency: str
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_handle: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = Field(default_factory=list)

    @classmethod
    def from_model(cls, order) -> "OrderOut":
        return cls(
            id=order.id,
            session_id=order.session_id,
            status=OrderStatus(order.status),
            total_amount=cents_to_decimal(order.total_cents),
            total_cents=order.total_cents,
            currency=order.currency,
            shipping_address=order.shipping_address,
            billing_address=order.billing_address,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            payment_handle=order.payment_handle,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[OrderItemOut.from_model(i) for i in order.items],
        )


class ContactConfirmation(ResponseModel):
    message: str
    id: int


class PaymentIntentOut(ResponseModel):
    client_secret: str
    payment_intent_id: str


class ErrorResponse(ResponseModel):
    """Envelope for every non-2xx response."""
    error: str
    code: str
    retryable: bool = False
    details: Optional[Dict[str, Any]] = None
