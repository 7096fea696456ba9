"""
SQLAlchemy database models.
The relational store is the single source of truth for catalog, carts,
orders and contact submissions.

Money is stored in integer minor units (cents) to avoid floating point
issues; the API layer renders it as two-decimal strings.
"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Boolean, JSON, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base


class Category(Base):
    """
    Static reference data. Products point at a category; the storefront
    addresses categories by slug.
    """
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    description = Column(Text)
    image_url = Column(String(512))

    products = relationship("Product", back_populates="category")


class Product(Base):
    """
    Product catalog. Read-only to the storefront; catalog management
    (and the seed script) writes it.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_active_featured", "is_active", "is_featured"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    sku = Column(String(64), unique=True, nullable=True)

    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)

    price_cents = Column(Integer, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    weight_grams = Column(Integer, nullable=True)

    # Free-text lists, e.g. ["Sterling Silver", "Amethyst"]
    materials = Column(JSON, nullable=True)
    gemstones = Column(JSON, nullable=True)

    image_url = Column(String(512))
    image_urls = Column(JSON, nullable=True)
    care_instructions = Column(Text)

    is_active = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")


class CartItem(Base):
    """
    One cart line for one session.
    Unique (session_id, product_id): adding the same product again increments
    the existing line instead of creating a second one.
    """
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("session_id", "product_id", name="ux_cart_items_session_product"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(128), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product")


class Order(Base):
    """
    Order header. total_cents is frozen at creation and never recomputed.
    Status: pending, processing, shipped, delivered, cancelled.
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("session_id", "idempotency_key", name="ux_orders_session_idempotency_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(128), nullable=False, index=True)

    total_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="CAD")

    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(64), nullable=True)

    # Opaque processor reference; stored, not verified
    payment_handle = Column(String(255), nullable=True)
    idempotency_key = Column(String(128), nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    """
    Order line with the unit price, name and image captured when the order was
    placed. Later catalog edits never touch these columns.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)

    product_name = Column(String(255), nullable=False)
    product_image = Column(String(512), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")


class ContactSubmission(Base):
    """Write-once contact form submission."""
    __tablename__ = "contact_submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(64), nullable=True)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_consultation = Column(Boolean, nullable=False, default=False)
    preferred_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
