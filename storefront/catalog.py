"""
Catalog reader: products and categories, read-only.

Filtering order:
1. SQL: active flag, category (slug resolved to id), price range
2. Python: free-text search, material and gemstone substring matches
   (materials/gemstones are JSON lists, matched element by element)

Results are ordered by product id so identical filters always give the
same sequence.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from storefront.errors import NotFound, ValidationFailed
from storefront.models import Category, Product
from storefront.money import to_cents
from storefront.operations import MAX_DB_INT, parse_id, require_db, storage_errors, track_operation
from storefront.schemas import ProductFilters

# Storefront promotion slot size; part of the API contract
FEATURED_LIMIT = 6


def _normalize(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def _any_contains(values: Optional[List[str]], needle: str) -> bool:
    return any(needle in str(v).lower() for v in (values or []))


def matches_text(product: Product, needle: str) -> bool:
    """Case-insensitive match on name, description, materials or gemstones."""
    return (
        needle in (product.name or "").lower()
        or needle in (product.description or "").lower()
        or _any_contains(product.materials, needle)
        or _any_contains(product.gemstones, needle)
    )


def _price_bound_cents(value, label: str) -> Optional[int]:
    if value is None:
        return None
    try:
        cents = to_cents(value)
    except ValueError:
        raise ValidationFailed(f"{label} must be a number", details={label: str(value)})
    if cents < 0:
        raise ValidationFailed(f"{label} must not be negative", details={label: str(value)})
    if cents > MAX_DB_INT:
        raise ValidationFailed(f"{label} is out of range", details={label: str(value)})
    return cents


def resolve_category(db: Session, slug: Optional[str]) -> Optional[Category]:
    """Category for a slug, or None for no/unknown/'all' slug."""
    slug = _normalize(slug)
    if not slug or slug == "all":
        return None
    return db.query(Category).filter(Category.slug == slug).first()


def list_products(db: Optional[Session], filters: Optional[ProductFilters] = None) -> List[Product]:
    """
    Active products narrowed by the given filters.

    An unknown category slug silently drops the category filter.
    """
    filters = filters or ProductFilters()
    params: Dict[str, Any] = filters.model_dump(exclude_none=True, mode="json")

    with track_operation("list_products", params=params):
        db = require_db(db)
        min_cents = _price_bound_cents(filters.min_price, "minPrice")
        max_cents = _price_bound_cents(filters.max_price, "maxPrice")
        if min_cents is not None and max_cents is not None and min_cents > max_cents:
            raise ValidationFailed(
                "minPrice must not exceed maxPrice",
                details={"minPrice": str(filters.min_price), "maxPrice": str(filters.max_price)},
            )

        with storage_errors(db, "list_products"):
            query = (
                db.query(Product)
                .options(selectinload(Product.category))
                .filter(Product.is_active.is_(True))
            )

            category = resolve_category(db, filters.category)
            if category is not None:
                query = query.filter(Product.category_id == category.id)
            if min_cents is not None:
                query = query.filter(Product.price_cents >= min_cents)
            if max_cents is not None:
                query = query.filter(Product.price_cents <= max_cents)

            products = query.order_by(Product.id).all()

        search = _normalize(filters.search)
        material = _normalize(filters.material)
        gemstone = _normalize(filters.gemstone)

        if search:
            products = [p for p in products if matches_text(p, search)]
        if material:
            products = [p for p in products if _any_contains(p.materials, material)]
        if gemstone:
            products = [p for p in products if _any_contains(p.gemstones, gemstone)]

        return products


def get_featured(db: Optional[Session]) -> List[Product]:
    """Up to FEATURED_LIMIT products that are both featured and active."""
    with track_operation("get_featured"):
        db = require_db(db)
        with storage_errors(db, "get_featured"):
            return (
                db.query(Product)
                .options(selectinload(Product.category))
                .filter(Product.is_featured.is_(True), Product.is_active.is_(True))
                .order_by(Product.id)
                .limit(FEATURED_LIMIT)
                .all()
            )


def get_product(db: Optional[Session], product_id: Any) -> Product:
    """
    Single product with its category. Inactive products are still returned
    so old links and order history keep resolving.

    Raises:
        ValidationFailed: product_id is not numeric
        NotFound: no such product
    """
    with track_operation("get_product", params={"product_id": product_id}):
        pid = parse_id(product_id, "product ID")
        db = require_db(db)
        with storage_errors(db, "get_product"):
            product = (
                db.query(Product)
                .options(selectinload(Product.category))
                .filter(Product.id == pid)
                .first()
            )
        if product is None:
            raise NotFound("Product not found", details={"product_id": pid})
        return product


def list_categories(db: Optional[Session]) -> List[Category]:
    with track_operation("list_categories"):
        db = require_db(db)
        with storage_errors(db, "list_categories"):
            return db.query(Category).order_by(Category.id).all()


def get_category(db: Optional[Session], slug: str) -> Category:
    with track_operation("get_category", params={"slug": slug}):
        db = require_db(db)
        with storage_errors(db, "get_category"):
            category = resolve_category(db, slug)
        if category is None:
            raise NotFound("Category not found", details={"slug": slug})
        return category
