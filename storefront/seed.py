#!/usr/bin/env python3
"""
Seed the storefront database with the reference catalog.

Run:
  DATABASE_URL=postgresql://... python -m storefront.seed
  python -m storefront.seed --database-url sqlite:///storefront.db

Idempotent: categories are keyed by slug and products by SKU; rows that
already exist are left untouched.
"""

import argparse
import sys
from typing import Dict, List, Tuple

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from storefront.config import get_config
from storefront.database import Base
from storefront.models import Category, Product
from storefront.money import to_cents

CATEGORIES: List[Dict] = [
    {
        "name": "Necklaces",
        "slug": "necklaces",
        "description": "Beautiful crystal necklaces handcrafted with intention and love",
        "image_url": "/images/categories/necklaces.jpg",
    },
    {
        "name": "Bracelets",
        "slug": "bracelets",
        "description": "Energizing crystal bracelets for everyday wear",
        "image_url": "/images/categories/bracelets.jpg",
    },
    {
        "name": "Rings",
        "slug": "rings",
        "description": "Crystal rings to balance your energy",
        "image_url": "/images/categories/rings.jpg",
    },
    {
        "name": "Earrings",
        "slug": "earrings",
        "description": "Healing crystal earrings for style and wellness",
        "image_url": "/images/categories/earrings.jpg",
    },
    {
        "name": "Pendants",
        "slug": "pendants",
        "description": "Crystal pendants for focus and meditation",
        "image_url": "/images/categories/pendants.jpg",
    },
    {
        "name": "Sets",
        "slug": "sets",
        "description": "Coordinating crystal jewelry sets",
        "image_url": "/images/categories/sets.jpg",
    },
]

# price is in major units; converted to cents on insert
PRODUCTS: List[Dict] = [
    {
        "name": "Amethyst Tranquility Necklace",
        "sku": "TC-NECK-001",
        "description": "A calming amethyst pendant on sterling silver chain. Amethyst promotes peace, spiritual growth, and stress relief.",
        "price": "89.00",
        "stock_quantity": 15,
        "weight_grams": 12,
        "materials": ["Sterling Silver", "Amethyst"],
        "gemstones": ["Amethyst"],
        "is_featured": True,
        "category_slug": "necklaces",
        "image_urls": ["/images/products/amethyst-necklace-1.jpg", "/images/products/amethyst-necklace-2.jpg"],
        "care_instructions": "Clean with soft cloth. Avoid harsh chemicals. Remove before swimming or bathing.",
    },
    {
        "name": "Rose Quartz Love Bracelet",
        "sku": "TC-BRACE-001",
        "description": "Gentle rose quartz beaded bracelet. Rose quartz is the stone of unconditional love and infinite peace.",
        "price": "45.00",
        "stock_quantity": 25,
        "weight_grams": 8,
        "materials": ["Rose Quartz", "Elastic Cord"],
        "gemstones": ["Rose Quartz"],
        "is_featured": True,
        "category_slug": "bracelets",
        "image_urls": ["/images/products/rose-quartz-bracelet-1.jpg"],
        "care_instructions": "Avoid water exposure. Clean with soft dry cloth.",
    },
    {
        "name": "Black Tourmaline Protection Ring",
        "sku": "TC-RING-001",
        "description": "Protective black tourmaline ring. Tourmaline is known for grounding and protection against negative energy.",
        "price": "125.00",
        "stock_quantity": 10,
        "weight_grams": 6,
        "materials": ["Sterling Silver", "Black Tourmaline"],
        "gemstones": ["Black Tourmaline"],
        "is_featured": True,
        "category_slug": "rings",
        "image_urls": ["/images/products/tourmaline-ring-1.jpg", "/images/products/tourmaline-ring-2.jpg"],
        "care_instructions": "Remove before washing hands. Polish regularly with silver cloth.",
    },
    {
        "name": "Citrine Abundance Earrings",
        "sku": "TC-EARR-001",
        "description": "Joyful citrine drop earrings. Citrine attracts abundance, prosperity, and positive energy.",
        "price": "55.00",
        "stock_quantity": 20,
        "weight_grams": 5,
        "materials": ["Gold Vermeil", "Citrine"],
        "gemstones": ["Citrine"],
        "is_featured": True,
        "category_slug": "earrings",
        "image_urls": ["/images/products/citrine-earrings-1.jpg"],
        "care_instructions": "Keep away from harsh chemicals. Store in soft pouch when not wearing.",
    },
    {
        "name": "Clear Quartz Amplifier Pendant",
        "sku": "TC-PEND-001",
        "description": "Powerful clear quartz point pendant. Clear quartz amplifies the energy of other crystals and intentions.",
        "price": "65.00",
        "stock_quantity": 30,
        "weight_grams": 15,
        "materials": ["Clear Quartz", "Sterling Silver Bail"],
        "gemstones": ["Clear Quartz"],
        "is_featured": True,
        "category_slug": "pendants",
        "image_urls": ["/images/products/quartz-pendant-1.jpg", "/images/products/quartz-pendant-2.jpg"],
        "care_instructions": "Cleanse under running water and recharge in moonlight weekly.",
    },
    {
        "name": "Lapis Lazuli Wisdom Set",
        "sku": "TC-SET-001",
        "description": "Matching lapis lazuli necklace and bracelet set. Lapis lazuli enhances wisdom, truth, and self-expression.",
        "price": "165.00",
        "stock_quantity": 8,
        "weight_grams": 22,
        "materials": ["Lapis Lazuli", "Sterling Silver"],
        "gemstones": ["Lapis Lazuli"],
        "is_featured": False,
        "category_slug": "sets",
        "image_urls": ["/images/products/lapis-set-1.jpg"],
        "care_instructions": "Polish regularly with soft cloth. Avoid water and harsh chemicals.",
    },
]


def seed_categories(db: Session) -> int:
    existing = {slug for (slug,) in db.query(Category.slug).all()}
    added = 0
    for data in CATEGORIES:
        if data["slug"] in existing:
            continue
        db.add(Category(**data))
        added += 1
    db.flush()
    return added


def seed_products(db: Session) -> int:
    categories = {c.slug: c for c in db.query(Category).all()}
    existing = {sku for (sku,) in db.query(Product.sku).filter(Product.sku.isnot(None)).all()}
    added = 0
    for data in PRODUCTS:
        if data["sku"] in existing:
            continue
        category = categories.get(data["category_slug"])
        if category is None:
            print(f"  ✗ No category '{data['category_slug']}' for {data['name']}")
            continue
        fields = {k: v for k, v in data.items() if k not in ("category_slug", "price")}
        db.add(
            Product(
                **fields,
                price_cents=to_cents(data["price"]),
                image_url=data["image_urls"][0],
                category_id=category.id,
                is_active=True,
            )
        )
        added += 1
    db.flush()
    return added


def seed_catalog(db: Session) -> Tuple[int, int]:
    """Insert missing categories and products in one transaction."""
    try:
        categories = seed_categories(db)
        products = seed_products(db)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return categories, products


def main():
    parser = argparse.ArgumentParser(description="Seed the storefront catalog (idempotent)")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    parser.add_argument("--no-create", action="store_true", help="Do not create missing tables first")
    args = parser.parse_args()

    database_url = args.database_url or get_config().database_url
    if not database_url:
        print("DATABASE_URL is not set. Pass --database-url or set it in the environment / .env.")
        sys.exit(1)

    engine = create_engine(database_url, pool_pre_ping=True)
    if not args.no_create:
        Base.metadata.create_all(bind=engine)

    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        categories, products = seed_catalog(db)
    finally:
        db.close()

    print("Seeding completed")
    print(f"  - {categories} new categories ({len(CATEGORIES)} defined)")
    print(f"  - {products} new products ({len(PRODUCTS)} defined)")


if __name__ == "__main__":
    main()
