"""
Products and categories.
"""

import logging
from typing import Dict, List, Optional

from database import (
    create_document,
    delete_document,
    get_document,
    get_documents,
    serialize_doc,
    update_document,
)
from errors import NotFound
from schemas import Product, ProductUpdate

logger = logging.getLogger(__name__)

CATEGORIES = [
    {"id": "living-room", "name": "Living Room", "image": "https://images.unsplash.com/photo-1555041469-a586c61ea9bc?q=80&w=1200&auto=format&fit=crop", "image_hint": "modern sofa"},
    {"id": "bedroom", "name": "Bedroom", "image": "https://images.unsplash.com/photo-1505693416388-ac5ce068fe85?q=80&w=1200&auto=format&fit=crop", "image_hint": "wooden bed"},
    {"id": "dining", "name": "Dining", "image": "https://images.unsplash.com/photo-1617806118233-18e1de247200?q=80&w=1200&auto=format&fit=crop", "image_hint": "dining table"},
    {"id": "office", "name": "Office", "image": "https://images.unsplash.com/photo-1518455027359-f3f8164ba6bd?q=80&w=1200&auto=format&fit=crop", "image_hint": "office desk"},
    {"id": "outdoor", "name": "Outdoor", "image": "https://images.unsplash.com/photo-1600210492486-724fe5c67fb0?q=80&w=1200&auto=format&fit=crop", "image_hint": "patio chairs"},
    {"id": "decor", "name": "Decor", "image": "https://images.unsplash.com/photo-1513519245088-0e12902e5a38?q=80&w=1200&auto=format&fit=crop", "image_hint": "wall decor"},
]


def category_name(category_id: str) -> str:
    for c in CATEGORIES:
        if c["id"] == category_id:
            return c["name"]
    return category_id


def list_products(db, category: Optional[str] = None, featured: Optional[bool] = None) -> List[Dict]:
    filt = {}
    if category:
        filt["category"] = category
    if featured is not None:
        filt["is_featured"] = featured
    return [serialize_doc(p) for p in get_documents(db, "products", filt)]


def get_product(db, product_id: str) -> Dict:
    doc = get_document(db, "products", product_id)
    if not doc:
        raise NotFound("Product not found")
    return serialize_doc(doc)


def create_product(db, payload: Product) -> Dict:
    pid = create_document(db, "products", payload)
    logger.info("Created product %s (%s)", pid, payload.name)
    return get_product(db, pid)


def update_product(db, product_id: str, payload: ProductUpdate) -> Dict:
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        return get_product(db, product_id)
    doc = update_document(db, "products", product_id, fields)
    if not doc:
        raise NotFound("Product not found")
    return serialize_doc(doc)


def delete_product(db, product_id: str) -> None:
    if not delete_document(db, "products", product_id):
        raise NotFound("Product not found")
    logger.info("Deleted product %s", product_id)


def featured_products(products: List[Dict], exclude_id: Optional[str] = None, limit: int = 5) -> List[Dict]:
    picks = [p for p in products if p.get("is_featured") and p.get("id") != exclude_id]
    if not picks:
        picks = [p for p in products if (p.get("stock") or 0) > 0 and p.get("id") != exclude_id]
    return picks[:limit]


DEMO_PRODUCTS = [
    {
        "name": "Zanzibar Carved Sofa",
        "description": "Three-seater sofa with hand-carved mahogany frame and linen cushions.",
        "price": 1850000,
        "category": "living-room",
        "images": [{"url": "https://images.unsplash.com/photo-1555041469-a586c61ea9bc?q=80&w=1200&auto=format&fit=crop", "hint": "carved sofa"}],
        "sizes": ["3-seater"],
        "materials": ["Mahogany", "Linen"],
        "stock": 6,
        "is_featured": True,
        "delivery_info": "Free delivery within Stone Town.",
    },
    {
        "name": "Swahili Four-Poster Bed",
        "description": "Traditional four-poster bed with brass detailing.",
        "price": 2400000,
        "category": "bedroom",
        "images": [{"url": "https://images.unsplash.com/photo-1505693416388-ac5ce068fe85?q=80&w=1200&auto=format&fit=crop", "hint": "four poster bed"}],
        "sizes": ["Queen", "King"],
        "materials": ["Teak", "Brass"],
        "stock": 3,
        "is_featured": True,
    },
    {
        "name": "Teak Dining Table",
        "description": "Solid teak table seating six.",
        "price": 1250000,
        "category": "dining",
        "images": [{"url": "https://images.unsplash.com/photo-1617806118233-18e1de247200?q=80&w=1200&auto=format&fit=crop", "hint": "teak table"}],
        "sizes": ["6-seater"],
        "materials": ["Teak"],
        "stock": 4,
        "is_featured": False,
        "discount_percentage": 10,
    },
    {
        "name": "Ergonomic Office Chair",
        "description": "Adjustable chair with breathable mesh back.",
        "price": 450000,
        "category": "office",
        "images": [{"url": "https://images.unsplash.com/photo-1518455027359-f3f8164ba6bd?q=80&w=1200&auto=format&fit=crop", "hint": "office chair"}],
        "materials": ["Mesh", "Steel"],
        "stock": 15,
        "is_featured": False,
    },
    {
        "name": "Rattan Patio Set",
        "description": "Two chairs and a coffee table in weatherproof rattan.",
        "price": 980000,
        "category": "outdoor",
        "images": [{"url": "https://images.unsplash.com/photo-1600210492486-724fe5c67fb0?q=80&w=1200&auto=format&fit=crop", "hint": "rattan chairs"}],
        "materials": ["Rattan"],
        "stock": 8,
        "is_featured": True,
    },
    {
        "name": "Zanzibar Door Mirror",
        "description": "Wall mirror framed like a carved Zanzibar door.",
        "price": 320000,
        "category": "decor",
        "images": [{"url": "https://images.unsplash.com/photo-1513519245088-0e12902e5a38?q=80&w=1200&auto=format&fit=crop", "hint": "carved mirror"}],
        "materials": ["Mahogany", "Glass"],
        "stock": 10,
        "is_featured": False,
    },
]


def seed_products(db) -> int:
    if db["products"].count_documents({}) > 0:
        return 0
    for d in DEMO_PRODUCTS:
        create_document(db, "products", Product(**d))
    return len(DEMO_PRODUCTS)
