"""
database/seed.py

Bundled reference data:
- DEFAULT_CATEGORIES, seeded into an empty store and addressable through
  `default-<index>` or `default-<slug>` category references
- A placeholder catalog shown while the live catalog is empty or unreachable
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.category.models import Category
from servicewala.database.enums import PriceType
from servicewala.service.schemas import ServiceRead
from servicewala.user.schemas import ProviderSummary

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_PREFIX = "default-"

DEFAULT_CATEGORIES: list[dict[str, str]] = [
    {"name": "Carpentry", "icon": "🔨", "description": "Furniture, fittings and woodwork"},
    {"name": "Electrical", "icon": "⚡", "description": "Wiring, fixtures and repairs"},
    {"name": "Plumbing", "icon": "🔧", "description": "Leaks, pipes and bathroom fittings"},
    {"name": "Painting", "icon": "🎨", "description": "Interior and exterior painting"},
    {"name": "Cleaning", "icon": "🧹", "description": "Home and office cleaning"},
    {"name": "Appliance Repair", "icon": "🔌", "description": "AC, fridge and washing machine repair"},
    {"name": "Pest Control", "icon": "🐛", "description": "Termite and general pest treatment"},
    {"name": "Gardening", "icon": "🌱", "description": "Lawn care and landscaping"},
]


def slugify(name: str) -> str:
    return "-".join(name.lower().split())


def default_category_reference(index: int) -> str:
    return f"{DEFAULT_CATEGORY_PREFIX}{index}"


def find_default_category(reference: str) -> dict[str, str] | None:
    """
    Looks up a bundled category by `default-<index>` or `default-<slug>`.
    Returns None for references without the prefix or with an unknown suffix.
    """
    if not reference.startswith(DEFAULT_CATEGORY_PREFIX):
        return None
    suffix = reference[len(DEFAULT_CATEGORY_PREFIX):]
    if suffix.isdigit():
        index = int(suffix)
        return DEFAULT_CATEGORIES[index] if index < len(DEFAULT_CATEGORIES) else None
    for category in DEFAULT_CATEGORIES:
        if slugify(category["name"]) == suffix.lower():
            return category
    return None


# ---------------------------------------------------
# Placeholder Catalog
# ---------------------------------------------------
_PLACEHOLDER_NS = uuid.UUID("6f1c2a52-3d0b-4c55-9a57-2f6f3c1d8e01")


def _placeholder_id(name: str) -> uuid.UUID:
    return uuid.uuid5(_PLACEHOLDER_NS, name)


def _placeholder_service(
    key: str,
    category: str,
    provider_name: str,
    title: str,
    description: str,
    price: float,
    price_type: PriceType,
    duration: str,
    city: str,
    state: str,
    rating: float,
    review_count: int,
    tags: list[str],
) -> ServiceRead:
    provider_id = _placeholder_id(f"provider:{provider_name}")
    return ServiceRead(
        id=_placeholder_id(f"service:{key}"),
        provider_id=provider_id,
        category_id=_placeholder_id(f"category:{category}"),
        title=title,
        description=description,
        price=price,
        price_type=price_type,
        duration=duration,
        images=[],
        availability=["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"],
        location=f"{city}, {state}",
        city=city,
        state=state,
        tags=tags,
        rating=rating,
        review_count=review_count,
        is_active=True,
        category=category,
        provider=ProviderSummary(
            id=provider_id, name=provider_name, rating=rating, location=f"{city}, {state}"
        ),
    )


def placeholder_catalog() -> list[ServiceRead]:
    """Sample listings shown when no live services can be loaded."""
    return [
        _placeholder_service(
            "deep-cleaning", "Cleaning", "Sparkle Home Services",
            "Full Home Deep Cleaning",
            "Kitchen, bathrooms and living areas cleaned top to bottom.",
            2499.0, PriceType.FIXED, "4 hours", "Mumbai", "Maharashtra", 4.8, 124,
            ["deep cleaning", "home"],
        ),
        _placeholder_service(
            "leak-repair", "Plumbing", "QuickFix Plumbers",
            "Tap and Pipe Leak Repair",
            "Diagnosis and repair of leaking taps, pipes and fittings.",
            399.0, PriceType.HOURLY, "1 hour", "Bengaluru", "Karnataka", 4.6, 89,
            ["leak", "pipes"],
        ),
        _placeholder_service(
            "wiring", "Electrical", "Volt Electricals",
            "Home Wiring Inspection",
            "Safety inspection of switchboards, wiring and earthing.",
            799.0, PriceType.FIXED, "2 hours", "Pune", "Maharashtra", 4.7, 56,
            ["wiring", "safety"],
        ),
        _placeholder_service(
            "ac-service", "Appliance Repair", "CoolAir Technicians",
            "Split AC Service",
            "Filter cleaning, gas pressure check and cooling test.",
            599.0, PriceType.FIXED, "90 minutes", "Delhi", "Delhi", 4.5, 210,
            ["ac", "appliance"],
        ),
    ]


# ---------------------------------------------------
# Seeding
# ---------------------------------------------------
async def seed_default_categories(db: AsyncSession) -> int:
    """Inserts the bundled categories that are not stored yet. Returns the number added."""
    result = await db.execute(select(Category.name))
    existing = set(result.scalars().all())
    missing = [c for c in DEFAULT_CATEGORIES if c["name"] not in existing]
    for category in missing:
        db.add(Category(**category, is_active=True))
    if missing:
        await db.commit()
        logger.info(f"[SEED] Added {len(missing)} default categories")
    return len(missing)
