"""
Default category rules for a new owner.
"""

import structlog

from statement_ingest.schemas.records import CategoryRule
from statement_ingest.store.base import DocumentStore

logger = structlog.get_logger(__name__)


DEFAULT_CATEGORIES = [
    {
        "name": "Software Subscriptions",
        "description": "Monthly/annual software and SaaS subscriptions",
        "sort_order": 1,
        "keywords": ["adobe", "microsoft", "google", "software", "subscription", "saas"],
        "patterns": [".*subscription.*", ".*monthly.*", ".*annual.*"],
        "merchant_rules": ["Adobe Inc.", "Microsoft Corp", "Google LLC"],
        "is_tax_deductible": True,
    },
    {
        "name": "Marketing & Advertising",
        "description": "Digital marketing, ads, and promotional expenses",
        "sort_order": 2,
        "keywords": ["facebook ads", "google ads", "marketing", "advertising", "promotion"],
        "patterns": [".*ads.*", ".*marketing.*", ".*advertising.*"],
        "merchant_rules": ["Meta Platforms", "Google Ads", "Facebook"],
        "is_tax_deductible": True,
    },
    {
        "name": "Material Costs",
        "description": "Solar panels, equipment, and installation materials",
        "sort_order": 3,
        "keywords": ["solar", "panel", "equipment", "materials", "supplies"],
        "patterns": [".*solar.*", ".*equipment.*", ".*materials.*"],
        "merchant_rules": [],
        "is_tax_deductible": True,
    },
    {
        "name": "GoodLeap Payouts",
        "description": "Financing payouts from GoodLeap",
        "sort_order": 4,
        "keywords": ["goodleap", "payout", "financing"],
        "patterns": [".*goodleap.*", ".*payout.*"],
        "merchant_rules": ["GoodLeap"],
        "is_tax_deductible": False,
    },
    {
        "name": "Client Deposits",
        "description": "Customer down payments and deposits",
        "sort_order": 5,
        "keywords": ["deposit", "payment", "customer", "client"],
        "patterns": [".*deposit.*", ".*payment.*"],
        "merchant_rules": [],
        "is_tax_deductible": False,
    },
]


async def seed_default_categories(store: DocumentStore, owner_id: str) -> list[CategoryRule]:
    """
    Create the default rule set when the owner has no rules yet.
    Returns the owner's rules either way.
    """
    existing = await store.list_category_rules(owner_id)
    if existing:
        return existing

    created = []
    for entry in DEFAULT_CATEGORIES:
        rule = CategoryRule(owner_id=owner_id, **entry)
        created.append(await store.create_category_rule(rule))

    logger.info("default_categories_seeded", owner_id=owner_id, count=len(created))
    return created
