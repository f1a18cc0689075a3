"""
Account resolution - institution and account-type guessing plus find-or-create.

guess_institution and guess_account_type are pure strategies; swap them on
AccountResolver without touching orchestration.
"""

import re
from typing import Callable, Optional

import structlog

from statement_ingest.config import settings
from statement_ingest.models.enums import AccountType
from statement_ingest.schemas.records import Account
from statement_ingest.store.base import DocumentStore

logger = structlog.get_logger(__name__)

GENERIC_INSTITUTION = "Business Bank"

# Known institutions, matched against the lower-cased file name. Order matters.
INSTITUTION_PATTERNS = [
    ("Chase Bank", [r"chase"]),
    ("Bank of America", [r"bankofamerica", r"boa"]),
    ("Wells Fargo", [r"wells"]),
    ("Citibank", [r"citi"]),
    ("US Bank", [r"usbank"]),
]

ACCOUNT_TYPE_HINTS = [
    (AccountType.CREDIT, [r"credit", r"\bcard\b", r"visa", r"mastercard", r"amex"]),
    (AccountType.SAVINGS, [r"savings?"]),
    (AccountType.LOAN, [r"loan", r"mortgage"]),
    (AccountType.INVESTMENT, [r"invest", r"brokerage"]),
]

InstitutionStrategy = Callable[[str], str]
AccountTypeStrategy = Callable[[str], AccountType]


def guess_institution(file_name: str) -> str:
    lowered = (file_name or "").lower()
    for institution, patterns in INSTITUTION_PATTERNS:
        if any(re.search(p, lowered) for p in patterns):
            return institution
    return GENERIC_INSTITUTION


def guess_account_type(file_name: str) -> AccountType:
    """File-name hints first; business statements default to checking."""
    lowered = (file_name or "").lower()
    for account_type, patterns in ACCOUNT_TYPE_HINTS:
        if any(re.search(p, lowered) for p in patterns):
            return account_type
    return AccountType.CHECKING


def names_overlap(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return bool(a and b) and (a in b or b in a)


class AccountResolver:

    def __init__(
        self,
        store: DocumentStore,
        institution_strategy: Optional[InstitutionStrategy] = None,
        account_type_strategy: Optional[AccountTypeStrategy] = None,
    ):
        self.store = store
        self.institution_strategy = institution_strategy or guess_institution
        self.account_type_strategy = account_type_strategy or guess_account_type

    async def resolve(self, owner_id: str, file_name: str) -> Account:
        """
        Reuse the owner's account whose institution overlaps the guess
        (case-insensitive substring, either direction), else create one.
        """
        institution = self.institution_strategy(file_name)

        for account in await self.store.list_accounts(owner_id):
            if names_overlap(account.institution_name_guess, institution):
                logger.debug("account_reused", owner_id=owner_id, account_id=account.id)
                return account

        account_type = self.account_type_strategy(file_name)
        account = Account(
            owner_id=owner_id,
            display_name=f"{institution} {account_type.value}",
            institution_name_guess=institution,
            account_type_guess=account_type,
            default_currency=settings.DEFAULT_CURRENCY,
        )
        created = await self.store.create_account(account)
        logger.info(
            "account_created",
            owner_id=owner_id,
            account_id=created.id,
            institution=institution,
            account_type=account_type.value,
        )
        return created
