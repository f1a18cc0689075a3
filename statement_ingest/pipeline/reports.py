"""
Read-side summaries over stored transactions.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from statement_ingest.models.enums import TransactionKind
from statement_ingest.store.base import DocumentStore

UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Uncategorized"


class CategorySpending(BaseModel):
    category_id: str
    category_name: str
    total_amount: Decimal
    transaction_count: int


class CashFlowSummary(BaseModel):
    total_income: Decimal
    total_expenses: Decimal
    net_cash_flow: Decimal
    transaction_count: int


async def spending_by_category(
    store: DocumentStore,
    owner_id: str,
    start_date: date,
    end_date: date,
) -> list[CategorySpending]:
    """Debit totals per category (absolute amounts), largest first."""
    transactions = await store.list_transactions(owner_id, start_date, end_date)
    names = {rule.id: rule.name for rule in await store.list_category_rules(owner_id)}

    totals: dict[str, CategorySpending] = {}
    for t in transactions:
        if t.kind != TransactionKind.DEBIT:
            continue
        category_id = t.category_id or UNCATEGORIZED_ID
        bucket = totals.get(category_id)
        if bucket is None:
            bucket = totals[category_id] = CategorySpending(
                category_id=category_id,
                category_name=names.get(category_id, UNCATEGORIZED_NAME),
                total_amount=Decimal("0"),
                transaction_count=0,
            )
        bucket.total_amount += abs(t.amount)
        bucket.transaction_count += 1

    return sorted(totals.values(), key=lambda b: b.total_amount, reverse=True)


async def cash_flow_summary(
    store: DocumentStore,
    owner_id: str,
    start_date: date,
    end_date: date,
) -> CashFlowSummary:
    transactions = await store.list_transactions(owner_id, start_date, end_date)

    income = Decimal("0")
    expenses = Decimal("0")
    for t in transactions:
        if t.kind == TransactionKind.CREDIT:
            income += t.amount
        else:
            expenses += abs(t.amount)

    return CashFlowSummary(
        total_income=income,
        total_expenses=expenses,
        net_cash_flow=income - expenses,
        transaction_count=len(transactions),
    )
