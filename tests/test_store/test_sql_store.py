"""
Tests for the SQLAlchemy store against SQLite (aiosqlite).
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from statement_ingest.errors import BatchFinalizedError, StoreError
from statement_ingest.models.enums import AccountType, UploadStatus
from statement_ingest.pipeline.format_parser import FormatParser
from statement_ingest.pipeline.orchestrator import IngestionPipeline
from statement_ingest.schemas.records import Account, CategorizationSummary, CategoryRule, UploadBatch
from statement_ingest.store.sql_store import SqlDocumentStore


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    store = SqlDocumentStore(database_url=f"sqlite+aiosqlite:///{tmp_path}/statements.db")
    await store.create_schema()
    yield store
    await store.close()


class TestSqlAccounts:

    @pytest.mark.asyncio
    async def test_create_list_and_stats(self, sql_store, owner_id):
        account = await sql_store.create_account(Account(
            owner_id=owner_id,
            display_name="Citibank credit",
            institution_name_guess="Citibank",
            account_type_guess=AccountType.CREDIT,
        ))

        [listed] = await sql_store.list_accounts(owner_id)
        assert listed.id == account.id
        assert listed.account_type_guess == AccountType.CREDIT

        updated = await sql_store.update_account_stats(account.id, 4, date(2024, 5, 2))
        assert updated.transaction_count == 4
        assert updated.last_transaction_date == date(2024, 5, 2)

    @pytest.mark.asyncio
    async def test_missing_account(self, sql_store):
        with pytest.raises(StoreError):
            await sql_store.update_account_stats("missing", 1, None)


class TestSqlCategoryRules:

    @pytest.mark.asyncio
    async def test_order_and_usage(self, sql_store, owner_id):
        for name, order in [("second", 2), ("first-a", 1), ("first-b", 1)]:
            await sql_store.create_category_rule(CategoryRule(
                owner_id=owner_id, name=name, sort_order=order, keywords=[name],
            ))

        rules = await sql_store.list_category_rules(owner_id)
        assert [r.name for r in rules] == ["first-a", "first-b", "second"]
        assert rules[0].keywords == ["first-a"]

        await sql_store.increment_category_usage(rules[0].id, Decimal("-19.99"))
        [rule] = [r for r in await sql_store.list_category_rules(owner_id) if r.id == rules[0].id]
        assert rule.usage_count == 1
        assert rule.total_amount == Decimal("19.99")


class TestSqlTransactions:

    @pytest.mark.asyncio
    async def test_round_trip_and_range(self, sql_store, owner_id, transaction_factory):
        saved = await sql_store.save_transaction(
            transaction_factory(on=date(2024, 3, 15), merchant="ADOBE CREATIVE CLOUD").with_category("cat-1", 0.8)
        )
        await sql_store.save_transaction(transaction_factory(on=date(2024, 4, 1)))

        [found] = await sql_store.list_transactions(owner_id, date(2024, 3, 1), date(2024, 3, 31))
        assert found.id == saved.id
        assert found.date == date(2024, 3, 15)
        assert found.amount == Decimal("-52.99")
        assert found.merchant_name_guess == "ADOBE CREATIVE CLOUD"
        assert found.category_id == "cat-1"
        assert found.category_confidence == pytest.approx(0.8)
        assert found.source_format == saved.source_format


class TestSqlUploadBatches:

    @pytest.mark.asyncio
    async def test_patch_finalize_and_reject(self, sql_store, owner_id):
        batch = await sql_store.create_upload_batch(UploadBatch(owner_id=owner_id, file_name="a.csv"))

        done = await sql_store.update_upload_batch(batch.id, {
            "status": UploadStatus.COMPLETED,
            "total_transactions": 2,
            "processed_transactions": 2,
            "transaction_ids": ["t1", "t2"],
            "categorization_summary": CategorizationSummary(automatically_categorized=1, needs_review=1),
        })
        assert done.status == UploadStatus.COMPLETED

        stored = await sql_store.get_upload_batch(batch.id)
        assert stored.status == UploadStatus.COMPLETED
        assert stored.transaction_ids == ["t1", "t2"]
        assert stored.categorization_summary.needs_review == 1

        with pytest.raises(BatchFinalizedError):
            await sql_store.update_upload_batch(batch.id, {"status": UploadStatus.FAILED})

    @pytest.mark.asyncio
    async def test_unknown_batch(self, sql_store):
        assert await sql_store.get_upload_batch("missing") is None
        with pytest.raises(StoreError):
            await sql_store.update_upload_batch("missing", {"warnings": []})

    @pytest.mark.asyncio
    async def test_list_newest_first(self, sql_store, owner_id):
        now = datetime.now(timezone.utc)
        older = await sql_store.create_upload_batch(
            UploadBatch(owner_id=owner_id, file_name="old.csv", created_at=now - timedelta(hours=1))
        )
        newer = await sql_store.create_upload_batch(UploadBatch(owner_id=owner_id, file_name="new.csv", created_at=now))

        assert [b.id for b in await sql_store.list_upload_batches(owner_id)] == [newer.id, older.id]


class TestSqlIngestion:

    @pytest.mark.asyncio
    async def test_pipeline_end_to_end(self, sql_store, owner_id, csv_factory, bank_rows):
        pipeline = IngestionPipeline(sql_store, format_parser=FormatParser(), seed_categories=True)
        data = csv_factory(bank_rows(5))

        first = await pipeline.ingest(data, "wells_statement.csv", "text/csv", owner_id)
        second = await pipeline.ingest(data, "wells_statement.csv", "text/csv", owner_id)

        assert first.status == UploadStatus.COMPLETED
        assert first.processed_transactions == 5
        assert second.duplicate_count == 5
        assert len(await sql_store.list_category_rules(owner_id)) == 5

        [account] = await sql_store.list_accounts(owner_id)
        assert account.institution_name_guess == "Wells Fargo"
        assert account.transaction_count == 5
