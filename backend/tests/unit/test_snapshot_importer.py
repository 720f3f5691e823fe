"""Unit tests for SnapshotImporter."""

from decimal import Decimal

from models import LinkedAccount, SyncRun
from models.sync_run import RUN_SYNCING
from services.snapshot_importer import SnapshotImporter, connection_org_data, snapshot_errors
from tests.fixtures import create_linked_account, sample_snapshot


def _new_run(db, connection):
    run = SyncRun(connection_id=connection.id, status=RUN_SYNCING)
    db.add(run)
    db.flush()
    return run


class TestImportSnapshot:
    def test_stores_payload_verbatim(self, db, connection):
        snapshot = sample_snapshot()

        SnapshotImporter.import_snapshot(db, connection, snapshot)
        db.commit()
        db.refresh(connection)

        assert connection.raw_payload == snapshot

    def test_does_not_touch_institution_fields(self, db, connection):
        SnapshotImporter.import_snapshot(db, connection, sample_snapshot())

        assert connection.institution_name is None
        assert connection.institution_domain is None


class TestApplyInstitutionData:
    def test_assigns_resolved_fields(self, connection):
        org = {"id": "bank-1", "name": "First Example Bank", "url": "https://www.firstexample.com"}

        SnapshotImporter.apply_institution_data(connection, org)

        assert connection.institution_id == "bank-1"
        assert connection.institution_name == "First Example Bank"
        assert connection.institution_domain == "firstexample.com"
        assert connection.institution_url == "https://www.firstexample.com"
        assert connection.raw_institution_payload == org

    def test_idempotent(self, connection):
        """Applying the same org data twice leaves the same fields."""
        org = {"name": "Credit Union", "sfin-url": "https://cu.example.org"}

        SnapshotImporter.apply_institution_data(connection, org)
        first = (
            connection.institution_name,
            connection.institution_domain,
            connection.institution_url,
            connection.raw_institution_payload,
        )
        SnapshotImporter.apply_institution_data(connection, org)

        assert (
            connection.institution_name,
            connection.institution_domain,
            connection.institution_url,
            connection.raw_institution_payload,
        ) == first

    def test_bad_url_keeps_name(self, connection):
        SnapshotImporter.apply_institution_data(connection, {"name": "Odd Bank", "url": "http://[broken"})

        assert connection.institution_name == "Odd Bank"
        assert connection.institution_domain is None


class TestUpsertLinkedAccounts:
    def test_creates_linked_accounts(self, db, connection):
        upserted = SnapshotImporter.upsert_linked_accounts(db, connection, sample_snapshot())
        db.commit()

        assert [la.external_id for la in upserted] == ["ACT-checking", "ACT-savings"]
        checking = upserted[0]
        assert checking.name == "Everyday Checking"
        assert checking.current_balance == Decimal("1520.55")
        assert checking.available_balance == Decimal("1400.00")
        assert checking.org_data["name"] == "First Example Bank"
        assert len(checking.raw_transactions_payload) == 2
        assert "transactions" not in checking.raw_payload
        assert checking.account_id is None

    def test_updates_existing_and_keeps_link(self, db, connection, account):
        existing = create_linked_account(db, connection, "ACT-checking", account=account)

        SnapshotImporter.upsert_linked_accounts(db, connection, sample_snapshot())
        db.commit()

        rows = db.query(LinkedAccount).filter(LinkedAccount.connection_id == connection.id).all()
        assert len(rows) == 2
        db.refresh(existing)
        assert existing.account_id == account.id
        assert existing.name == "Everyday Checking"

    def test_skips_records_without_id_and_duplicates(self, db, connection):
        snapshot = {
            "accounts": [
                {"name": "No Id"},
                {"id": "A1", "name": "First"},
                {"id": "A1", "name": "Again"},
                "garbage",
            ]
        }

        upserted = SnapshotImporter.upsert_linked_accounts(db, connection, snapshot)

        assert [la.name for la in upserted] == ["First"]


class TestImportIntoRun:
    def test_records_account_counts(self, db, connection, account):
        create_linked_account(db, connection, "ACT-checking", account=account)
        run = _new_run(db, connection)

        SnapshotImporter.import_into_run(db, connection, sample_snapshot(), run)

        assert run.sync_stats["total_accounts"] == 2
        assert run.sync_stats["linked_accounts"] == 1
        assert run.sync_stats["unlinked_accounts"] == 1
        assert run.sync_stats["bridge_errors"] == 0
        assert run.status_text is None

    def test_applies_connection_institution(self, db, connection):
        run = _new_run(db, connection)

        SnapshotImporter.import_into_run(db, connection, sample_snapshot(), run)

        assert connection.institution_name == "First Example Bank"
        assert connection.institution_domain == "firstexample.com"

    def test_bridge_errors_joined_into_status_text(self, db, connection):
        snapshot = sample_snapshot()
        snapshot["errors"] = ["Connection to First Example Bank may need attention", "Timeout"]
        run = _new_run(db, connection)

        SnapshotImporter.import_into_run(db, connection, snapshot, run)

        assert run.status_text == "Connection to First Example Bank may need attention; Timeout"
        assert run.sync_stats["bridge_errors"] == 2

    def test_empty_snapshot(self, db, connection):
        run = _new_run(db, connection)

        linked = SnapshotImporter.import_into_run(db, connection, {"accounts": []}, run)

        assert linked == []
        assert run.sync_stats["total_accounts"] == 0
        assert connection.institution_name is None


def test_connection_org_prefers_top_level_org():
    snapshot = sample_snapshot()
    snapshot["org"] = {"name": "Aggregate Org"}
    assert connection_org_data(snapshot) == {"name": "Aggregate Org"}


def test_connection_org_falls_back_to_first_account():
    assert connection_org_data(sample_snapshot())["id"] == "bank-1"


def test_snapshot_errors_ignores_non_list():
    assert snapshot_errors({"errors": "boom"}) == []
