"""Integration tests for connection API endpoints."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

from integrations.exceptions import BridgeAuthError
from models import Account, Connection, LinkedAccount, SyncRun
from services.exceptions import ConnectionDeletedError
from tests.fixtures import create_entry, create_linked_account, create_sync_run, sample_snapshot


def test_create_connection(client, db):
    response = client.post(
        "/api/connections",
        json={"name": "Household", "access_url": "https://user:pw@bridge.example.com/simplefin"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Household"
    assert data["status"] == "active"
    assert data["sync_status_summary"] is None
    assert "access_url" not in data
    assert db.query(Connection).count() == 1


def test_create_connection_rejects_setup_token(client, db):
    response = client.post(
        "/api/connections",
        json={"name": "Household", "access_url": "aHR0cHM6Ly9zZXR1cA=="},
    )

    assert response.status_code == 400
    assert db.query(Connection).count() == 0


def test_list_connections_hides_flagged(client, db, connection):
    db.add(Connection(name="Old", access_url="https://bridge.example.com/old", scheduled_for_deletion=True))
    db.commit()

    response = client.get("/api/connections")

    assert response.status_code == 200
    assert [c["connection_id"] for c in response.json()] == [connection.id]


def test_status_report(client, db, connection, account):
    create_linked_account(db, connection, "ACT-1", account=account)
    create_linked_account(db, connection, "ACT-2")
    create_entry(db, account, "P1", date.today() - timedelta(days=20), pending=True)
    create_sync_run(
        db,
        connection,
        sync_stats={"total_accounts": 2, "linked_accounts": 1, "unlinked_accounts": 1, "pending_reconciled": 1},
        error="Too many requests. Please make fewer requests.",
    )
    connection.last_synced_at = datetime.now(timezone.utc)
    db.commit()

    response = client.get(f"/api/connections/{connection.id}/status")

    assert response.status_code == 200
    data = response.json()
    assert data["sync_status_summary"] == "1 synced, 1 need setup"
    assert data["needs_attention"] is True
    assert "Accounts need setup" in data["attention_summary"]
    assert data["reconciled_status"] == {
        "count": 1,
        "message": "1 duplicate pending transaction reconciled",
    }
    assert data["stale_pending_status"]["count"] == 1
    assert data["stale_pending_status"]["accounts"] == ["Everyday Checking"]
    assert data["rate_limited_message"] is not None


def test_status_404_for_unknown_or_flagged(client, db, connection):
    assert client.get("/api/connections/missing/status").status_code == 404

    connection.scheduled_for_deletion = True
    db.commit()
    assert client.get(f"/api/connections/{connection.id}/status").status_code == 404


def test_stale_pending_custom_days(client, db, connection, account):
    create_linked_account(db, connection, "ACT-1", account=account)
    create_entry(db, account, "P1", date.today() - timedelta(days=5), pending=True)

    default = client.get(f"/api/connections/{connection.id}/stale-pending")
    custom = client.get(f"/api/connections/{connection.id}/stale-pending", params={"days": 3})

    assert default.json()["count"] == 0
    assert custom.json() == {
        "count": 1,
        "accounts": ["Everyday Checking"],
        "message": "1 pending transaction older than 3 days",
    }


def test_sync_with_snapshot(client, db, connection, account, scheduler):
    create_linked_account(db, connection, "ACT-checking", account=account)

    response = client.post(
        f"/api/connections/{connection.id}/sync",
        json={"snapshot": sample_snapshot(), "window_start_date": "2026-03-01"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["sync_stats"]["total_accounts"] == 2
    assert data["window_start_date"] == "2026-03-01"
    assert [r.account_id for r in scheduler.requests] == [account.id]
    assert db.query(LinkedAccount).count() == 2


def test_sync_fetches_from_bridge_without_snapshot(client, connection):
    with patch("services.connection_sync_service.BridgeClient") as mock_cls:
        mock_cls.return_value.fetch_accounts.return_value = sample_snapshot()

        response = client.post(f"/api/connections/{connection.id}/sync")

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    mock_cls.return_value.fetch_accounts.assert_called_once()


def test_sync_bridge_auth_failure_reported_on_run(client, db, connection):
    with patch("services.connection_sync_service.BridgeClient") as mock_cls:
        mock_cls.return_value.fetch_accounts.side_effect = BridgeAuthError("Forbidden")

        response = client.post(f"/api/connections/{connection.id}/sync")

    assert response.status_code == 200
    assert response.json()["status"] == "failed"
    assert response.json()["error"] == "Forbidden"
    db.refresh(connection)
    assert connection.status == "needs_update"


def test_sync_rejects_inverted_window(client, connection):
    response = client.post(
        f"/api/connections/{connection.id}/sync",
        json={"window_start_date": "2026-03-15", "window_end_date": "2026-03-01"},
    )

    assert response.status_code == 422


def test_sync_conflict_when_deleted_mid_request(client, connection, sync_service):
    with patch.object(
        sync_service, "sync_connection", side_effect=ConnectionDeletedError(connection.id)
    ):
        response = client.post(
            f"/api/connections/{connection.id}/sync", json={"snapshot": sample_snapshot()}
        )

    assert response.status_code == 409


def test_sync_unexpected_error_is_500(client, connection, sync_service):
    with patch.object(sync_service, "sync_connection", side_effect=RuntimeError("boom")):
        response = client.post(
            f"/api/connections/{connection.id}/sync", json={"snapshot": sample_snapshot()}
        )

    assert response.status_code == 500
    assert "boom" not in response.json()["detail"]


def test_list_linked_accounts(client, db, connection, account):
    create_linked_account(db, connection, "ACT-1", account=account)
    create_linked_account(db, connection, "ACT-2")

    response = client.get(f"/api/connections/{connection.id}/linked-accounts")

    assert response.status_code == 200
    data = response.json()
    assert [la["external_id"] for la in data] == ["ACT-1", "ACT-2"]
    assert data[0]["account_id"] == account.id
    assert data[1]["account_id"] is None


class TestLinkAccount:
    def test_link_to_existing_account(self, client, db, connection, account):
        linked = create_linked_account(db, connection, "ACT-1")

        response = client.post(
            f"/api/connections/{connection.id}/linked-accounts/{linked.id}/link",
            json={"account_id": account.id},
        )

        assert response.status_code == 200
        assert response.json()["account_id"] == account.id

    def test_link_creates_account(self, client, db, connection):
        linked = create_linked_account(
            db, connection, "ACT-1", name="Rewards Card", org_data={"name": "Card Co"}
        )

        response = client.post(
            f"/api/connections/{connection.id}/linked-accounts/{linked.id}/link", json={}
        )

        assert response.status_code == 200
        created = db.get(Account, response.json()["account_id"])
        assert created.name == "Rewards Card"
        assert created.institution_name == "Card Co"

    def test_already_linked_is_conflict(self, client, db, connection, account, second_account):
        linked = create_linked_account(db, connection, "ACT-1", account=account)

        response = client.post(
            f"/api/connections/{connection.id}/linked-accounts/{linked.id}/link",
            json={"account_id": second_account.id},
        )

        assert response.status_code == 409
        db.refresh(linked)
        assert linked.account_id == account.id

    def test_legacy_linked_is_conflict(self, client, db, connection, account, second_account):
        linked = create_linked_account(db, connection, "ACT-1", legacy_account=account)

        response = client.post(
            f"/api/connections/{connection.id}/linked-accounts/{linked.id}/link",
            json={"account_id": second_account.id},
        )

        assert response.status_code == 409
        db.refresh(linked)
        assert linked.account_id is None
        assert linked.legacy_account_id == account.id

    def test_linked_account_of_other_connection(self, client, db, connection):
        other = Connection(name="Other", access_url="https://bridge.example.com/other")
        db.add(other)
        db.commit()
        linked = create_linked_account(db, other, "ACT-1")

        response = client.post(
            f"/api/connections/{connection.id}/linked-accounts/{linked.id}/link", json={}
        )

        assert response.status_code == 404

    def test_unknown_account(self, client, db, connection):
        linked = create_linked_account(db, connection, "ACT-1")

        response = client.post(
            f"/api/connections/{connection.id}/linked-accounts/{linked.id}/link",
            json={"account_id": "missing"},
        )

        assert response.status_code == 404


def test_delete_connection_removes_it_in_background(client, db, session_factory, connection, account):
    create_linked_account(db, connection, "ACT-1", account=account)
    create_sync_run(db, connection)
    connection_id = connection.id

    with patch("api.connections.get_session_local", return_value=session_factory):
        response = client.delete(f"/api/connections/{connection_id}")

    assert response.status_code == 202
    assert response.json() == {"id": connection_id, "scheduled_for_deletion": True}
    db.expire_all()
    assert db.query(Connection).filter(Connection.id == connection_id).count() == 0
    assert db.query(LinkedAccount).count() == 0
    assert db.query(SyncRun).count() == 0
    assert db.query(Account).filter(Account.id == account.id).count() == 1
