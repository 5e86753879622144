"""
Tests for the HTTP surface.

The app is built around in-memory components, so every request runs the
real orchestrators and Rules Store without touching a spreadsheet.
"""

import pytest
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient

from app.main import create_app
from decider.config import Settings
from decider.models.activity import CheckIn
from decider.models.audit import AuditEventType
from decider.models.ledger import BalanceSnapshot
from decider.orchestrator import create_app_components
from decider.services.storage import InMemoryStorage, StorageError

from conftest import RUN_DATE


class BrokenDebtStorage(InMemoryStorage):
    async def list_debts(self, *args, **kwargs):
        raise StorageError("debt sheet unavailable")


class BrokenRuleStorage(InMemoryStorage):
    async def list_rules(self):
        raise StorageError("rules sheet unavailable")


@pytest.fixture
def client(components) -> TestClient:
    return TestClient(create_app(components))


def _seed_earnings(storage: InMemoryStorage) -> None:
    storage.checkins.append(CheckIn(checkin_date=RUN_DATE))
    storage.balances.append(BalanceSnapshot(
        snapshot_date=date(2024, 6, 11), account_b_balance=Decimal("100"),
    ))
    storage.balances.append(BalanceSnapshot(
        snapshot_date=RUN_DATE, account_b_balance=Decimal("140"),
    ))


class TestHealth:
    def test_health(self, client):
        """Test the health check."""
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["settings"]["app"] is True


class TestReconcile:
    """Tests for the reconciliation endpoints."""

    def test_daily_by_default(self, storage, client):
        """Test that the run type defaults to daily."""
        _seed_earnings(storage)

        response = client.post("/reconcile", json={"date": "2024-06-12"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["type"] == "daily"
        assert body["results"]["run_date"] == "2024-06-12"
        assert body["results"]["bonus_total"] == "40.00"
        assert body["results"]["summary"] == (
            "Your $40.00 Uber earnings earned a matching bonus. "
            "Today's bonuses total $40.00."
        )

    def test_weekly_through_reconcile(self, client):
        """Test type=weekly on the shared endpoint."""
        response = client.post("/reconcile", json={"type": "weekly", "date": "2024-06-05"})

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "weekly"
        assert body["results"]["week_start"] == "2024-06-03"
        assert body["results"]["week_end"] == "2024-06-09"

    def test_weekly_endpoint(self, client):
        """Test the dedicated weekly endpoint."""
        response = client.post("/reconcile/weekly", json={"week_start": "2024-06-03"})

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["week_start"] == "2024-06-03"
        assert results["summary"].startswith("Completed 0 yoga and 0 lifting sessions.")

    def test_bad_date(self, client):
        """Test that a malformed date is a 400."""
        response = client.post("/reconcile", json={"date": "06/12/2024"})
        assert response.status_code == 400
        assert response.json()["field"] == "date"

    def test_bad_type(self, client):
        """Test that an unknown run type is a 400."""
        response = client.post("/reconcile", json={"type": "monthly", "date": "2024-06-12"})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "type must be 'daily' or 'weekly', got 'monthly'",
            "field": "type",
        }

    def test_failed_run_is_500(self, base_rules, rng):
        """Test that an aborted run maps to a reconciliation_error."""
        components = create_app_components(
            settings=Settings(), storage=BrokenDebtStorage(rules=base_rules), rng=rng,
        )
        client = TestClient(create_app(components))

        response = client.post("/reconcile", json={"date": "2024-06-12"})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["type"] == "reconciliation_error"
        assert "debt sheet unavailable" in body["error"]
        assert "ReconciliationError" in body["stack"]


class TestRules:
    """Tests for the rules endpoints."""

    def test_status(self, client):
        """Test the rule listing."""
        response = client.get("/rules/status")

        assert response.status_code == 200
        body = response.json()
        assert body["total_rules"] == 7
        assert body["modified_count"] == 0
        assert body["rules"]["perfect_week_bonus"]["base_value"] == "$25"
        assert body["issues"] == []

    def test_status_reports_drift(self, storage, client):
        """Test that a hand-edited calculated value is flagged."""
        storage.rules["perfect_week_bonus"] = storage.rules["perfect_week_bonus"].model_copy(
            update={"calculated_value": "$99"},
        )

        issues = client.get("/rules/status").json()["issues"]

        assert [(i["rule_name"], i["issue_type"]) for i in issues] == [
            ("perfect_week_bonus", "drift"),
        ]

    def test_unreadable_rules_sheet_is_json_500(self, base_rules, rng):
        """Test that a storage failure outside a run still answers with JSON."""
        storage = BrokenRuleStorage(rules=base_rules)
        components = create_app_components(settings=Settings(), storage=storage, rng=rng)
        client = TestClient(create_app(components))

        response = client.get("/rules/status")

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "rules sheet unavailable",
            "type": "storage_error",
        }
        [event] = [e for e in storage.events if e.event_type == AuditEventType.SYSTEM_ERROR]
        assert event.details == {"path": "/rules/status"}

    def test_modify(self, storage, client):
        """Test a modifier update."""
        response = client.post("/rules/modify", json={
            "rule_name": "perfect_week_bonus",
            "modifier_percent": "20%",
            "reason": "Hard month",
        })

        assert response.status_code == 200
        modification = response.json()["modification"]
        assert modification["new_calculated_value"] == "$30.00"
        assert storage.rules["perfect_week_bonus"].modifier_reason == "Hard month"

        status = client.get("/rules/status").json()
        assert status["modified_count"] == 1
        assert list(status["modified_rules"]) == ["perfect_week_bonus"]

    def test_modify_missing_field(self, client):
        """Test that a missing modifier is a 400."""
        response = client.post("/rules/modify", json={"rule_name": "perfect_week_bonus"})
        assert response.status_code == 400
        assert response.json()["field"] == "modifier_percent"

    def test_modify_rejects_full_reduction(self, client):
        """Test that -100% or below is a 400."""
        response = client.post("/rules/modify", json={
            "rule_name": "perfect_week_bonus",
            "modifier_percent": -100,
        })
        assert response.status_code == 400

    def test_modify_unknown_rule(self, client):
        """Test that an unknown rule is a 404."""
        response = client.post("/rules/modify", json={
            "rule_name": "no_such_rule",
            "modifier_percent": 10,
        })
        assert response.status_code == 404
        assert response.json()["rule_name"] == "no_such_rule"

    def test_reset(self, storage, client):
        """Test that reset restores the base value."""
        client.post("/rules/modify", json={
            "rule_name": "perfect_week_bonus",
            "modifier_percent": 20,
        })
        response = client.post("/rules/reset", json={"rule_name": "perfect_week_bonus"})

        assert response.status_code == 200
        assert response.json()["modification"]["new_calculated_value"] == "$25"
        assert not storage.rules["perfect_week_bonus"].is_modified


class TestStatus:
    """Tests for the read-only status endpoints."""

    def test_daily_status(self, storage, client):
        """Test the daily view after a run."""
        _seed_earnings(storage)
        client.post("/reconcile", json={"date": "2024-06-12"})

        response = client.get("/status/daily", params={"date": "2024-06-12"})

        assert response.status_code == 200
        status = response.json()["status"]
        assert status["bonus_total"] == "40.00"
        assert status["debt_summary"]["debt_free"] is True
        assert storage.weeks == {}

    def test_weekly_status(self, client):
        """Test the weekly view after a weekly run."""
        client.post("/reconcile/weekly", json={"week_start": "2024-06-03"})

        response = client.get("/status/weekly", params={"week_start": "2024-06-05"})

        assert response.status_code == 200
        status = response.json()["status"]
        assert status["week_start"] == "2024-06-03"
        assert status["bonus_total"] == "50.00"
        assert status["adjustments"]["savings_rate"] == 60

    def test_bad_status_date(self, client):
        """Test that a malformed date is a 400."""
        response = client.get("/status/weekly", params={"week_start": "next monday"})
        assert response.status_code == 400
        assert response.json()["field"] == "week_start"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
