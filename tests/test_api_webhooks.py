"""Tests for the subscription webhook."""

from tvorai.db.schema import CreditBalance, User

PAYLOAD = {
    "wp_user_id": 42,
    "email": "user@example.com",
    "plan_id": 2,
    "monthly_credit_limit": 1000,
    "cycle_start": "2025-02-01",
    "cycle_end": "2025-02-28",
    "active": "on",
}


class TestSubscriptionWebhook:
    """POST /webhook/subscription-update."""

    def test_ingest_then_spend(self, client):
        response = client.post("/webhook/subscription-update", json=PAYLOAD)

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.json()["user_id"] > 0

        consume = client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 300})
        assert consume.json()["credits_remaining"] == 700

    def test_replay_is_idempotent(self, client, store):
        first = client.post("/webhook/subscription-update", json=PAYLOAD).json()
        second = client.post("/webhook/subscription-update", json=PAYLOAD).json()

        assert first == second
        with store.transaction() as session:
            assert session.query(User).count() == 1
            assert session.query(CreditBalance).one().credits_remaining == 1000

    def test_renewal_resets_balance(self, client):
        client.post("/webhook/subscription-update", json=PAYLOAD)
        client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 900})

        renewal = {**PAYLOAD, "cycle_start": "2025-03-01", "cycle_end": "2025-03-31"}
        client.post("/webhook/subscription-update", json=renewal)

        body = client.get("/usage/42").json()
        assert body["credits_remaining"] == 1000
        assert body["cycle_start"] == "2025-03-01"
        assert len(body["recent_usage"]) == 1

    def test_missing_cycle_end_writes_nothing(self, client, store):
        payload = {k: v for k, v in PAYLOAD.items() if k != "cycle_end"}

        response = client.post("/webhook/subscription-update", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "MISSING_FIELDS"
        assert response.json()["fields"] == ["cycle_end"]
        with store.transaction() as session:
            assert session.query(User).count() == 0

    def test_deactivation_blocks_spending(self, client):
        client.post("/webhook/subscription-update", json=PAYLOAD)
        client.post("/webhook/subscription-update", json={**PAYLOAD, "active": "off"})

        response = client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 1})

        assert response.status_code == 403

    def test_negative_limit_rejected(self, client):
        response = client.post(
            "/webhook/subscription-update", json={**PAYLOAD, "monthly_credit_limit": -5}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"

    def test_bad_date_rejected(self, client):
        response = client.post(
            "/webhook/subscription-update", json={**PAYLOAD, "cycle_start": "tomorrow"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"

    def test_identity_out_of_range_rejected(self, client, store):
        response = client.post(
            "/webhook/subscription-update", json={**PAYLOAD, "wp_user_id": str(10**30)}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"
        with store.transaction() as session:
            assert session.query(User).count() == 0
