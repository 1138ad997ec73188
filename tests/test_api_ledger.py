"""Tests for the ledger API endpoints."""

from tvorai.db.schema import Base


class TestConsume:
    """POST /consume debits credits."""

    def test_scenario_through_http(self, client, store, subscribe):
        """Two 320 debits succeed, a 400 debit is rejected with the balance."""
        subscribe(store, wp_user_id=42, monthly_credit_limit=1000)

        first = client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 320})
        assert first.status_code == 200
        assert first.json() == {"ok": True, "credits_remaining": 680, "charged": 320}

        second = client.post("/consume", json={"wp_user_id": "42", "credits_spent": "320"})
        assert second.json()["credits_remaining"] == 360

        third = client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 400})
        assert third.status_code == 402
        body = third.json()
        assert body["error"] == "INSUFFICIENT_CREDITS"
        assert body["credits_remaining"] == 360
        assert body["required"] == 400

    def test_priced_by_feature_type(self, client, store, subscribe):
        subscribe(store, wp_user_id=42)

        response = client.post(
            "/consume", json={"wp_user_id": 42, "feature_type": "seedream_30_t2i", "units": 2}
        )

        assert response.status_code == 200
        assert response.json()["charged"] == 240
        assert response.json()["credits_remaining"] == 760

    def test_video_tier_from_metadata(self, client, store, subscribe):
        subscribe(store, wp_user_id=42)

        response = client.post(
            "/consume",
            json={"wp_user_id": 42, "feature_type": "kling_v25_t2v", "metadata": {"duration": 10}},
        )

        assert response.json()["charged"] == 640

    def test_missing_user(self, client):
        response = client.post("/consume", json={"explicit_cost": 10})
        assert response.status_code == 400
        assert response.json()["error"] == "MISSING_FIELDS"
        assert response.json()["fields"] == ["wp_user_id"]

    def test_missing_cost_and_feature(self, client):
        response = client.post("/consume", json={"wp_user_id": 42})
        assert response.status_code == 400
        assert response.json()["fields"] == ["feature_type"]

    def test_unknown_feature(self, client, store, subscribe):
        subscribe(store, wp_user_id=42)
        response = client.post("/consume", json={"wp_user_id": 42, "feature_type": "teleport"})
        assert response.status_code == 400
        assert response.json()["error"] == "UNKNOWN_FEATURE_TYPE"

    def test_unknown_user(self, client):
        response = client.post("/consume", json={"wp_user_id": 999, "explicit_cost": 1})
        assert response.status_code == 404
        assert response.json()["error"] == "USER_NOT_FOUND"

    def test_inactive_subscription(self, client, store, subscribe):
        subscribe(store, wp_user_id=42, active=False)
        response = client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 1})
        assert response.status_code == 403
        assert response.json()["error"] == "SUBSCRIPTION_INACTIVE"

    def test_non_numeric_cost_is_invalid_request(self, client):
        response = client.post("/consume", json={"wp_user_id": 42, "explicit_cost": "lots"})
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"

    def test_store_failure_is_db_error(self, client, store):
        """A broken store yields 500 DB_ERROR without internals."""
        Base.metadata.drop_all(store.engine)

        response = client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 1})

        assert response.status_code == 500
        assert response.json() == {"error": "DB_ERROR", "detail": "database operation failed"}


class TestUsage:
    """GET /usage/{wp_user_id}."""

    def test_report(self, client, store, subscribe):
        subscribe(store, wp_user_id=42, monthly_credit_limit=1000, plan_id=2)
        client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 320})
        client.post(
            "/consume",
            json={"wp_user_id": 42, "feature_type": "merge_face", "metadata": {"task": "m1"}},
        )

        response = client.get("/usage/42")

        assert response.status_code == 200
        body = response.json()
        assert body["plan_id"] == 2
        assert body["monthly_credit_limit"] == 1000
        assert body["active"] is True
        assert body["credits_remaining"] == 440
        assert body["cycle_start"] == "2025-01-01"
        assert body["cycle_end"] == "2025-01-31"
        assert [u["feature_type"] for u in body["recent_usage"]] == ["merge_face", "generic"]
        assert body["recent_usage"][0]["metadata"] == {"task": "m1"}
        assert body["recent_usage"][1]["metadata"] == {"units": 1}

    def test_history_limit_from_settings(self, client, store, subscribe, settings):
        subscribe(store, wp_user_id=42)
        for _ in range(settings.USAGE_HISTORY_LIMIT + 2):
            client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 1})

        body = client.get("/usage/42").json()

        assert len(body["recent_usage"]) == settings.USAGE_HISTORY_LIMIT

    def test_unknown_user(self, client):
        response = client.get("/usage/404")
        assert response.status_code == 404
        assert response.json()["error"] == "USER_NOT_FOUND"


class TestPricing:
    def test_price_table(self, client):
        body = client.get("/pricing").json()
        assert body["base"]["kling_v25_t2v"] == 320
        assert "kling_v25_i2v_imagine" in body["video_tiers"]

    def test_quote(self, client):
        response = client.post(
            "/pricing/quote",
            json={"feature_type": "kling_v25_i2v_imagine", "metadata": {"duration": 10}},
        )
        assert response.status_code == 200
        assert response.json() == {"feature_type": "kling_v25_i2v_imagine", "cost": 600}

    def test_quote_unknown_feature(self, client):
        response = client.post("/pricing/quote", json={"feature_type": "teleport"})
        assert response.status_code == 400


class TestIdentityRange:
    """Identities outside the BIGINT range are rejected before the store."""

    def test_usage_path_too_large(self, client):
        response = client.get(f"/usage/{10**30}")
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"

    def test_usage_path_negative(self, client):
        response = client.get("/usage/-1")
        assert response.status_code == 400

    def test_consume_user_too_large(self, client):
        response = client.post("/consume", json={"wp_user_id": 10**30, "explicit_cost": 1})
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"

    def test_consume_cost_too_large(self, client, store, subscribe):
        subscribe(store, wp_user_id=42)
        response = client.post("/consume", json={"wp_user_id": 42, "explicit_cost": 10**30})
        assert response.status_code == 400

    def test_largest_identity_is_a_plain_miss(self, client):
        response = client.get(f"/usage/{2**63 - 1}")
        assert response.status_code == 404
