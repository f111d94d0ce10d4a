"""HTTP API tests."""

import pytest

from services.usage_meter import TOTAL_CREDITS, USAGE_STATE_KEY


SALES_CSV = (
    b"region,amount,date\n"
    b"North,100,2024-01-05\n"
    b"South,250,2024-01-07\n"
    b"North,,2024-01-09\n"
    b"East,50,2024-01-02\n"
)


def upload(client, content=SALES_CSV, filename="sales.csv"):
    return client.post("/api/upload/", files={"file": (filename, content, "text/csv")})


@pytest.fixture
def dataset_id(client):
    response = upload(client)
    assert response.status_code == 200
    return response.json()["datasetId"]


class TestUpload:

    def test_upload_returns_profile(self, client):
        response = upload(client)
        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        assert body["fileName"] == "sales.csv"
        assert body["datasetProfile"] == {"totalRows": 4, "totalCols": 3, "emptyCells": 1}
        assert body["qualityScore"] == 92
        assert [c["inferredType"] for c in body["columnProfiles"]] == ["Categorical", "Numeric", "Temporal"]

    def test_invalid_extension(self, client):
        response = upload(client, filename="sales.txt")
        assert response.status_code == 400

    def test_empty_file(self, client):
        response = upload(client, content=b"")
        assert response.status_code == 400

    def test_header_only(self, client):
        response = upload(client, content=b"a,b\n")
        assert response.status_code == 400
        assert "no data rows" in response.json()["detail"]

    def test_get_profile(self, client, dataset_id):
        response = client.get(f"/api/upload/{dataset_id}/profile")
        assert response.status_code == 200
        assert response.json()["columnProfiles"][1]["stats"]["max"] == 250

    def test_unknown_dataset(self, client):
        assert client.get("/api/upload/doesnotexist/profile").status_code == 404

    def test_typed_rows(self, client, dataset_id):
        rows = client.get(f"/api/upload/{dataset_id}/rows").json()
        assert rows[0] == {"region": "North", "amount": 100, "date": "2024-01-05"}

    def test_override_column_type(self, client, dataset_id):
        response = client.put(f"/api/upload/{dataset_id}/columns/1", json={"inferredType": "Categorical"})
        assert response.status_code == 200

        amount = response.json()["columnProfiles"][1]
        assert amount["inferredType"] == "Categorical"
        assert amount["stats"]["uniqueValues"] == 3

        stored = client.get(f"/api/upload/{dataset_id}/profile").json()
        assert stored["columnProfiles"][1]["inferredType"] == "Categorical"
        assert stored["columnProfiles"][0]["inferredType"] == "Categorical"

    def test_override_bad_index(self, client, dataset_id):
        response = client.put(f"/api/upload/{dataset_id}/columns/7", json={"inferredType": "Numeric"})
        assert response.status_code == 400

    def test_delete(self, client, dataset_id):
        assert client.delete(f"/api/upload/{dataset_id}").status_code == 200
        assert client.get(f"/api/upload/{dataset_id}/profile").status_code == 404


class TestCharts:

    def test_pie(self, client, dataset_id):
        response = client.post(
            f"/api/charts/{dataset_id}/transform",
            json={"chartType": "pie", "xAxisKey": "region", "yAxisKeys": ["amount"]},
        )
        assert response.status_code == 200
        assert response.json()["data"] == [
            {"name": "North", "value": 101},
            {"name": "South", "value": 250},
            {"name": "East", "value": 50},
        ]

    def test_bar(self, client, dataset_id):
        response = client.post(
            f"/api/charts/{dataset_id}/transform",
            json={"chartType": "bar", "xAxisKey": "region", "yAxisKeys": ["amount"]},
        )
        assert len(response.json()["data"]) == 4

    def test_unsupported_chart(self, client, dataset_id):
        response = client.post(
            f"/api/charts/{dataset_id}/transform",
            json={"chartType": "radar", "xAxisKey": "region", "yAxisKeys": ["amount"]},
        )
        assert response.status_code == 400
        assert "radar" in response.json()["detail"]

    def test_missing_key(self, client, dataset_id):
        response = client.post(
            f"/api/charts/{dataset_id}/transform",
            json={"chartType": "line", "xAxisKey": "date", "yAxisKeys": ["profit"]},
        )
        assert response.status_code == 400
        assert "profit" in response.json()["detail"]

    def test_kpi(self, client, dataset_id):
        response = client.post(
            f"/api/charts/{dataset_id}/kpi",
            json={"valueColumn": "amount", "aggregation": "SUM"},
        )
        assert response.status_code == 200
        assert response.json()["value"] == "400"

    def test_kpi_unknown_aggregation(self, client, dataset_id):
        response = client.post(
            f"/api/charts/{dataset_id}/kpi",
            json={"valueColumn": "amount", "aggregation": "MODE"},
        )
        assert response.status_code == 400

    def test_histogram(self, client, dataset_id):
        response = client.get(f"/api/charts/{dataset_id}/histogram/amount", params={"bins": 2})
        assert response.status_code == 200
        bins = response.json()
        assert [b["count"] for b in bins] == [2, 1]
        assert bins[0]["label"] == "50.0-150.0"

    def test_histogram_unknown_column(self, client, dataset_id):
        response = client.get(f"/api/charts/{dataset_id}/histogram/profit")
        assert response.status_code == 400

    def test_sparkline(self, client, dataset_id):
        points = client.get(f"/api/charts/{dataset_id}/sparkline").json()
        assert [p["name"] for p in points] == ["2024-01-02", "2024-01-05", "2024-01-07"]


class TestUsage:

    def test_status(self, client):
        body = client.get("/api/usage").json()
        assert body["remaining"] == TOTAL_CREDITS
        assert body["periodKey"] == "2024-03"
        assert body["resetsOn"] == "April 1"

    def test_authorize_then_debit(self, client):
        request = {"action": "dashboard_generation"}
        assert client.post("/api/usage/authorize", json=request).status_code == 200

        body = client.post("/api/usage/debit", json=request).json()
        assert body["remaining"] == TOTAL_CREDITS - 25
        assert body["used"] == 25

    def test_declined_is_402(self, client):
        request = {"action": "synthetic_row", "units": TOTAL_CREDITS + 1}
        response = client.post("/api/usage/authorize", json=request)

        assert response.status_code == 402
        assert "April 1" in response.json()["detail"]

    def test_debit_after_credits_spent_is_402(self, client, temp_storage):
        temp_storage.set_value(USAGE_STATE_KEY, {"balance": 25, "periodKey": "2024-03"})
        request = {"action": "dashboard_generation"}

        assert client.post("/api/usage/authorize", json=request).status_code == 200
        assert client.post("/api/usage/authorize", json=request).status_code == 200

        assert client.post("/api/usage/debit", json=request).status_code == 200
        second = client.post("/api/usage/debit", json=request)

        assert second.status_code == 402
        assert "April 1" in second.json()["detail"]
        assert client.get("/api/usage").json()["remaining"] == 0

    def test_unknown_action(self, client):
        response = client.post("/api/usage/authorize", json={"action": "forecast"})
        assert response.status_code == 422


class TestDashboards:

    def test_save_load_delete(self, client, dataset_id):
        profile = client.get(f"/api/upload/{dataset_id}/profile").json()
        bundle = {
            "schema": {"header": {"kpis": []}, "body": []},
            "rows": [{"region": "North", "amount": 100}],
            "fileName": "sales.csv",
            "qaHistory": [],
            "datasetProfile": profile["datasetProfile"],
            "columnProfiles": profile["columnProfiles"],
        }

        assert client.put("/api/dashboards/Q1 review", json=bundle).status_code == 200
        assert client.get("/api/dashboards").json() == ["Q1 review"]

        loaded = client.get("/api/dashboards/Q1 review").json()
        assert loaded == bundle

        assert client.delete("/api/dashboards/Q1 review").status_code == 200
        assert client.get("/api/dashboards/Q1 review").status_code == 404

    def test_missing_dashboard(self, client):
        assert client.delete("/api/dashboards/nope").status_code == 404


class TestExport:

    def test_csv_download(self, client):
        response = client.post(
            "/api/export/csv",
            json={"rows": [{"a": 1, "b": "x"}, {"a": 2}], "fileName": "synthetic_sales.csv"},
        )
        assert response.status_code == 200
        assert "synthetic_sales.csv" in response.headers["content-disposition"]
        assert response.text.splitlines() == ["a,b", "1,x", "2,"]

    def test_no_rows(self, client):
        response = client.post("/api/export/csv", json={"rows": []})
        assert response.status_code == 400
