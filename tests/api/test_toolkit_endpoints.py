"""HTTP-level tests for the /api/v1/toolkits routes."""

import pytest

BASE = "/api/v1/toolkits"


def _add(client, **overrides):
    body = {
        "name": "Helmet",
        "type": "Head Protection",
        "size": "M",
        "color": "Yellow",
        "stockCount": 10,
    }
    body.update(overrides)
    return client.post(f"{BASE}/add-toolkit", json=body)


@pytest.fixture
def helmet_doc(client):
    return _add(client).json()["data"]


# ── Envelope and insert ──────────────────────────────────────────────────────


class TestAddToolkit:

    def test_create_returns_201_envelope(self, client):
        response = _add(client)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == 201
        assert body["success"] is True
        assert body["message"] == "Toolkit created successfully"
        data = body["data"]
        assert data["totalStock"] == 10
        assert data["overallStatus"] == "available"
        variant = data["variants"][0]
        assert variant["stockCount"] == 10
        assert variant["minStockLevel"] == 5
        assert variant["stockHistory"][0]["action"] == "initial"

    def test_merge_returns_200(self, client, helmet_doc):
        response = _add(client, name="helmet", stockCount=3)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == 200
        assert body["data"]["id"] == helmet_doc["id"]
        assert body["data"]["totalStock"] == 13

    def test_snake_case_input_accepted(self, client):
        response = client.post(
            f"{BASE}/add-toolkit",
            json={"name": "Visor", "type": "Face", "stock_count": 4, "min_stock_level": 2},
        )
        assert response.status_code == 201
        assert response.json()["data"]["variants"][0]["minStockLevel"] == 2

    def test_missing_name_is_400(self, client):
        response = client.post(f"{BASE}/add-toolkit", json={"type": "Head Protection"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert "name" in body["error"]

    def test_negative_stock_is_400(self, client):
        assert _add(client, stockCount=-1).status_code == 400

    def test_insert_notifies(self, client, notifier):
        _add(client)
        assert notifier.descriptions == ["New 10 Helmet added to stock"]


# ── Read ─────────────────────────────────────────────────────────────────────


class TestRead:

    def test_get_toolkit(self, client, helmet_doc):
        response = client.get(f"{BASE}/get-toolkit/{helmet_doc['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Helmet"

    def test_get_unknown_toolkit_is_404(self, client):
        response = client.get(f"{BASE}/get-toolkit/nope")
        assert response.status_code == 404
        body = response.json()
        assert body == {
            "status": 404,
            "success": False,
            "message": "Resource not found",
            "data": None,
            "error": "Toolkit with ID nope not found",
        }

    def test_list_toolkits(self, client, helmet_doc):
        _add(client, name="Safety Gloves")
        names = [t["name"] for t in client.get(f"{BASE}/get-toolkits").json()["data"]]
        assert names == ["Safety Gloves", "Helmet"]

    def test_search(self, client, helmet_doc):
        _add(client, name="Safety Gloves")
        response = client.get(f"{BASE}/search-toolkits", params={"q": "GLOV"})
        assert [t["name"] for t in response.json()["data"]] == ["Safety Gloves"]

    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "  "}])
    def test_search_without_term_is_400(self, client, params):
        response = client.get(f"{BASE}/search-toolkits", params=params)
        assert response.status_code == 400
        assert response.json()["message"] == "Search query is required"

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/v1/nowhere")
        assert response.status_code == 404
        assert response.json()["success"] is False


# ── Reduce: the Helmet walkthrough over HTTP ─────────────────────────────────


class TestReduceStock:

    def test_helmet_walkthrough(self, client, helmet_doc):
        toolkit_id = helmet_doc["id"]
        variant_id = helmet_doc["variants"][0]["id"]
        url = f"{BASE}/reduce-stock/{toolkit_id}/{variant_id}"

        response = client.put(url, json={"quantity": 8, "person": "Ravi"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overallStatus"] == "low"
        assert data["variants"][0]["status"] == "low"
        history = data["variants"][0]["stockHistory"]
        assert len(history) == 2
        assert history[-1]["person"] == "Ravi"
        assert history[-1]["changeAmount"] == -8

        response = client.put(url, json={"quantity": 5})
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Insufficient stock"
        assert body["error"] == "Insufficient stock. Available: 2, Requested: 5"

        response = _add(client, stockCount=3)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["variants"][0]["stockCount"] == 5
        assert data["totalStock"] == 5
        history = data["variants"][0]["stockHistory"]
        assert len(history) == 3
        assert history[-1]["action"] == "updated"

    @pytest.mark.parametrize("body", [{"quantity": 0}, {"quantity": -1}, {}])
    def test_invalid_quantity_is_400(self, client, helmet_doc, body):
        url = f"{BASE}/reduce-stock/{helmet_doc['id']}/{helmet_doc['variants'][0]['id']}"
        response = client.put(url, json=body)
        assert response.status_code == 400
        assert "quantity" in response.json()["error"]

    def test_unknown_variant_is_404(self, client, helmet_doc):
        response = client.put(f"{BASE}/reduce-stock/{helmet_doc['id']}/nope", json={"quantity": 1})
        assert response.status_code == 404
        assert response.json()["error"] == "Variant with ID nope not found"

    def test_hand_over_notification(self, client, notifier, helmet_doc):
        url = f"{BASE}/reduce-stock/{helmet_doc['id']}/{helmet_doc['variants'][0]['id']}"
        client.put(url, json={"quantity": 2, "person": "Ravi"})
        assert notifier.descriptions[-1] == "2 Size:M Color:Yellow Helmet handed over to Ravi"


# ── Update ───────────────────────────────────────────────────────────────────


class TestUpdate:

    def test_update_variant_ledgers_stock_change(self, client, helmet_doc):
        url = f"{BASE}/update-variant/{helmet_doc['id']}/{helmet_doc['variants'][0]['id']}"
        response = client.put(url, json={"stockCount": 3, "reason": "Audit", "updatedBy": "Ops"})
        assert response.status_code == 200
        variant = response.json()["data"]["variants"][0]
        assert variant["stockCount"] == 3
        assert variant["status"] == "low"
        entry = variant["stockHistory"][-1]
        assert (entry["action"], entry["reason"], entry["updatedBy"]) == ("reduced", "Audit", "Ops")

    def test_update_variant_ignores_unknown_fields(self, client, helmet_doc):
        url = f"{BASE}/update-variant/{helmet_doc['id']}/{helmet_doc['variants'][0]['id']}"
        response = client.put(url, json={"status": "out", "stockHistory": [], "inuse": True})
        assert response.status_code == 200
        variant = response.json()["data"]["variants"][0]
        assert variant["status"] == "available"
        assert variant["inuse"] is True
        assert len(variant["stockHistory"]) == 1

    def test_update_toolkit_renames(self, client, helmet_doc):
        response = client.put(
            f"{BASE}/update-toolkit/{helmet_doc['id']}", json={"name": "Hard Hat"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Hard Hat"

    def test_update_toolkit_duplicate_name_is_400(self, client, helmet_doc):
        gloves = _add(client, name="Safety Gloves").json()["data"]
        response = client.put(f"{BASE}/update-toolkit/{gloves['id']}", json={"name": "helmet"})
        assert response.status_code == 400

    def test_update_toolkit_reconciles_variants(self, client, helmet_doc):
        variant_id = helmet_doc["variants"][0]["id"]
        response = client.put(
            f"{BASE}/update-toolkit/{helmet_doc['id']}",
            json={
                "variants": [
                    {"id": variant_id, "stockCount": 0},
                    {"size": "L", "color": "White", "stockCount": 6},
                ]
            },
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert [v["size"] for v in data["variants"]] == ["M", "L"]
        assert data["totalStock"] == 6
        assert data["overallStatus"] == "available"

    def test_update_toolkit_with_empty_variant_list_is_400(self, client, helmet_doc):
        response = client.put(f"{BASE}/update-toolkit/{helmet_doc['id']}", json={"variants": []})
        assert response.status_code == 400


# ── Delete ───────────────────────────────────────────────────────────────────


class TestDelete:

    def test_deleting_only_variant_removes_toolkit(self, client, helmet_doc):
        url = f"{BASE}/delete-variant/{helmet_doc['id']}/{helmet_doc['variants'][0]['id']}"
        response = client.delete(url)
        assert response.status_code == 200
        assert response.json()["data"] is None
        assert client.get(f"{BASE}/get-toolkit/{helmet_doc['id']}").status_code == 404

    def test_deleting_one_variant(self, client, helmet_doc):
        doc = _add(client, size="L", color="White", stockCount=4).json()["data"]
        url = f"{BASE}/delete-variant/{doc['id']}/{doc['variants'][0]['id']}"
        data = client.delete(url).json()["data"]
        assert [v["size"] for v in data["variants"]] == ["L"]

    def test_delete_toolkit(self, client, helmet_doc):
        response = client.delete(f"{BASE}/delete-toolkit/{helmet_doc['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["id"] == helmet_doc["id"]
        assert client.get(f"{BASE}/get-toolkits").json()["data"] == []

    def test_delete_unknown_toolkit_is_404(self, client):
        assert client.delete(f"{BASE}/delete-toolkit/nope").status_code == 404


# ── History and report ───────────────────────────────────────────────────────


class TestHistory:

    def test_variant_history_is_newest_first(self, client, helmet_doc):
        toolkit_id = helmet_doc["id"]
        variant_id = helmet_doc["variants"][0]["id"]
        client.put(f"{BASE}/reduce-stock/{toolkit_id}/{variant_id}", json={"quantity": 1})
        client.put(f"{BASE}/reduce-stock/{toolkit_id}/{variant_id}", json={"quantity": 2})

        response = client.get(f"{BASE}/stock-history/{toolkit_id}/{variant_id}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["toolkit"]["name"] == "Helmet"
        assert data["variant"]["currentStock"] == 7
        assert [e["changeAmount"] for e in data["stockHistory"]] == [-2, -1, 10]

    def test_toolkit_history(self, client, helmet_doc):
        _add(client, size="L", color="White", stockCount=4)
        response = client.get(f"{BASE}/toolkit-stock-history/{helmet_doc['id']}")
        assert response.status_code == 200
        variants = response.json()["data"]["variants"]
        assert [(v["size"], len(v["stockHistory"])) for v in variants] == [("M", 1), ("L", 1)]

    def test_history_of_unknown_toolkit_is_404(self, client):
        assert client.get(f"{BASE}/toolkit-stock-history/nope").status_code == 404


class TestStockReport:

    def test_pdf_report(self, client, helmet_doc):
        response = client.get(f"{BASE}/stock-report/pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_pdf_report_for_empty_inventory(self, client):
        response = client.get(f"{BASE}/stock-report/pdf")
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")
