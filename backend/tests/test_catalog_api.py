"""
Product and location API tests.

Verifies:
- CRUD with validation (400), uniqueness (409) and not-found (404)
- Products and locations with supply-chain history cannot be deleted
- The lineage endpoint walks the product's chain newest-first
"""


class TestProductsApi:

    def test_create_and_get(self, client, operator, operator_headers):
        resp = client.post(
            "/api/products",
            json={
                "sku": "EAR-100",
                "name": "Wireless Earbuds",
                "category": "Electronics",
                "metadata": {"color": "black"},
            },
            headers=operator_headers,
        )
        assert resp.status_code == 201
        body = resp.json
        assert body["status"] == "active"
        assert body["metadata"] == {"color": "black"}
        assert body["created_by"] == operator.id
        assert body["head_transaction_id"] is None

        got = client.get(f"/api/products/{body['id']}", headers=operator_headers)
        assert got.status_code == 200
        assert got.json["sku"] == "EAR-100"

    def test_missing_required_fields(self, client, operator_headers):
        resp = client.post("/api/products", json={"name": "No SKU"}, headers=operator_headers)
        assert resp.status_code == 400

    def test_unknown_field_rejected(self, client, operator_headers):
        resp = client.post(
            "/api/products",
            json={"sku": "A-1", "name": "A", "category": "C", "head_transaction_id": 5},
            headers=operator_headers,
        )
        assert resp.status_code == 400

    def test_bad_status(self, client, operator_headers):
        resp = client.post(
            "/api/products",
            json={"sku": "A-1", "name": "A", "category": "C", "status": "archived"},
            headers=operator_headers,
        )
        assert resp.status_code == 400

    def test_duplicate_sku(self, client, operator_headers, product):
        resp = client.post(
            "/api/products",
            json={"sku": product.sku, "name": "Copy", "category": "C"},
            headers=operator_headers,
        )
        assert resp.status_code == 409

    def test_update(self, client, operator_headers, product):
        resp = client.put(
            f"/api/products/{product.id}",
            json={"status": "discontinued", "description": "Seasonal blend"},
            headers=operator_headers,
        )
        assert resp.status_code == 200
        assert resp.json["status"] == "discontinued"
        assert resp.json["description"] == "Seasonal blend"

    def test_update_missing(self, client, operator_headers):
        resp = client.put("/api/products/999999", json={"name": "Ghost"}, headers=operator_headers)
        assert resp.status_code == 404

    def test_list_filters_and_search(self, client, operator_headers, product):
        client.post(
            "/api/products",
            json={"sku": "EAR-100", "name": "Wireless Earbuds", "category": "Electronics"},
            headers=operator_headers,
        )

        everything = client.get("/api/products", headers=operator_headers).json["items"]
        assert [p["name"] for p in everything] == ["Organic Coffee Beans", "Wireless Earbuds"]

        by_category = client.get("/api/products?category=Electronics", headers=operator_headers).json["items"]
        assert [p["sku"] for p in by_category] == ["EAR-100"]

        by_search = client.get("/api/products?search=coffee", headers=operator_headers).json["items"]
        assert [p["sku"] for p in by_search] == [product.sku]

    def test_delete_without_history(self, client, operator_headers, product):
        resp = client.delete(f"/api/products/{product.id}", headers=operator_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/products/{product.id}", headers=operator_headers).status_code == 404

    def test_delete_with_history_conflicts(self, client, operator_headers, product):
        client.post(
            "/api/transactions",
            json={"product_id": product.id, "transaction_type": "production"},
            headers=operator_headers,
        )
        resp = client.delete(f"/api/products/{product.id}", headers=operator_headers)
        assert resp.status_code == 409


class TestLineageApi:

    def test_lineage_newest_first(self, client, operator_headers, product, warehouse, store):
        ids = []
        for payload in (
            {"transaction_type": "production", "to_location_id": warehouse.id},
            {"transaction_type": "transport", "from_location_id": warehouse.id, "to_location_id": store.id},
            {"transaction_type": "delivery", "to_location_id": store.id},
        ):
            payload["product_id"] = product.id
            resp = client.post("/api/transactions", json=payload, headers=operator_headers)
            assert resp.status_code == 201
            ids.append(resp.json["id"])

        resp = client.get(f"/api/products/{product.id}/lineage", headers=operator_headers)

        assert resp.status_code == 200
        assert resp.json["complete"] is True
        assert [t["id"] for t in resp.json["transactions"]] == list(reversed(ids))
        assert resp.json["transactions"][-1]["previous_transaction_id"] is None

        head = client.get(f"/api/products/{product.id}", headers=operator_headers).json
        assert head["head_transaction_id"] == ids[-1]

    def test_lineage_unknown_product(self, client, operator_headers):
        resp = client.get("/api/products/999999/lineage", headers=operator_headers)
        assert resp.status_code == 404


class TestLocationsApi:

    def test_create_with_coordinates(self, client, operator_headers):
        resp = client.post(
            "/api/locations",
            json={
                "name": "Central DC",
                "address": "200 Logistics Way",
                "type": "distribution_center",
                "latitude": 39.96,
                "longitude": -83.0,
            },
            headers=operator_headers,
        )
        assert resp.status_code == 201
        assert resp.json["coordinates"] == {"latitude": 39.96, "longitude": -83.0}

    def test_half_coordinate_pair_rejected(self, client, operator_headers):
        resp = client.post(
            "/api/locations",
            json={"name": "Half", "address": "Somewhere", "type": "retail", "latitude": 10.0},
            headers=operator_headers,
        )
        assert resp.status_code == 400

    def test_latitude_range(self, client, operator_headers):
        resp = client.post(
            "/api/locations",
            json={"name": "Pole", "address": "North", "type": "retail", "latitude": 91, "longitude": 0},
            headers=operator_headers,
        )
        assert resp.status_code == 400

    def test_bad_type(self, client, operator_headers):
        resp = client.post(
            "/api/locations",
            json={"name": "Depot", "address": "Somewhere", "type": "garage"},
            headers=operator_headers,
        )
        assert resp.status_code == 400

    def test_list_by_type(self, client, operator_headers, warehouse, store):
        items = client.get("/api/locations?type=retail", headers=operator_headers).json["items"]
        assert [loc["id"] for loc in items] == [store.id]

    def test_update_keeps_pair(self, client, operator_headers, warehouse):
        resp = client.put(
            f"/api/locations/{warehouse.id}",
            json={"latitude": 40.0},
            headers=operator_headers,
        )
        assert resp.status_code == 200
        assert resp.json["coordinates"]["latitude"] == 40.0
        assert resp.json["coordinates"]["longitude"] == warehouse.longitude

    def test_delete_referenced_location_conflicts(self, client, operator_headers, product, warehouse):
        client.post(
            "/api/transactions",
            json={"product_id": product.id, "transaction_type": "production", "to_location_id": warehouse.id},
            headers=operator_headers,
        )
        resp = client.delete(f"/api/locations/{warehouse.id}", headers=operator_headers)
        assert resp.status_code == 409

    def test_delete_unused(self, client, operator_headers, store):
        assert client.delete(f"/api/locations/{store.id}", headers=operator_headers).status_code == 200
        assert client.get(f"/api/locations/{store.id}", headers=operator_headers).status_code == 404
