from conftest import make_item
from stockmirror.catalog.base import RemoteCategory, RemoteTag
from stockmirror.core.errors import UpstreamServerError
from stockmirror.models import CatalogItem
from stockmirror.services.mirror import MirrorStore

CSV = "UPC,ShipQuantity\n111,6\n222,2\n"


def _seed(session, fake_client):
    oat = make_item(
        "A",
        "Oat Milk",
        sku="111",
        stock=4,
        price=499,
        tag_ids=["T1"],
        categories=[RemoteCategory(id="C1", name="Dairy")],
    )
    rice = make_item("B", "Rice", sku="222", stock=0, price=1250, available=False)
    beans = make_item("C", "Beans", sku="333", stock=25, price=199)
    fake_client.items = [oat, rice, beans]
    fake_client.tag_items = {"T1": [oat]}
    store = MirrorStore(session)
    for item in fake_client.items:
        store.upsert_item(item)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_items_list_with_stats_and_pagination(client, session, fake_client):
    _seed(session, fake_client)

    response = client.get("/v1/items", params={"limit": 2})
    assert response.status_code == 200
    payload = response.json()
    assert [item["id"] for item in payload["items"]] == ["C", "A"]
    assert payload["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}
    assert payload["stats"]["total_items"] == 3
    assert payload["stats"]["total_stock_count"] == 29
    assert payload["stats"]["low_stock_count"] == 1
    assert payload["stats"]["out_of_stock_count"] == 1
    assert payload["categories"] == [{"id": "C1", "name": "Dairy"}]
    assert payload["items"][1]["price_formatted"] == "$4.99"
    assert payload["items"][1]["tags"] == ["T1"]


def test_items_list_filters(client, session, fake_client):
    _seed(session, fake_client)

    def ids(**params):
        response = client.get("/v1/items", params=params)
        assert response.status_code == 200
        return sorted(item["id"] for item in response.json()["items"])

    assert ids(search="OAT") == ["A"]
    assert ids(search="333") == ["C"]
    assert ids(stock_status="in-stock") == ["C"]
    assert ids(stock_status="low-stock") == ["A"]
    assert ids(stock_status="less-than-5") == ["A", "B"]
    assert ids(stock_status="out-of-stock") == ["B"]
    assert ids(min_price=3) == ["A", "B"]
    assert ids(max_price=5) == ["A", "C"]
    assert ids(available="false") == ["B"]
    assert ids(tag="T1") == ["A"]
    assert ids(category="C1") == ["A"]
    assert ids(category="all", tag="all") == ["A", "B", "C"]


def test_items_list_rejects_bad_query(client):
    response = client.get("/v1/items", params={"stock_status": "plenty"})
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_sync_requires_admin_token(client):
    response = client.post("/v1/sync")
    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "unauthorized"


def test_sync_run_and_status(client, fake_client, admin_headers):
    fake_client.items = [make_item("A"), make_item("B")]

    response = client.post("/v1/sync", headers=admin_headers)
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["items_fetched"] == 2
    assert payload["items_deleted"] == 0
    assert payload["message"] == "Successfully synced 2 items"

    status = client.get("/v1/sync").json()
    assert status["latest_sync"]["id"] == payload["sync_id"]
    assert status["latest_sync"]["status"] == "success"


def test_sync_failure_maps_to_bad_gateway(client, fake_client, admin_headers):
    fake_client.fetch_all_error = UpstreamServerError("GET /items failed", status_code=503, body="down")

    response = client.post("/v1/sync", headers=admin_headers)
    assert response.status_code == 502
    body = response.json()
    assert body["code"] == "upstream_error"
    assert body["details"] == {"status": 503, "body": "down"}
    assert client.get("/v1/sync").json()["latest_sync"]["status"] == "error"


def test_tags_are_cached(client, fake_client):
    fake_client.tags = [RemoteTag(id="T1", name="Vendor_Kehe")]

    first = client.get("/v1/tags").json()
    second = client.get("/v1/tags").json()

    assert first == {"tags": [{"id": "T1", "name": "Vendor_Kehe"}], "cached": False}
    assert second["cached"] is True
    assert fake_client.tag_list_fetches == 1


def test_inventory_items_by_tag(client, session, fake_client):
    _seed(session, fake_client)

    response = client.get("/v1/inventory/items-by-tag", params={"tag_id": "T1"})
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["items"]] == ["A"]
    assert client.get("/v1/inventory/items-by-tag").status_code == 422


def test_inventory_find_missing_items(client, session, fake_client):
    _seed(session, fake_client)

    response = client.post("/v1/inventory/find-missing-items", json={"tag_id": "T1", "upcs": ["111", "222"]})
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["items"]] == ["B"]

    response = client.post("/v1/inventory/find-missing-items", json={"tag_id": "T1"})
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_inventory_add_tag_and_update_stock(client, session, fake_client, admin_headers):
    _seed(session, fake_client)

    response = client.post("/v1/inventory/add-tag", json={"item_id": "B", "tag_id": "T1"}, headers=admin_headers)
    assert response.status_code == 200
    assert fake_client.tag_writes == [("B", "T1")]

    response = client.post("/v1/inventory/update-stock", json={"item_id": "B", "stock_count": 7}, headers=admin_headers)
    assert response.status_code == 200
    assert fake_client.stock_writes == [("B", 7)]

    items = {item["id"]: item for item in client.get("/v1/items").json()["items"]}
    assert items["B"]["tags"] == ["T1"]
    assert items["B"]["stock_count"] == 7


def test_inventory_update_stock_rejects_negative(client, fake_client, admin_headers):
    response = client.post("/v1/inventory/update-stock", json={"item_id": "B", "stock_count": -1}, headers=admin_headers)
    assert response.status_code == 400
    assert fake_client.stock_writes == []


def test_reconciliation_session_flow(client, session, fake_client, admin_headers):
    _seed(session, fake_client)

    vendors = client.get("/v1/reconciliation/vendors").json()
    assert {"name": "Vendor_Kehe", "display_name": "Kehe"} in vendors

    response = client.post(
        "/v1/reconciliation/sessions",
        json={"tag_id": "T1", "csv_text": CSV, "vendor": "Vendor_Kehe"},
    )
    assert response.status_code == 201
    created = response.json()
    session_id = created["id"]
    assert created["identifier_column"] == "UPC"
    assert [row["item_id"] for row in created["matched"]] == ["A"]
    assert [row["search_value"] for row in created["unmatched"]] == ["222"]
    assert [item["item_id"] for item in created["missing_tag"]] == ["B"]

    resolved = client.post(
        f"/v1/reconciliation/sessions/{session_id}/tags", json={"item_id": "B"}, headers=admin_headers
    ).json()
    assert [row["item_id"] for row in resolved["matched"]] == ["A", "B"]
    assert resolved["missing_tag"] == []

    assert client.post(f"/v1/reconciliation/sessions/{session_id}/apply").status_code == 401
    applied = client.post(f"/v1/reconciliation/sessions/{session_id}/apply", headers=admin_headers).json()
    assert applied["closed"] is True
    assert applied["report"]["success_count"] == 2
    assert fake_client.stock_writes == [("A", 10), ("B", 2)]

    assert client.get(f"/v1/reconciliation/sessions/{session_id}").status_code == 404


def test_reconciliation_mapping_update(client, session, fake_client):
    _seed(session, fake_client)
    created = client.post(
        "/v1/reconciliation/sessions",
        json={"tag_id": "T1", "csv_text": "UPC,Count\n111,3\n", "vendor": "default"},
    ).json()
    assert created["mapping_error"] == "Please select stock column"
    assert created["stock_column"] is None
    assert created["matched"] == []

    response = client.patch(
        f"/v1/reconciliation/sessions/{created['id']}/mapping",
        json={"stock_column": "Count"},
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["mapping_error"] is None
    assert [row["new_stock"] for row in updated["matched"]] == [7]

    response = client.patch(f"/v1/reconciliation/sessions/{created['id']}/mapping", json={"stock_column": "Nope"})
    assert response.status_code == 400


def test_reconciliation_rejects_empty_csv_and_unknown_session(client):
    response = client.post("/v1/reconciliation/sessions", json={"tag_id": "T1", "csv_text": "UPC,Qty\n"})
    assert response.status_code == 400
    assert response.json()["code"] == "parse_error"

    response = client.get("/v1/reconciliation/sessions/missing")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_reconciliation_delete_session(client, session, fake_client):
    _seed(session, fake_client)
    created = client.post(
        "/v1/reconciliation/sessions",
        json={"tag_id": "T1", "csv_text": CSV, "vendor": "Vendor_Kehe"},
    ).json()

    assert client.delete(f"/v1/reconciliation/sessions/{created['id']}").status_code == 204
    assert client.delete(f"/v1/reconciliation/sessions/{created['id']}").status_code == 404


def test_reconciliation_add_tag_requires_admin_token(client, session, fake_client):
    _seed(session, fake_client)
    created = client.post(
        "/v1/reconciliation/sessions",
        json={"tag_id": "T1", "csv_text": "UPC,ShipQuantity\n222,2\n", "vendor": "Vendor_Kehe"},
    ).json()

    response = client.post(f"/v1/reconciliation/sessions/{created['id']}/tags", json={"item_id": "B"})

    assert response.status_code == 401
    assert fake_client.tag_writes == []
    assert session.get(CatalogItem, "B").tags == []
