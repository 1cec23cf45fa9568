from urllib.parse import unquote

from conftest import login, make_order

BASE = "/admin/collections/c1"


def submit_payload(items, **delivery):
    data = dict(instagram_id="@me", name="Kim", phone="010", address="Seoul", agreed=True)
    data.update(delivery)
    return {"items": items, "delivery": data}


def test_login_generic_rejection(client):
    res = client.post("/auth/login", json={"code": "guess"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid access code"


def test_login_sessions(client):
    res = client.post("/auth/login", json={"code": " vip25 "})
    assert res.json()["session"] == {
        "role": "influencer",
        "collection_id": "c1",
        "access_code": "VIP25",
        "limit": 3,
    }
    res = client.post("/auth/login", json={"code": "admin"})
    assert res.json()["session"] == {"role": "admin"}


def test_roles_are_enforced(client, admin_headers, vip_headers):
    assert client.get("/admin/collections").status_code == 401
    assert client.get("/admin/collections", headers=vip_headers).status_code == 403
    assert client.get("/shop", headers=admin_headers).status_code == 403
    assert client.get("/shop", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_recover_resets_password(client, store):
    cfg = store.get_admin_config().model_copy(update={"password": "secret"})
    store.save_admin_config(cfg)

    assert client.post("/auth/recover", json={"phrase": "wrong"}).status_code == 400
    assert client.post("/auth/login", json={"code": "admin"}).status_code == 401

    assert client.post("/auth/recover", json={"phrase": " NUUANU"}).status_code == 200
    assert client.post("/auth/login", json={"code": "admin"}).status_code == 200


def test_end_to_end_order_submission(client, vip_headers, store):
    shop = client.get("/shop", headers=vip_headers).json()
    assert shop["limit"] == 3
    assert "orders" not in shop and "access_codes" not in shop

    items = [{"product_id": "p1", "size": "S"}, {"product_id": "p1", "size": "L"}, {"product_id": "p2"}]
    res = client.post("/shop/orders", json=submit_payload(items), headers=vip_headers)
    assert res.status_code == 200, res.text

    orders = store.get_collection("c1").orders
    assert len(orders) == 3
    assert all(o.status.value == "Preparing" and o.shipped_date is None for o in orders)


def test_submission_over_limit_or_unagreed(client, vip_headers, store):
    items = [{"product_id": "p2"}] * 4
    res = client.post("/shop/orders", json=submit_payload(items), headers=vip_headers)
    assert res.status_code == 400

    res = client.post("/shop/orders", json=submit_payload([{"product_id": "p2"}], agreed=False), headers=vip_headers)
    assert res.status_code == 400

    res = client.post("/shop/orders", json=submit_payload([{"product_id": "zzz"}]), headers=vip_headers)
    assert res.status_code == 400
    assert store.get_collection("c1").orders == []


def test_removed_code_invalidates_token(client, admin_headers, vip_headers):
    res = client.put(f"{BASE}/settings", json={"name": "25FW", "access_codes": []}, headers=admin_headers)
    assert res.status_code == 200
    assert client.get("/shop", headers=vip_headers).status_code == 401


def test_settings_reject_conflicting_codes(client, admin_headers):
    payload = {"name": "25FW", "access_codes": [{"code": "summer", "limit": 1}]}
    res = client.put(f"{BASE}/settings", json=payload, headers=admin_headers)
    assert res.status_code == 400
    assert "summer" in res.json()["detail"]


def test_create_and_delete_collection(client, admin_headers):
    col = client.post("/admin/collections", json={"name": "27FW"}, headers=admin_headers).json()
    names = [c["name"] for c in client.get("/admin/collections", headers=admin_headers).json()]
    assert names == ["25FW", "26SS", "27FW"]

    assert client.delete(f"/admin/collections/{col['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/admin/collections/{col['id']}", headers=admin_headers).status_code == 404


def test_product_import(client, admin_headers):
    text = "상품\t가격\t옵션\t설명\nCoat\t10000\tsize{S|M|L}\tnice\n"
    res = client.post(f"{BASE}/products/import", json={"text": text}, headers=admin_headers)
    body = res.json()
    assert body["imported"] == 1
    assert [p["name"] for p in body["products"]] == ["Coat", "Scarf", "Coat"]

    res = client.post(f"{BASE}/products/import", json={"text": text, "replace": True}, headers=admin_headers)
    assert [p["name"] for p in res.json()["products"]] == ["Coat"]


def test_order_admin_flow(client, admin_headers, store):
    col = store.get_collection("c1")
    col.orders = [make_order("o1"), make_order("o2", product_name="Scarf")]
    store.save_collection(col)

    res = client.post(f"{BASE}/orders/bulk-status", json={"ids": ["o1"], "status": "Shipped"}, headers=admin_headers)
    assert res.json()[0]["shipped_date"]
    assert res.json()[1]["shipped_date"] is None

    res = client.patch(f"{BASE}/orders/o2", json={"field": "admin_memo", "value": "fragile"}, headers=admin_headers)
    assert res.json()[1]["admin_memo"] == "fragile"
    res = client.patch(f"{BASE}/orders/o2", json={"field": "bogus", "value": "x"}, headers=admin_headers)
    assert res.status_code == 400

    res = client.post(f"{BASE}/orders/o2/duplicate", headers=admin_headers)
    copy = res.json()["order"]
    assert copy["product_name"] == "" and copy["name"] == "Kim"
    assert client.post(f"{BASE}/orders/zz/duplicate", headers=admin_headers).status_code == 404

    res = client.get(f"{BASE}/orders", params={"sort": "product_name", "dir": "desc"}, headers=admin_headers)
    assert [o["id"] for o in res.json()][:2] == ["o2", "o1"]

    assert client.delete(f"{BASE}/orders/{copy['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"{BASE}/orders/missing", headers=admin_headers).status_code == 200
    assert [o.id for o in store.get_collection("c1").orders] == ["o1", "o2"]


def test_export_and_reports(client, admin_headers, store):
    col = store.get_collection("c1")
    col.orders = [make_order("o1"), make_order("o2", product_name="Scarf"), make_order("o3")]
    store.save_collection(col)

    res = client.post(f"{BASE}/orders/export", json={"ids": ["o2"]}, headers=admin_headers)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert unquote(res.headers["content-disposition"]).endswith(".csv")
    text = res.content.decode("utf-8")
    assert text.startswith("\ufeffinstagram ID,")
    assert text.count("\n") == 1
    assert "Scarf" in text

    report = client.get(f"{BASE}/reports", headers=admin_headers).json()
    assert report["total"] == 3
    assert report["products"][0] == {"name": "Coat", "count": 2, "percentage": 66.7}
    assert report["skus"][0]["name"] == "Coat (M)"


def test_admin_config_update(client, admin_headers):
    res = client.put("/admin/config", json={"password": "vip25", "recovery_phrase": "x"}, headers=admin_headers)
    assert res.status_code == 400
    res = client.put("/admin/config", json={"password": "boss", "recovery_phrase": "x", "extra": 1}, headers=admin_headers)
    assert res.status_code == 422
    res = client.put("/admin/config", json={"password": "boss", "recovery_phrase": "x"}, headers=admin_headers)
    assert res.status_code == 200
    assert login(client, "BOSS")


def test_blank_recovery_phrase_is_rejected(client, admin_headers, store):
    res = client.put("/admin/config", json={"password": "boss", "recovery_phrase": "  "}, headers=admin_headers)
    assert res.status_code == 400
    assert store.get_admin_config().recovery_phrase == "nuuanu"

    # Even if a blank phrase reaches storage, it never resets the password
    store.save_admin_config(store.get_admin_config().model_copy(update={"password": "boss", "recovery_phrase": ""}))
    assert client.post("/auth/recover", json={"phrase": "   "}).status_code == 400
    assert client.post("/auth/login", json={"code": "admin"}).status_code == 401


def test_admin_token_revoked_by_password_change(client, admin_headers):
    assert client.get("/admin/config", headers=admin_headers).status_code == 200
    res = client.put("/admin/config", json={"password": "boss", "recovery_phrase": "nuuanu"}, headers=admin_headers)
    assert res.status_code == 200

    assert client.get("/admin/config", headers=admin_headers).status_code == 401
    boss_headers = login(client, "boss")
    assert client.get("/admin/config", headers=boss_headers).status_code == 200

    assert client.post("/auth/recover", json={"phrase": "nuuanu"}).status_code == 200
    assert client.get("/admin/config", headers=boss_headers).status_code == 401
    assert client.get("/admin/config", headers=login(client, "admin")).status_code == 200


def test_admin_token_survives_phrase_change(client, admin_headers):
    res = client.put("/admin/config", json={"password": "ADMIN", "recovery_phrase": "other"}, headers=admin_headers)
    assert res.status_code == 200
    assert client.get("/admin/config", headers=admin_headers).status_code == 200
