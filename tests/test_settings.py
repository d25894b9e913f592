"""
Tests for the get_settings endpoint.
"""

from datetime import date

from sqlalchemy import text

CDN = "https://uzvisimages.blr1.cdn.digitaloceanspaces.com/"


def test_all_settings_shape(api):
    body = api("get_settings", {"type": "all"}).json()

    assert body["error"] is False
    assert body["message"] == "Settings retrieved successfully"
    data = body["data"]
    assert list(data)[:3] == ["logo", "privacy_policy", "terms_conditions"]
    assert data["logo"] == [{"is_null": "0", "value": f"{CDN}uploads/media/2024/logo.png"}]
    assert data["privacy_policy"] == ["<p>Privacy</p>"]
    assert data["terms_conditions"] == []
    assert data["about_us"] == ["We're a family shop"]
    assert data["currency"] == ["INR"]
    assert data["user_data"] == []
    assert data["shipping_method"] == {"local_shipping_method": "1"}
    assert "payment_method" not in data


def test_numbers_are_text(api):
    data = api("get_settings").json()["data"]

    system_settings = data["system_settings"][0]
    assert system_settings["max_items_cart"] == "3"
    assert system_settings["minimum_cart_amt"] == "500"
    assert [tag["id"] for tag in data["tags"]] == ["2", "1"]
    assert [slot["title"] for slot in data["time_slots"]] == ["Morning", "Evening"]
    assert data["time_slots"][0]["status"] == "1"


def test_time_slot_config(api):
    config = api("get_settings").json()["data"]["time_slot_config"][0]
    assert config["is_time_slots_enabled"] == "1"
    assert config["delivery_starts_from"] == "2"
    assert config["starting_date"] == date.today().isoformat()


def test_wallet_balance_only_for_users(api):
    anonymous = api("get_settings").json()["data"]["system_settings"][0]
    known = api("get_settings", {"user_id": "1"}).json()["data"]["system_settings"][0]

    assert anonymous["wallet_balance_amount"] == "0"
    assert known["wallet_balance_amount"] == "50"


def test_user_data(api):
    user = api("get_settings", {"user_id": "1"}).json()["data"]["user_data"][0]

    assert user["id"] == "1"
    assert user["username"] == "alice"
    assert user["balance"] == "0"
    assert user["city"] == "Surat"
    assert user["created_at"] == "2024-01-05 10:00:00"
    assert user["cart_total_items"] == "0"
    assert user["pincode"] == ""


def test_user_data_null_city(api):
    user = api("get_settings", {"user_id": "2"}).json()["data"]["user_data"][0]
    assert user["city"] == ""
    assert user["balance"] == "12.5"


def test_popup_offer(api):
    offer = api("get_settings").json()["data"]["popup_offer"][0]

    assert offer["id"] == "1"
    assert offer["is_active"] == "1"
    assert offer["show_multiple_time"] == "1"
    assert offer["image"] == f"{CDN}uploads/offers/summer.png"
    assert offer["type_id"] == "1"
    assert offer["min_discount"] == "10"
    category = offer["data"][0]
    assert category["name"] == "Fruits"
    assert category["total"] == "4"
    assert category["state"] == {"opened": True}


def test_missing_logo_uses_default(api, database):
    with database.transaction() as conn:
        conn.execute(text("DELETE FROM settings WHERE variable = 'logo'"))

    logo = api("get_settings").json()["data"]["logo"][0]
    assert logo == {"is_null": "1", "value": f"{CDN}uploads/media/2022/default_image.png"}


def test_malformed_json_setting_reads_empty(api, database):
    with database.transaction() as conn:
        conn.execute(text("UPDATE settings SET value = '{broken' WHERE variable = 'shipping_method'"))

    assert api("get_settings").json()["data"]["shipping_method"] == []


def test_payment_method(api):
    body = api("get_settings", {"type": "payment_method"}).json()

    data = body["data"]
    assert data["payment_method"] == {"cod_method": "1", "razorpay_payment_method": "0"}
    assert data["time_slot_config"]["delivery_starts_from"] == "2"
    assert data["is_cod_allowed"] == 1
    assert data["logo"] == []


def test_cod_not_allowed_for_cart(api, database):
    """One product without cash on delivery disables it for the cart."""
    with database.transaction() as conn:
        conn.execute(text("INSERT INTO cart (user_id, product_variant_id, qty) VALUES (2, 1, 1), (2, 2, 1)"))

    data = api("get_settings", {"type": "payment_method", "user_id": "2"}).json()["data"]
    assert data["is_cod_allowed"] == 0


def test_settings_keyed_by_user(api, cache_service):
    api("get_settings", {"user_id": "1"})
    api("get_settings", {"user_id": "2"})
    api("get_settings", {"type": "payment_method"})

    assert sorted(cache_service.store_backend.keys()) == [
        "get_settings|type:all|user_id:1",
        "get_settings|type:all|user_id:2",
        "get_settings|type:payment_method|user_id:",
    ]
