"""
Tests for the address endpoints.
"""

from sqlalchemy import text

NOT_DELIVERING = "Sorry!! Not Delivering to this pincode. Please contact +91 8500820088"


def test_get_address_promotes_default(api):
    """When no address is the default, the newest one becomes it."""
    body = api("get_address", {"user_id": "1"}).json()

    assert body["error"] is False
    assert body["message"] == "Address Retrieved Successfully"
    address = body["data"][0]
    assert address["id"] == "1"
    assert address["is_default"] == "1"
    assert address["area"] == "Adajan"
    assert address["city"] == "Surat"
    assert address["pincode_name"] == "395007"
    assert address["minimum_free_delivery_order_amount"] == "500"
    assert address["delivery_charges"] == "40"
    assert address["landmark"] == ""


def test_get_address_requires_user(api):
    assert api("get_address", {}).json() == {"error": True, "message": "User ID is required", "data": []}


def test_get_address_none_found(api):
    assert api("get_address", {"user_id": "2"}).json()["message"] == "No Details Found !"


def test_add_address_resolves_pincode(api):
    body = api(
        "add_address",
        {
            "user_id": "2",
            "name": "Bob",
            "mobile": "9000000002",
            "address": "5 Lake View",
            "pincode_name": "395007",
            "is_default": "1",
        },
    ).json()

    assert body["message"] == "Address Added Successfully"
    address = body["data"][0]
    assert address["user_id"] == "2"
    assert address["area_id"] == "1"
    assert address["city_id"] == "1"
    assert address["area"] == "Adajan"
    assert address["city"] == "Surat"
    assert address["is_default"] == "1"


def test_add_address_unknown_pincode(api):
    body = api("add_address", {"user_id": "2", "name": "Bob", "pincode_name": "999999"}).json()
    assert body == {"error": True, "message": NOT_DELIVERING, "data": []}


def test_add_default_address_resets_others(api, database):
    api("add_address", {"user_id": "1", "name": "Work", "is_default": "1"})

    with database.connection() as conn:
        defaults = conn.execute(
            text("SELECT id FROM addresses WHERE user_id = 1 AND is_default = 1")
        ).scalars().all()
    assert defaults == [2]


def test_update_address(api):
    body = api("update_address", {"id": "1", "landmark": "Near the park", "state": "GJ"}).json()

    assert body["message"] == "Address updated Successfully"
    assert body["data"][0]["landmark"] == "Near the park"
    assert body["data"][0]["state"] == "GJ"
    assert body["data"][0]["name"] == "Alice"


def test_update_address_requires_id(api):
    assert api("update_address", {"name": "x"}).json()["message"] == "Address ID is required"


def test_delete_address(api):
    body = api("delete_address", {"id": "1"}).json()
    assert body == {"error": False, "message": "Address Deleted Successfully", "data": []}
    assert api("get_address", {"user_id": "1"}).json()["message"] == "No Details Found !"
