"""
Tests for the get_sections endpoint.
"""

CDN = "https://uzvisimages.blr1.cdn.digitaloceanspaces.com/"


def test_sections_listed_in_row_order(api):
    body = api("get_sections").json()

    assert body["error"] is False
    assert body["message"] == "Sections retrived successfully"
    assert [section["title"] for section in body["data"]] == ["Fresh fruits", "Deals"]
    assert body["min_price"] == "50"
    assert body["max_price"] == "90"


def test_section_record(api):
    section = api("get_sections").json()["data"][0]

    assert section["id"] == "1"
    assert section["row_order"] == "1"
    assert section["city"] == "0"
    assert section["date_added"] == "2024-04-02 00:00:00"
    assert section["total"] == "4"
    assert section["filters"] == []
    assert [product["id"] for product in section["product_details"]] == ["5", "4", "2", "1"]


def test_product_summary(api):
    products = api("get_sections").json()["data"][0]["product_details"]
    apple = products[-1]
    orange = products[0]

    assert apple["name"] == "Red Apple"
    assert apple["price"] == "100"
    assert apple["special_price"] == "90"
    assert apple["rating"] == "4.5"
    assert apple["image"] == f"{CDN}uploads/media/2024/apple.png"
    assert orange["image"].endswith("uzvis.png")


def test_products_on_sale_section(api):
    section = api("get_sections", {"section_id": "2"}).json()["data"]

    assert len(section) == 1
    assert section[0]["total"] == "1"
    assert [product["id"] for product in section[0]["product_details"]] == ["1"]


def test_product_page_size(api):
    section = api("get_sections", {"section_id": "1", "p_limit": "1"}).json()["data"][0]
    assert section["total"] == "4"
    assert len(section["product_details"]) == 1


def test_price_filter(api):
    body = api("get_sections", {"min_price": "60"}).json()

    assert body["data"][0]["total"] == "3"
    assert body["min_price"] == "60"
    assert body["max_price"] == "90"


def test_sort_by_price(api):
    products = api("get_sections", {"section_id": "1", "p_sort": "price", "p_order": "ASC"}).json()
    assert [product["id"] for product in products["data"][0]["product_details"]] == ["2", "5", "4", "1"]


def test_city_includes_unassigned_sections(api):
    assert len(api("get_sections", {"city": "Surat"}).json()["data"]) == 2


def test_no_sections(api):
    assert api("get_sections", {"section_id": "99"}).json() == {
        "error": True,
        "message": "No sections are available",
        "data": [],
    }


def test_unknown_zipcode(api):
    response = api("get_sections", {"zipcode": "000000"})
    assert response.status_code == 400
    assert response.json()["message"] == "Products Not Found!"


def test_sections_cached(api, queries):
    api("get_sections", {"section_id": "1"})
    before = queries.count
    api("get_sections", {"section_id": "1", "unrelated": "x"})
    assert queries.count == before
