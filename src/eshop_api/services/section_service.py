"""Home screen sections (``get_sections``)."""

from typing import Any

from eshop_api.errors import ValidationError
from eshop_api.normalize import Kind, normalize, output_escaping
from eshop_api.repositories.database import Database, fetch_all, fetch_one
from eshop_api.services import catalog
from eshop_api.services.envelope import envelope, failure
from eshop_api.validation import as_int, as_text, is_numeric

SECTION_SPEC = {
    "id": Kind.STRINGIFY_NUMBER,
    "title": Kind.PASSTHROUGH_STRING,
    "short_description": Kind.PASSTHROUGH_STRING,
    "style": Kind.PASSTHROUGH_STRING,
    "product_ids": Kind.PASSTHROUGH_STRING,
    "row_order": Kind.STRINGIFY_NUMBER,
    "categories": Kind.PASSTHROUGH_STRING,
    "product_type": Kind.PASSTHROUGH_STRING,
    "date_added": Kind.FORMAT_DATETIME,
    "city": Kind.STRINGIFY_NUMBER,
}


def split_ids(value: Any) -> list[str]:
    """Split a comma-separated id list, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in str(value).split(",") if item.strip()]


def _price(value: Any) -> float:
    return float(value) if is_numeric(value) else 0.0


class SectionService:
    """Lists featured sections with a page of products each."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get_sections(self, params: dict[str, Any]) -> dict[str, Any]:
        """Return sections for a city, each with its product page.

        Raises:
            ValidationError: On an inverted price range or unknown zipcode
        """
        limit = as_int(params.get("limit"), 25)
        offset = as_int(params.get("offset"), 0)
        user_id = as_int(params.get("user_id"), 0)
        section_id = as_int(params.get("section_id"), 0)
        p_limit = as_int(params.get("p_limit"), 10)
        p_offset = as_int(params.get("p_offset"), 0)
        p_sort = as_text(params.get("p_sort"), "p.id")
        p_order = catalog.sort_order(params.get("p_order") or "DESC")
        min_price = _price(params.get("min_price"))
        max_price = _price(params.get("max_price"))
        top_rated = params.get("top_rated_product") in ("1", 1)

        if min_price and max_price and min_price > max_price:
            raise ValidationError("Min price cannot be greater than max price")

        with self._db.connection() as conn:
            city = as_text(params.get("city"))
            if not city and user_id:
                user = fetch_one(conn, "SELECT city FROM users WHERE id = :id", {"id": user_id})
                city = as_text(user.get("city")) if user else ""

            zipcode = as_text(params.get("zipcode"))
            if zipcode:
                found = fetch_one(
                    conn, "SELECT id FROM zipcodes WHERE zipcode = :zipcode", {"zipcode": zipcode}
                )
                if found is None:
                    raise ValidationError("Products Not Found!")

            where = []
            query_params: dict[str, Any] = {"limit": limit, "offset": offset}
            if section_id:
                where.append("s.id = :section_id")
                query_params["section_id"] = section_id
            if city:
                where.append("(s.city = :city OR s.city = '' OR s.city IS NULL)")
                query_params["city"] = city
            where_sql = f"WHERE {' AND '.join(where)}" if where else ""

            sections = fetch_all(
                conn,
                f"SELECT * FROM sections s {where_sql} "
                "ORDER BY s.row_order ASC LIMIT :limit OFFSET :offset",
                query_params,
            )
            if not sections:
                return failure("No sections are available")

            lowest: float | None = None
            highest: float | None = None
            data = []
            for section in sections:
                product_type = (section.get("product_type") or "").strip()
                sort = p_sort
                if top_rated or product_type == "top_rated_products":
                    sort = "p.rating"
                elif product_type == "new_added_products":
                    sort = "p.id"

                products = catalog.fetch_products(
                    conn,
                    ids=split_ids(section.get("product_ids")),
                    category_ids=split_ids(section.get("categories")),
                    min_price=min_price or None,
                    max_price=max_price or None,
                    on_sale=product_type == "products_on_sale",
                    sort=sort,
                    order=p_order,
                    limit=p_limit,
                    offset=p_offset,
                )

                record = normalize(output_escaping(section), SECTION_SPEC)
                if not section.get("city"):
                    record["city"] = "0"
                record["total"] = str(products["total"]) if products["data"] else "0"
                record["filters"] = []
                record["product_details"] = products["data"]
                data.append(record)

                if products["data"]:
                    if products["min_price"] is not None:
                        value = float(products["min_price"])
                        lowest = value if lowest is None else min(lowest, value)
                    if products["max_price"] is not None:
                        value = float(products["max_price"])
                        highest = value if highest is None else max(highest, value)

            if lowest is None:
                lowest = catalog.price_bound(conn, "min")
            if highest is None:
                highest = catalog.price_bound(conn, "max")

        return envelope(
            False,
            "Sections retrived successfully",
            data,
            min_price=str(int(lowest)),
            max_price=str(int(highest)),
        )
