"""Product summary queries shared by sections and cart.

These are deliberately simple listings: active products with their
cheapest active variant price. Attribute filters, ratings and
deliverability checks belong to the full catalog endpoints.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection

from eshop_api.media import format_image_url
from eshop_api.normalize import Kind, normalize
from eshop_api.repositories.database import Row, fetch_all, fetch_one

# Effective selling price of a variant.
PRICE_EXPR = "CASE WHEN pv.special_price > 0 THEN pv.special_price ELSE pv.price END"

SORT_COLUMNS = {
    "id": "p.id",
    "p.id": "p.id",
    "price": "price",
    "pv.price": "price",
    "date_added": "p.date_added",
    "p.date_added": "p.date_added",
    "rating": "p.rating",
    "p.rating": "p.rating",
}

PRODUCT_SUMMARY_SPEC = {
    "id": Kind.STRINGIFY_NUMBER,
    "category_id": Kind.STRINGIFY_NUMBER,
    "name": Kind.PASSTHROUGH_STRING,
    "slug": Kind.PASSTHROUGH_STRING,
    "short_description": Kind.PASSTHROUGH_STRING,
    "type": Kind.PASSTHROUGH_STRING,
    "image": Kind.PASSTHROUGH_STRING,
    "rating": Kind.STRINGIFY_NUMBER,
    "availability": Kind.STRINGIFY_NUMBER,
    "price": Kind.STRINGIFY_NUMBER,
    "special_price": Kind.STRINGIFY_NUMBER,
    "date_added": Kind.FORMAT_DATETIME,
}


def sort_order(order: Any) -> str:
    """Whitelist a sort direction; anything unknown reads as DESC."""
    return "ASC" if str(order or "").strip().upper() == "ASC" else "DESC"


def _filters(
    ids: Sequence[str] | None,
    category_ids: Sequence[str] | None,
    min_price: float | None,
    max_price: float | None,
    on_sale: bool,
) -> tuple[list[str], dict[str, Any], list[str]]:
    where = ["p.status = 1"]
    params: dict[str, Any] = {}
    expanding: list[str] = []

    if ids:
        where.append("p.id IN :ids")
        params["ids"] = list(ids)
        expanding.append("ids")
    elif category_ids:
        where.append("p.category_id IN :category_ids")
        params["category_ids"] = list(category_ids)
        expanding.append("category_ids")

    if min_price:
        where.append(f"{PRICE_EXPR} >= :min_price")
        params["min_price"] = min_price
    if max_price:
        where.append(f"{PRICE_EXPR} <= :max_price")
        params["max_price"] = max_price
    if on_sale:
        where.append("pv.special_price > 0")

    return where, params, expanding


def _statement(sql: str, expanding: list[str]):
    statement = text(sql)
    if expanding:
        statement = statement.bindparams(*(bindparam(name, expanding=True) for name in expanding))
    return statement


def summarize(row: Row) -> dict[str, Any]:
    """Normalize one product summary row and resolve its image URL."""
    record = normalize(row, PRODUCT_SUMMARY_SPEC)
    record["image"] = format_image_url(row.get("image"))
    return record


def fetch_products(
    conn: Connection,
    *,
    ids: Sequence[str] | None = None,
    category_ids: Sequence[str] | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    on_sale: bool = False,
    sort: str = "p.id",
    order: str = "DESC",
    limit: int = 10,
    offset: int = 0,
) -> dict[str, Any]:
    """List active products matching the filters.

    Args:
        conn: Open database connection
        ids: Restrict to these product ids
        category_ids: Restrict to these categories (ignored when ``ids`` is given)
        min_price: Lower bound on the effective variant price
        max_price: Upper bound on the effective variant price
        on_sale: Only products with a special price
        sort: Sort column alias, see ``SORT_COLUMNS``
        order: ASC or DESC
        limit: Page size
        offset: Page offset

    Returns:
        ``{"total", "min_price", "max_price", "data"}`` where ``data`` holds
        normalized summaries and the prices are native numbers or None
    """
    where, params, expanding = _filters(ids, category_ids, min_price, max_price, on_sale)
    where_sql = " AND ".join(where)
    joins = "FROM products p JOIN product_variants pv ON pv.product_id = p.id AND pv.status = 1"

    totals = fetch_one(
        conn,
        _statement(
            f"SELECT COUNT(DISTINCT p.id) AS total, MIN({PRICE_EXPR}) AS min_price, "
            f"MAX({PRICE_EXPR}) AS max_price {joins} WHERE {where_sql}",
            expanding,
        ),
        params,
    ) or {}

    sort_column = SORT_COLUMNS.get(sort, "p.id")
    rows = fetch_all(
        conn,
        _statement(
            "SELECT p.id, p.category_id, p.name, p.slug, p.short_description, p.type, p.image, "
            "p.rating, p.date_added, MAX(pv.availability) AS availability, "
            f"MIN(pv.price) AS price, MIN({PRICE_EXPR}) AS special_price "
            f"{joins} WHERE {where_sql} "
            "GROUP BY p.id, p.category_id, p.name, p.slug, p.short_description, p.type, p.image, "
            "p.rating, p.date_added "
            f"ORDER BY {sort_column} {sort_order(order)} LIMIT :limit OFFSET :offset",
            expanding,
        ),
        {**params, "limit": limit, "offset": offset},
    )

    return {
        "total": totals.get("total") or 0,
        "min_price": totals.get("min_price"),
        "max_price": totals.get("max_price"),
        "data": [summarize(row) for row in rows],
    }


def price_bound(conn: Connection, kind: str) -> float:
    """Lowest or highest effective price across all active products."""
    func = "MIN" if kind == "min" else "MAX"
    row = fetch_one(
        conn,
        f"SELECT {func}({PRICE_EXPR}) AS bound FROM products p "
        "JOIN product_variants pv ON pv.product_id = p.id "
        "WHERE p.status = 1 AND pv.status = 1",
    )
    return float(row["bound"]) if row and row["bound"] is not None else 0.0
