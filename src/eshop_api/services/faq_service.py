"""Customer questions on product pages."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.engine import Connection

from eshop_api.normalize import Kind, format_datetime, normalize, output_escaping
from eshop_api.repositories.database import Database, execute, fetch_all, fetch_one, fetch_value
from eshop_api.services.catalog import sort_order
from eshop_api.services.envelope import envelope, failure
from eshop_api.validation import as_int, as_text, is_digits, missing_fields

logger = logging.getLogger(__name__)

FAQ_SORT_COLUMNS = {
    "id": "pf.id",
    "product_id": "pf.product_id",
    "user_id": "pf.user_id",
    "votes": "pf.votes",
    "date_added": "pf.date_added",
}

FAQ_SPEC = {
    "id": Kind.STRINGIFY_NUMBER,
    "product_id": Kind.STRINGIFY_NUMBER,
    "user_id": Kind.STRINGIFY_NUMBER,
    "username": Kind.PASSTHROUGH_STRING,
    "question": Kind.PASSTHROUGH_STRING,
    "answer": Kind.PASSTHROUGH_STRING,
    "votes": Kind.STRINGIFY_NUMBER,
    "answered_by": Kind.STRINGIFY_NUMBER,
    "answered_by_name": Kind.PASSTHROUGH_STRING,
    "date_added": Kind.FORMAT_DATETIME,
}

# Filter parameter, its error message and the column it constrains.
NUMERIC_FILTERS = (
    ("id", "FAQs ID must be numeric", "pf.id"),
    ("product_id", "Product ID must be numeric", "pf.product_id"),
    ("user_id", "User ID must be numeric", "pf.user_id"),
)


def fetch_faqs(
    conn: Connection,
    filters: dict[str, Any],
    *,
    search: str = "",
    limit: int = 10,
    offset: int = 0,
    sort: str = "id",
    order: str = "DESC",
    answered_only: bool = True,
) -> tuple[int, list[dict[str, Any]]]:
    """Load one page of FAQs and the total count of matching FAQs.

    Args:
        conn: Open database connection
        filters: Column to value equality filters
        search: Free text matched against ids, question and answer
        limit: Page size
        offset: Page offset
        sort: Sort alias, see ``FAQ_SORT_COLUMNS``
        order: ASC or DESC
        answered_only: Skip questions nobody answered yet

    Returns:
        ``(total, rows)`` with rows normalized for output
    """
    where: list[str] = []
    params: dict[str, Any] = {}
    for index, (column, value) in enumerate(filters.items()):
        where.append(f"{column} = :filter_{index}")
        params[f"filter_{index}"] = value
    if search:
        where.append(
            "(pf.id LIKE :search OR pf.product_id LIKE :search OR pf.user_id LIKE :search "
            "OR pf.question LIKE :search OR pf.answer LIKE :search)"
        )
        params["search"] = f"%{search}%"
    if answered_only:
        where.append("pf.answer != ''")

    where_sql = f"WHERE {' AND '.join(where)}" if where else ""
    joins = (
        "FROM product_faqs pf "
        "JOIN users u ON u.id = pf.user_id "
        "LEFT JOIN users ab ON ab.id = pf.answered_by"
    )
    total = fetch_value(conn, f"SELECT COUNT(pf.id) {joins} {where_sql}", params, default=0)
    rows = fetch_all(
        conn,
        f"SELECT pf.*, u.username, ab.username AS answered_by_name {joins} {where_sql} "
        f"ORDER BY {FAQ_SORT_COLUMNS.get(sort, 'pf.id')} {sort_order(order)} "
        "LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": offset},
    )
    return int(total), [normalize(output_escaping(row), FAQ_SPEC) for row in rows]


class FaqService:
    """Adds and lists product FAQs."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def add_product_faqs(self, params: dict[str, Any]) -> dict[str, Any]:
        missing = missing_fields(params, ["product_id", "user_id", "question"])
        if missing:
            return failure(f"{', '.join(missing)} field(s) required.")

        product_id = as_int(params["product_id"], 0)
        user_id = as_int(params["user_id"], 0)
        if not product_id or not user_id:
            return failure("Product ID and User ID must be numeric values")

        with self._db.transaction() as conn:
            if fetch_one(conn, "SELECT id FROM users WHERE id = :id", {"id": user_id}) is None:
                return failure("User not found!")

            result = execute(
                conn,
                "INSERT INTO product_faqs (product_id, user_id, question, answer, answered_by, "
                "votes, date_added) VALUES (:product_id, :user_id, :question, '', 0, 0, :now)",
                {
                    "product_id": product_id,
                    "user_id": user_id,
                    "question": str(params["question"]),
                    "now": format_datetime(datetime.now()),
                },
            )
            faq_id = result.lastrowid
            if not faq_id:
                return failure("FAQS Not Added")

            _, faqs = fetch_faqs(
                conn,
                {"pf.id": faq_id, "pf.product_id": product_id, "pf.user_id": user_id},
                answered_only=False,
            )

        logger.info("FAQ %s added for product %s", faq_id, product_id)
        return envelope(False, "FAQS added Successfully", faqs)

    def get_product_faqs(self, params: dict[str, Any]) -> dict[str, Any]:
        filters: dict[str, Any] = {}
        for name, message, column in NUMERIC_FILTERS:
            value = as_text(params.get(name))
            if not value:
                continue
            if not is_digits(value):
                return failure(message)
            filters[column] = value

        with self._db.connection() as conn:
            total, faqs = fetch_faqs(
                conn,
                filters,
                search=as_text(params.get("search")),
                limit=as_int(params.get("limit"), 10),
                offset=as_int(params.get("offset"), 0),
                sort=as_text(params.get("sort"), "id"),
                order=as_text(params.get("order"), "DESC"),
            )

        if not faqs:
            return envelope(True, "FAQs does not exist", [], total="0")
        return envelope(False, "FAQs retrieved successfully", faqs, total=str(total))
