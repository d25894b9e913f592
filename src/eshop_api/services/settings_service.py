"""Store settings, as served by ``get_settings``."""

import json
import logging
from datetime import date
from typing import Any

from sqlalchemy.engine import Connection

from eshop_api.config import Settings, get_settings
from eshop_api.media import format_image_url, image_url
from eshop_api.normalize import (
    Kind,
    format_datetime,
    normalize,
    number_text,
    stringify_numbers,
    stringify_numbers_deep,
    strip_slashes,
)
from eshop_api.repositories.database import Database, fetch_all, fetch_one
from eshop_api.services.envelope import envelope, failure
from eshop_api.validation import as_int, validate

logger = logging.getLogger(__name__)

RESPONSE_FIELDS = (
    "logo",
    "privacy_policy",
    "terms_conditions",
    "fcm_server_key",
    "contact_us",
    "about_us",
    "currency",
    "time_slot_config",
    "user_data",
    "system_settings",
    "shipping_method",
    "shipping_policy",
    "return_policy",
    "tags",
    "popup_offer",
)

TEXT_SETTINGS = (
    "privacy_policy",
    "terms_conditions",
    "fcm_server_key",
    "contact_us",
    "about_us",
    "currency",
    "shipping_policy",
    "return_policy",
)

USER_SPEC = {
    "id": Kind.STRINGIFY_NUMBER,
    "username": Kind.PASSTHROUGH_STRING,
    "email": Kind.PASSTHROUGH_STRING,
    "mobile": Kind.PASSTHROUGH_STRING,
    "balance": Kind.STRINGIFY_NUMBER,
    "dob": Kind.PASSTHROUGH_STRING,
    "referral_code": Kind.PASSTHROUGH_STRING,
    "friends_code": Kind.PASSTHROUGH_STRING,
    "city": Kind.NULL_TO_EMPTY_STRING,
    "status": Kind.STRINGIFY_NUMBER,
    "created_at": Kind.FORMAT_DATETIME,
    "cart_total_items": Kind.STRINGIFY_NUMBER,
}

SUCCESS_MESSAGE = "Settings retrieved successfully"


class SettingsService:
    """Reads the ``settings`` key/value table and its satellites.

    ``type=payment_method`` returns the checkout configuration;
    anything else returns the full app bootstrap payload.
    """

    def __init__(self, database: Database, settings: Settings | None = None) -> None:
        self._db = database
        self._settings = settings or get_settings()

    def get_settings(self, params: dict[str, Any]) -> dict[str, Any]:
        error = validate(params, {"user_id": "numeric"})
        if error:
            return failure(error)

        kind = "payment_method" if params.get("type") == "payment_method" else "all"
        user_id = as_int(params.get("user_id"), 0) or None

        with self._db.connection() as conn:
            values = {
                row["variable"]: row["value"]
                for row in fetch_all(conn, "SELECT variable, value FROM settings")
            }
            if kind == "payment_method":
                data = self._payment_method(conn, values, user_id)
            else:
                data = self._all(conn, values, user_id)

        return envelope(False, SUCCESS_MESSAGE, data)

    def _payment_method(
        self, conn: Connection, values: dict[str, str], user_id: int | None
    ) -> dict[str, Any]:
        data: dict[str, Any] = {field: [] for field in RESPONSE_FIELDS}
        data["payment_method"] = json_setting(values, "payment_method")

        slot_config = time_slot_config(values)
        if slot_config:
            data["time_slot_config"] = slot_config
        data["time_slots"] = self._time_slots(conn)
        data["is_cod_allowed"] = self._is_cod_allowed(conn, user_id) if user_id else 1
        return data

    def _all(self, conn: Connection, values: dict[str, str], user_id: int | None) -> dict[str, Any]:
        data: dict[str, Any] = {field: [] for field in RESPONSE_FIELDS}

        data["logo"] = [self._logo(values)]
        for field in TEXT_SETTINGS:
            value = text_setting(values, field)
            if value:
                data[field] = [value]

        shipping_method = json_setting(values, "shipping_method")
        if shipping_method:
            data["shipping_method"] = shipping_method

        slot_config = time_slot_config(values)
        if slot_config:
            data["time_slot_config"] = [slot_config]
        data["time_slots"] = self._time_slots(conn)

        if user_id:
            user = self._user_data(conn, user_id)
            if user:
                data["user_data"] = [user]

        system_settings = json_setting(values, "system_settings")
        data["system_settings"] = [with_wallet_balance(system_settings, user_id)]

        data["tags"] = [
            stringify_numbers(row)
            for row in fetch_all(conn, "SELECT * FROM tags WHERE status = 1 ORDER BY id DESC")
        ]
        offer = self._popup_offer(conn, system_settings)
        data["popup_offer"] = [offer] if offer else []
        return data

    def _logo(self, values: dict[str, str]) -> dict[str, str]:
        logo = values.get("logo")
        if logo:
            return {"is_null": "0", "value": format_image_url(logo, settings=self._settings)}
        return {
            "is_null": "1",
            "value": format_image_url(self._settings.default_image, settings=self._settings),
        }

    def _time_slots(self, conn: Connection) -> list[dict[str, Any]]:
        rows = fetch_all(conn, "SELECT * FROM time_slots WHERE status = 1 ORDER BY from_time ASC")
        return [stringify_numbers(row) for row in rows]

    def _is_cod_allowed(self, conn: Connection, user_id: int) -> int:
        row = fetch_one(
            conn,
            """
            SELECT COUNT(DISTINCT p.id) AS product_count,
                   COUNT(DISTINCT CASE WHEN p.is_cod_allowed = 1 THEN p.id END) AS cod_count
            FROM cart c
            JOIN product_variants pv ON c.product_variant_id = pv.id
            JOIN products p ON pv.product_id = p.id
            WHERE c.user_id = :user_id
            """,
            {"user_id": user_id},
        )
        if not row or not row["product_count"]:
            return 1
        return 1 if int(row["cod_count"]) == int(row["product_count"]) else 0

    def _user_data(self, conn: Connection, user_id: int) -> dict[str, Any] | None:
        row = fetch_one(
            conn,
            """
            SELECT u.id, u.username, u.email, u.mobile, u.balance, u.dob, u.referral_code,
                   u.friends_code, u.city, u.status, u.created_at,
                   (SELECT COUNT(*) FROM cart WHERE user_id = u.id) AS cart_total_items
            FROM users u WHERE u.id = :user_id
            """,
            {"user_id": user_id},
        )
        if row is None:
            return None

        user = normalize(row, USER_SPEC)
        address = fetch_one(
            conn,
            """
            SELECT a.city, a.address, a.area, z.zipcode
            FROM addresses a
            LEFT JOIN areas ar ON a.area_id = ar.id
            LEFT JOIN zipcodes z ON ar.zipcode_id = z.id
            WHERE a.user_id = :user_id AND a.is_default = 1
            LIMIT 1
            """,
            {"user_id": user_id},
        ) or {}
        user.update(
            normalize(
                {
                    "cities": address.get("city"),
                    "street": address.get("address"),
                    "area": address.get("area"),
                    "pincode": address.get("zipcode"),
                },
                {
                    "cities": Kind.PASSTHROUGH_STRING,
                    "street": Kind.PASSTHROUGH_STRING,
                    "area": Kind.PASSTHROUGH_STRING,
                    "pincode": Kind.PASSTHROUGH_STRING,
                },
            )
        )
        return user

    def _popup_offer(
        self, conn: Connection, system_settings: dict[str, Any]
    ) -> dict[str, Any] | None:
        offer = fetch_one(
            conn, "SELECT * FROM popup_offers WHERE status = 1 ORDER BY id DESC LIMIT 1"
        )
        if offer is None:
            return None

        offer_type = offer.get("type") or ""
        data: list[dict[str, Any]] = []
        if offer.get("type_id"):
            if offer_type.lower() == "categories":
                data = self._offer_category(conn, offer["type_id"])
            elif offer_type.lower() == "products":
                data = self._offer_product(conn, offer["type_id"])

        return {
            "id": number_text(offer["id"]),
            "is_active": "1" if system_settings.get("is_offer_popup_on") == "1" else "0",
            "show_multiple_time": "1" if system_settings.get("offer_popup_method") == "refresh" else "0",
            "image": image_url(offer.get("image"), settings=self._settings),
            "type": offer_type,
            "type_id": number_text(offer.get("type_id") or 0),
            "min_discount": number_text(offer["min_discount"]) if offer.get("min_discount") is not None else "0",
            "max_discount": number_text(offer["max_discount"]) if offer.get("max_discount") is not None else "0",
            "link": offer.get("link") or "",
            "date_added": format_datetime(offer.get("date_added")),
            "data": data,
        }

    def _offer_category(self, conn: Connection, category_id: Any) -> list[dict[str, Any]]:
        category = fetch_one(conn, "SELECT * FROM categories WHERE id = :id", {"id": category_id})
        if category is None:
            return []

        total = fetch_one(
            conn,
            "SELECT COUNT(*) AS total FROM products WHERE category_id = :id",
            {"id": category_id},
        )
        return [
            {
                "id": number_text(category["id"]),
                "name": category.get("name") or "",
                "parent_id": number_text(category.get("parent_id") or 0),
                "slug": category.get("slug") or "",
                "image": image_url(category.get("image"), settings=self._settings),
                "banner": image_url(category.get("banner"), settings=self._settings),
                "row_order": number_text(category.get("row_order") or 0),
                "status": number_text(category.get("status") or 0),
                "clicks": number_text(category.get("clicks") or 0),
                "city": str(category.get("city") or ""),
                "children": [],
                "text": category.get("name") or "",
                "state": {"opened": True},
                "icon": "jstree-folder",
                "level": 0,
                "total": number_text(total["total"]) if total else "0",
            }
        ]

    def _offer_product(self, conn: Connection, product_id: Any) -> list[dict[str, Any]]:
        product = fetch_one(conn, "SELECT * FROM products WHERE id = :id", {"id": product_id})
        if product is None:
            return []

        formatted: dict[str, Any] = {}
        for key, value in product.items():
            if key in ("image", "other_images"):
                formatted[key] = image_url(value, settings=self._settings)
            elif value is None:
                formatted[key] = ""
            elif key.startswith("date"):
                formatted[key] = format_datetime(value)
            else:
                formatted[key] = number_text(value) if not isinstance(value, str) else value
        return [formatted]


def text_setting(values: dict[str, str], name: str) -> str:
    """Read a plain text setting with legacy escaping removed."""
    value = values.get(name)
    return strip_slashes(value) if value else ""


def json_setting(values: dict[str, str], name: str) -> dict[str, Any]:
    """Read a JSON setting with every number turned into text.

    Missing or malformed settings read as an empty object.
    """
    value = values.get(name)
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        logger.warning("Setting %s is not valid JSON: %s", name, e)
        return {}
    if not isinstance(parsed, dict):
        return {}
    return stringify_numbers_deep(parsed)


def time_slot_config(values: dict[str, str]) -> dict[str, Any]:
    config = json_setting(values, "time_slot_config")
    if not config:
        return {}
    config["delivery_starts_from"] = str(config.get("delivery_starts_from") or "0")
    if not config.get("starting_date"):
        config["starting_date"] = date.today().isoformat()
    return config


def with_wallet_balance(system_settings: dict[str, Any], user_id: int | None) -> dict[str, Any]:
    """Expose the welcome wallet amount only to identified users when enabled."""
    result = dict(system_settings)
    amount = result.get("wallet_balance_amount")
    if user_id and result.get("welcome_wallet_balance_on") == "1" and amount not in (None, ""):
        result["wallet_balance_amount"] = str(amount)
    else:
        result["wallet_balance_amount"] = "0"
    return result
