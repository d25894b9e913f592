"""Shopping cart.

Cart rows are priced on read: the effective price is the special price
when it undercuts the list price, and tax is added on top for products
whose prices exclude tax. Totals are always computed from the stored
base prices, never from the tax-adjusted item prices.

Example:
    ```python
    service = CartService(database)
    service.manage_cart({"user_id": "2", "product_variant_id": "23,24", "qty": "1,0"})
    ```
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection

from eshop_api.media import format_image_url
from eshop_api.normalize import Kind, normalize, number_text, stringify_numbers
from eshop_api.repositories.database import Database, Row, execute, fetch_all, fetch_one, fetch_value
from eshop_api.services import catalog
from eshop_api.services.envelope import envelope, failure
from eshop_api.services.settings_service import json_setting
from eshop_api.validation import as_int, as_text, is_numeric, validate

logger = logging.getLogger(__name__)

DIGITAL_PRODUCT = "digital_product"

CART_ITEM_SPEC = {
    "id": Kind.STRINGIFY_NUMBER,
    "user_id": Kind.STRINGIFY_NUMBER,
    "product_variant_id": Kind.STRINGIFY_NUMBER,
    "product_id": Kind.STRINGIFY_NUMBER,
    "qty": Kind.STRINGIFY_NUMBER,
    "is_saved_for_later": Kind.STRINGIFY_NUMBER,
    "date_created": Kind.FORMAT_DATETIME,
    "name": Kind.PASSTHROUGH_STRING,
    "short_description": Kind.PASSTHROUGH_STRING,
    "type": Kind.PASSTHROUGH_STRING,
    "image": Kind.PASSTHROUGH_STRING,
    "image_sm": Kind.PASSTHROUGH_STRING,
    "image_md": Kind.PASSTHROUGH_STRING,
    "shipping_method": Kind.NULL_TO_EMPTY_STRING,
    "pickup_location": Kind.NULL_TO_EMPTY_STRING,
    "is_prices_inclusive_tax": Kind.STRINGIFY_NUMBER,
    "is_on_sale": Kind.STRINGIFY_NUMBER,
    "sale_discount": Kind.STRINGIFY_NUMBER,
    "minimum_order_quantity": Kind.STRINGIFY_NUMBER,
    "quantity_step_size": Kind.STRINGIFY_NUMBER,
    "total_allowed_quantity": Kind.NULL_TO_EMPTY_STRING,
    "weight": Kind.STRINGIFY_NUMBER,
    "price": Kind.STRINGIFY_NUMBER,
    "special_price": Kind.STRINGIFY_NUMBER,
    "tax_percentage": Kind.STRINGIFY_NUMBER,
    "tax_amount": Kind.STRINGIFY_NUMBER,
    "net_amount": Kind.STRINGIFY_NUMBER,
}


@dataclass
class CartTotals:
    """Aggregated cart amounts as the legacy API reports them."""

    sub_total: float = 0.0
    tax_amount: float = 0.0
    tax_percentage: float = 0.0
    quantity: int = 0
    variant_ids: list[str] = field(default_factory=list)

    @property
    def overall_amount(self) -> float:
        return self.sub_total + self.tax_amount

    @property
    def items(self) -> int:
        return len(self.variant_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_quantity": str(self.quantity),
            "sub_total": f"{self.sub_total:.2f}",
            "tax_percentage": number_text(self.tax_percentage),
            "tax_amount": f"{self.tax_amount:.2f}",
            "overall_amount": f"{self.overall_amount:.2f}",
            "total_arr": round(self.overall_amount, 2) if self.variant_ids else 0,
            "variant_id": list(self.variant_ids),
        }


def _float(value: Any) -> float:
    return float(value) if is_numeric(value) else 0.0


def effective_price(price: Any, special_price: Any) -> float:
    """The special price when it undercuts the list price, else the list price."""
    base = _float(price)
    special = _float(special_price)
    return special if 0 < special < base else base


def cart_totals(rows: list[Row]) -> CartTotals:
    """Sum quantities, prices and tax over raw cart rows."""
    totals = CartTotals()
    for row in rows:
        qty = as_int(row.get("qty"), 0)
        price = effective_price(row.get("price"), row.get("special_price"))
        tax = _float(row.get("tax_percentage"))

        if as_int(row.get("is_prices_inclusive_tax"), 0) == 1:
            item_tax = price - price * (100 / (100 + tax))
        else:
            item_tax = price * (tax / 100)

        totals.quantity += qty
        totals.sub_total += price * qty
        totals.tax_amount += item_tax * qty
        totals.tax_percentage += tax
        totals.variant_ids.append(str(row["product_variant_id"]))
    return totals


def price_item(row: Row) -> dict[str, Any]:
    """Apply tax to one cart row and normalize it for output."""
    item = dict(row)
    price = _float(row.get("price"))
    special = effective_price(row.get("price"), row.get("special_price"))
    percentage = max(_float(row.get("tax_percentage")), 0.0)

    price_tax = special_tax = 0.0
    if as_int(row.get("is_prices_inclusive_tax"), 0) == 0 and percentage > 0:
        price_tax = price * percentage / 100
        special_tax = special * percentage / 100
    tax_amount = special * percentage / 100

    item["price"] = round(price + price_tax, 2)
    item["special_price"] = round(special + special_tax, 2)
    item["net_amount"] = round(item["special_price"] - tax_amount, 2)
    item["tax_amount"] = round(tax_amount, 2)
    item["tax_percentage"] = row.get("tax_percentage") or 0
    item["minimum_order_quantity"] = row.get("minimum_order_quantity") or 1
    item["quantity_step_size"] = row.get("quantity_step_size") or 1
    if row.get("image"):
        item["image"] = format_image_url(row["image"])
        item["image_sm"] = format_image_url(row["image"], "sm")
        item["image_md"] = format_image_url(row["image"], "md")
    return normalize(item, CART_ITEM_SPEC)


def fetch_cart_rows(
    conn: Connection, user_id: Any, saved_for_later: int = 0, variant_id: Any = None
) -> list[Row]:
    """Load raw cart rows joined with product, variant and tax data, newest first."""
    sql = """
        SELECT c.id, c.user_id, c.product_variant_id, c.qty, c.is_saved_for_later, c.date_created,
               p.id AS product_id, p.is_prices_inclusive_tax, p.name, p.image, p.short_description,
               p.minimum_order_quantity, p.shipping_method, p.pickup_location, p.is_on_sale,
               p.type, p.sale_discount, p.quantity_step_size, p.total_allowed_quantity,
               pv.price, pv.weight, pv.special_price, tax.percentage AS tax_percentage
        FROM cart c
        JOIN product_variants pv ON pv.id = c.product_variant_id
        JOIN products p ON p.id = pv.product_id
        LEFT JOIN taxes tax ON tax.id = p.tax
        WHERE c.user_id = :user_id AND p.status = 1 AND pv.status = 1
          AND c.qty != 0 AND c.is_saved_for_later = :saved
    """
    params: dict[str, Any] = {"user_id": user_id, "saved": saved_for_later}
    if variant_id:
        sql += " AND c.product_variant_id = :variant_id"
        params["variant_id"] = variant_id
    sql += " ORDER BY c.id DESC"
    return fetch_all(conn, sql, params)


def split_values(value: Any) -> list[str]:
    """Split a comma-separated request value, keeping positions."""
    return [part.strip() for part in str(value).split(",")]


class CartService:
    """Adds, updates, removes and lists cart items."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def manage_cart(self, params: dict[str, Any]) -> dict[str, Any]:
        """Set quantities for one or more variants; a zero quantity removes the row."""
        error = validate(
            params,
            {"user_id": "required|numeric", "product_variant_id": "required", "qty": "required"},
        )
        if error:
            return failure(error)

        variant_ids = split_values(params["product_variant_id"])
        quantities = split_values(params["qty"])
        if not all(is_numeric(qty) for qty in quantities):
            return failure("The qty field must be numeric.")
        if len(variant_ids) != len(quantities):
            return failure("Each product variant needs a quantity.")

        # Blank list entries ("1," or ",") name no variant and are skipped.
        pairs = [(variant_id, qty) for variant_id, qty in zip(variant_ids, quantities) if variant_id]
        if not pairs:
            return failure("The product_variant_id field is required.")
        variant_ids = [variant_id for variant_id, _ in pairs]
        quantities = [qty for _, qty in pairs]

        user_id = params["user_id"]
        saved_for_later = 1 if as_text(params.get("is_saved_for_later")) == "1" else 0

        with self._db.transaction() as conn:
            system_settings = self._system_settings(conn)

            for variant_id in variant_ids:
                if not self._is_single_product_type(conn, variant_id, user_id):
                    return failure("You can only add either digital product or physical product to cart")

            max_items = system_settings.get("max_items_cart")
            if max_items not in (None, ""):
                in_cart = fetch_value(
                    conn,
                    "SELECT COUNT(id) FROM cart WHERE user_id = :user_id "
                    "AND product_variant_id = :variant_id",
                    {"user_id": user_id, "variant_id": variant_ids[0]},
                    default=0,
                )
                cart_count = fetch_value(
                    conn, "SELECT COUNT(id) FROM cart WHERE user_id = :user_id", {"user_id": user_id}, default=0
                )
                if not in_cart and int(cart_count) >= as_int(max_items, 0):
                    return failure(f"Maximum {max_items} Item(s) Can Be Added Only!")

            if not saved_for_later:
                stock_error = self._validate_stock(conn, variant_ids, quantities)
                if stock_error:
                    items = self._with_details(conn, fetch_cart_rows(conn, user_id, saved_for_later))
                    return envelope(
                        True,
                        stock_error,
                        [],
                        **cart_totals(fetch_cart_rows(conn, user_id)).to_dict(),
                        cart=items,
                    )

            for variant_id, qty in zip(variant_ids, quantities):
                if as_int(qty, 0) == 0:
                    self._remove(conn, user_id, [variant_id])
                else:
                    self._upsert(conn, user_id, variant_id, as_int(qty, 0), saved_for_later)

            totals = cart_totals(fetch_cart_rows(conn, user_id))
            items = self._with_details(conn, fetch_cart_rows(conn, user_id, saved_for_later))

        summary = totals.to_dict()
        return envelope(
            False,
            "Cart Updated !",
            {
                "total_quantity": summary["total_quantity"],
                "sub_total": summary["sub_total"],
                "total_items": str(len(items)),
                "tax_percentage": summary["tax_percentage"],
                "tax_amount": summary["tax_amount"],
                "cart_count": str(len(items)),
                "max_items_cart": as_text(max_items),
                "overall_amount": summary["overall_amount"],
            },
            **summary,
            cart=items,
        )

    def remove_from_cart(self, params: dict[str, Any]) -> dict[str, Any]:
        error = validate(params, {"user_id": "required|numeric", "product_variant_id": "required"})
        if error:
            return failure(error)

        with self._db.transaction() as conn:
            self._remove(conn, params["user_id"], split_values(params["product_variant_id"]))
            totals = cart_totals(fetch_cart_rows(conn, params["user_id"]))
            system_settings = self._system_settings(conn)

        return envelope(
            False,
            "Removed From Cart !",
            {
                "total_quantity": str(totals.quantity),
                "sub_total": f"{totals.sub_total:.2f}",
                "total_items": str(totals.items),
                "max_items_cart": as_text(system_settings.get("max_items_cart")),
            },
        )

    def get_user_cart(self, params: dict[str, Any]) -> dict[str, Any]:
        """List the cart with per-item pricing and cart totals.

        Unavailable products are moved to saved-for-later as a side effect.
        """
        error = validate(
            params,
            {"user_id": "required|numeric", "delivery_pincode": "numeric", "is_saved_for_later": "numeric"},
        )
        if error:
            return failure(error)

        user_id = params["user_id"]
        saved_for_later = 1 if as_text(params.get("is_saved_for_later")) == "1" else 0

        with self._db.transaction() as conn:
            rows = fetch_cart_rows(conn, user_id, saved_for_later)
            items = self._with_details(conn, rows)
            totals = cart_totals(fetch_cart_rows(conn, user_id, saved_for_later))

            delivery_charge = "0.00"
            if items and any(row.get("shipping_method") == "pickup" for row in rows):
                delivery_charge = self._delivery_charge(conn, params.get("address_id"), totals.sub_total)

        summary = totals.to_dict()
        extras = {
            "total_quantity": summary["total_quantity"],
            "sub_total": summary["sub_total"],
            "delivery_charge": delivery_charge,
            "tax_percentage": summary["tax_percentage"],
            "tax_amount": summary["tax_amount"],
            "overall_amount": summary["overall_amount"],
            "total_arr": summary["total_arr"],
            "variant_id": summary["variant_id"],
        }
        if not items:
            return envelope(True, "Cart Is Empty !", [], **extras)

        response = envelope(False, "Data Retrieved From Cart !", items, **extras)
        response["promo_codes"] = []
        return response

    get_cart = get_user_cart

    def _system_settings(self, conn: Connection) -> dict[str, Any]:
        rows = fetch_all(conn, "SELECT variable, value FROM settings WHERE variable = 'system_settings'")
        return json_setting({row["variable"]: row["value"] for row in rows}, "system_settings")

    def _is_single_product_type(self, conn: Connection, variant_id: str, user_id: Any) -> bool:
        product_type = fetch_value(
            conn,
            "SELECT p.type FROM product_variants pv JOIN products p ON pv.product_id = p.id WHERE pv.id = :id",
            {"id": variant_id},
        )
        if product_type is None:
            return True

        is_digital = product_type == DIGITAL_PRODUCT
        others = fetch_all(
            conn,
            "SELECT p.type FROM cart c "
            "JOIN product_variants pv ON c.product_variant_id = pv.id "
            "JOIN products p ON pv.product_id = p.id "
            "WHERE c.user_id = :user_id AND c.product_variant_id != :id AND c.is_saved_for_later = 0",
            {"user_id": user_id, "id": variant_id},
        )
        return all((row["type"] == DIGITAL_PRODUCT) == is_digital for row in others)

    def _validate_stock(self, conn: Connection, variant_ids: list[str], quantities: list[str]) -> str | None:
        """Return the first stock problem for the requested quantities, if any."""
        for variant_id, qty in zip(variant_ids, quantities):
            wanted = as_int(qty, 0)
            if wanted == 0:
                continue

            variant = fetch_one(
                conn,
                "SELECT pv.stock, pv.availability, p.name, p.total_allowed_quantity "
                "FROM product_variants pv JOIN products p ON p.id = pv.product_id WHERE pv.id = :id",
                {"id": variant_id},
            )
            if variant is None:
                return "Product variant not found"

            name = variant["name"]
            if as_int(variant["availability"], 0) != 1:
                return f"{name} is not available for purchase!"

            allowed = as_int(variant["total_allowed_quantity"], 0)
            if allowed > 0 and wanted > allowed:
                return f"Maximum allowed quantity for {name} is {allowed}!"

            if variant["stock"] is not None and wanted > as_int(variant["stock"], 0):
                return f"Only {number_text(variant['stock'])} item(s) available for {name}"
        return None

    def _upsert(self, conn: Connection, user_id: Any, variant_id: str, qty: int, saved_for_later: int) -> None:
        values = {"user_id": user_id, "variant_id": variant_id, "qty": qty, "saved": saved_for_later}
        updated = execute(
            conn,
            "UPDATE cart SET qty = :qty, is_saved_for_later = :saved "
            "WHERE user_id = :user_id AND product_variant_id = :variant_id",
            values,
        )
        if updated.rowcount:
            logger.debug("Cart of user %s: variant %s set to %s", user_id, variant_id, qty)
            return
        execute(
            conn,
            "INSERT INTO cart (user_id, product_variant_id, qty, is_saved_for_later) "
            "VALUES (:user_id, :variant_id, :qty, :saved)",
            values,
        )
        logger.debug("Cart of user %s: variant %s added", user_id, variant_id)

    def _remove(self, conn: Connection, user_id: Any, variant_ids: list[str]) -> None:
        ids = [variant_id for variant_id in variant_ids if variant_id]
        if not ids:
            return
        statement = text(
            "DELETE FROM cart WHERE user_id = :user_id AND product_variant_id IN :ids"
        ).bindparams(bindparam("ids", expanding=True))
        execute(conn, statement, {"user_id": user_id, "ids": ids})

    def _with_details(self, conn: Connection, rows: list[Row]) -> list[dict[str, Any]]:
        items = []
        for row in rows:
            item = price_item(row)
            details = catalog.fetch_products(conn, ids=[str(row["product_id"])], limit=1)["data"]
            if details and details[0]["availability"] == "0":
                execute(conn, "UPDATE cart SET is_saved_for_later = 1 WHERE id = :id", {"id": row["id"]})
                logger.info("Cart row %s saved for later, product %s unavailable", row["id"], row["product_id"])
                continue
            for detail in details:
                detail["net_amount"] = item["net_amount"]
            item["product_details"] = details
            item["product_variants"] = [
                stringify_numbers(variant)
                for variant in fetch_all(
                    conn, "SELECT * FROM product_variants WHERE id = :id", {"id": row["product_variant_id"]}
                )
            ]
            items.append(item)
        return items

    def _delivery_charge(self, conn: Connection, address_id: Any, sub_total: float) -> str:
        """Delivery charge for an address, free above the minimum cart amount."""
        if not address_id:
            return "0"
        system_settings = self._system_settings(conn)
        if sub_total >= _float(system_settings.get("minimum_cart_amt") or "0"):
            return "0"

        city_charge = fetch_value(
            conn,
            "SELECT c.delivery_charge FROM addresses a JOIN cities c ON c.id = a.city_id WHERE a.id = :id",
            {"id": address_id},
        )
        if city_charge is not None:
            return number_text(city_charge) if not isinstance(city_charge, str) else city_charge
        return as_text(system_settings.get("delivery_charge"), "0")
