"""Delivery addresses."""

import logging
from typing import Any

from sqlalchemy.engine import Connection

from eshop_api.normalize import Kind, normalize
from eshop_api.repositories.database import Database, execute, fetch_all, fetch_one
from eshop_api.services.envelope import envelope, failure

logger = logging.getLogger(__name__)

NOT_DELIVERING = "Sorry!! Not Delivering to this pincode. Please contact +91 8500820088"

# Request fields copied straight into the addresses table.
WRITABLE_FIELDS = (
    "user_id",
    "type",
    "name",
    "mobile",
    "country_code",
    "alternate_mobile",
    "address",
    "landmark",
    "area_id",
    "city_id",
    "state",
    "country",
    "latitude",
    "longitude",
    "pincode",
)

ADDRESS_SPEC = {
    "id": Kind.STRINGIFY_NUMBER,
    "user_id": Kind.STRINGIFY_NUMBER,
    "type": Kind.NULL_TO_EMPTY_STRING,
    "name": Kind.NULL_TO_EMPTY_STRING,
    "mobile": Kind.NULL_TO_EMPTY_STRING,
    "country_code": Kind.NULL_TO_EMPTY_STRING,
    "alternate_mobile": Kind.NULL_TO_EMPTY_STRING,
    "address": Kind.NULL_TO_EMPTY_STRING,
    "landmark": Kind.NULL_TO_EMPTY_STRING,
    "area_id": Kind.STRINGIFY_NUMBER,
    "city_id": Kind.STRINGIFY_NUMBER,
    "area": Kind.NULL_TO_EMPTY_STRING,
    "city": Kind.NULL_TO_EMPTY_STRING,
    "pincode": Kind.NULL_TO_EMPTY_STRING,
    "state": Kind.NULL_TO_EMPTY_STRING,
    "country": Kind.NULL_TO_EMPTY_STRING,
    "latitude": Kind.NULL_TO_EMPTY_STRING,
    "longitude": Kind.NULL_TO_EMPTY_STRING,
    "is_default": Kind.STRINGIFY_NUMBER,
    "minimum_free_delivery_order_amount": Kind.STRINGIFY_NUMBER,
    "delivery_charges": Kind.STRINGIFY_NUMBER,
    "pincode_name": Kind.NULL_TO_EMPTY_STRING,
}


def fetch_addresses(
    conn: Connection,
    user_id: Any = None,
    address_id: Any = None,
    latest: bool = False,
) -> list[dict[str, Any]]:
    """Load addresses newest first, with area and city names resolved."""
    where = ["1 = 1"]
    params: dict[str, Any] = {}
    if user_id:
        where.append("a.user_id = :user_id")
        params["user_id"] = user_id
    if address_id:
        where.append("a.id = :id")
        params["id"] = address_id

    sql = (
        "SELECT a.*, ar.name AS area_name, ar.minimum_free_delivery_order_amount, "
        "ar.delivery_charges, c.name AS city_name "
        "FROM addresses a "
        "LEFT JOIN areas ar ON ar.id = a.area_id "
        "LEFT JOIN cities c ON c.id = a.city_id "
        f"WHERE {' AND '.join(where)} ORDER BY a.id DESC"
    )
    if latest:
        sql += " LIMIT 1"

    addresses = []
    for row in fetch_all(conn, sql, params):
        row["area"] = row.pop("area_name") or row.get("area")
        row["city"] = row.pop("city_name") or row.get("city")
        row["pincode_name"] = row.get("pincode")
        addresses.append(normalize(row, ADDRESS_SPEC))
    return addresses


class AddressService:
    """Lists and edits a user's delivery addresses."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get_address(self, params: dict[str, Any]) -> dict[str, Any]:
        user_id = params.get("user_id")
        if not user_id:
            return failure("User ID is required")

        with self._db.connection() as conn:
            addresses = fetch_addresses(conn, user_id=user_id)
        if not addresses:
            return failure("No Details Found !")

        if not any(address["is_default"] == "1" for address in addresses):
            with self._db.transaction() as conn:
                execute(
                    conn,
                    "UPDATE addresses SET is_default = 1 WHERE id = :id",
                    {"id": addresses[0]["id"]},
                )
                addresses = fetch_addresses(conn, user_id=user_id)

        return envelope(False, "Address Retrieved Successfully", addresses)

    def add_address(self, params: dict[str, Any]) -> dict[str, Any]:
        if not params.get("user_id"):
            return failure("User ID is required")

        with self._db.transaction() as conn:
            if not self._is_deliverable(conn, params.get("pincode_name")):
                return failure(NOT_DELIVERING)
            self._save(conn, params)
            address = fetch_addresses(conn, user_id=params["user_id"], latest=True)

        return envelope(False, "Address Added Successfully", address)

    def update_address(self, params: dict[str, Any]) -> dict[str, Any]:
        if not params.get("id"):
            return failure("Address ID is required")

        with self._db.transaction() as conn:
            if not self._is_deliverable(conn, params.get("pincode_name")):
                return failure(NOT_DELIVERING)
            self._save(conn, params)
            address = fetch_addresses(conn, address_id=params["id"], latest=True)

        return envelope(False, "Address updated Successfully", address)

    def delete_address(self, params: dict[str, Any]) -> dict[str, Any]:
        if not params.get("id"):
            return failure("Address ID is required")

        with self._db.transaction() as conn:
            execute(conn, "DELETE FROM addresses WHERE id = :id", {"id": params["id"]})

        return envelope(False, "Address Deleted Successfully", [])

    def _is_deliverable(self, conn: Connection, pincode: Any) -> bool:
        if not pincode:
            return True
        return (
            fetch_one(conn, "SELECT id FROM zipcodes WHERE zipcode = :zipcode", {"zipcode": pincode})
            is not None
        )

    def _save(self, conn: Connection, params: dict[str, Any]) -> None:
        values = {field: params[field] for field in WRITABLE_FIELDS if params.get(field)}

        if params.get("pincode_name"):
            area = fetch_one(
                conn,
                "SELECT ar.id, ar.city_id FROM areas ar "
                "JOIN zipcodes z ON z.id = ar.zipcode_id WHERE z.zipcode = :zipcode",
                {"zipcode": params["pincode_name"]},
            )
            if area is not None:
                values["area_id"] = area["id"]
                values["city_id"] = area["city_id"]

        if values.get("city_id"):
            city = fetch_one(conn, "SELECT name FROM cities WHERE id = :id", {"id": values["city_id"]})
            if city is not None:
                values["city"] = city["name"]
        if values.get("area_id"):
            area_name = fetch_one(conn, "SELECT name FROM areas WHERE id = :id", {"id": values["area_id"]})
            if area_name is not None:
                values["area"] = area_name["name"]

        if params.get("is_default") not in (None, "", "0", 0):
            owner = params.get("user_id")
            if not owner and params.get("id"):
                row = fetch_one(conn, "SELECT user_id FROM addresses WHERE id = :id", {"id": params["id"]})
                owner = row["user_id"] if row else None
            if owner:
                execute(
                    conn,
                    "UPDATE addresses SET is_default = 0 WHERE user_id = :user_id",
                    {"user_id": owner},
                )
            values["is_default"] = 1

        if params.get("id"):
            if not values:
                return
            assignments = ", ".join(f"{column} = :{column}" for column in values)
            execute(
                conn,
                f"UPDATE addresses SET {assignments} WHERE id = :address_id",
                {**values, "address_id": params["id"]},
            )
            logger.debug("Updated address %s", params["id"])
        else:
            columns = ", ".join(values)
            placeholders = ", ".join(f":{column}" for column in values)
            execute(conn, f"INSERT INTO addresses ({columns}) VALUES ({placeholders})", values)
