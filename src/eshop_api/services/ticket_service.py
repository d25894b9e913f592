"""Support tickets and their message threads."""

import json
import logging
import posixpath
from datetime import datetime
from enum import IntEnum
from typing import Any

from sqlalchemy.engine import Connection

from eshop_api.errors import NotFoundError, ValidationError
from eshop_api.media import image_url
from eshop_api.normalize import Kind, format_datetime, normalize, output_escaping
from eshop_api.repositories.database import Database, execute, fetch_all, fetch_one, fetch_value
from eshop_api.services.catalog import sort_order
from eshop_api.services.envelope import envelope
from eshop_api.validation import as_int, as_text, missing_fields

logger = logging.getLogger(__name__)


class TicketStatus(IntEnum):
    PENDING = 1
    OPENED = 2
    RESOLVED = 3
    CLOSED = 4
    REOPENED = 5


TICKET_FIELDS = ["ticket_type_id", "user_id", "subject", "email", "description"]

TICKET_SORT_COLUMNS = {
    "id": "t.id",
    "status": "t.status",
    "subject": "t.subject",
    "email": "t.email",
    "description": "t.description",
    "last_updated": "t.last_updated",
    "date_created": "t.date_created",
    "title": "tty.title",
    "username": "u.username",
}

MESSAGE_SORT_COLUMNS = {
    "id": "tm.id",
    "user_type": "tm.user_type",
    "user_id": "tm.user_id",
    "ticket_id": "tm.ticket_id",
    "message": "tm.message",
    "last_updated": "tm.last_updated",
    "date_created": "tm.date_created",
    "subject": "t.subject",
    "username": "u.username",
}

FILE_TYPES = {
    "image": ("jpg", "jpeg", "png", "gif"),
    "video": ("mp4", "avi", "mov", "flv"),
    "document": ("pdf", "doc", "docx", "txt"),
    "archive": ("zip", "rar", "7z"),
}

TICKET_SPEC = {
    "id": Kind.STRINGIFY_NUMBER,
    "ticket_type_id": Kind.STRINGIFY_NUMBER,
    "user_id": Kind.STRINGIFY_NUMBER,
    "subject": Kind.PASSTHROUGH_STRING,
    "email": Kind.PASSTHROUGH_STRING,
    "description": Kind.PASSTHROUGH_STRING,
    "status": Kind.STRINGIFY_NUMBER,
    "last_updated": Kind.FORMAT_DATETIME,
    "date_created": Kind.FORMAT_DATETIME,
    "name": Kind.PASSTHROUGH_STRING,
    "ticket_type": Kind.PASSTHROUGH_STRING,
}

MESSAGE_SPEC = {
    "id": Kind.STRINGIFY_NUMBER,
    "user_type": Kind.PASSTHROUGH_STRING,
    "user_id": Kind.STRINGIFY_NUMBER,
    "ticket_id": Kind.STRINGIFY_NUMBER,
    "message": Kind.PASSTHROUGH_STRING,
    "name": Kind.PASSTHROUGH_STRING,
    "subject": Kind.PASSTHROUGH_STRING,
    "last_updated": Kind.FORMAT_DATETIME,
    "date_created": Kind.FORMAT_DATETIME,
}


def attachment_type(path: str) -> str:
    """Classify an attachment by file extension."""
    extension = posixpath.splitext(posixpath.basename(path))[1].lstrip(".").lower()
    for kind, extensions in FILE_TYPES.items():
        if extension in extensions:
            return kind
    return "other"


def render_attachments(raw: Any) -> list[dict[str, str]]:
    """Turn a stored JSON list of paths into ``[{media, type}]``."""
    if not raw:
        return []
    try:
        paths = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        logger.warning("Unreadable ticket attachments %r: %s", raw, e)
        return []
    if not isinstance(paths, list):
        return []
    return [{"media": image_url(str(path)), "type": attachment_type(str(path))} for path in paths]


def _now() -> str:
    return format_datetime(datetime.now())


class TicketService:
    """Opens, edits and lists tickets and their messages."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get_ticket_types(self, params: dict[str, Any]) -> dict[str, Any]:
        with self._db.connection() as conn:
            rows = fetch_all(conn, "SELECT * FROM ticket_types ORDER BY id ASC")
        return envelope(False, "Ticket types fetched successfully", output_escaping(rows))

    def add_ticket(self, params: dict[str, Any]) -> dict[str, Any]:
        """Open a new ticket in PENDING state.

        Raises:
            ValidationError: Required fields are missing
            NotFoundError: The user does not exist
        """
        missing = missing_fields(params, TICKET_FIELDS)
        if missing:
            raise ValidationError(f"{', '.join(missing)} is required!")

        with self._db.transaction() as conn:
            self._require_user(conn, params["user_id"])
            now = _now()
            result = execute(
                conn,
                "INSERT INTO tickets (ticket_type_id, user_id, subject, email, description, status, "
                "last_updated, date_created) VALUES (:ticket_type_id, :user_id, :subject, :email, "
                ":description, :status, :now, :now)",
                {**{field: params[field] for field in TICKET_FIELDS}, "status": int(TicketStatus.PENDING), "now": now},
            )
            ticket_id = result.lastrowid
            logger.info("Ticket %s opened by user %s", ticket_id, params["user_id"])

            return self._list_tickets(
                conn,
                {"ticket_id": ticket_id, "ticket_type_id": params["ticket_type_id"], "user_id": params["user_id"]},
            )

    def edit_ticket(self, params: dict[str, Any]) -> dict[str, Any]:
        """Update a ticket owned by the requesting user.

        Raises:
            ValidationError: Missing fields, foreign ticket or a forbidden status change
            NotFoundError: The user does not exist
        """
        missing = missing_fields(params, ["ticket_id", *TICKET_FIELDS, "status"])
        if missing:
            raise ValidationError(f"{', '.join(missing)} is required!")

        with self._db.transaction() as conn:
            self._require_user(conn, params["user_id"])

            ticket = fetch_one(
                conn,
                "SELECT id, status FROM tickets WHERE id = :id AND user_id = :user_id",
                {"id": params["ticket_id"], "user_id": params["user_id"]},
            )
            if ticket is None:
                raise ValidationError("User id is changed you can not update the ticket.")

            status = as_int(params["status"], 0)
            current = as_int(ticket["status"], 0)
            if status == TicketStatus.RESOLVED and current == TicketStatus.CLOSED:
                raise ValidationError("Current status is closed.")
            if status == TicketStatus.REOPENED and current in (TicketStatus.PENDING, TicketStatus.OPENED):
                raise ValidationError("Current status is pending or opened.")

            execute(
                conn,
                "UPDATE tickets SET ticket_type_id = :ticket_type_id, user_id = :user_id, "
                "subject = :subject, email = :email, description = :description, "
                "status = :status, last_updated = :now WHERE id = :id",
                {
                    **{field: params[field] for field in TICKET_FIELDS},
                    "status": status,
                    "now": _now(),
                    "id": params["ticket_id"],
                },
            )
            result = self._list_tickets(
                conn,
                {"ticket_id": params["ticket_id"], "ticket_type_id": params["ticket_type_id"], "user_id": params["user_id"]},
            )

        if result["error"]:
            raise ValidationError("Ticket Not Updated")
        return envelope(False, "Ticket updated Successfully", result["data"])

    def send_message(self, params: dict[str, Any]) -> dict[str, Any]:
        """Append a text message from the user to a ticket.

        Raises:
            ValidationError: ``user_id`` or ``ticket_id`` is missing
            NotFoundError: The user does not exist
        """
        missing = missing_fields(params, ["user_id", "ticket_id"])
        if missing:
            raise ValidationError(f"Please provide {', '.join(missing)}")

        with self._db.transaction() as conn:
            self._require_user(conn, params["user_id"])
            now = _now()
            result = execute(
                conn,
                "INSERT INTO ticket_messages (user_type, user_id, ticket_id, message, "
                "last_updated, date_created) VALUES ('user', :user_id, :ticket_id, :message, :now, :now)",
                {
                    "user_id": params["user_id"],
                    "ticket_id": params["ticket_id"],
                    "message": params.get("message") or "",
                    "now": now,
                },
            )

        return envelope(False, "Message sent successfully", {"id": str(result.lastrowid)})

    def get_tickets(self, params: dict[str, Any]) -> dict[str, Any]:
        with self._db.connection() as conn:
            return self._list_tickets(conn, params)

    def get_messages(self, params: dict[str, Any]) -> dict[str, Any]:
        where = ["1 = 1"]
        values: dict[str, Any] = {}
        for param, column in (("ticket_id", "tm.ticket_id"), ("user_id", "tm.user_id"), ("msg_id", "tm.id")):
            if as_text(params.get(param)):
                where.append(f"{column} = :{param}")
                values[param] = as_text(params.get(param))

        search = as_text(params.get("search"))
        if search:
            where.append(
                "(u.id LIKE :search OR u.username LIKE :search OR t.subject LIKE :search "
                "OR tm.message LIKE :search)"
            )
            values["search"] = f"%{search}%"

        joins = (
            "FROM ticket_messages tm "
            "LEFT JOIN tickets t ON t.id = tm.ticket_id "
            "LEFT JOIN users u ON u.id = tm.user_id"
        )
        where_sql = " AND ".join(where)
        sort = MESSAGE_SORT_COLUMNS.get(as_text(params.get("sort"), "id"), "tm.id")

        with self._db.connection() as conn:
            total = fetch_value(conn, f"SELECT COUNT(tm.id) {joins} WHERE {where_sql}", values, default=0)
            rows = fetch_all(
                conn,
                f"SELECT tm.*, t.subject, u.username AS name {joins} WHERE {where_sql} "
                f"ORDER BY {sort} {sort_order(params.get('order'))} LIMIT :limit OFFSET :offset",
                {**values, "limit": as_int(params.get("limit"), 10), "offset": as_int(params.get("offset"), 0)},
            )

        messages = []
        for row in rows:
            message = normalize(output_escaping(row), MESSAGE_SPEC)
            message["attachments"] = render_attachments(row.get("attachments"))
            messages.append(message)

        if not messages:
            return envelope(True, "Ticket Message(s) does not exist", [], total=str(total))
        return envelope(False, "Message retrieved successfully", messages, total=str(total))

    def _require_user(self, conn: Connection, user_id: Any) -> None:
        if fetch_one(conn, "SELECT id FROM users WHERE id = :id", {"id": user_id}) is None:
            raise NotFoundError("User not found!")

    def _list_tickets(self, conn: Connection, params: dict[str, Any]) -> dict[str, Any]:
        where = ["1 = 1"]
        values: dict[str, Any] = {}
        for param, column in (
            ("ticket_id", "t.id"),
            ("ticket_type_id", "t.ticket_type_id"),
            ("user_id", "t.user_id"),
            ("status", "t.status"),
        ):
            if as_text(params.get(param)):
                where.append(f"{column} = :{param}")
                values[param] = as_text(params.get(param))

        search = as_text(params.get("search"))
        if search:
            where.append(
                "(u.id LIKE :search OR u.username LIKE :search OR u.email LIKE :search "
                "OR u.mobile LIKE :search OR t.subject LIKE :search OR t.email LIKE :search "
                "OR t.description LIKE :search OR tty.title LIKE :search)"
            )
            values["search"] = f"%{search}%"

        joins = (
            "FROM tickets t "
            "LEFT JOIN ticket_types tty ON tty.id = t.ticket_type_id "
            "LEFT JOIN users u ON u.id = t.user_id"
        )
        where_sql = " AND ".join(where)
        sort = TICKET_SORT_COLUMNS.get(as_text(params.get("sort"), "id"), "t.id")

        total = fetch_value(conn, f"SELECT COUNT(t.id) {joins} WHERE {where_sql}", values, default=0)
        rows = fetch_all(
            conn,
            f"SELECT t.*, tty.title AS ticket_type, u.username AS name {joins} WHERE {where_sql} "
            f"ORDER BY {sort} {sort_order(params.get('order'))} LIMIT :limit OFFSET :offset",
            {**values, "limit": as_int(params.get("limit"), 10), "offset": as_int(params.get("offset"), 0)},
        )

        tickets = [normalize(output_escaping(row), TICKET_SPEC) for row in rows]
        if not tickets:
            return envelope(True, "Ticket(s) does not exist", [], total=str(total))
        return envelope(False, "Tickets retrieved successfully", tickets, total=str(total))
