"""
Pagination helpers.

Message history uses keyset (cursor) pagination over (created_at, id);
session listings use plain page/page_size pagination.
"""
import base64
import binascii
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Tuple
from uuid import UUID

from mindchat.core.exceptions import BadRequestError


def to_epoch_millis(value: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def from_epoch_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def encode_cursor(created_at: datetime, message_id: UUID) -> str:
    """Opaque cursor: base64 of "<epoch-millis>-<message-id>"."""
    raw = f"{to_epoch_millis(created_at)}-{message_id}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> Tuple[datetime, UUID]:
    """
    Reverse ``encode_cursor``.

    Raises:
        BadRequestError: If the cursor was not produced by encode_cursor
    """
    try:
        decoded = base64.b64decode(cursor.encode("ascii"), validate=True).decode("utf-8")
        # Split on the first hyphen only; the id itself contains hyphens
        millis, message_id = decoded.split("-", 1)
        return from_epoch_millis(int(millis)), UUID(message_id)
    except (binascii.Error, UnicodeError, ValueError):
        raise BadRequestError("Invalid cursor")


@dataclass
class PageInfo:
    """Offset pagination metadata for page-numbered listings."""

    page: int
    page_size: int
    offset: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


def get_page_info(page: int, page_size: int, total: int) -> PageInfo:
    """Clamp page/page_size and compute offset and navigation flags."""
    page = max(1, page)
    page_size = min(100, max(1, page_size))
    total_pages = math.ceil(total / page_size) if total else 0
    return PageInfo(
        page=page,
        page_size=page_size,
        offset=(page - 1) * page_size,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
