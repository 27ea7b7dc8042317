import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterable

from menu_service.database import CassandraStore
from menu_service.errors import (
    MenuItemNotFoundError,
    MenuItemValidationError,
    MenuServiceError,
    StorageError,
)
from menu_service.metrics import SEARCH_RESULTS
from menu_service.models.menu_item import COLUMNS, TABLE_NAME, MenuItem
from menu_service.schemas.menu_item import MenuItemCreate, MenuItemUpdate

logger = logging.getLogger(__name__)

SELECT_ALL = f"SELECT * FROM {TABLE_NAME}"
SELECT_BY_ID = f"SELECT * FROM {TABLE_NAME} WHERE id = ?"
INSERT = (
    f"INSERT INTO {TABLE_NAME} ({', '.join(COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in COLUMNS)})"
)
UPDATE = (
    f"UPDATE {TABLE_NAME} "
    "SET name = ?, description = ?, category = ?, price = ?, is_vegetarian = ?, updated_at = ? "
    "WHERE id = ? IF EXISTS"
)
DELETE = f"DELETE FROM {TABLE_NAME} WHERE id = ? IF EXISTS"

_SEARCHABLE_FIELDS = ("name", "description", "category")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    """Naive UTC, truncated to the millisecond resolution of a Cassandra timestamp."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


@contextmanager
def _storage_errors(operation: str, **context):
    try:
        yield
    except MenuServiceError:
        raise
    except Exception as exc:
        logger.error(
            "Error trying to %s",
            operation,
            extra={"error": str(exc), **context},
        )
        raise StorageError(f"Failed to {operation}", details=str(exc)) from exc


def _applied(rows: list[dict]) -> bool:
    return bool(rows) and bool(rows[0].get("[applied]"))


def parse_item_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except (TypeError, ValueError):
        raise MenuItemValidationError("Invalid ID format", details=f"Not a UUID: {raw!r}")


def matches(item: MenuItem, term: str) -> bool:
    """Case-insensitive substring test against name, description and category.

    `term` must already be lower-cased. Null fields never match.
    """
    for field_name in _SEARCHABLE_FIELDS:
        value = getattr(item, field_name)
        if value and term in value.lower():
            return True
    return False


def filter_menu_items(items: Iterable[MenuItem], term: str | None) -> list[MenuItem]:
    """Keep storage order. A blank term returns every item; otherwise whitespace is significant."""
    normalised = (term or "").lower()
    if not normalised.strip():
        return list(items)
    return [item for item in items if matches(item, normalised)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def search_menu_items(store: CassandraStore, term: str | None) -> list[MenuItem]:
    """
    Full scan, then filter in memory.

    CQL has no case-insensitive substring predicate and the table has no
    secondary index, so every row is pulled (all driver pages) and matched
    here. Only viable while the menu stays small.
    """
    operation = "search menu items" if term and term.strip() else "fetch menu items"
    with _storage_errors(operation, term=term):
        rows = await store.execute(SELECT_ALL, prepare=True)

    items = [MenuItem.from_row(row) for row in rows]
    result = filter_menu_items(items, term)

    SEARCH_RESULTS.labels("scanned").inc(len(items))
    SEARCH_RESULTS.labels("matched").inc(len(result))
    logger.info(
        "Retrieved %d of %d menu items",
        len(result),
        len(items),
        extra={"term": term},
    )
    return result


async def list_menu_items(store: CassandraStore) -> list[MenuItem]:
    return await search_menu_items(store, "")


async def get_menu_item(store: CassandraStore, item_id: uuid.UUID) -> MenuItem:
    with _storage_errors("fetch menu item", item_id=str(item_id)):
        rows = await store.execute(SELECT_BY_ID, [item_id], prepare=True)
    if not rows:
        raise MenuItemNotFoundError()
    return MenuItem.from_row(rows[0])


async def create_menu_item(store: CassandraStore, data: MenuItemCreate) -> MenuItem:
    now = _now()
    item = MenuItem(
        id=uuid.uuid4(),
        name=data.name,
        description=data.description,
        category=data.category,
        price=data.price,
        is_vegetarian=data.is_vegetarian,
        created_at=now,
        updated_at=now,
    )
    logger.info(
        "Creating menu item",
        extra={
            "item_id": str(item.id),
            "item_name": item.name,
            "category": item.category,
            "price": str(item.price),
            "is_vegetarian": item.is_vegetarian,
        },
    )
    with _storage_errors("create menu item", item_id=str(item.id)):
        await store.execute(INSERT, item.to_row(), prepare=True)
    return item


async def update_menu_item(
    store: CassandraStore,
    item_id: uuid.UUID,
    data: MenuItemUpdate,
) -> MenuItem:
    """
    Replace the mutable fields of an existing item.

    A missing id raises MenuItemNotFoundError rather than upserting; the
    conditional UPDATE keeps a concurrent delete from being resurrected.
    """
    existing = await get_menu_item(store, item_id)

    updated_at = _now()
    if existing.updated_at is not None and updated_at <= existing.updated_at:
        updated_at = existing.updated_at + timedelta(milliseconds=1)

    with _storage_errors("update menu item", item_id=str(item_id)):
        rows = await store.execute(
            UPDATE,
            [
                data.name,
                data.description,
                data.category,
                data.price,
                data.is_vegetarian,
                updated_at,
                item_id,
            ],
            prepare=True,
        )
    if not _applied(rows):
        raise MenuItemNotFoundError()

    logger.info("Updated menu item", extra={"item_id": str(item_id)})
    return MenuItem(
        id=existing.id,
        name=data.name,
        description=data.description,
        category=data.category,
        price=data.price,
        is_vegetarian=data.is_vegetarian,
        created_at=existing.created_at,
        updated_at=updated_at,
    )


async def delete_menu_item(store: CassandraStore, item_id: uuid.UUID) -> None:
    with _storage_errors("delete menu item", item_id=str(item_id)):
        rows = await store.execute(DELETE, [item_id], prepare=True)
    if not _applied(rows):
        raise MenuItemNotFoundError()
    logger.info("Deleted menu item", extra={"item_id": str(item_id)})
