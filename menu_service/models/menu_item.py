import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

TABLE_NAME = "menu_items"

CREATE_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        id uuid PRIMARY KEY,
        name text,
        description text,
        category text,
        price decimal,
        is_vegetarian boolean,
        created_at timestamp,
        updated_at timestamp
    )
"""

COLUMNS = (
    "id",
    "name",
    "description",
    "category",
    "price",
    "is_vegetarian",
    "created_at",
    "updated_at",
)


@dataclass
class MenuItem:
    id: uuid.UUID
    name: str | None
    description: str | None
    category: str | None
    price: Decimal | None
    is_vegetarian: bool
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MenuItem":
        # Rows written outside this service may carry nulls in any non-key column.
        return cls(
            id=row["id"],
            name=row.get("name"),
            description=row.get("description"),
            category=row.get("category"),
            price=row.get("price"),
            is_vegetarian=bool(row.get("is_vegetarian")),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_row(self) -> tuple:
        values = asdict(self)
        return tuple(values[column] for column in COLUMNS)
