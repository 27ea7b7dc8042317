import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class MenuItemWrite(BaseModel):
    """Body accepted by create and update. Price and the vegetarian flag may arrive as strings."""

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)
    price: Decimal
    is_vegetarian: bool = False

    model_config = {"extra": "ignore"}

    @field_validator("is_vegetarian", mode="before")
    @classmethod
    def _only_true_is_true(cls, value):
        # Form posts send the checkbox as a string; anything but true/"true" is unchecked.
        return value is True or value == "true"


class MenuItemCreate(MenuItemWrite):
    pass


class MenuItemUpdate(MenuItemWrite):
    pass


class MenuItemResponse(BaseModel):
    id: uuid.UUID
    name: str | None
    description: str | None
    category: str | None
    price: Decimal | None
    is_vegetarian: bool
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class MenuItemCreatedResponse(BaseModel):
    id: uuid.UUID
    message: str


class MessageResponse(BaseModel):
    message: str
