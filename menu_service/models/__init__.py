# Import all models here so the connection manager can provision their tables
from menu_service.models.menu_item import CREATE_TABLE as CREATE_MENU_ITEMS_TABLE
from menu_service.models.menu_item import MenuItem

TABLE_DDL = [CREATE_MENU_ITEMS_TABLE]

__all__ = [
    "MenuItem",
    "TABLE_DDL",
]
