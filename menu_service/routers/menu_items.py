import logging

from fastapi import APIRouter, Depends, Query, Request, status

from menu_service.database import CassandraStore
from menu_service.dependencies import get_store
from menu_service.schemas.menu_item import (
    MenuItemCreate,
    MenuItemCreatedResponse,
    MenuItemResponse,
    MenuItemUpdate,
    MessageResponse,
)
from menu_service.services import menu_item_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


@router.get("/menu-items", response_model=list[MenuItemResponse])
async def list_menu_items(
    store: CassandraStore = Depends(get_store),
) -> list[MenuItemResponse]:
    items = await menu_item_service.list_menu_items(store)
    return [MenuItemResponse.model_validate(item) for item in items]


@router.get("/menu-items/{item_id}", response_model=MenuItemResponse)
async def get_menu_item(
    item_id: str,
    store: CassandraStore = Depends(get_store),
) -> MenuItemResponse:
    uuid_ = menu_item_service.parse_item_id(item_id)
    item = await menu_item_service.get_menu_item(store, uuid_)
    return MenuItemResponse.model_validate(item)


@router.post(
    "/menu-items",
    response_model=MenuItemCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_menu_item(
    body: MenuItemCreate,
    request: Request,
    store: CassandraStore = Depends(get_store),
) -> MenuItemCreatedResponse:
    logger.info(
        "Received create_menu_item request",
        extra={"request_id": _request_id(request), "category": body.category},
    )
    item = await menu_item_service.create_menu_item(store, body)
    return MenuItemCreatedResponse(id=item.id, message="Menu item created successfully")


@router.put("/menu-items/{item_id}", response_model=MessageResponse)
async def update_menu_item(
    item_id: str,
    body: MenuItemUpdate,
    request: Request,
    store: CassandraStore = Depends(get_store),
) -> MessageResponse:
    uuid_ = menu_item_service.parse_item_id(item_id)
    logger.info(
        "Received update_menu_item request",
        extra={"request_id": _request_id(request), "item_id": str(uuid_)},
    )
    await menu_item_service.update_menu_item(store, uuid_, body)
    return MessageResponse(message="Menu item updated successfully")


@router.delete("/menu-items/{item_id}", response_model=MessageResponse)
async def delete_menu_item(
    item_id: str,
    request: Request,
    store: CassandraStore = Depends(get_store),
) -> MessageResponse:
    uuid_ = menu_item_service.parse_item_id(item_id)
    logger.info(
        "Received delete_menu_item request",
        extra={"request_id": _request_id(request), "item_id": str(uuid_)},
    )
    await menu_item_service.delete_menu_item(store, uuid_)
    return MessageResponse(message="Menu item deleted successfully")


@router.get("/search", response_model=list[MenuItemResponse])
async def search_menu_items(
    q: str = Query(default=""),
    store: CassandraStore = Depends(get_store),
) -> list[MenuItemResponse]:
    items = await menu_item_service.search_menu_items(store, q)
    return [MenuItemResponse.model_validate(item) for item in items]
