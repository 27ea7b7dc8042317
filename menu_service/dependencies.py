from fastapi import Depends, Request

from menu_service.database import CassandraStore
from menu_service.errors import NotReadyError
from menu_service.services.connection_manager import ConnectionManager


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager


def get_store(manager: ConnectionManager = Depends(get_connection_manager)) -> CassandraStore:
    """Gate for every data route: reject with 503 before storage is touched."""
    if not manager.is_ready():
        raise NotReadyError()
    return manager.store
