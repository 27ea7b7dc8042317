"""
Error taxonomy for the menu service.

NotReady, validation, not-found and storage errors are surfaced per request;
ProvisioningError never leaves the connection manager.
"""


class MenuServiceError(Exception):
    """Base class for menu service errors."""

    status_code = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotReadyError(MenuServiceError):
    """Storage is not provisioned yet — transient, the caller may retry."""

    status_code = 503

    def __init__(self) -> None:
        super().__init__(
            "Database connection not established yet. Please try again in a few moments."
        )


class MenuItemValidationError(MenuServiceError):
    """Malformed identifier or menu item payload — rejected before any storage call."""

    status_code = 400


class MenuItemNotFoundError(MenuServiceError):
    """No row matches the given identifier."""

    status_code = 404

    def __init__(self, message: str = "Menu item not found") -> None:
        super().__init__(message)


class StorageError(MenuServiceError):
    """The Cassandra driver failed a CRUD or search statement."""

    status_code = 500


class ProvisioningError(MenuServiceError):
    """A step of the connect / create keyspace / create table / verify sequence failed."""
