from .notifications import Notification, NotificationCenter, NotificationType
from .remote import RemoteClient
from .catalog import CatalogEntry, fetch_catalog, merge_catalog, update_catalog
from .operations import (
    HandleState,
    ModOperation,
    ModOperationProgress,
    ModOperationQueue,
    ModOperationType,
    ModSubOperation,
)

__all__ = [
    "Notification",
    "NotificationCenter",
    "NotificationType",
    "RemoteClient",
    "CatalogEntry",
    "fetch_catalog",
    "merge_catalog",
    "update_catalog",
    "HandleState",
    "ModOperation",
    "ModOperationProgress",
    "ModOperationQueue",
    "ModOperationType",
    "ModSubOperation",
]
