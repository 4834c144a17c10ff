import logging
from typing import Callable, List, Optional

from PySide6.QtCore import QObject, Signal

from launcher.models import ConfigModel, Language, ModPath, ModSnapshot, ModSort, ModTree
from launcher.models.mod import Mod, ModTriState
from launcher.services.notifications import Notification, NotificationCenter
from launcher.services.operations import ModOperation, ModOperationQueue
from launcher.utils.errors import ModNotFoundError, SettingsError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class ModManagerController(QObject):
    """Entry point for user intents; whatever renders the list calls tick()."""

    notificationRequested = Signal(str, str, str, int)  # title, description, type, duration
    modsChanged = Signal()

    def __init__(
        self,
        tree: ModTree,
        operations: ModOperationQueue,
        notifications: NotificationCenter,
        config_model: Optional[ConfigModel] = None,
    ) -> None:
        super().__init__()
        logger.info("Initializing ModManagerController...")

        self.tree = tree
        self.operations = operations
        self.notifications = notifications
        self.config_model = config_model

        self._setup_service_connections()
        if self.config_model is not None:
            self._setup_config_connections()

    def _setup_service_connections(self) -> None:
        self.notifications.notificationPosted.connect(self._on_notification_posted)
        self.operations.operationFinished.connect(self._on_operation_finished)

    def _setup_config_connections(self) -> None:
        self.config_model.languageChanged.connect(self._on_language_changed)
        self.config_model.engineVersionChanged.connect(self._on_engine_version_changed)

    # --- Slots
    def _on_notification_posted(self, notification: Notification) -> None:
        self.notificationRequested.emit(
            notification.title,
            notification.description,
            notification.type.key,
            notification.duration,
        )

    def _on_operation_finished(self, operation: ModOperation) -> None:
        logger.debug("Operation %s of %s finished", operation.type.value, operation.path)
        self.modsChanged.emit()

    def _on_language_changed(self, value: str) -> None:
        self.tree.language = Language.from_key(value)
        self.tree.sort()
        self.modsChanged.emit()

    def _on_engine_version_changed(self, value: str) -> None:
        logger.info("Engine version changed to %s, reloading mods", value)
        self.tree.engine_version = value
        self.operations.init_mods()

    # --- Tick
    def tick(self) -> None:
        """Non-blocking: collects finished operations and pending notifications."""
        self.operations.poll()
        self.notifications.drain()

    def snapshot(self, sort: ModSort = ModSort.NAME, reverse: bool = False) -> List[ModSnapshot]:
        return self.tree.snapshot(sort, reverse)

    def has_problems(self) -> bool:
        return self.tree.has_problems()

    # --- Single mod intents
    def toggle(self, path: ModPath) -> bool:
        try:
            mod = self.tree.get(path)
        except ModNotFoundError as error:
            logger.warning("Toggle requested for unknown mod: %s", error)
            return False

        if mod.ongoing_operation:
            logger.debug("Not toggling %s while an operation runs on it", path)
            return False
        if not mod.installed():
            logger.debug("Not toggling %s, it is not installed", path)
            return False

        self.tree.toggle(path)
        self._save()
        self.modsChanged.emit()
        return True

    def set_enabled(self, path: ModPath, enabled: bool) -> bool:
        """Toggles path only if its own state differs; parents are left alone.

        Returns True when the mod ends up in the requested state.
        """
        mod = self.tree.find(path)
        if mod is not None and mod.installed() and mod.enabled() == enabled:
            return True
        return self.toggle(path)

    def install(self, path: ModPath) -> Optional[ModOperation]:
        return self.operations.install(path)

    def update(self, path: ModPath) -> Optional[ModOperation]:
        return self.operations.update(path)

    def uninstall(self, path: ModPath, full: Optional[bool] = None) -> Optional[ModOperation]:
        """Uninstalls path; a mod that cannot be downloaded again is dropped from the list."""
        if full is None:
            mod = self.tree.find(path)
            full = mod is None or not mod.download_url
        return self.operations.uninstall(path, full)

    def fetch_updates(self) -> Optional[ModOperation]:
        return self.operations.fetch_updates()

    def abort(self, operation: ModOperation) -> None:
        self.operations.abort(operation)

    def set_selected(self, path: ModPath, selected: bool) -> None:
        self.tree.get(path).selected = selected
        self.modsChanged.emit()

    def set_unfolded(self, path: ModPath, unfolded: bool) -> None:
        self.tree.get(path).unfolded = unfolded
        self.modsChanged.emit()

    # --- Bulk intents
    def select_all(self) -> None:
        self.tree.for_each(lambda mod: setattr(mod, "selected", True))
        self.modsChanged.emit()

    def select_none(self) -> None:
        self.tree.for_each(lambda mod: setattr(mod, "selected", False), recursive=True)
        self.modsChanged.emit()

    def enable_selected(self) -> int:
        return self._toggle_selected(ModTriState.DISABLED)

    def disable_selected(self) -> int:
        return self._toggle_selected(ModTriState.ENABLED)

    def install_selected(self) -> List[ModOperation]:
        return self._run_selected(lambda mod: not mod.installed(), self.operations.install)

    def update_selected(self) -> List[ModOperation]:
        return self._run_selected(lambda mod: mod.update is not None, self.operations.update)

    def uninstall_selected(self) -> List[ModOperation]:
        return self._run_selected(Mod.installed, self.uninstall)

    def _selected(self, recursive: bool = False) -> List[Mod]:
        mods = []
        self.tree.for_each(mods.append, recursive=recursive, selected_only=True)
        return mods

    def _toggle_selected(self, from_state: ModTriState) -> int:
        count = 0
        for mod in self._selected(recursive=True):
            if mod.state is from_state and not mod.ongoing_operation:
                self.tree.toggle(mod.path)
                count += 1

        if count:
            self._save()
            self.modsChanged.emit()
        logger.info("Toggled %d selected mods", count)
        return count

    def _run_selected(
        self, predicate: Callable[[Mod], bool], intent: Callable[[ModPath], Optional[ModOperation]]
    ) -> List[ModOperation]:
        started = []
        for mod in self._selected():
            if not predicate(mod):
                continue
            operation = intent(mod.path)
            if operation is not None:
                started.append(operation)
        return started

    def _save(self) -> None:
        try:
            self.tree.save()
        except SettingsError as error:
            self.notifications.error("Failed to save mod settings", str(error))
