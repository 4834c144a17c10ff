from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple
import logging
import shutil
import tempfile
import threading

from PySide6.QtCore import QObject, Signal

from launcher.models.mod import Mod, ModCollection, ModSource, ModTriState
from launcher.models.mod_path import ModPath
from launcher.models.mod_tree import ModTree
from launcher.services.catalog import update_catalog
from launcher.services.notifications import NotificationCenter
from launcher.services.remote import RemoteClient
from launcher.utils.errors import (
    ModInstallError,
    ModInvalidError,
    NetworkError,
    OperationCancelledError,
)
from launcher.utils.files import (
    MANIFEST_FILENAME,
    extract_archive,
    find_mod_directory,
    find_mod_root,
    remove_mod_directory,
)

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

BYTES_PER_MEGABYTE = 1_000_000
STAGING_PREFIX = ".staging-"


class ModOperationType(Enum):
    INIT_MODS = "init_mods"
    INSTALL = "install"
    UPDATE = "update"
    UNINSTALL = "uninstall"
    FIND_UPDATES = "find_updates"


class ModSubOperation(Enum):
    DOWNLOADING = "downloading"
    UNPACKING = "unpacking"
    PROCESSING = "processing"


class HandleState(Enum):
    UNINIT = "uninit"
    RUNNING = "running"
    FINISHED = "finished"


class ModOperationProgress:
    """Progress cell written by the worker and read by the ticking thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._downloaded = 0
        self._to_download = 0
        self._sub_operation = ModSubOperation.DOWNLOADING

    @property
    def downloaded(self) -> int:
        with self._lock:
            return self._downloaded

    @property
    def to_download(self) -> int:
        with self._lock:
            return self._to_download

    @property
    def sub_operation(self) -> ModSubOperation:
        with self._lock:
            return self._sub_operation

    def set_sub_operation(self, sub_operation: ModSubOperation) -> None:
        with self._lock:
            self._sub_operation = sub_operation

    def set_total(self, total: int) -> None:
        with self._lock:
            self._to_download = max(total, self._downloaded)

    def set_total_megabytes(self, size: float) -> None:
        self.set_total(int(size * BYTES_PER_MEGABYTE))

    def add_downloaded(self, count: int) -> None:
        with self._lock:
            self._downloaded += count
            # the reported size is only a hint
            if self._downloaded > self._to_download:
                self._to_download = self._downloaded

    @property
    def fraction(self) -> float:
        with self._lock:
            if self._to_download <= 0:
                return 0.0
            return min(1.0, self._downloaded / self._to_download)


class OperationHandle:
    """Slot of one asynchronous task, polled without blocking."""

    def __init__(self) -> None:
        self._future: Optional[Future] = None
        self.state = HandleState.UNINIT
        self.error: Optional[BaseException] = None

    def start(self, future: Future) -> None:
        self._future = future
        self.error = None
        self.state = HandleState.RUNNING

    def poll(self) -> bool:
        """Moves a completed task to FINISHED; True on that transition."""
        if self.state is not HandleState.RUNNING or self._future is None:
            return False
        if not self._future.done():
            return False

        if self._future.cancelled():
            self.reset()
            return False

        self.error = self._future.exception()
        self.state = HandleState.FINISHED
        return True

    def abort(self) -> None:
        if self._future is not None:
            self._future.cancel()
        self.reset()

    def reset(self) -> None:
        self.state = HandleState.UNINIT

    @property
    def future(self) -> Optional[Future]:
        return self._future

    @property
    def succeeded(self) -> bool:
        return self.state is HandleState.FINISHED and self.error is None


@dataclass(eq=False)
class ModOperation:
    type: ModOperationType
    path: Optional[ModPath] = None
    handle: OperationHandle = field(default_factory=OperationHandle)
    progress: ModOperationProgress = field(default_factory=ModOperationProgress)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def abort(self) -> None:
        logger.info("Aborting %s of %s", self.type.value, self.path or "all mods")
        self.cancel_event.set()
        self.handle.abort()

    def check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise OperationCancelledError(f"{self.type.value} of {self.path} cancelled")

    @property
    def running(self) -> bool:
        return self.handle.state is HandleState.RUNNING


OPERATION_TITLES = {
    ModOperationType.INIT_MODS: ("Mods loaded", "Failed to load mods"),
    ModOperationType.INSTALL: ("Mod installed", "Failed to install mod"),
    ModOperationType.UPDATE: ("Mod updated", "Failed to update mod"),
    ModOperationType.UNINSTALL: ("Mod uninstalled", "Failed to uninstall mod"),
    ModOperationType.FIND_UPDATES: ("Mod lists downloaded", "Failed to download mod lists"),
}


class ModOperationQueue(QObject):
    """Runs long per-mod work on a thread pool, at most one per mod.

    Intents return the started ModOperation, or None when the request was
    dropped. poll() is called from the ticking thread and is the only place
    signals are emitted.
    """

    operationStarted = Signal(object)
    operationFinished = Signal(object)

    def __init__(
        self,
        tree: ModTree,
        client: RemoteClient,
        notifications: NotificationCenter,
        repositories: Sequence[Tuple[str, ModSource]] = (),
        executor: Optional[ThreadPoolExecutor] = None,
        max_workers: int = 4,
    ) -> None:
        super().__init__()
        self._tree = tree
        self._client = client
        self._notifications = notifications
        self.repositories = list(repositories)

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="mod-operation"
        )
        self._lock = threading.Lock()
        self._operations: List[ModOperation] = []

    @property
    def operations(self) -> List[ModOperation]:
        with self._lock:
            return list(self._operations)

    def ongoing(self) -> bool:
        return any(operation.running for operation in self.operations)

    # --- Intents
    def init_mods(self, update_on_start: bool = False) -> Optional[ModOperation]:
        def work(operation: ModOperation, mod: Optional[Mod]) -> None:
            operation.progress.set_sub_operation(ModSubOperation.PROCESSING)
            self._tree.reload()
            if update_on_start:
                operation.check_cancelled()
                self._find_updates(operation, mod)

        return self._run_global(ModOperationType.INIT_MODS, work)

    def fetch_updates(self) -> Optional[ModOperation]:
        return self._run_global(ModOperationType.FIND_UPDATES, self._find_updates)

    def install(self, path: ModPath) -> Optional[ModOperation]:
        return self._run_mod(ModOperationType.INSTALL, path, self._check_install, self._install)

    def update(self, path: ModPath) -> Optional[ModOperation]:
        return self._run_mod(ModOperationType.UPDATE, path, self._check_update, self._install)

    def uninstall(self, path: ModPath, full: bool = False) -> Optional[ModOperation]:
        def work(operation: ModOperation, mod: Mod) -> None:
            self._uninstall(operation, mod, full)

        return self._run_mod(ModOperationType.UNINSTALL, path, self._check_uninstall, work)

    def abort(self, operation: ModOperation) -> None:
        operation.abort()

    def dismiss(self, operation: ModOperation) -> None:
        if operation.running:
            raise ValueError("Cannot dismiss a running operation")
        operation.handle.reset()

    def poll(self) -> List[ModOperation]:
        """Non-blocking: finishes completed handles and drops stale slots.

        A finished operation stays listed until the next poll, so a caller
        can show its result once.
        """
        finished = []
        with self._lock:
            self._operations = [
                operation for operation in self._operations
                if operation.handle.state is HandleState.RUNNING
            ]
            for operation in self._operations:
                if operation.handle.poll():
                    finished.append(operation)

        for operation in finished:
            self.operationFinished.emit(operation)
        return finished

    def wait(self, timeout: Optional[float] = None) -> List[ModOperation]:
        """Blocks until every running operation completes, then polls."""
        futures = [
            operation.handle.future for operation in self.operations
            if operation.running and operation.handle.future is not None
        ]
        wait(futures, timeout=timeout)
        return self.poll()

    def shutdown(self) -> None:
        for operation in self.operations:
            if operation.running:
                operation.cancel_event.set()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    # --- Scheduling
    def _run_global(
        self, operation_type: ModOperationType, work: Callable
    ) -> Optional[ModOperation]:
        for operation in self.operations:
            if operation.type is operation_type and operation.running:
                logger.debug("%s already running, request dropped", operation_type.value)
                return None
        return self._submit(ModOperation(operation_type), None, work)

    def _run_mod(
        self,
        operation_type: ModOperationType,
        path: ModPath,
        check: Callable[[Mod], Optional[str]],
        work: Callable,
    ) -> Optional[ModOperation]:
        mod = self._tree.find(path)
        if mod is None:
            logger.warning("Cannot %s %s: no such mod", operation_type.value, path)
            return None

        if not mod.begin_operation():
            logger.debug("%s already has an operation running, %s dropped", path, operation_type.value)
            return None

        reason = check(mod)
        if reason is not None:
            mod.end_operation()
            logger.warning("Cannot %s %s: %s", operation_type.value, path, reason)
            return None

        # keep a half-installed mod from satisfying anything meanwhile
        with self._tree.read():
            mod.conflicts_update_disable(self._tree)

        return self._submit(ModOperation(operation_type, path), mod, work)

    def _submit(
        self, operation: ModOperation, mod: Optional[Mod], work: Callable
    ) -> ModOperation:
        future = self._executor.submit(self._execute, operation, mod, work)
        if mod is not None:
            future.add_done_callback(lambda done: self._release_if_cancelled(done, mod))
        operation.handle.start(future)
        with self._lock:
            self._operations.append(operation)
        logger.info("Started %s of %s", operation.type.value, operation.path or "all mods")
        self.operationStarted.emit(operation)
        return operation

    def _release_if_cancelled(self, future: Future, mod: Mod) -> None:
        # _execute never ran, so nothing else clears the flag
        if future.cancelled():
            mod.end_operation()
            self._tree.conflicts_update()

    def _execute(self, operation: ModOperation, mod: Optional[Mod], work: Callable) -> None:
        success_title, failure_title = OPERATION_TITLES[operation.type]
        subject = str(operation.path) if operation.path else ""
        try:
            work(operation, mod)
        except OperationCancelledError:
            logger.info("%s of %s cancelled", operation.type.value, subject or "all mods")
            raise
        except Exception as error:  # reported, never fatal
            logger.error(
                "%s of %s failed: %s", operation.type.value, subject or "all mods", error,
                exc_info=True,
            )
            self._notifications.error(failure_title, f"{subject}: {error}" if subject else str(error))
            raise
        else:
            if operation.cancel_event.is_set():
                # aborted past the last check, the slot no longer records a result
                logger.info("%s of %s completed after abort", operation.type.value, subject or "all mods")
            elif mod is not None:
                self._notifications.success(success_title, mod.display_name(self._tree.language))
        finally:
            if mod is not None:
                mod.end_operation()
                self._tree.conflicts_update()

    # --- Preconditions
    @staticmethod
    def _check_install(mod: Mod) -> Optional[str]:
        if mod.installed():
            return "already installed"
        if not mod.path.is_top():
            return "sub-mods are installed with their parent"
        if not mod.download_url:
            return "no download URL"
        return None

    @staticmethod
    def _check_update(mod: Mod) -> Optional[str]:
        if not mod.installed():
            return "not installed"
        if not mod.path.is_top():
            return "sub-mods are updated with their parent"
        if not mod.download_url:
            return "no download URL"
        if mod.update is None:
            return "no update available"
        return None

    @staticmethod
    def _check_uninstall(mod: Mod) -> Optional[str]:
        if not mod.installed():
            return "not installed"
        if not mod.path.is_top():
            return "sub-mods are uninstalled with their parent"
        return None

    # --- Work, run on the pool
    def _find_updates(self, operation: ModOperation, mod: Optional[Mod]) -> None:
        operation.progress.set_sub_operation(ModSubOperation.DOWNLOADING)
        errors = []
        updates = new = 0
        for url, source in self.repositories:
            operation.check_cancelled()
            try:
                counts = update_catalog(self._tree, self._client, url, source)
            except NetworkError as error:
                logger.error("Failed to fetch repository %s: %s", url, error)
                errors.append(error)
                continue
            updates += counts["updates"]
            new += counts["new"]

        if errors and len(errors) == len(self.repositories):
            raise errors[0]

        self._notifications.info(
            OPERATION_TITLES[ModOperationType.FIND_UPDATES][0],
            f"{updates} updates available, {new} new mods",
        )

    def _install(self, operation: ModOperation, mod: Mod) -> None:
        name = mod.path.top()
        progress = operation.progress
        mods_directory = self._tree.mods_directory

        download_size = mod.update.download_size if mod.update else mod.manifest.download_size
        progress.set_total_megabytes(download_size)
        data = self._client.download_bytes(mod.download_url, progress, operation.cancel_event)
        operation.check_cancelled()

        mods_directory.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=mods_directory))
        unpacked = staging / "archive"
        try:
            progress.set_sub_operation(ModSubOperation.UNPACKING)
            extract_archive(data, unpacked)
            operation.check_cancelled()

            progress.set_sub_operation(ModSubOperation.PROCESSING)
            mod_root = find_mod_root(unpacked)
            if mod_root is None:
                raise ModInvalidError(name, f"No {MANIFEST_FILENAME} found in the archive of \"{name}\".")

            target = mods_directory / name
            self._replace_directory(mod, mod_root, target, staging / "previous")
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        installed = Mod.load_from_disk(ModPath(), target, self._tree.engine_version)
        if installed is None:
            raise ModInvalidError(name, f"Installed mod \"{name}\" has an unreadable {MANIFEST_FILENAME}.")

        installed.download_url = mod.download_url
        installed.screenshots = list(mod.screenshots)
        installed.source = mod.source
        installed.selected = mod.selected
        if mod.installed():
            installed.set_state(mod.state)
            installed.mods.mask(mod.mods.to_settings())

        self._tree.insert(installed)
        self._tree.save()
        logger.info("Installed %s %s into %s", name, installed.manifest.version, target)

    def _uninstall(self, operation: ModOperation, mod: Mod, full: bool) -> None:
        name = mod.path.top()
        operation.progress.set_sub_operation(ModSubOperation.PROCESSING)

        if not remove_mod_directory(self._tree.mods_directory, name):
            logger.warning("No directory found for %s in %s", name, self._tree.mods_directory)

        if full:
            self._tree.remove(name)
        else:
            self._mark_uninstalled(mod)

        self._tree.save()
        logger.info("Uninstalled %s%s", name, " (removed from list)" if full else "")

    def _replace_directory(self, mod: Mod, source: Path, target: Path, backup: Path) -> None:
        """Moves source to target; the previous copy is kept in backup until that succeeded."""
        name = mod.path.top()
        previous = find_mod_directory(target.parent, name)
        try:
            if previous is not None:
                shutil.move(str(previous), str(backup))
            shutil.move(str(source), str(target))
        except OSError as error:
            if previous is not None and backup.exists() and not previous.exists():
                self._restore_directory(mod, backup, previous)
            raise ModInstallError(name, f"Failed to move \"{name}\" into {target.parent}: {error}") from error

    def _restore_directory(self, mod: Mod, backup: Path, previous: Path) -> None:
        try:
            shutil.move(str(backup), str(previous))
            logger.info("Restored previous copy of %s", previous.name)
        except OSError as error:
            # the mod is gone from disk, so the tree must not claim it
            logger.error("Failed to restore %s: %s", previous, error, exc_info=True)
            self._mark_uninstalled(mod)
            self._tree.save()

    def _mark_uninstalled(self, mod: Mod) -> None:
        with self._tree.write():
            mod.set_state(ModTriState.UNINSTALLED)
            mod.mods = ModCollection()
            mod.disk_path = None
            mod.update = None
