from enum import Enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, List, Optional, Tuple, Union
import json
import logging

from launcher.models.manifest import Language, ModType
from launcher.models.mod import (
    Mod,
    ModCollection,
    ModSettings,
    ModSource,
    ModStateEnabled,
    ModStateUpdate,
    ModTriState,
    settings_from_dict,
)
from launcher.models.mod_path import ModPath
from launcher.utils.errors import ModNotFoundError, SettingsError
from launcher.utils.files import load_json, save_json
from launcher.utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

ACTIVE_MODS_KEY = "activeMods"


class ModSort(Enum):
    NAME = "name"
    SELECTED = "selected"
    ENABLED = "enabled"
    UPDATE = "update"
    TYPE = "type"


_TYPE_ORDER = {mod_type: index for index, mod_type in enumerate(ModType)}


@dataclass(frozen=True)
class ModSnapshot:
    """Read-only view of one node, handed to whatever renders the mod list."""

    path: ModPath
    name: str
    description: str
    version: str
    type: ModType
    state: ModTriState
    state_enabled: ModStateEnabled
    state_update: ModStateUpdate
    selected: bool
    unfolded: bool
    conflicted: bool
    version_incompatible: bool
    missing_dependencies: Tuple[ModPath, ...]
    active_conflicts: Tuple[ModPath, ...]
    update_version: Optional[str]
    download_size: float
    source: ModSource
    children: Tuple["ModSnapshot", ...] = ()


def _sort_key(sort: ModSort) -> Callable[[ModSnapshot], Tuple]:
    if sort is ModSort.SELECTED:
        return lambda snap: (not snap.selected, snap.name.lower())
    if sort is ModSort.ENABLED:
        return lambda snap: (snap.state_enabled.value, snap.name.lower())
    if sort is ModSort.UPDATE:
        return lambda snap: (snap.state_update.value, snap.name.lower())
    if sort is ModSort.TYPE:
        return lambda snap: (_TYPE_ORDER[snap.type], snap.name.lower())
    return lambda snap: snap.name.lower()


class ModTree:
    """The root of all mods, shared by the controller, operations and catalog.

    Whole-tree changes (swap, insert, remove, sort, merge) take the write
    lock. Lookups and propagation only take the read lock; node state and
    relation sets carry their own locks.
    """

    def __init__(
        self,
        mods_directory: Union[str, Path],
        settings_file: Union[str, Path],
        engine_version: str = "",
        language: Optional[Language] = None,
    ) -> None:
        self.mods_directory = Path(mods_directory)
        self.settings_file = Path(settings_file)
        self.engine_version = engine_version
        self.language = language

        self._lock = ReadWriteLock()
        self._mods = ModCollection()
        self._extra_settings: Dict[str, Any] = {}

    def read(self) -> ContextManager[None]:
        return self._lock.read()

    def write(self) -> ContextManager[None]:
        return self._lock.write()

    def __len__(self) -> int:
        with self.read():
            return len(self._mods)

    def mods(self) -> List[Mod]:
        with self.read():
            return self._mods.values()

    # --- Lookup
    def get(self, path: ModPath) -> Mod:
        mod = self.find(path)
        if mod is None:
            raise ModNotFoundError(str(path))
        return mod

    def find(self, path: ModPath) -> Optional[Mod]:
        with self.read():
            return self._mods.find(path.segments)

    def is_enabled(self, path: ModPath) -> bool:
        """True if the mod and every mod above it are enabled."""
        with self.read():
            collection = self._mods
            mod = None
            for segment in path:
                mod = collection.get(segment)
                if mod is None or not mod.enabled():
                    return False
                collection = mod.mods
            return mod is not None

    def for_each(
        self,
        fn: Callable[[Mod], None],
        recursive: bool = False,
        selected_only: bool = False,
    ) -> None:
        with self.read():
            self._mods.for_each(fn, recursive, selected_only)

    # --- Mutation
    def toggle(self, path: ModPath) -> None:
        with self.read():
            self.get(path).toggle(self)

    def conflicts_update(self) -> None:
        with self.read():
            for mod in self._mods.values():
                mod.conflicts_update(self)

    def insert(self, mod: Mod) -> None:
        """Adds mod at the top level, replacing any node of the same name."""
        with self.write():
            self._mods.insert(mod)

    def remove(self, name: str) -> Optional[Mod]:
        with self.write():
            return self._mods.pop(name)

    def sort(self) -> None:
        with self.write():
            self._mods.sort(self.language)

    def reload(self) -> None:
        """Rescans the mods directory and masks the persisted choices onto it.

        Remote data (download URLs, pending updates, uninstalled stubs) of
        the current tree survives the swap.
        """
        settings = self.load_settings()
        mods = ModCollection.load_from_disk(
            self.mods_directory, engine_version=self.engine_version
        )
        mods.mask(settings)

        with self.write():
            for name, previous in self._mods.items():
                mod = mods.get(name)
                if mod is None:
                    if not previous.installed():
                        mods.insert(previous)
                    continue
                mod.download_url = previous.download_url
                mod.screenshots = previous.screenshots
                mod.source = previous.source
                mod.update = previous.update
                mod.selected = previous.selected

            mods.sort(self.language)
            self._mods = mods

        self.conflicts_update()
        logger.info("Loaded %d mods from %s", len(mods), self.mods_directory)

    # --- Persistence
    def load_settings(self) -> Dict[str, ModSettings]:
        if not self.settings_file.exists():
            logger.info("No mod settings at %s", self.settings_file)
            self._extra_settings = {}
            return {}

        try:
            data = load_json(self.settings_file)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as error:
            logger.error("Failed to read mod settings %s: %s", self.settings_file, error)
            self._extra_settings = {}
            return {}

        if not isinstance(data, dict):
            logger.error("Mod settings %s is not a JSON object", self.settings_file)
            self._extra_settings = {}
            return {}

        active_mods = data.pop(ACTIVE_MODS_KEY, {})
        self._extra_settings = data
        if not isinstance(active_mods, dict):
            logger.error("'%s' in %s is not an object", ACTIVE_MODS_KEY, self.settings_file)
            return {}
        return settings_from_dict(active_mods)

    def to_settings(self) -> Dict[str, Any]:
        with self.read():
            active_mods = {
                name: settings.as_dict()
                for name, settings in self._mods.to_settings().items()
            }
        data = dict(self._extra_settings)
        data[ACTIVE_MODS_KEY] = active_mods
        return data

    def save(self) -> None:
        data = self.to_settings()
        try:
            save_json(self.settings_file, data)
        except OSError as error:
            logger.error("Failed to save mod settings: %s", error, exc_info=True)
            raise SettingsError(f"Failed to save {self.settings_file}: {error}") from error
        logger.debug("Saved settings of %d mods", len(data[ACTIVE_MODS_KEY]))

    # --- Read views
    def snapshot(
        self,
        sort: ModSort = ModSort.NAME,
        reverse: bool = False,
        language: Optional[Language] = None,
    ) -> List[ModSnapshot]:
        language = language or self.language
        with self.read():
            return self._snapshot(self._mods, _sort_key(sort), reverse, language)

    def _snapshot(
        self, mods: ModCollection, key: Callable, reverse: bool, language: Optional[Language]
    ) -> List[ModSnapshot]:
        snapshots = []
        for mod in mods.values():
            translation = mod.translated(language)
            snapshots.append(
                ModSnapshot(
                    path=mod.path,
                    name=translation.name or mod.path.name,
                    description=translation.description,
                    version=mod.manifest.version,
                    type=mod.manifest.type,
                    state=mod.state,
                    state_enabled=mod.state_enabled(),
                    state_update=mod.state_update(),
                    selected=mod.selected,
                    unfolded=mod.unfolded,
                    conflicted=mod.conflicted(),
                    version_incompatible=mod.version_incompatible,
                    missing_dependencies=mod.depends.inactive,
                    active_conflicts=mod.conflicts.active,
                    update_version=mod.update.version if mod.update else None,
                    download_size=mod.manifest.download_size,
                    source=mod.source,
                    children=tuple(self._snapshot(mod.mods, key, reverse, language)),
                )
            )
        return sorted(snapshots, key=key, reverse=reverse)

    def has_problems(self) -> bool:
        with self.read():
            return any(
                mod.state_enabled() in (ModStateEnabled.CONFLICT, ModStateEnabled.SUB_MOD_CONFLICT)
                for mod in self._mods.values()
            )
