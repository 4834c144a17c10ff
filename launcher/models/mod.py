from enum import Enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple
import logging
import threading

from launcher.models.manifest import Language, ModManifest
from launcher.models.mod_path import ModPath
from launcher.models.relations import ModRelationSet
from launcher.utils.errors import ModManifestError
from launcher.utils.files import MANIFEST_FILENAME

if TYPE_CHECKING:
    from launcher.models.mod_tree import ModTree

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

SUB_MODS_DIRECTORIES = ("mods", "Mods")


class ModTriState(Enum):
    UNINSTALLED = "uninstalled"
    ENABLED = "enabled"
    DISABLED = "disabled"


class ModSource(Enum):
    UNKNOWN = "unknown"
    MAIN_REPOSITORY = "main"
    EXTRA_REPOSITORY = "extra"


# Member order is the display grouping order.
class ModStateEnabled(Enum):
    DISABLED = 0
    CONFLICT = 1
    SUB_MOD_CONFLICT = 2
    ENABLED = 3
    NONE = 4


class ModStateUpdate(Enum):
    INSTALL = 0
    UPDATE = 1
    PROCESSING = 2
    NONE = 3


@dataclass
class ModSettings:
    """Persisted part of a mod node, as stored in modSettings.json."""

    active: Optional[bool] = None
    checksum: Optional[str] = None
    validated: bool = False
    mods: Dict[str, "ModSettings"] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"active": bool(self.active)}
        if self.checksum is not None:
            data["checksum"] = self.checksum
        data["validated"] = self.validated
        if self.mods:
            data["mods"] = {name: child.as_dict() for name, child in self.mods.items()}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModSettings":
        active = data.get("active")
        checksum = data.get("checksum")
        mods = data.get("mods")
        return cls(
            active=active if isinstance(active, bool) else None,
            checksum=checksum if isinstance(checksum, str) else None,
            validated=bool(data.get("validated", False)),
            mods=settings_from_dict(mods) if isinstance(mods, Mapping) else {},
        )


def settings_from_dict(data: Mapping[str, Any]) -> Dict[str, ModSettings]:
    settings = {}
    for name, value in data.items():
        if not isinstance(value, Mapping):
            logger.warning("Ignoring malformed settings entry for mod '%s'", name)
            continue
        settings[str(name).lower()] = ModSettings.from_dict(value)
    return settings


class Mod:
    """A node of the mod tree.

    The manifest is replaced wholesale, never edited. Enablement is a
    tri-state guarded by the node lock; relation sets have locks of their
    own and only ever hold ModPath keys resolved through the tree.
    """

    def __init__(
        self,
        path: ModPath,
        manifest: ModManifest,
        state: ModTriState = ModTriState.UNINSTALLED,
        disk_path: Optional[Path] = None,
    ) -> None:
        self.path = path
        self.manifest = manifest
        self.disk_path = disk_path
        self.mods = ModCollection()

        self.checksum: Optional[str] = None
        self.validated = False

        self.depends = ModRelationSet(manifest.depends)
        self.dependants = ModRelationSet()
        self.conflicts = ModRelationSet(manifest.conflicts)

        self.version_incompatible = False
        self.selected = False
        self.unfolded = False
        self.source = ModSource.UNKNOWN
        self.update: Optional[ModManifest] = None
        self.download_url: Optional[str] = None
        self.screenshots: List[str] = []

        self._lock = threading.Lock()
        self._state = state
        self._ongoing_operation = False

    def __repr__(self) -> str:
        return f"Mod({self.path}, {self._state.name})"

    @property
    def name(self) -> str:
        return self.path.name

    # --- State
    @property
    def state(self) -> ModTriState:
        with self._lock:
            return self._state

    def set_state(self, state: ModTriState) -> None:
        with self._lock:
            self._state = state

    def toggle_state(self) -> ModTriState:
        with self._lock:
            if self._state is ModTriState.ENABLED:
                self._state = ModTriState.DISABLED
            elif self._state is ModTriState.DISABLED:
                self._state = ModTriState.ENABLED
            return self._state

    def enabled(self) -> bool:
        return self.state is ModTriState.ENABLED

    def installed(self) -> bool:
        return self.state is not ModTriState.UNINSTALLED

    @property
    def ongoing_operation(self) -> bool:
        with self._lock:
            return self._ongoing_operation

    def begin_operation(self) -> bool:
        """Sets the ongoing flag; False if an operation already holds it."""
        with self._lock:
            if self._ongoing_operation:
                return False
            self._ongoing_operation = True
            return True

    def end_operation(self) -> None:
        with self._lock:
            self._ongoing_operation = False

    # --- Propagation
    def toggle(self, tree: "ModTree") -> None:
        previous = self.state
        current = self.toggle_state()
        self.unfolded = False
        logger.debug("Toggled %s: %s -> %s", self.path, previous.name, current.name)
        self.conflicts_update(tree)

    def conflicts_update(self, tree: "ModTree") -> None:
        self.depends.revalidate(tree.is_enabled)
        self.dependants.revalidate(tree.is_enabled)
        self.conflicts.revalidate(tree.is_enabled)

        if tree.is_enabled(self.path):
            self.conflicts_update_enable(tree)
        else:
            self.conflicts_update_disable(tree)

    def conflicts_update_enable(self, tree: "ModTree") -> None:
        for dependency in self.depends.paths():
            mod = tree.find(dependency)
            if mod is not None:
                mod.dependants.move_to_active(self.path)

        for dependant in self.dependants.paths():
            mod = tree.find(dependant)
            if mod is not None:
                mod.depends.move_to_active(self.path)

        for conflict in self.conflicts.paths():
            mod = tree.find(conflict)
            if mod is not None:
                mod.conflicts.move_to_active(self.path)

        for child in self.mods.values():
            child.conflicts_update(tree)

    def conflicts_update_disable(self, tree: "ModTree") -> None:
        for dependency in self.depends.paths():
            mod = tree.find(dependency)
            if mod is not None:
                mod.dependants.move_to_inactive(self.path)

        for dependant in self.dependants.paths():
            mod = tree.find(dependant)
            if mod is not None:
                mod.depends.move_to_inactive(self.path)

        for conflict in self.conflicts.paths():
            mod = tree.find(conflict)
            if mod is not None:
                mod.conflicts.move_to_inactive(self.path)

        for child in self.mods.values():
            child.conflicts_update_disable(tree)

    # --- Derived display state
    def conflicted(self) -> bool:
        return (
            self.version_incompatible
            or self.depends.has_inactive()
            or self.conflicts.has_active()
        )

    def conflicted_submods(self) -> bool:
        if self.conflicted():
            return True
        return any(
            child.enabled() and child.conflicted_submods()
            for child in self.mods.values()
        )

    def state_enabled(self) -> ModStateEnabled:
        state = self.state
        if state is ModTriState.UNINSTALLED:
            return ModStateEnabled.NONE
        if state is ModTriState.DISABLED:
            return ModStateEnabled.DISABLED
        if self.conflicted():
            return ModStateEnabled.CONFLICT
        if self.conflicted_submods():
            return ModStateEnabled.SUB_MOD_CONFLICT
        return ModStateEnabled.ENABLED

    def state_update(self) -> ModStateUpdate:
        if self.ongoing_operation:
            return ModStateUpdate.PROCESSING
        if not self.installed():
            return ModStateUpdate.INSTALL
        if self.update is not None:
            return ModStateUpdate.UPDATE
        return ModStateUpdate.NONE

    def translated(self, language: Optional[Language] = None):
        """Localized name/description, preferring the pending update's text."""
        manifest = self.update if self.update is not None else self.manifest
        return manifest.translated(language)

    def display_name(self, language: Optional[Language] = None) -> str:
        return self.translated(language).name or self.path.name

    # --- Persistence
    def to_settings(self) -> ModSettings:
        return ModSettings(
            active=self.enabled(),
            checksum=self.checksum,
            validated=self.validated,
            mods=self.mods.to_settings(),
        )

    def mask(self, settings: ModSettings) -> None:
        if settings.active is not None and self.installed():
            self.set_state(ModTriState.ENABLED if settings.active else ModTriState.DISABLED)
        self.checksum = settings.checksum
        self.validated = settings.validated
        self.mods.mask(settings.mods)

    # --- Construction
    @classmethod
    def load_from_disk(
        cls, parent: ModPath, directory: Path, engine_version: str = ""
    ) -> Optional["Mod"]:
        """Loads the mod stored in directory, or None if it has no usable mod.json."""
        try:
            manifest = ModManifest.from_file(directory / MANIFEST_FILENAME)
        except ModManifestError as error:
            logger.warning("Skipping mod directory %s: %s", directory, error.reason)
            return None

        path = parent.child(directory.name.lower())
        state = ModTriState.DISABLED if manifest.keep_disabled else ModTriState.ENABLED
        mod = cls(path, manifest, state, disk_path=directory)
        if engine_version:
            mod.version_incompatible = not manifest.compatibility.satisfied(engine_version)

        for sub_directory in SUB_MODS_DIRECTORIES:
            if (directory / sub_directory).is_dir():
                mod.mods = ModCollection.load_from_disk(
                    directory / sub_directory, path, engine_version
                )
                break

        return mod

    @classmethod
    def from_catalog(cls, name: str, manifest: ModManifest, engine_version: str = "") -> "Mod":
        """An uninstalled stub offered for installation."""
        mod = cls(ModPath.new(name.lower()), manifest, ModTriState.UNINSTALLED)
        mod.version_incompatible = not manifest.compatibility.satisfied(engine_version)
        return mod


class ModCollection:
    """Child map of a node (or the tree root), keyed by lower-cased name."""

    def __init__(self, mods: Optional[Dict[str, Mod]] = None) -> None:
        self._mods: Dict[str, Mod] = dict(mods or {})

    def __iter__(self) -> Iterator[str]:
        return iter(self._mods)

    def __len__(self) -> int:
        return len(self._mods)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._mods

    def get(self, name: str) -> Optional[Mod]:
        return self._mods.get(name.lower())

    def values(self) -> List[Mod]:
        return list(self._mods.values())

    def items(self) -> List[Tuple[str, Mod]]:
        return list(self._mods.items())

    def insert(self, mod: Mod) -> None:
        self._mods[mod.path.name] = mod

    def pop(self, name: str) -> Optional[Mod]:
        return self._mods.pop(name.lower(), None)

    def find(self, segments: Tuple[str, ...]) -> Optional[Mod]:
        if not segments:
            return None
        mod = self.get(segments[0])
        for segment in segments[1:]:
            if mod is None:
                return None
            mod = mod.mods.get(segment)
        return mod

    def for_each(
        self,
        fn: Callable[[Mod], None],
        recursive: bool = False,
        selected_only: bool = False,
    ) -> None:
        for mod in self.values():
            if not selected_only or mod.selected:
                fn(mod)
            if recursive:
                mod.mods.for_each(fn, recursive, selected_only)

    def mask(self, overlay: Mapping[str, ModSettings]) -> None:
        for name, mod in self._mods.items():
            settings = overlay.get(name)
            if settings is not None:
                mod.mask(settings)

    def sort(self, language: Optional[Language] = None) -> None:
        ordered = sorted(
            self._mods.items(), key=lambda item: item[1].display_name(language).lower()
        )
        self._mods = dict(ordered)
        for mod in self._mods.values():
            mod.mods.sort(language)

    def to_settings(self) -> Dict[str, ModSettings]:
        return {
            name: mod.to_settings()
            for name, mod in self._mods.items()
            if mod.installed()
        }

    @classmethod
    def load_from_disk(
        cls, directory: Path, parent: ModPath = ModPath(), engine_version: str = ""
    ) -> "ModCollection":
        collection = cls()
        if not directory.is_dir():
            logger.info("Mods directory %s does not exist", directory)
            return collection

        for entry in sorted(directory.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            if not (entry / MANIFEST_FILENAME).is_file():
                logger.debug("No %s in %s, skipping", MANIFEST_FILENAME, entry)
                continue
            mod = Mod.load_from_disk(parent, entry, engine_version)
            if mod is not None:
                collection.insert(mod)

        logger.debug("Loaded %d mods from %s", len(collection), directory)
        return collection
