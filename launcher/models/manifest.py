from enum import Enum
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
import json
import logging

from launcher.models.mod_path import ModPath
from launcher.utils.errors import ModManifestError
from launcher.utils.versions import in_range, is_newer

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class ModType(Enum):
    AI = "AI"
    ARTIFACTS = "Artifacts"
    CREATURES = "Creatures"
    EXPANSION = "Expansion"
    GRAPHICAL = "Graphical"
    HEROES = "Heroes"
    INTERFACE = "Interface"
    MAPS = "Maps"
    MECHANICS = "Mechanics"
    MUSIC = "Music"
    OBJECTS = "Objects"
    OTHER = "Other"
    SKILLS = "Skills"
    SOUNDS = "Sounds"
    SPELLS = "Spells"
    TEMPLATES = "Templates"
    TEST = "Test"
    TOWN = "Town"
    TRANSLATION = "Translation"
    UTILITY = "Utility"

    @classmethod
    def from_value(cls, value: Any) -> "ModType":
        for mod_type in cls:
            if isinstance(value, str) and mod_type.value.lower() == value.lower():
                return mod_type
        if value:
            logger.debug("Unknown mod type '%s', using Other", value)
        return cls.OTHER


class Language(Enum):
    ENGLISH = ("english", "en")
    POLISH = ("polish", "pl")
    GERMAN = ("german", "de")
    CHINESE = ("chinese", "zh")
    FRENCH = ("french", "fr")
    RUSSIAN = ("russian", "ru")
    UKRAINIAN = ("ukrainian", "uk")
    SPANISH = ("spanish", "es")
    CZECH = ("czech", "cs")

    def __init__(self, key: str, short: str) -> None:
        self.key = key
        self.short = short

    @classmethod
    def from_key(cls, key: Any) -> Optional["Language"]:
        if not isinstance(key, str):
            return None
        key = key.lower()
        for language in cls:
            if key in (language.key, language.short):
                return language
        return None


@dataclass(frozen=True)
class Compatibility:
    min: str = ""
    max: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Compatibility":
        if not isinstance(data, Mapping):
            return cls()
        return cls(min=_as_str(data.get("min")), max=_as_str(data.get("max")))

    def satisfied(self, engine_version: str) -> bool:
        if not engine_version:
            return True  # engine version unknown
        return in_range(engine_version, self.min, self.max)


@dataclass(frozen=True)
class ModTranslation:
    name: str = ""
    description: str = ""
    author: str = ""
    changelog: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping) -> "ModTranslation":
        return cls(
            name=_as_str(data.get("name")),
            description=_as_str(data.get("description")),
            author=_as_str(data.get("author")),
            changelog=_as_changelog(data.get("changelog")),
        )


@dataclass(frozen=True)
class ModManifest:
    """Content of a mod.json file."""

    name: str = ""
    description: str = ""
    type: ModType = ModType.OTHER
    author: str = ""
    download_size: float = 0.0
    contact: str = ""
    license_name: str = ""
    license_url: str = ""
    version: str = ""
    changelog: Dict[str, List[str]] = field(default_factory=dict)
    compatibility: Compatibility = field(default_factory=Compatibility)
    depends: Tuple[ModPath, ...] = ()
    conflicts: Tuple[ModPath, ...] = ()
    keep_disabled: bool = False
    language: Optional[Language] = None
    translations: Dict[Language, ModTranslation] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    KNOWN_KEYS = frozenset({
        "name", "description", "modType", "type", "author", "downloadSize",
        "contact", "licenseName", "licenseURL", "version", "changelog",
        "compatibility", "depends", "conflicts", "keepDisabled", "language",
    })

    @classmethod
    def from_dict(cls, data: Any) -> "ModManifest":
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        translations = {}
        extra = {}
        for key, value in data.items():
            if key in cls.KNOWN_KEYS:
                continue
            language = Language.from_key(key)
            if language is not None and isinstance(value, Mapping):
                translations[language] = ModTranslation.from_dict(value)
            else:
                extra[key] = value

        return cls(
            name=_as_str(data.get("name")),
            description=_as_str(data.get("description")),
            type=ModType.from_value(data.get("modType", data.get("type"))),
            author=_as_str(data.get("author")),
            download_size=_as_float(data.get("downloadSize")),
            contact=_as_str(data.get("contact")),
            license_name=_as_str(data.get("licenseName")),
            license_url=_as_str(data.get("licenseURL")),
            version=_as_str(data.get("version")),
            changelog=_as_changelog(data.get("changelog")),
            compatibility=Compatibility.from_dict(data.get("compatibility")),
            depends=_as_paths(data.get("depends")),
            conflicts=_as_paths(data.get("conflicts")),
            keep_disabled=bool(data.get("keepDisabled", False)),
            language=Language.from_key(data.get("language")),
            translations=translations,
            extra=extra,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ModManifest":
        path = Path(path)

        try:
            with path.open("r", encoding="UTF-8") as file:
                data = json.load(file)
        except FileNotFoundError as error:
            raise ModManifestError(path, "file not found") from error
        except json.JSONDecodeError as error:
            raise ModManifestError(path, f"invalid JSON: {error}") from error
        except (OSError, UnicodeDecodeError) as error:
            raise ModManifestError(path, str(error)) from error

        try:
            return cls.from_dict(data)
        except (TypeError, ValueError) as error:
            raise ModManifestError(path, str(error)) from error

    def with_download_size(self, download_size: float) -> "ModManifest":
        return replace(self, download_size=download_size)

    def update_available(self, current_version: str, engine_version: str) -> bool:
        """True if this (remote) manifest is newer than current_version and
        runs on engine_version."""
        return self.compatibility.satisfied(engine_version) and is_newer(
            self.version, current_version
        )

    def translated(self, language: Optional[Language]) -> ModTranslation:
        base = ModTranslation(
            name=self.name,
            description=self.description,
            author=self.author,
            changelog=self.changelog,
        )
        overlay = self.translations.get(language) if language else None
        if overlay is None:
            return base

        return ModTranslation(
            name=overlay.name or base.name,
            description=overlay.description or base.description,
            author=overlay.author or base.author,
            changelog=overlay.changelog or base.changelog,
        )


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_float(value: Any) -> float:
    try:
        return float(value or 0.0)
    except (TypeError, ValueError):
        logger.warning("Invalid download size '%s'", value)
        return 0.0


def _as_changelog(value: Any) -> Dict[str, List[str]]:
    if not isinstance(value, Mapping):
        return {}
    changelog = {}
    for mod_version, lines in value.items():
        if isinstance(lines, str):
            lines = [lines]
        elif not isinstance(lines, list):
            continue
        changelog[str(mod_version)] = [_as_str(line) for line in lines]
    return changelog


def _as_paths(value: Any) -> Tuple[ModPath, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ValueError("depends/conflicts must be lists of mod names")

    paths = []
    for item in value:
        if not isinstance(item, str) or not item:
            raise ValueError(f"invalid mod reference {item!r}")
        path = ModPath.parse(item)
        if path not in paths:
            paths.append(path)
    return tuple(paths)
