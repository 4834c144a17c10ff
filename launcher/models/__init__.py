from .mod_path import ModPath
from .manifest import Compatibility, Language, ModManifest, ModTranslation, ModType
from .relations import ModRelationSet
from .mod import (
    Mod,
    ModCollection,
    ModSettings,
    ModSource,
    ModStateEnabled,
    ModStateUpdate,
    ModTriState,
)
from .mod_tree import ModSnapshot, ModSort, ModTree
from .config_model import ConfigModel

__all__ = [
    "ModPath",
    "Compatibility",
    "Language",
    "ModManifest",
    "ModTranslation",
    "ModType",
    "ModRelationSet",
    "Mod",
    "ModCollection",
    "ModSettings",
    "ModSource",
    "ModStateEnabled",
    "ModStateUpdate",
    "ModTriState",
    "ModSnapshot",
    "ModSort",
    "ModTree",
    "ConfigModel",
]
