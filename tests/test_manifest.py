import json

import pytest

from launcher.models import Compatibility, Language, ModManifest, ModPath, ModType
from launcher.utils.errors import ModInvalidError, ModManifestError


HOTA = {
    "name": "Horn of the Abyss",
    "description": "Expansion",
    "modType": "expansion",
    "author": "HotA Crew",
    "downloadSize": 120.5,
    "licenseName": "proprietary",
    "licenseURL": "https://example.org/license",
    "version": "1.2",
    "changelog": {"1.1": ["fixes"], "1.2": "new town"},
    "compatibility": {"min": "1.0", "max": "2.0"},
    "depends": ["VCMI", "vcmi.extras"],
    "conflicts": ["wog"],
    "keepDisabled": True,
    "german": {"name": "Horn des Abgrunds", "description": "Erweiterung"},
    "settings": {"hero": 1},
}


def test_from_dict_reads_camel_case_fields():
    manifest = ModManifest.from_dict(HOTA)

    assert manifest.name == "Horn of the Abyss"
    assert manifest.type is ModType.EXPANSION
    assert manifest.download_size == 120.5
    assert manifest.license_name == "proprietary"
    assert manifest.license_url == "https://example.org/license"
    assert manifest.keep_disabled
    assert manifest.compatibility == Compatibility("1.0", "2.0")
    assert manifest.changelog == {"1.1": ["fixes"], "1.2": ["new town"]}


def test_relations_are_parsed_as_paths():
    manifest = ModManifest.from_dict(HOTA)

    assert manifest.depends == (ModPath.new("vcmi"), ModPath.parse("vcmi.extras"))
    assert manifest.conflicts == (ModPath.new("wog"),)


def test_translations_and_unknown_keys():
    manifest = ModManifest.from_dict(HOTA)

    assert Language.GERMAN in manifest.translations
    assert manifest.extra == {"settings": {"hero": 1}}

    german = manifest.translated(Language.GERMAN)
    assert german.name == "Horn des Abgrunds"
    assert german.author == "HotA Crew"

    polish = manifest.translated(Language.POLISH)
    assert polish.name == "Horn of the Abyss"


def test_unknown_type_defaults_to_other():
    assert ModManifest.from_dict({"modType": "Weird"}).type is ModType.OTHER
    assert ModManifest.from_dict({}).type is ModType.OTHER


def test_invalid_relations_are_rejected():
    with pytest.raises(ValueError):
        ModManifest.from_dict({"depends": "vcmi"})

    with pytest.raises(ValueError):
        ModManifest.from_dict({"conflicts": [""]})


def test_from_file(tmp_path):
    path = tmp_path / "mod.json"
    path.write_text(json.dumps(HOTA), encoding="UTF-8")

    assert ModManifest.from_file(path).version == "1.2"


def test_from_file_errors(tmp_path):
    with pytest.raises(ModManifestError, match="file not found"):
        ModManifest.from_file(tmp_path / "missing.json")

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{ name: ", encoding="UTF-8")
    with pytest.raises(ModManifestError, match="invalid JSON"):
        ModManifest.from_file(corrupt)

    not_object = tmp_path / "list.json"
    not_object.write_text("[]", encoding="UTF-8")
    with pytest.raises(ModInvalidError):
        ModManifest.from_file(not_object)


def test_update_available_scenario():
    remote = ModManifest.from_dict(
        {"version": "1.4", "compatibility": {"min": "1.0", "max": "2.0"}}
    )

    assert remote.update_available("1.2", "1.3")
    assert not remote.update_available("1.4", "1.3")
    assert not remote.update_available("1.2", "2.5")


def test_open_compatibility_bounds():
    assert Compatibility().satisfied("0.1")
    assert Compatibility(min="1.0").satisfied("9.9")
    assert not Compatibility(max="1.0").satisfied("1.1")


def test_with_download_size_keeps_other_fields():
    manifest = ModManifest.from_dict(HOTA).with_download_size(3.0)

    assert manifest.download_size == 3.0
    assert manifest.name == "Horn of the Abyss"


def test_unknown_engine_version_satisfies_any_range():
    assert Compatibility(min="1.0", max="2.0").satisfied("")
    assert ModManifest(version="1.4", compatibility=Compatibility(min="1.0")).update_available("", "")
