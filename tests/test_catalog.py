import pytest

from launcher.models import ModPath, ModSource, ModStateUpdate, ModTriState
from launcher.services.catalog import fetch_catalog, merge_catalog, update_catalog
from launcher.utils.errors import NetworkError

INDEX_URL = "https://repo.example.org/index.json"
EXTRA_URL = "https://extra.example.org/index.json"


@pytest.fixture
def catalog(client):
    client.json_data.update({
        INDEX_URL: {
            "hota": {
                "mod": "https://repo.example.org/hota.json",
                "download": "https://repo.example.org/hota.zip",
                "screenshots": ["https://repo.example.org/hota.png"],
                "downloadSize": 12.5,
            },
            "Zeta": {
                "mod": "https://repo.example.org/zeta.json",
                "download": "https://repo.example.org/zeta.zip",
            },
            "broken": {"mod": "https://repo.example.org/missing.json"},
            "nomanifest": {"download": "https://repo.example.org/x.zip"},
        },
        "https://repo.example.org/hota.json": {
            "name": "Horn of the Abyss",
            "version": "1.4",
            "compatibility": {"min": "1.0", "max": "2.0"},
        },
        "https://repo.example.org/zeta.json": {"name": "Zeta", "version": "0.1"},
    })
    return client


def test_fetch_catalog_skips_failed_entries(catalog):
    entries = fetch_catalog(catalog, INDEX_URL)

    assert sorted(entry.name for entry in entries) == ["hota", "zeta"]
    hota = next(entry for entry in entries if entry.name == "hota")
    assert hota.manifest.version == "1.4"
    assert hota.manifest.download_size == 12.5


def test_fetch_catalog_index_failure(client):
    with pytest.raises(NetworkError):
        fetch_catalog(client, INDEX_URL)

    client.json_data[INDEX_URL] = ["not", "a", "mapping"]
    with pytest.raises(NetworkError):
        fetch_catalog(client, INDEX_URL)


def test_pending_update_is_recorded(catalog, mods_dir, make_tree, write_mod):
    write_mod(mods_dir, "hota", version="1.2", compatibility={"min": "1.0", "max": "2.0"})
    tree = make_tree(engine_version="1.3")

    counts = update_catalog(tree, catalog, INDEX_URL, ModSource.MAIN_REPOSITORY)

    hota = tree.get(ModPath.new("hota"))
    assert counts == {"updates": 1, "new": 1}
    assert hota.update is not None and hota.update.version == "1.4"
    assert hota.manifest.version == "1.2"
    assert hota.state_update() is ModStateUpdate.UPDATE
    assert hota.download_url == "https://repo.example.org/hota.zip"
    assert hota.screenshots == ["https://repo.example.org/hota.png"]
    assert hota.manifest.download_size == 12.5
    assert hota.source is ModSource.MAIN_REPOSITORY


def test_incompatible_engine_gets_no_update(catalog, mods_dir, make_tree, write_mod):
    write_mod(mods_dir, "hota", version="1.2")
    tree = make_tree(engine_version="2.5")

    update_catalog(tree, catalog, INDEX_URL, ModSource.MAIN_REPOSITORY)

    hota = tree.get(ModPath.new("hota"))
    assert hota.update is None
    assert hota.download_url == "https://repo.example.org/hota.zip"


def test_missing_mods_become_stubs(catalog, mods_dir, make_tree, write_mod):
    write_mod(mods_dir, "abc", name="Abc")
    tree = make_tree()

    update_catalog(tree, catalog, INDEX_URL, ModSource.MAIN_REPOSITORY)

    zeta = tree.get(ModPath.new("zeta"))
    assert zeta.state is ModTriState.UNINSTALLED
    assert zeta.manifest.name == "Zeta"
    assert zeta.state_update() is ModStateUpdate.INSTALL
    assert tree.find(ModPath.new("broken")) is None
    assert [mod.name for mod in tree.mods()] == ["abc", "hota", "zeta"]


def test_repositories_are_tagged(catalog, make_tree):
    catalog.json_data[EXTRA_URL] = {
        "extra": {"mod": "https://extra.example.org/extra.json", "download": "https://extra.example.org/extra.zip"},
    }
    catalog.json_data["https://extra.example.org/extra.json"] = {"name": "Extra", "version": "1.0"}
    tree = make_tree()

    update_catalog(tree, catalog, INDEX_URL, ModSource.MAIN_REPOSITORY)
    update_catalog(tree, catalog, EXTRA_URL, ModSource.EXTRA_REPOSITORY)

    assert tree.get(ModPath.new("hota")).source is ModSource.MAIN_REPOSITORY
    assert tree.get(ModPath.new("extra")).source is ModSource.EXTRA_REPOSITORY


def test_merge_refreshes_existing_stub(catalog, make_tree):
    tree = make_tree()
    entries = fetch_catalog(catalog, INDEX_URL)
    merge_catalog(tree, entries, ModSource.MAIN_REPOSITORY)
    tree.get(ModPath.new("zeta")).selected = True

    catalog.json_data["https://repo.example.org/zeta.json"] = {"name": "Zeta", "version": "0.2"}
    merge_catalog(tree, fetch_catalog(catalog, INDEX_URL), ModSource.MAIN_REPOSITORY)

    zeta = tree.get(ModPath.new("zeta"))
    assert zeta.manifest.version == "0.2"
    assert zeta.selected


def test_stub_for_newer_engine_is_flagged(catalog, make_tree):
    catalog.json_data["https://repo.example.org/zeta.json"]["compatibility"] = {"min": "2.0"}
    tree = make_tree(engine_version="1.4.0")

    update_catalog(tree, catalog, INDEX_URL, ModSource.MAIN_REPOSITORY)

    zeta = tree.get(ModPath.new("zeta"))
    assert zeta.version_incompatible
    assert not tree.get(ModPath.new("hota")).version_incompatible
    snapshot = next(snap for snap in tree.snapshot() if snap.path == ModPath.new("zeta"))
    assert snapshot.version_incompatible
    assert not tree.has_problems()
