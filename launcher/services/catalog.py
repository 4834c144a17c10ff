from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
import logging

from launcher.models.manifest import ModManifest
from launcher.models.mod import Mod, ModSource
from launcher.models.mod_path import ModPath
from launcher.models.mod_tree import ModTree
from launcher.services.remote import RemoteClient
from launcher.utils.errors import NetworkError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

MAX_PARALLEL_FETCHES = 8


@dataclass
class CatalogEntry:
    """One mod of a remote repository index."""

    name: str
    mod_url: str
    download: str = ""
    screenshots: List[str] = field(default_factory=list)
    download_size: float = 0.0
    manifest: Optional[ModManifest] = None

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "CatalogEntry":
        screenshots = data.get("screenshots") or []
        try:
            download_size = float(data.get("downloadSize") or 0.0)
        except (TypeError, ValueError):
            download_size = 0.0
        return cls(
            name=name.lower(),
            mod_url=str(data.get("mod") or ""),
            download=str(data.get("download") or ""),
            screenshots=[str(url) for url in screenshots if url],
            download_size=download_size,
        )


def parse_index(data: Any) -> List[CatalogEntry]:
    if not isinstance(data, Mapping):
        raise ValueError("repository index must be a JSON object")

    entries = []
    for name, value in data.items():
        if not isinstance(value, Mapping) or not value.get("mod"):
            logger.warning("Repository entry '%s' has no manifest URL, skipping", name)
            continue
        entries.append(CatalogEntry.from_dict(name, value))
    return entries


def _fetch_manifest(client: RemoteClient, entry: CatalogEntry) -> Optional[CatalogEntry]:
    try:
        manifest = ModManifest.from_dict(client.fetch_json(entry.mod_url))
    except (NetworkError, ValueError, TypeError) as error:
        logger.warning("Skipping remote mod '%s': %s", entry.name, error)
        return None

    if entry.download_size:
        manifest = manifest.with_download_size(entry.download_size)
    entry.manifest = manifest
    return entry


def fetch_catalog(client: RemoteClient, url: str) -> List[CatalogEntry]:
    """Fetches a repository index and every manifest it points to.

    Manifests that cannot be fetched or parsed are left out; a failing
    index raises NetworkError.
    """
    try:
        entries = parse_index(client.fetch_json(url))
    except ValueError as error:
        raise NetworkError(url, str(error)) from error

    with ThreadPoolExecutor(max_workers=MAX_PARALLEL_FETCHES) as pool:
        results = list(pool.map(lambda entry: _fetch_manifest(client, entry), entries))

    fetched = [entry for entry in results if entry is not None]
    logger.info("Fetched %d of %d mods from %s", len(fetched), len(entries), url)
    return fetched


def merge_catalog(tree: ModTree, entries: List[CatalogEntry], source: ModSource) -> Dict[str, int]:
    """Merges fetched entries into tree and returns counts of what changed."""
    counts = {"updates": 0, "new": 0}

    with tree.write():
        for entry in entries:
            if entry.manifest is None:
                continue

            mod = tree.find(ModPath.new(entry.name))
            if mod is None:
                mod = Mod.from_catalog(entry.name, entry.manifest, tree.engine_version)
                tree.insert(mod)
                counts["new"] += 1
            elif not mod.installed():
                # an install in flight keeps its node until it completes
                if not mod.ongoing_operation:
                    stub = Mod.from_catalog(entry.name, entry.manifest, tree.engine_version)
                    stub.selected = mod.selected
                    tree.insert(stub)
                    mod = stub
            else:
                if entry.download_size:
                    mod.manifest = mod.manifest.with_download_size(entry.download_size)
                if entry.manifest.update_available(mod.manifest.version, tree.engine_version):
                    logger.info(
                        "Update for %s: %s -> %s",
                        entry.name, mod.manifest.version, entry.manifest.version,
                    )
                    mod.update = entry.manifest
                    counts["updates"] += 1

            mod.download_url = entry.download or None
            mod.screenshots = list(entry.screenshots)
            mod.source = source

        tree.sort()

    return counts


def update_catalog(
    tree: ModTree, client: RemoteClient, url: str, source: ModSource
) -> Dict[str, int]:
    return merge_catalog(tree, fetch_catalog(client, url), source)
