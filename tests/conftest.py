import io
import json
import zipfile
from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication

from launcher.models import ModTree
from launcher.services import ModOperationQueue, NotificationCenter
from launcher.utils.errors import NetworkError, OperationCancelledError


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


def _write_mod(directory: Path, dir_name: str, **manifest) -> Path:
    mod_dir = directory / dir_name
    mod_dir.mkdir(parents=True, exist_ok=True)
    data = {
        "name": dir_name.capitalize(),
        "description": f"{dir_name} description",
        "version": "1.0",
        "modType": "Other",
    }
    data.update(manifest)
    (mod_dir / "mod.json").write_text(json.dumps(data), encoding="UTF-8")
    return mod_dir


def _zip_bytes(members: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for member, data in members.items():
            zf.writestr(member, data)
    return buffer.getvalue()


class FakeClient:
    """Stands in for RemoteClient, serving canned JSON and downloads."""

    def __init__(self) -> None:
        self.json_data = {}
        self.downloads = {}
        self.requested = []
        # when set to an Event, downloads block until it is set
        self.download_gate = None

    def fetch_json(self, url):
        self.requested.append(url)
        if url not in self.json_data:
            raise NetworkError(url, "404 Not Found")
        return self.json_data[url]

    def download_bytes(self, url, progress=None, cancel_event=None):
        self.requested.append(url)
        if self.download_gate is not None:
            self.download_gate.wait(timeout=10)
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(f"Download of {url} cancelled")
        if url not in self.downloads:
            raise NetworkError(url, "404 Not Found")

        data = self.downloads[url]
        if progress is not None:
            progress.add_downloaded(len(data))
        return data


@pytest.fixture
def write_mod():
    return _write_mod


@pytest.fixture
def zip_bytes():
    return _zip_bytes


@pytest.fixture
def mods_dir(tmp_path):
    path = tmp_path / "Mods"
    path.mkdir()
    return path


@pytest.fixture
def settings_file(tmp_path):
    return tmp_path / "config" / "modSettings.json"


@pytest.fixture
def make_tree(mods_dir, settings_file):
    def factory(engine_version: str = "1.4.0") -> ModTree:
        tree = ModTree(mods_dir, settings_file, engine_version=engine_version)
        tree.reload()
        return tree

    return factory


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def notifications():
    return NotificationCenter()


@pytest.fixture
def make_queue(client, notifications):
    queues = []

    def factory(tree: ModTree, repositories=()) -> ModOperationQueue:
        queue = ModOperationQueue(tree, client, notifications, repositories, max_workers=2)
        queues.append(queue)
        return queue

    yield factory

    if client.download_gate is not None:
        client.download_gate.set()
    for queue in queues:
        queue.shutdown()
