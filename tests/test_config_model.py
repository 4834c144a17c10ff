import pytest

from launcher.models import ConfigModel


@pytest.fixture
def config(tmp_path):
    return ConfigModel(tmp_path / "launcher.ini")


def test_defaults(config):
    assert config.mods_directory is None
    assert config.language == "english"
    assert config.auto_check_repositories is True
    assert config.extra_repository_enabled is False
    assert config.download_timeout == 60
    assert config.repository_urls == [ConfigModel.DEFAULT_VALUES["main_repository_url"]]


def test_setters_emit_and_persist(tmp_path, config):
    changes = []
    config.languageChanged.connect(changes.append)

    config.set_language("german")
    config.set_mods_directory(str(tmp_path / "Mods"))
    config.sync()

    assert changes == ["german"]
    reloaded = ConfigModel(tmp_path / "launcher.ini")
    assert reloaded.language == "german"
    assert reloaded.mods_directory == str(tmp_path / "Mods")


def test_extra_repository(config):
    config.set_extra_repository_url("https://extra.example.org/index.json")
    assert len(config.repository_urls) == 1

    config.set_extra_repository_enabled(True)
    assert config.repository_urls[1] == "https://extra.example.org/index.json"


def test_invalid_values(config):
    with pytest.raises(ValueError):
        config.set_mods_directory("")
    with pytest.raises(ValueError):
        config.set_download_timeout(0)
