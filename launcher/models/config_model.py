from typing import Union, Optional, Any
from pathlib import Path
from PySide6.QtCore import QObject, Signal, QSettings


class ConfigModel(QObject):
    modsDirectoryChanged = Signal(str)
    languageChanged = Signal(str)
    engineVersionChanged = Signal(str)
    autoCheckRepositoriesChanged = Signal(bool)
    mainRepositoryUrlChanged = Signal(str)
    extraRepositoryEnabledChanged = Signal(bool)
    extraRepositoryUrlChanged = Signal(str)
    downloadTimeoutChanged = Signal(int)

    DEFAULT_VALUES = {
        "language": "english",
        "engine_version": "1.4.0",
        "auto_check_repositories": True,
        "main_repository_url": "https://raw.githubusercontent.com/vcmi/vcmi-mods-repository/develop/vcmi-1.4.json",
        "extra_repository_enabled": False,
        "extra_repository_url": "",
        "download_timeout": 60,
    }

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self._path = Path(path)
        self._settings: QSettings = QSettings(
            str(self._path.resolve()), QSettings.Format.IniFormat
        )

    @property
    def mods_directory(self) -> Optional[str]:
        """Returns the directory mods are installed into, if overridden."""
        value = self._settings.value("mods_directory")
        return str(value) if value else None

    def set_mods_directory(self, value: str) -> None:
        if not value:
            raise ValueError("Mods directory cannot be empty")
        self._settings.setValue("mods_directory", value)
        self.modsDirectoryChanged.emit(value)

    @property
    def language(self) -> str:
        """Returns the language mod names and descriptions are shown in."""
        return self._settings.value(
            "General/language", defaultValue=self.DEFAULT_VALUES.get("language"), type=str
        )

    def set_language(self, value: str) -> None:
        if not value:
            raise ValueError("Language cannot be empty")
        self._settings.setValue("General/language", value)
        self.languageChanged.emit(value)

    @property
    def engine_version(self) -> str:
        """Returns the engine version checked against mod compatibility ranges."""
        return self._settings.value(
            "General/engine_version", defaultValue=self.DEFAULT_VALUES.get("engine_version"), type=str
        )

    def set_engine_version(self, value: str) -> None:
        self._settings.setValue("General/engine_version", value)
        self.engineVersionChanged.emit(value)

    @property
    def auto_check_repositories(self) -> bool:
        """Returns whether the mod repositories are checked on start."""
        return self._settings.value(
            "Repositories/auto_check", defaultValue=self.DEFAULT_VALUES.get("auto_check_repositories"), type=bool
        )

    def set_auto_check_repositories(self, value: bool) -> None:
        self._settings.setValue("Repositories/auto_check", value)
        self.autoCheckRepositoriesChanged.emit(value)

    @property
    def main_repository_url(self) -> str:
        return self._settings.value(
            "Repositories/main_url", defaultValue=self.DEFAULT_VALUES.get("main_repository_url"), type=str
        )

    def set_main_repository_url(self, value: str) -> None:
        if not value:
            raise ValueError("Main repository URL cannot be empty")
        self._settings.setValue("Repositories/main_url", value)
        self.mainRepositoryUrlChanged.emit(value)

    @property
    def extra_repository_enabled(self) -> bool:
        return self._settings.value(
            "Repositories/extra_enabled", defaultValue=self.DEFAULT_VALUES.get("extra_repository_enabled"), type=bool
        )

    def set_extra_repository_enabled(self, value: bool) -> None:
        self._settings.setValue("Repositories/extra_enabled", value)
        self.extraRepositoryEnabledChanged.emit(value)

    @property
    def extra_repository_url(self) -> str:
        return self._settings.value(
            "Repositories/extra_url", defaultValue=self.DEFAULT_VALUES.get("extra_repository_url"), type=str
        )

    def set_extra_repository_url(self, value: str) -> None:
        self._settings.setValue("Repositories/extra_url", value)
        self.extraRepositoryUrlChanged.emit(value)

    @property
    def repository_urls(self) -> list:
        """Repositories to fetch, main first; the extra one only if enabled and set."""
        urls = [self.main_repository_url]
        if self.extra_repository_enabled and self.extra_repository_url:
            urls.append(self.extra_repository_url)
        return urls

    @property
    def download_timeout(self) -> int:
        """Returns the network timeout in seconds."""
        return self._settings.value(
            "Network/download_timeout", defaultValue=self.DEFAULT_VALUES.get("download_timeout"), type=int
        )

    def set_download_timeout(self, value: int) -> None:
        if value <= 0:
            raise ValueError("Download timeout must be positive")
        self._settings.setValue("Network/download_timeout", value)
        self.downloadTimeoutChanged.emit(value)

    def get(self, key: str, default: Any = None, value_type: type = str) -> Any:
        """Get a configuration value by key."""
        return self._settings.value(key, defaultValue=default, type=value_type)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by key."""
        self._settings.setValue(key, value)

    def sync(self) -> None:
        """Force synchronization of settings to storage."""
        self._settings.sync()

    def as_dict(self) -> dict:
        return {
            "mods_directory": self.mods_directory,
            "language": self.language,
            "engine_version": self.engine_version,
            "auto_check_repositories": self.auto_check_repositories,
            "main_repository_url": self.main_repository_url,
            "extra_repository_enabled": self.extra_repository_enabled,
            "extra_repository_url": self.extra_repository_url,
            "download_timeout": self.download_timeout,
        }
