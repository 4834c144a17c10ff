from pathlib import Path

from PySide6.QtCore import QCoreApplication, QStandardPaths

DEFAULT_APP_NAME = "vcmi-launcher"


class ApplicationPaths:
    """Writable launcher locations, resolved through QStandardPaths.

    Needs the organization and application names set on QCoreApplication
    first, otherwise every launcher shares one generic directory.
    """

    MODS_DIR_NAME = "Mods"
    LOGS_DIR_NAME = "logs"
    SETTINGS_INI = "launcher.ini"
    MOD_SETTINGS_JSON = "modSettings.json"

    def __init__(self) -> None:
        self._data_path = self._resolve(QStandardPaths.StandardLocation.AppLocalDataLocation)
        self._config_path = self._resolve(QStandardPaths.StandardLocation.AppConfigLocation)

    @staticmethod
    def _resolve(location: QStandardPaths.StandardLocation) -> Path:
        location_path = QStandardPaths.writableLocation(location)
        if location_path:
            return Path(location_path)

        # headless systems without XDG dirs
        app_name = QCoreApplication.applicationName() or DEFAULT_APP_NAME
        return Path.home() / f".{app_name}"

    def ensure_directories(self) -> None:
        for directory in (self.data_path, self.config_path, self.mods_path, self.logs_path):
            directory.mkdir(parents=True, exist_ok=True)

    @property
    def data_path(self) -> Path:
        return self._data_path

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def mods_path(self) -> Path:
        """Default mods directory, used when the config names none."""
        return self._data_path / self.MODS_DIR_NAME

    @property
    def logs_path(self) -> Path:
        return self._data_path / self.LOGS_DIR_NAME

    @property
    def log_file(self) -> Path:
        return self.logs_path / "launcher.log"

    @property
    def settings_ini(self) -> Path:
        return self._config_path / self.SETTINGS_INI

    @property
    def mod_settings_json(self) -> Path:
        """Enable/disable choices and checksums of installed mods."""
        return self._config_path / self.MOD_SETTINGS_JSON


app_paths = ApplicationPaths()
