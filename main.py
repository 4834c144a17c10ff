from argparse import ArgumentParser
from pathlib import Path
from typing import List
import logging
import sys
import time

from PySide6.QtCore import QCoreApplication, QTimer

# Needs the organization and application names before initializing app_paths
QCoreApplication.setOrganizationName("VCMI")
QCoreApplication.setApplicationName("vcmi-launcher")

from launcher.version import __version__
from launcher.controllers import ModManagerController
from launcher.models import ConfigModel, Language, ModPath, ModSnapshot, ModSort, ModSource, ModTree
from launcher.services import ModOperationQueue, NotificationCenter, RemoteClient
from launcher.utils.logger import setup_logging
from launcher.utils.paths import app_paths

logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 50

STATE_MARKS = {
    "ENABLED": "[x]",
    "DISABLED": "[ ]",
    "CONFLICT": "[!]",
    "SUB_MOD_CONFLICT": "[~]",
    "NONE": "[-]",
}


class Application:
    def __init__(self, mods_directory: str | None = None, offline: bool = False) -> None:
        logger.info("Initializing Application...")
        self.app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
        self._offline = offline

        app_paths.ensure_directories()
        self.config_model = ConfigModel(app_paths.settings_ini)

        mods_path = Path(mods_directory or self.config_model.mods_directory or app_paths.mods_path)
        self.tree = ModTree(
            mods_path,
            app_paths.mod_settings_json,
            engine_version=self.config_model.engine_version,
            language=Language.from_key(self.config_model.language),
        )
        self.notifications = NotificationCenter()
        self.client = RemoteClient(timeout=self.config_model.download_timeout)
        self.operations = ModOperationQueue(
            self.tree, self.client, self.notifications, self._repositories()
        )
        self.controller = ModManagerController(
            self.tree, self.operations, self.notifications, self.config_model
        )
        self.controller.notificationRequested.connect(self._on_notification)
        logger.info("Application initialization complete.")

    def _repositories(self) -> list:
        if self._offline:
            return []
        urls = self.config_model.repository_urls
        sources = (ModSource.MAIN_REPOSITORY, ModSource.EXTRA_REPOSITORY)
        return list(zip(urls, sources))

    def _on_notification(self, title: str, description: str, notification_type: str, duration: int) -> None:
        print(f"[{notification_type}] {title}: {description}" if description else f"[{notification_type}] {title}")

    def _run_until_idle(self) -> None:
        """Ticks the controller until no operation is left running."""
        timer = QTimer()
        timer.setInterval(TICK_INTERVAL_MS)

        def tick() -> None:
            self.controller.tick()
            if not self.operations.ongoing():
                timer.stop()
                self.app.quit()

        timer.timeout.connect(tick)
        timer.start()
        self.app.exec()

    def run(self, command: str, names: List[str], full: bool = False) -> int:
        fetch = not self._offline and (
            command in ("install", "update", "check-updates")
            or self.config_model.auto_check_repositories
        )
        self.operations.init_mods(update_on_start=fetch)
        self._run_until_idle()

        paths = [ModPath.parse(name) for name in names]
        if command in ("enable", "disable"):
            for path in paths:
                if not self.controller.set_enabled(path, command == "enable"):
                    logger.warning("Could not %s %s", command, path)
        elif command == "install":
            for path in paths:
                self.controller.install(path)
        elif command == "update":
            targets = paths or [mod.path for mod in self.tree.mods() if mod.update is not None]
            for path in targets:
                self.controller.update(path)
        elif command == "uninstall":
            for path in paths:
                self.controller.uninstall(path, full=True if full else None)

        self._run_until_idle()
        self.operations.shutdown()

        self._print_mods(self.controller.snapshot(ModSort.NAME))
        return 1 if self.controller.has_problems() else 0

    def _print_mods(self, snapshots: List[ModSnapshot], depth: int = 0) -> None:
        for snap in snapshots:
            mark = STATE_MARKS[snap.state_enabled.name]
            line = f"{'  ' * depth}{mark} {snap.path} {snap.version}"
            if snap.update_version:
                line += f" (update: {snap.update_version})"
            if snap.missing_dependencies:
                line += " missing: " + ", ".join(str(path) for path in snap.missing_dependencies)
            if snap.active_conflicts:
                line += " conflicts: " + ", ".join(str(path) for path in snap.active_conflicts)
            if snap.version_incompatible:
                line += " (incompatible)"
            print(line)
            self._print_mods(list(snap.children), depth + 1)


def main() -> None:
    parser = ArgumentParser(
        description=f"VCMI launcher mod manager v{__version__}",
        epilog="Example: vcmi-launcher --log-level debug install hota"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "command",
        nargs="?",
        default="list",
        choices=["list", "enable", "disable", "install", "update", "uninstall", "check-updates"],
        help="What to do with the mods (default: %(default)s)."
    )
    parser.add_argument(
        "mods",
        nargs="*",
        metavar="MOD",
        help="Mod paths, sub-mods separated by dots (e.g. wog.extras)."
    )
    parser.add_argument(
        "--mods-dir",
        type=str,
        metavar="DIR",
        help="Use DIR instead of the configured mods directory."
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        default=False,
        help="Do not contact the mod repositories."
    )
    parser.add_argument(
        "--full",
        action="store_true",
        default=False,
        help="With uninstall: also remove the mod from the list."
    )

    logging_group = parser.add_argument_group("Logging")

    logging_group.add_argument(
        "-l", "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Set the logging verbosity level (default: %(default)s)."
    )
    logging_group.add_argument(
        "-f",
        "--log-filter",
        type=str,
        metavar="NAME",
        help="Filter logs by a specific module name."
    )
    logging_group.add_argument(
        "-n",
        "--no-logs",
        action="store_true",
        default=False
    )

    args = parser.parse_args()

    if not args.no_logs:
        setup_logging(app_paths.log_file, args.log_level, args.log_filter)

    logger.info("=" * 50)
    logger.info("Starting vcmi-launcher v%s", __version__)
    logger.info("=" * 50)

    start_time = time.perf_counter()
    app = Application(mods_directory=args.mods_dir, offline=args.offline)
    logger.info("Application loaded in %.3f seconds.", time.perf_counter() - start_time)
    sys.exit(app.run(args.command, args.mods, full=args.full))


if __name__ == "__main__":
    main()
