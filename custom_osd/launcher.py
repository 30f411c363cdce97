from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QFileSystemWatcher, QTimer
from PyQt6.QtWidgets import QApplication

from custom_osd.debug_config import DEBUG_CONFIG_ENABLED, load_debug_config
from custom_osd.extension import RING_SVG_NAME, CustomOsdExtension
from custom_osd.logging_utils import _LOGGER_NAME, attach_file_handler, configure_client_logger
from custom_osd.qt_host import QtCompositor, QtMonitorLayout, QtOsdHost, QtScheduler
from custom_osd.settings import SETTINGS_FILE, OsdSettings
from custom_osd.version import DEV_MODE_ENV_VAR, __version__

CONFIG_DIR_ENV_VAR = "CUSTOM_OSD_CONFIG_DIR"
DEFAULT_LOG_RETENTION = 5

_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)


def resolve_config_dir() -> Path:
    env_override = os.getenv(CONFIG_DIR_ENV_VAR)
    if env_override:
        return Path(env_override).expanduser().resolve()
    config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return (config_home / "custom-osd").resolve()


def resolve_settings_path(arg_path: Optional[str]) -> Path:
    if arg_path:
        return Path(arg_path).expanduser().resolve()
    return resolve_config_dir() / SETTINGS_FILE


def _watch_settings(watcher: QFileSystemWatcher, settings: OsdSettings) -> None:
    path = str(settings.path)
    directory = str(settings.path.parent)

    def _reload(_changed: str) -> None:
        changed = settings.reload()
        # Editors that save by rename drop the file from the watch list.
        if settings.path.exists() and path not in watcher.files():
            watcher.addPath(path)
        if changed:
            _CLIENT_LOGGER.debug("Settings reloaded from %s: %s", path, ", ".join(changed))

    if settings.path.exists():
        watcher.addPath(path)
    if settings.path.parent.is_dir():
        watcher.addPath(directory)
    watcher.fileChanged.connect(_reload)
    watcher.directoryChanged.connect(_reload)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Custom OSD host")
    parser.add_argument("--settings", help=f"Path to {SETTINGS_FILE} (default: XDG config dir)")
    parser.add_argument("--show", choices=("sample", "clock"), help="Show an OSD once enabled")
    parser.add_argument("--command", help='Show a command OSD: "<stamp>,<icon>,<label>,<level>"')
    parser.add_argument("--exit-after", type=int, metavar="MS", help="Quit after MS milliseconds")
    args = parser.parse_args(argv)

    settings_path = resolve_settings_path(args.settings)
    debug_config = load_debug_config(settings_path.parent / "debug.json")
    logger = configure_client_logger(DEBUG_CONFIG_ENABLED)
    log_dir = attach_file_handler(logger, retention=debug_config.osd_logs_to_keep or DEFAULT_LOG_RETENTION)
    if not DEBUG_CONFIG_ENABLED:
        logger.debug(
            "debug.json ignored (release mode). Export %s=1 or use a -dev version to enable trace toggles.",
            DEV_MODE_ENV_VAR,
        )
    logger.info("Starting Custom OSD %s (pid=%s)", __version__, os.getpid())
    logger.debug("Settings path %s; logs in %s", settings_path, log_dir)

    settings = OsdSettings(settings_path)
    app = QApplication(sys.argv[:1])
    app.setQuitOnLastWindowClosed(False)

    layout = QtMonitorLayout()
    scheduler = QtScheduler(app)
    host = QtOsdHost(layout, scheduler)
    extension = CustomOsdExtension(
        settings=settings,
        layout=layout,
        host=host,
        scheduler=scheduler,
        compositor=QtCompositor(),
        ring_svg_path=settings_path.parent / RING_SVG_NAME,
        debug_config=debug_config,
    )
    extension.enable()
    app.aboutToQuit.connect(extension.disable)

    watcher = QFileSystemWatcher(app)
    _watch_settings(watcher, settings)

    def _initial_show() -> None:
        actions = extension.actions
        if actions is None:
            return
        if args.show == "sample":
            actions.show_sample()
        elif args.show == "clock":
            actions.show_clock()
        if args.command:
            actions.show_command(args.command)

    QTimer.singleShot(0, _initial_show)
    if args.exit_after is not None:
        QTimer.singleShot(max(0, args.exit_after), app.quit)

    exit_code = app.exec()
    logger.info("Custom OSD exiting with code %s", exit_code)
    return int(exit_code)
