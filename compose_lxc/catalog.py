"""Discover applications in a local checkout of an app-store repository."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .models import AppRecord
from .parser import normalize, parse_umbrel_app

logger = logging.getLogger(__name__)

MAX_APP_FOLDERS = 500
COMPOSE_NAMES = {"docker-compose.yml", "docker-compose.yaml"}
UMBREL_NAMES = {"umbrel-app.yml", "umbrel-app.yaml"}
SIDECAR_NAMES = {"config.json"}
ICON_NAMES = {"icon.svg", "icon.png", "icon.jpg", "logo.png"}


@dataclass
class AppFolder:
    folder: Path
    compose: Optional[Path] = None
    umbrel: Optional[Path] = None
    sidecar: Optional[Path] = None
    icon: Optional[Path] = None

    @property
    def app_id(self) -> str:
        return self.folder.name


def _read(path: Optional[Path]) -> Optional[str]:
    if path is None:
        return None
    return path.read_text(encoding="utf-8")


def _classify(entry: AppFolder, path: Path) -> None:
    name = path.name.lower()
    if name in COMPOSE_NAMES:
        entry.compose = path
    elif name in UMBREL_NAMES:
        entry.umbrel = path
    elif name in SIDECAR_NAMES:
        entry.sidecar = path
    elif name in ICON_NAMES:
        entry.icon = path


def folder_entry(folder: Path) -> AppFolder:
    """Classify the files of a single app folder."""
    entry = AppFolder(folder=folder)
    for path in sorted(folder.iterdir()):
        if path.is_file():
            _classify(entry, path)
    return entry


def scan_folders(root: Path) -> List[AppFolder]:
    """Group recognised files by their containing folder."""
    folders: Dict[Path, AppFolder] = {}
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.parent == root:
            continue
        entry = folders.setdefault(path.parent, AppFolder(folder=path.parent))
        _classify(entry, path)
    return [entry for entry in folders.values() if entry.compose is not None]


def load_app_folder(entry: AppFolder, icon_base_url: Optional[str] = None) -> Optional[AppRecord]:
    """Normalize one folder, preferring its Umbrel manifest when present."""
    compose_text = _read(entry.compose) or ""
    icon_url = None
    if entry.icon is not None:
        icon_url = f"{icon_base_url.rstrip('/')}/{entry.icon.name}" if icon_base_url else entry.icon.as_uri()

    if entry.umbrel is not None:
        record = parse_umbrel_app(_read(entry.umbrel) or "", compose_text, icon_url, icon_base_url)
        if record is not None:
            return record
        logger.debug("Umbrel manifest in %s unusable; trying compose metadata.", entry.folder)

    return normalize(compose_text, _read(entry.sidecar), icon_url, app_id=entry.app_id)


def discover_apps(root: Path) -> List[AppRecord]:
    """Return every application found under ``root``; bad folders are skipped."""
    if not root.is_dir():
        raise FileNotFoundError(f"App repository not found: {root}")

    folders = scan_folders(root)
    if len(folders) > MAX_APP_FOLDERS:
        logger.warning("Found %d app folders; only the first %d are loaded.", len(folders), MAX_APP_FOLDERS)
        folders = folders[:MAX_APP_FOLDERS]

    apps: List[AppRecord] = []
    for entry in folders:
        try:
            record = load_app_folder(entry)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping %s: %s", entry.folder, exc)
            continue
        if record is None:
            logger.info("Skipping %s: not a valid application", entry.folder)
            continue
        apps.append(record)
    logger.info("Discovered %d application(s) under %s", len(apps), root)
    return apps
