"""Shared constants and small helpers for compose-to-LXC conversion."""

from __future__ import annotations

import re
from urllib.parse import quote

# CasaOS stores per-app data under /DATA/AppData/<app>; we only ever rewrite
# the root plus exactly one segment.
APP_DATA_BASE_DIR = "/DATA/AppData"
APP_DATA_ROOT_RE = re.compile(r"^/DATA/AppData/[^/:]+(?=/|$)")
LOCAL_DATA_TOKEN = "./data"

VENDOR_KEY = "x-casaos"
UMBREL_PROXY_SERVICE = "app_proxy"

INSTALL_ROOT = "/opt"
COMPOSE_FILENAME = "docker-compose.yml"
CREDENTIALS_FILENAME = "install_details.conf"

DEFAULT_OS_TEMPLATE = "debian-12-standard"
DEFAULT_HOST_PORT = "8080"
DEFAULT_CONTAINER_PORT = "80"
DEFAULT_VOLUME_PATH = LOCAL_DATA_TOKEN

NETWORK_PROBE_HOST = "8.8.8.8"
NETWORK_PROBE_RETRIES = 50

SECRET_KEYWORDS = ("PASSWORD", "SECRET", "KEY", "TOKEN", "AUTH")
SECRET_AUTO_VALUE = "auto"
SECRET_LENGTH = 32

COMMUNITY_SCRIPTS_BASE = "https://raw.githubusercontent.com/community-scripts/ProxmoxVE/main"
AVATAR_BASE = "https://api.dicebear.com/7.x/identicon/svg"
UMBREL_GALLERY_BASE = "https://getumbrel.github.io/umbrel-apps-gallery"


def build_app_dir(app_id: str) -> str:
    """Return the in-container installation directory for an app.

    Example: '/opt/plex'
    """
    return f"{INSTALL_ROOT}/{app_id}"


def build_placeholder_icon_url(seed: str) -> str:
    return f"{AVATAR_BASE}?seed={quote(seed, safe='')}"


def build_umbrel_icon_url(app_id: str) -> str:
    return f"{UMBREL_GALLERY_BASE}/{app_id}/icon.svg"


def build_build_func_url() -> str:
    return f"{COMMUNITY_SCRIPTS_BASE}/misc/build.func"


def build_install_script_url(recipe_name: str) -> str:
    return f"{COMMUNITY_SCRIPTS_BASE}/install/{recipe_name}-install.sh"
