"""Global provisioning defaults and per-app configuration seeding."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .constants import DEFAULT_VOLUME_PATH
from .models import AppRecord, DeploymentConfig, TargetPlatform
from .parser import split_port_map
from .yaml_in import load_yaml

logger = logging.getLogger(__name__)

# Settings shared across apps, with the environment variable overriding each.
GLOBAL_SETTINGS_ENV = {
    "password": "DEFAULT_PASSWORD",
    "ct_id": "DEFAULT_CT_ID",
    "storage_pool": "DEFAULT_STORAGE_POOL",
    "bridge": "DEFAULT_BRIDGE",
    "use_dhcp": "DEFAULT_USE_DHCP",
    "static_ip": "DEFAULT_STATIC_IP",
    "gateway": "DEFAULT_GATEWAY",
    "cpu_cores": "DEFAULT_CPU_CORES",
    "ram_mb": "DEFAULT_RAM_SIZE",
    "disk_gb": "DEFAULT_DISK_SIZE",
}

BUILTIN_DEFAULTS: Dict[str, Any] = {
    "password": "password",
    "ct_id": 105,
    "storage_pool": "local-lvm",
    "bridge": "vmbr0",
    "use_dhcp": True,
    "static_ip": "192.168.1.100/24",
    "gateway": "",
    "cpu_cores": 2,
    "ram_mb": 2048,
    "disk_gb": 8,
}


def _coerce(key: str, raw: str) -> Any:
    default = BUILTIN_DEFAULTS[key]
    if isinstance(default, bool):
        return raw.strip().lower() != "false"
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring non-numeric %s=%r", GLOBAL_SETTINGS_ENV[key], raw)
            return default
    return raw


def defaults_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    settings = dict(BUILTIN_DEFAULTS)
    for key, var in GLOBAL_SETTINGS_ENV.items():
        raw = env.get(var)
        if raw:
            settings[key] = _coerce(key, raw)
    return settings


def load_global_defaults(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Return global defaults: builtins, then environment, then YAML file."""
    settings = defaults_from_env(environ)
    if path is None:
        return settings
    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    data = load_yaml(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError("Defaults file must be a YAML mapping")
    unknown = sorted(set(data) - set(BUILTIN_DEFAULTS))
    if unknown:
        raise ValueError(f"Unknown keys in defaults file: {', '.join(map(str, unknown))}")
    settings.update(data)
    logger.debug("Loaded global defaults from %s", path)
    return settings


def config_for_app(
    app: AppRecord,
    defaults: Optional[Mapping[str, Any]] = None,
    target: TargetPlatform = TargetPlatform.PROXMOX_LXC,
    matched_recipe: Optional[str] = None,
) -> DeploymentConfig:
    """Seed a deployment configuration from a normalized app."""
    host_port, container_port = split_port_map(app.port_map)
    settings = dict(defaults if defaults is not None else load_global_defaults())
    return DeploymentConfig(
        app_id=app.id,
        app_name=app.name,
        target=target,
        host_port=host_port,
        container_port=container_port,
        volume_path=app.volume_map or DEFAULT_VOLUME_PATH,
        env_vars=dict(app.env_vars),
        compose_content=app.compose_text,
        matched_recipe=matched_recipe,
        **settings,
    )
