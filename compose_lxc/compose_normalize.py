"""Clean app-store compose files into portable docker-compose documents.

The sanitizer strips ``x-casaos`` metadata, merges user environment
overrides, rewrites CasaOS per-app data paths to ``./data`` and pins the
main service's port binding. It also reports which host directories must
exist before ``docker compose up``.

Unparseable input is passed through untouched: one bad document must never
abort the whole conversion.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .constants import APP_DATA_ROOT_RE, LOCAL_DATA_TOKEN, VENDOR_KEY
from .infer import env_list_to_mapping, resolve_main_service
from .models import SanitizeResult
from .yaml_in import load_yaml
from .yaml_out import dump_yaml

logger = logging.getLogger(__name__)


def sanitize_compose(
    compose_text: str,
    env_overrides: Optional[Mapping[str, str]] = None,
    host_port: Optional[str] = None,
    container_port: Optional[str] = None,
    main_service: Optional[str] = None,
) -> SanitizeResult:
    """Return the cleaned compose text and the host paths it needs.

    ``main_service`` selects the service whose ports are replaced; when
    omitted the compose's own ``x-casaos.main`` is used, then the first
    service.
    """
    try:
        loaded = load_yaml(compose_text)
    except yaml.YAMLError as exc:
        logger.warning("Compose is not valid YAML; passing it through: %s", exc)
        return SanitizeResult(text=compose_text, volumes=[])

    if not isinstance(loaded, dict) or not isinstance(loaded.get("services"), dict):
        logger.warning("Compose has no services section; passing it through.")
        return SanitizeResult(text=compose_text, volumes=[])

    try:
        return _sanitize_document(loaded, env_overrides, host_port, container_port, main_service)
    except Exception as exc:
        # e.g. RecursionError on a self-referencing anchor
        logger.warning("Unable to rewrite compose; passing it through: %s", exc)
        return SanitizeResult(text=compose_text, volumes=[])


def _sanitize_document(
    data: Dict[str, Any],
    env_overrides: Optional[Mapping[str, str]],
    host_port: Optional[str],
    container_port: Optional[str],
    main_service: Optional[str],
) -> SanitizeResult:
    main = resolve_main_service(data, preferred=main_service)
    data.pop(VENDOR_KEY, None)

    overrides = dict(env_overrides or {})
    port_binding = _port_binding(host_port, container_port)
    volumes: List[str] = []

    for name, service in data["services"].items():
        if not isinstance(service, dict):
            continue
        service.pop(VENDOR_KEY, None)
        if overrides:
            _merge_environment(service, overrides)
        _rewrite_service_volumes(service, volumes)
        if name == main and port_binding:
            service["ports"] = [port_binding]
        else:
            _stringify_ports(service)

    logger.debug("Sanitized compose; main service=%s, volumes=%s", main, volumes)
    return SanitizeResult(text=dump_yaml(data), volumes=volumes)


def _port_binding(host_port: Optional[str], container_port: Optional[str]) -> str:
    host = str(host_port or "").strip()
    container = str(container_port or "").strip()
    if host and container:
        return f"{host}:{container}"
    return ""


def _merge_environment(service: Dict[str, Any], overrides: Dict[str, str]) -> None:
    env = service.get("environment")
    if isinstance(env, list):
        existing: Dict[str, Any] = env_list_to_mapping(env)
    elif isinstance(env, dict):
        existing = dict(env)
    else:
        existing = {}
    service["environment"] = {**existing, **overrides}


def rewrite_host_path(path: str) -> str:
    """Replace ``/DATA/AppData/<app>`` with ``./data``; deeper parts are kept."""
    return APP_DATA_ROOT_RE.sub(LOCAL_DATA_TOKEN, path, count=1)


def _rewrite_volume_entry(entry: Any) -> Tuple[Any, str]:
    if isinstance(entry, str):
        host, sep, rest = entry.partition(":")
        if not sep:
            # Anonymous volume: there is no host side to create.
            return entry, ""
        host = rewrite_host_path(host)
        return f"{host}{sep}{rest}", host

    if isinstance(entry, dict):
        source = entry.get("source")
        if isinstance(source, str):
            rewritten = dict(entry)
            rewritten["source"] = rewrite_host_path(source)
            return rewritten, rewritten["source"]
    return entry, ""


def _rewrite_service_volumes(service: Dict[str, Any], required: List[str]) -> None:
    raw_volumes = service.get("volumes")
    if not isinstance(raw_volumes, list):
        return

    rewritten = []
    for entry in raw_volumes:
        new_entry, host_path = _rewrite_volume_entry(entry)
        rewritten.append(new_entry)
        if host_path.startswith(("/", "./")) and host_path not in required:
            required.append(host_path)
    service["volumes"] = rewritten


def _stringify_ports(service: Dict[str, Any]) -> None:
    raw_ports = service.get("ports")
    if not isinstance(raw_ports, list):
        return
    service["ports"] = [entry if isinstance(entry, dict) else str(entry) for entry in raw_ports]
