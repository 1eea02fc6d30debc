"""Normalize compose files and their app-store metadata into an AppRecord.

Three metadata conventions are understood, each read through its own field
schema and merged with a fixed precedence (first non-empty value wins):

- the ``x-casaos`` block at the top of a docker-compose document,
- an Umbrel ``umbrel-app.yml`` manifest,
- a BigBear style ``config.json`` sidecar.

Anything that fails to parse yields ``None`` instead of raising, so callers
scanning whole repositories can simply skip the folder.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .constants import (
    APP_DATA_ROOT_RE,
    DEFAULT_CONTAINER_PORT,
    DEFAULT_HOST_PORT,
    LOCAL_DATA_TOKEN,
    UMBREL_GALLERY_BASE,
    UMBREL_PROXY_SERVICE,
    VENDOR_KEY,
    build_placeholder_icon_url,
    build_umbrel_icon_url,
)
from .infer import extract_env_mapping, image_tag, infer_port_map, resolve_main_service
from .models import AppRecord
from .yaml_in import load_yaml

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9._-]+")

# Canonical AppRecord fields filled from metadata sources, in output order.
TEXT_FIELDS = (
    "name",
    "description",
    "tagline",
    "category",
    "version",
    "author",
    "developer",
    "website",
    "repo_link",
    "support_link",
    "video_link",
    "docs_link",
    "icon",
)


def slugify(value: str) -> str:
    candidate = _SLUG_RE.sub("-", str(value).strip().lower())
    return candidate.strip("-.")


def _as_text(value: Any) -> str:
    """Return plain text, picking English from multi-language mappings."""
    if isinstance(value, dict):
        for key in ("en_US", "en_us", "en_GB", "en"):
            if value.get(key):
                return str(value[key]).strip()
        for candidate in value.values():
            if candidate is not None and str(candidate).strip():
                return str(candidate).strip()
        return ""
    if value is None or isinstance(value, (list, tuple)):
        return ""
    return str(value).strip()


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return []


def _first(*values: Any) -> str:
    for value in values:
        text = _as_text(value)
        if text:
            return text
    return ""


def parse_compose_text(text: str) -> Optional[Dict]:
    """Return the compose mapping, or None when it is not an application."""
    data = load_yaml(text)
    if not isinstance(data, dict):
        return None
    services = data.get("services")
    if not isinstance(services, dict) or not services:
        return None
    return data


def vendor_fields(compose_data: Dict) -> Dict[str, Any]:
    """Read the ``x-casaos`` block into canonical field names."""
    block = compose_data.get(VENDOR_KEY)
    if not isinstance(block, dict):
        return {}
    return {
        "name": _as_text(block.get("title")),
        "description": _as_text(block.get("description")),
        "tagline": _as_text(block.get("tagline")),
        "icon": _as_text(block.get("icon")),
        "category": _as_text(block.get("category")),
        "author": _as_text(block.get("author")),
        "developer": _as_text(block.get("developer")),
        "website": _as_text(block.get("project_url")),
        "port": _as_text(block.get("port_map")),
        "main": _as_text(block.get("main")),
        "screenshots": _as_list(block.get("screenshot_link")),
    }


def sidecar_fields(sidecar: Dict) -> Dict[str, Any]:
    """Read a ``config.json`` sidecar into canonical field names."""
    return {
        "id": _as_text(sidecar.get("id")),
        "name": _first(sidecar.get("name"), sidecar.get("title")),
        "description": _as_text(sidecar.get("description")),
        "tagline": _as_text(sidecar.get("tagline")),
        "icon": _as_text(sidecar.get("icon")),
        "category": _as_text(sidecar.get("category")),
        "author": _as_text(sidecar.get("author")),
        "developer": _as_text(sidecar.get("developer")),
        "version": _as_text(sidecar.get("version")),
        "port": _as_text(sidecar.get("port")),
        "video_link": _first(sidecar.get("youtube"), sidecar.get("video_link"), sidecar.get("video")),
        "docs_link": _first(sidecar.get("docs_link"), sidecar.get("docs")),
        "screenshots": _as_list(sidecar.get("screenshots")),
    }


def umbrel_fields(manifest: Dict, base_url: Optional[str]) -> Dict[str, Any]:
    """Read an ``umbrel-app.yml`` manifest into canonical field names."""
    app_id = slugify(_as_text(manifest.get("id")))
    gallery_base = (base_url or "").rstrip("/")
    if not gallery_base and app_id:
        gallery_base = f"{UMBREL_GALLERY_BASE}/{app_id}"

    screenshots = []
    for item in _as_list(manifest.get("gallery")):
        if item.startswith(("http://", "https://")) or not gallery_base:
            screenshots.append(item)
        else:
            screenshots.append(f"{gallery_base}/{item.lstrip('/')}")

    return {
        "id": app_id,
        "name": _as_text(manifest.get("name")),
        "description": _as_text(manifest.get("description")),
        "tagline": _as_text(manifest.get("tagline")),
        "icon": _as_text(manifest.get("icon")),
        "category": _as_text(manifest.get("category")),
        "author": _as_text(manifest.get("submitter")),
        "developer": _as_text(manifest.get("developer")),
        "version": _as_text(manifest.get("version")),
        "website": _as_text(manifest.get("website")),
        "repo_link": _as_text(manifest.get("repo")),
        "support_link": _as_text(manifest.get("support")),
        "port": _as_text(manifest.get("port")),
        "screenshots": screenshots,
    }


def _resolve_volume_map(service: Dict) -> Optional[str]:
    fallback = None
    for entry in service.get("volumes") or []:
        if isinstance(entry, str):
            host = entry.split(":", 1)[0].strip() if ":" in entry else ""
        elif isinstance(entry, dict):
            host = _as_text(entry.get("source"))
        else:
            continue
        if APP_DATA_ROOT_RE.match(host):
            return LOCAL_DATA_TOKEN
        if fallback is None and host.startswith(("/", "./")):
            fallback = host
    return fallback


def _umbrel_proxy_port(compose_data: Dict) -> str:
    proxy = (compose_data.get("services") or {}).get(UMBREL_PROXY_SERVICE)
    if not isinstance(proxy, dict):
        return ""
    return extract_env_mapping(proxy).get("APP_PORT", "").strip()


def _build_record(
    compose_data: Dict,
    compose_text: str,
    sources: Sequence[Dict[str, Any]],
    fallback_id: Optional[str],
    icon_url: Optional[str],
    port_override: Optional[str] = None,
) -> Optional[AppRecord]:
    declared_main = _first(*(source.get("main") for source in sources))
    main_service = resolve_main_service(compose_data, preferred=declared_main or None)
    service = compose_data["services"].get(main_service)
    if not isinstance(service, dict):
        service = {}

    fallback_text = _as_text(fallback_id)
    compose_name = _as_text(compose_data.get("name"))
    app_id = slugify(
        _first(*(source.get("id") for source in sources), fallback_text, compose_name, main_service)
    )
    if not app_id:
        logger.warning("Unable to derive an application id; skipping.")
        return None

    values: Dict[str, Any] = {}
    for field in TEXT_FIELDS:
        values[field] = _first(*(source.get(field) for source in sources))

    values["name"] = values["name"] or fallback_text or compose_name or app_id
    values["category"] = values["category"] or "Unknown"
    values["version"] = values["version"] or image_tag(service)
    values["icon"] = values["icon"] or _as_text(icon_url) or build_placeholder_icon_url(app_id)

    screenshots: Tuple[str, ...] = ()
    for source in sources:
        if source.get("screenshots"):
            screenshots = tuple(source["screenshots"])
            break

    requested_port = port_override or _first(*(source.get("port") for source in sources))
    return AppRecord(
        id=app_id,
        screenshots=screenshots,
        port_map=infer_port_map(service, requested_port or None),
        volume_map=_resolve_volume_map(service),
        env_vars=extract_env_mapping(service),
        main_service=main_service,
        compose_text=compose_text,
        **values,
    )


def _load_sidecar(sidecar_text: Optional[str]) -> Dict:
    if not sidecar_text or not sidecar_text.strip():
        return {}
    try:
        data = json.loads(sidecar_text)
    except ValueError as exc:
        logger.warning("Ignoring unreadable config.json sidecar: %s", exc)
        return {}
    return data if isinstance(data, dict) else {}


def normalize(
    compose_text: str,
    sidecar_text: Optional[str] = None,
    icon_url: Optional[str] = None,
    app_id: Optional[str] = None,
) -> Optional[AppRecord]:
    """Build an AppRecord from a compose file plus optional config.json.

    ``app_id`` is the folder or document identifier used when no metadata
    names the app. Returns None when the compose text is not an application.
    """
    try:
        compose_data = parse_compose_text(compose_text)
        if compose_data is None:
            logger.debug("Compose for %s has no services section.", app_id or "<unknown>")
            return None
        sources = [vendor_fields(compose_data), sidecar_fields(_load_sidecar(sidecar_text))]
        return _build_record(compose_data, compose_text, sources, app_id, icon_url)
    except Exception as exc:
        logger.warning("Failed to parse app %s: %s", app_id or "<unknown>", exc)
        return None


def parse_umbrel_app(
    manifest_text: str,
    compose_text: str,
    icon_url: Optional[str] = None,
    base_url: Optional[str] = None,
) -> Optional[AppRecord]:
    """Build an AppRecord from an Umbrel manifest and its compose file."""
    try:
        manifest = load_yaml(manifest_text)
        if not isinstance(manifest, dict):
            return None
        compose_data = parse_compose_text(compose_text)
        if compose_data is None:
            return None
        umbrel = umbrel_fields(manifest, base_url)
        if not umbrel["icon"] and not icon_url and umbrel["id"]:
            umbrel["icon"] = build_umbrel_icon_url(umbrel["id"])
        sources = [umbrel, vendor_fields(compose_data)]

        port_override = None
        proxy_port = _umbrel_proxy_port(compose_data)
        if umbrel["port"] and proxy_port:
            port_override = f"{umbrel['port']}:{proxy_port}"
        return _build_record(compose_data, compose_text, sources, None, icon_url, port_override)
    except Exception as exc:
        logger.warning("Failed to parse Umbrel app: %s", exc)
        return None


def split_port_map(port_map: Optional[str]) -> Tuple[str, str]:
    """Split ``host:container`` into its parts, with UI defaults."""
    text = (port_map or "").strip()
    if not text:
        return DEFAULT_HOST_PORT, DEFAULT_CONTAINER_PORT
    parts = text.split(":")
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    if len(parts) == 1:
        return parts[0], parts[0]
    return DEFAULT_HOST_PORT, DEFAULT_CONTAINER_PORT
