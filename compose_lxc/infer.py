"""Inference helpers shared by the metadata normalizer and the sanitizer."""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .constants import UMBREL_PROXY_SERVICE, VENDOR_KEY

logger = logging.getLogger(__name__)

_PORT_VAR_DEFAULT_RE = re.compile(r"^\$\{[^}:]+(?:(?::-)|-)(\d+)\}$")


def normalize_port_value(value: Optional[str]) -> Optional[str]:
    """Return a concrete numeric port if it can be determined.

    This keeps inference stable for compose patterns like:
    - "${WEB_PORT:-8888}:80"
    - "${WEB_PORT-8888}:80"
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return text
    match = _PORT_VAR_DEFAULT_RE.match(text)
    if match:
        return match.group(1)
    return None


def parse_port_entry(entry) -> Tuple[Optional[str], Optional[str]]:
    def normalize(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = str(value)
        if "/" in value:
            value = value.split("/", 1)[0]
        value = value.strip()
        return value or None

    def split_mapping(value: str) -> Tuple[Optional[str], str]:
        """Split 'ports' mapping while ignoring ':' inside ${...} and [IPv6]."""
        colon_positions: List[int] = []
        brace_depth = 0
        bracket_depth = 0
        index = 0
        while index < len(value):
            ch = value[index]
            if ch == "$" and index + 1 < len(value) and value[index + 1] == "{":
                brace_depth += 1
                index += 2
                continue
            if ch == "}" and brace_depth:
                brace_depth -= 1
            elif ch == "[":
                bracket_depth += 1
            elif ch == "]" and bracket_depth:
                bracket_depth -= 1
            elif ch == ":" and brace_depth == 0 and bracket_depth == 0:
                colon_positions.append(index)
            index += 1

        if not colon_positions:
            return None, value
        if len(colon_positions) == 1:
            pos = colon_positions[0]
            return value[:pos], value[pos + 1 :]
        # ip:host:container; keep the last two segments
        host_start = colon_positions[-2] + 1
        host_end = colon_positions[-1]
        return value[host_start:host_end], value[host_end + 1 :]

    if isinstance(entry, bool):
        return None, None

    if isinstance(entry, int):
        text = str(entry)
        return text, text

    if isinstance(entry, str):
        cleaned = entry.strip()
        if "/" in cleaned:
            cleaned = cleaned.split("/", 1)[0]
        host, container = split_mapping(cleaned)
        return normalize(host), normalize(container)

    if isinstance(entry, dict):
        host = entry.get("published") or entry.get("host")
        container = entry.get("target") or entry.get("containerPort")
        return normalize(host), normalize(container)

    return None, None


def collect_port_pairs(service: Dict) -> List[Tuple[Optional[str], Optional[str]]]:
    results: List[Tuple[Optional[str], Optional[str]]] = []
    ports = service.get("ports") or []
    if not isinstance(ports, list):
        return results
    for port in ports:
        host, container = parse_port_entry(port)
        if host or container:
            results.append((host, container))
    return results


def env_list_to_mapping(entries: List[Any]) -> Dict[str, Any]:
    """Convert ``["KEY=VALUE", ...]`` into a mapping.

    The value keeps everything after the first '='. Bare keys without '=' and
    non-string entries are skipped; later duplicates win.
    """
    mapping: Dict[str, Any] = {}
    for entry in entries:
        if not isinstance(entry, str) or "=" not in entry:
            continue
        key, _, value = entry.partition("=")
        key = key.strip()
        if key:
            mapping[key] = value
    return mapping


def extract_env_mapping(service: Dict) -> Dict[str, str]:
    """Return a service's environment as a string-valued mapping."""
    env = service.get("environment")
    if isinstance(env, list):
        raw = env_list_to_mapping(env)
    elif isinstance(env, dict):
        raw = {str(key): value for key, value in env.items()}
    else:
        return {}
    return {key: _env_value_text(value) for key, value in raw.items()}


def _env_value_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def declared_main_service(compose_data: Dict) -> str:
    x_vendor = compose_data.get(VENDOR_KEY)
    if isinstance(x_vendor, dict):
        main = x_vendor.get("main")
        if isinstance(main, str):
            return main.strip()
    return ""


def resolve_main_service(compose_data: Dict, preferred: Optional[str] = None) -> str:
    """Pick the primary service: explicit choice, vendor 'main', else first key."""
    services = compose_data.get("services")
    if not isinstance(services, dict) or not services:
        return ""

    for candidate in (preferred, declared_main_service(compose_data)):
        if candidate and candidate in services:
            return candidate
        if candidate:
            logger.debug("Main service '%s' not found; falling back.", candidate)

    for name in services:
        if str(name) != UMBREL_PROXY_SERVICE:
            return str(name)
    return str(next(iter(services)))


def infer_port_map(service: Dict, requested: Optional[str] = None) -> Optional[str]:
    """Return a ``host:container`` pair for the service.

    ``requested`` is a host port (or full pair) advertised by metadata; it is
    matched against the service's published ports when possible.
    """
    pairs = collect_port_pairs(service)
    text = str(requested).strip() if requested is not None else ""
    if text:
        if ":" in text:
            return text
        for host, container in pairs:
            if normalize_port_value(host) == text and container:
                return f"{text}:{normalize_port_value(container) or container}"
        return text

    for host, container in pairs:
        host_port = normalize_port_value(host)
        container_port = normalize_port_value(container)
        if host_port or container_port:
            return f"{host_port or container_port}:{container_port or host_port}"
    return None


def image_tag(service: Dict) -> str:
    image = service.get("image")
    if not isinstance(image, str):
        return ""
    cleaned = image.strip()
    if "@" in cleaned:
        return ""
    # A ':' after the final '/' is a tag separator, not a registry port.
    if cleaned.rfind(":") > cleaned.rfind("/"):
        tag = cleaned.rsplit(":", 1)[-1]
        return "" if tag == "latest" else tag
    return ""
