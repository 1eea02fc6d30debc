"""Helpers for producing clean, portable docker-compose documents."""
from __future__ import annotations

import logging
from typing import Any, Dict

import yaml
from yaml.representer import SafeRepresenter

logger = logging.getLogger(__name__)


class QuotedStr(str):
    """A string that must be rendered with double quotes in YAML."""


class _ComposeYamlDumper(yaml.SafeDumper):
    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:  # type: ignore[override]
        # PyYAML defaults to "indentless" sequences under mappings, producing:
        #   key:
        #   - item
        # Force indentation so it becomes:
        #   key:
        #     - item
        return super().increase_indent(flow, False)

    def ignore_aliases(self, data: Any) -> bool:
        # Shared lists/dicts from YAML anchors are expanded in place.
        return True


def _represent_quoted_str(dumper: yaml.SafeDumper, data: QuotedStr) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style='"')


_ComposeYamlDumper.add_representer(QuotedStr, _represent_quoted_str)


def _represent_multiline_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Prefer literal block scalars for multi-line strings.

    Keeps embedded config files and scripts readable instead of folding them
    into escaped double-quoted scalars.
    """
    if "\n" in data or "\r" in data:
        normalized = data.replace("\r\n", "\n").replace("\r", "\n")
        return dumper.represent_scalar("tag:yaml.org,2002:str", normalized, style="|")
    return SafeRepresenter.represent_str(dumper, data)


_ComposeYamlDumper.add_representer(str, _represent_multiline_str)


def _prepare_for_yaml_dump(data: Any) -> Any:
    if isinstance(data, dict):
        prepared: Dict[Any, Any] = {}
        for key, value in data.items():
            if key == "ports" and isinstance(value, list):
                prepared[key] = [
                    QuotedStr(item) if isinstance(item, str) else _prepare_for_yaml_dump(item)
                    for item in value
                ]
                continue
            prepared[key] = _prepare_for_yaml_dump(value)
        return prepared

    if isinstance(data, list):
        return [_prepare_for_yaml_dump(item) for item in data]

    return data


def dump_yaml(data: Any) -> str:
    """Serialize data into block-style YAML without line wrapping."""
    prepared = _prepare_for_yaml_dump(data)
    return yaml.dump(
        prepared,
        Dumper=_ComposeYamlDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
