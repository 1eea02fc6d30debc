"""YAML loading with YAML 1.2 core-schema scalars.

PyYAML's SafeLoader follows YAML 1.1, which reads ``22:22`` as a base-60
integer, ``022`` as octal and ``on``/``yes`` as booleans. Docker Compose
reads all of those as plain strings, so compose files and app manifests are
loaded with the 1.2 rules instead.
"""
from __future__ import annotations

import re
from typing import Any

import yaml

# YAML 1.1 implicit tags whose patterns differ from the 1.2 core schema.
_YAML11_TAGS = {
    "tag:yaml.org,2002:bool",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
    "tag:yaml.org,2002:timestamp",
}


class ComposeLoader(yaml.SafeLoader):
    """SafeLoader resolving bool, int and float the way YAML 1.2 does."""


ComposeLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _YAML11_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

ComposeLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)
# Leading-zero decimals such as 022 stay strings.
ComposeLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^(?:[-+]?(?:0|[1-9][0-9]*)|0o[0-7]+|0x[0-9a-fA-F]+)$"),
    list("-+0123456789"),
)
ComposeLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(
        r"^(?:[-+]?(?:\.[0-9]+|[0-9]+\.[0-9]*)(?:[eE][-+]?[0-9]+)?"
        r"|[-+]?[0-9]+[eE][-+]?[0-9]+"
        r"|[-+]?\.(?:inf|Inf|INF)"
        r"|\.(?:nan|NaN|NAN))$"
    ),
    list("-+.0123456789"),
)


def load_yaml(text: str) -> Any:
    """Parse a single YAML document; raises ``yaml.YAMLError`` on bad input."""
    return yaml.load(text, Loader=ComposeLoader)
