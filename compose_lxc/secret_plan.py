"""Decide which environment values are generated at install time."""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence

from .constants import SECRET_AUTO_VALUE, SECRET_KEYWORDS
from .models import SecretPlanEntry

logger = logging.getLogger(__name__)

_TOKEN_UNSAFE_RE = re.compile(r"[^A-Z0-9_]+")


def is_secret_name(name: str) -> bool:
    upper = str(name).upper()
    return any(keyword in upper for keyword in SECRET_KEYWORDS)


def needs_generation(value: Optional[str]) -> bool:
    text = "" if value is None else str(value).strip()
    return not text or text.lower() == SECRET_AUTO_VALUE


def placeholder_for(name: str) -> str:
    """Return the placeholder token embedded in place of a generated value.

    Example: 'db.password' -> '__AUTO_GEN_DB_PASSWORD__'
    """
    safe = _TOKEN_UNSAFE_RE.sub("_", str(name).upper()).strip("_") or "VALUE"
    return f"__AUTO_GEN_{safe}__"


def plan_secrets(env_vars: Optional[Mapping[str, Optional[str]]]) -> List[SecretPlanEntry]:
    """Return the variables whose values must be generated on the host.

    Qualifying names contain PASSWORD, SECRET, KEY, TOKEN or AUTH
    (case-insensitive) and carry an empty value or the literal "auto".
    """
    plan: List[SecretPlanEntry] = []
    used = set()
    for name, value in (env_vars or {}).items():
        if not is_secret_name(name) or not needs_generation(value):
            continue
        token = placeholder_for(name)
        if token in used:
            # Distinct names like "db-key" and "DB_KEY" sanitize alike.
            counter = 2
            base = token[: -len("__")]
            while f"{base}_{counter}__" in used:
                counter += 1
            token = f"{base}_{counter}__"
        used.add(token)
        plan.append(SecretPlanEntry(name=name, placeholder=token))

    if plan:
        logger.info("Planned %d generated secret(s): %s", len(plan), ", ".join(e.name for e in plan))
    return plan


def apply_secret_placeholders(
    env_vars: Optional[Mapping[str, Optional[str]]],
    plan: Sequence[SecretPlanEntry],
) -> Dict[str, str]:
    """Return a copy of ``env_vars`` with planned values replaced by tokens."""
    tokens = {entry.name: entry.placeholder for entry in plan}
    resolved: Dict[str, str] = {}
    for name, value in (env_vars or {}).items():
        resolved[name] = tokens.get(name, "" if value is None else str(value))
    return resolved
