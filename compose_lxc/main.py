"""High level orchestration helpers consumed by the CLI and web API."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .catalog import folder_entry, load_app_folder
from .config import config_for_app, load_global_defaults
from .console import write_artifact_text
from .models import AppRecord, DeploymentConfig, TargetPlatform
from .parser import normalize
from .script_gen import generate
from .shell import build_one_liner

logger = logging.getLogger(__name__)


def load_app(
    input_path: Path,
    sidecar_path: Optional[Path] = None,
    icon_url: Optional[str] = None,
    app_id: Optional[str] = None,
) -> AppRecord:
    """Load an app from a compose file or an app-store folder."""
    if not input_path.exists():
        raise FileNotFoundError(f"Input not found: {input_path}")

    if input_path.is_dir():
        logger.info("Loading app folder: %s", input_path)
        record = load_app_folder(folder_entry(input_path))
    else:
        logger.info("Loading compose file: %s", input_path)
        sidecar_text = None
        if sidecar_path is None and input_path.with_name("config.json").exists():
            sidecar_path = input_path.with_name("config.json")
        if sidecar_path is not None:
            if not sidecar_path.exists():
                raise FileNotFoundError(f"Sidecar not found: {sidecar_path}")
            sidecar_text = sidecar_path.read_text(encoding="utf-8")
        record = normalize(
            input_path.read_text(encoding="utf-8"),
            sidecar_text,
            icon_url,
            app_id=app_id or input_path.parent.name or input_path.stem,
        )

    if record is None:
        raise ValueError(f"{input_path} does not describe an application (no services found)")
    return record


def build_config(
    app: AppRecord,
    target: TargetPlatform = TargetPlatform.PROXMOX_LXC,
    defaults_path: Optional[Path] = None,
    settings: Optional[Mapping[str, Any]] = None,
    env_overrides: Optional[Mapping[str, str]] = None,
    matched_recipe: Optional[str] = None,
) -> DeploymentConfig:
    """Seed a configuration for ``app`` and apply explicit user choices."""
    defaults = load_global_defaults(defaults_path)
    config = config_for_app(app, defaults, target=target, matched_recipe=matched_recipe)

    update: Dict[str, Any] = {key: value for key, value in (settings or {}).items() if value is not None}
    if env_overrides:
        update["env_vars"] = {**config.env_vars, **env_overrides}
    if not update:
        return config
    return DeploymentConfig.model_validate({**config.model_dump(), **update})


def render_artifact(app: AppRecord, config: DeploymentConfig, one_liner: bool = False) -> str:
    text = generate(app, config)
    if one_liner and not config.target.is_stack_file:
        return build_one_liner(text)
    return text


def write_artifact(text: str, output_path: Path, dry_run: bool) -> None:
    if dry_run:
        logger.info("Dry run enabled; artifact not written to disk.")
        write_artifact_text(text)
        return
    output_path.write_text(text, encoding="utf-8")
    if output_path.suffix == ".sh":
        output_path.chmod(0o755)
    logger.info("Artifact written to %s", output_path)
