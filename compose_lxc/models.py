"""Pydantic data models shared across the compose-to-LXC converter."""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    DEFAULT_CONTAINER_PORT,
    DEFAULT_HOST_PORT,
    DEFAULT_VOLUME_PATH,
)


class TargetPlatform(str, Enum):
    PROXMOX_LXC = "proxmox-lxc"
    DOCKGE = "dockge"
    PORTAINER = "portainer"
    RAW_COMPOSE = "raw-compose"

    @property
    def is_stack_file(self) -> bool:
        return self is not TargetPlatform.PROXMOX_LXC


class AppRecord(BaseModel):
    """Normalized description of one installable application."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    tagline: str = ""
    category: str = "Unknown"
    version: str = ""
    author: str = ""
    developer: str = ""
    website: str = ""
    repo_link: str = ""
    support_link: str = ""
    video_link: str = ""
    docs_link: str = ""
    icon: str = ""
    screenshots: Tuple[str, ...] = ()
    port_map: Optional[str] = None
    volume_map: Optional[str] = None
    env_vars: Dict[str, str] = Field(default_factory=dict)
    main_service: str = ""
    compose_text: str = ""


class DeploymentConfig(BaseModel):
    """Immutable snapshot of the user's choices for one generation call."""

    model_config = ConfigDict(frozen=True)

    app_id: str
    app_name: str = ""
    target: TargetPlatform = TargetPlatform.PROXMOX_LXC

    password: str = "password"
    ct_id: int = 105
    cpu_cores: int = 2
    ram_mb: int = 2048
    disk_gb: int = 8
    storage_pool: str = "local-lvm"
    bridge: str = "vmbr0"
    use_dhcp: bool = True
    static_ip: str = ""
    gateway: str = ""

    host_port: str = DEFAULT_HOST_PORT
    container_port: str = DEFAULT_CONTAINER_PORT
    volume_path: str = DEFAULT_VOLUME_PATH
    env_vars: Dict[str, str] = Field(default_factory=dict)

    compose_content: str = ""
    matched_recipe: Optional[str] = None


class SecretPlanEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    placeholder: str


class SanitizeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    volumes: List[str] = Field(default_factory=list)
