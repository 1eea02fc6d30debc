"""Guest-side install recipes.

A recipe renders the script that runs *inside* the new container. The
host-side envelope in :mod:`compose_lxc.script_gen` is the same for every
recipe; only the guest script, the OS template and the closing message vary.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .constants import (
    COMPOSE_FILENAME,
    CREDENTIALS_FILENAME,
    DEFAULT_OS_TEMPLATE,
    SECRET_LENGTH,
    build_build_func_url,
    build_install_script_url,
)
from .models import SecretPlanEntry
from .shell import choose_heredoc_delimiter, quote

logger = logging.getLogger(__name__)

_RECIPE_NAME_RE = re.compile(r"[^a-z0-9]+")

GUEST_PRELUDE = """#!/usr/bin/env bash
set -e
export DEBIAN_FRONTEND=noninteractive

YW='\\033[1;33m'
GN='\\033[0;32m'
CL='\\033[0m'

msg_info() { echo -e "${YW}[INFO] ${1}${CL}"; }
msg_ok() { echo -e "${GN}[OK] ${1}${CL}"; }
"""


@dataclass(frozen=True)
class GuestContext:
    """Everything a recipe may need to render its guest script."""

    app_id: str
    app_name: str
    app_dir: str
    host_port: str
    compose_text: str = ""
    volumes: Sequence[str] = field(default_factory=tuple)
    secret_plan: Sequence[SecretPlanEntry] = field(default_factory=tuple)

    @property
    def credentials_path(self) -> str:
        return f"{self.app_dir}/{CREDENTIALS_FILENAME}"


class Recipe:
    name = "base"
    os_template = DEFAULT_OS_TEMPLATE
    uses_compose = False

    def guest_body(self, ctx: GuestContext) -> List[str]:
        raise NotImplementedError

    def completion_lines(self, ctx: GuestContext) -> List[str]:
        raise NotImplementedError

    def guest_script(self, ctx: GuestContext) -> str:
        return GUEST_PRELUDE + "\n" + "\n".join(self.guest_body(ctx)) + "\n"


class DockerComposeRecipe(Recipe):
    """Install Docker, write the cleaned compose and start it."""

    name = "docker-compose"
    uses_compose = True

    def guest_body(self, ctx: GuestContext) -> List[str]:
        lines = [
            'msg_info "Installing prerequisites..."',
            "apt-get update -qq",
            "apt-get install -y -qq curl git ca-certificates gnupg lsb-release jq iptables",
            "",
            "if ! command -v docker >/dev/null 2>&1; then",
            '    msg_info "Installing Docker..."',
            "    curl -fsSL https://get.docker.com | sh",
            "fi",
            "systemctl enable --now docker || true",
            "",
            f"mkdir -p {quote(ctx.app_dir)}",
            f"cd {quote(ctx.app_dir)}",
        ]
        lines.extend(f"mkdir -p {quote(path)}" for path in self.volume_dirs(ctx))

        delimiter = choose_heredoc_delimiter(ctx.compose_text, "COMPOSE_EOF")
        lines.extend(
            [
                "",
                f"cat <<'{delimiter}' > {COMPOSE_FILENAME}",
                ctx.compose_text.rstrip("\n"),
                delimiter,
            ]
        )
        lines.extend(self.secret_lines(ctx))
        lines.extend(
            [
                "",
                'msg_info "Starting application stack..."',
                "docker compose up -d",
                'msg_ok "Application stack started"',
            ]
        )
        return lines

    @staticmethod
    def volume_dirs(ctx: GuestContext) -> List[str]:
        dirs = []
        for path in ctx.volumes:
            if path.startswith("./"):
                dirs.append(f"{ctx.app_dir}/{path[2:]}")
            else:
                dirs.append(path)
        return dirs

    @staticmethod
    def secret_lines(ctx: GuestContext) -> List[str]:
        if not ctx.secret_plan:
            return []
        lines = [
            "",
            'msg_info "Generating credentials..."',
            f": > {CREDENTIALS_FILENAME}",
            f"chmod 600 {CREDENTIALS_FILENAME}",
        ]
        for entry in ctx.secret_plan:
            lines.extend(
                [
                    f"GEN_VALUE=\"$(tr -dc 'A-Za-z0-9' </dev/urandom | head -c {SECRET_LENGTH})\"",
                    f'sed -i "s|{entry.placeholder}|${{GEN_VALUE}}|g" {COMPOSE_FILENAME}',
                    f"printf '%s=%s\\n' {quote(entry.name)} \"${{GEN_VALUE}}\" >> {CREDENTIALS_FILENAME}",
                ]
            )
        lines.append(f'msg_ok "Credentials saved to {ctx.credentials_path}"')
        return lines

    def completion_lines(self, ctx: GuestContext) -> List[str]:
        lines = [
            f"msg_ok {quote(f'Installation of {ctx.app_name} complete!')}",
            f"printf ' URL: http://%s:%s\\n' \"${{IP}}\" {quote(ctx.host_port)}",
        ]
        if ctx.secret_plan:
            lines.append(
                f"printf ' Credentials: %s (inside container %s)\\n' {quote(ctx.credentials_path)} \"${{CTID}}\""
            )
        return lines


class CommunityScriptRecipe(Recipe):
    """Run an install script from the Proxmox VE community-scripts repository.

    Those scripts expect the shared ``build.func`` helpers in the
    ``FUNCTIONS_FILE_PATH`` environment variable, which the host-side ``ct``
    wrapper normally provides.
    """

    def __init__(self, script_name: str, os_template: Optional[str] = None) -> None:
        self.name = script_name
        if os_template:
            self.os_template = os_template

    @property
    def install_script_url(self) -> str:
        return build_install_script_url(self.name)

    def guest_body(self, ctx: GuestContext) -> List[str]:
        return [
            'msg_info "Preparing Community Script environment..."',
            "apt-get update >/dev/null",
            "apt-get install -y curl wget >/dev/null",
            "",
            f"wget -qL {quote(build_build_func_url())} -O /tmp/build.func",
            'export FUNCTIONS_FILE_PATH="$(cat /tmp/build.func)"',
            "",
            f"msg_info {quote(f'Downloading official install script: {self.name}-install.sh')}",
            f"wget -qL {quote(self.install_script_url)} -O /tmp/install.sh",
            "chmod +x /tmp/install.sh",
            "bash /tmp/install.sh",
            "",
            "rm -f /tmp/build.func /tmp/install.sh",
        ]

    def completion_lines(self, ctx: GuestContext) -> List[str]:
        message = f"Native installation of {ctx.app_name} (via Community Script) complete!"
        return [
            f"msg_ok {quote(message)}",
            "printf ' Container IP: %s\\n' \"${IP}\"",
        ]


def normalize_recipe_name(name: str) -> str:
    """Collapse a display or image name for registry matching.

    Example: 'AdGuard Home' -> 'adguardhome'
    """
    return _RECIPE_NAME_RE.sub("", str(name).lower())


def select_recipe(matched_recipe: Optional[str]) -> Recipe:
    name = (matched_recipe or "").strip()
    if name:
        logger.info("Using community install script '%s'", name)
        return CommunityScriptRecipe(name)
    return DockerComposeRecipe()
