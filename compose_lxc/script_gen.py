"""Render Proxmox LXC provisioning scripts and portable stack files."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .compose_normalize import sanitize_compose
from .constants import NETWORK_PROBE_HOST, NETWORK_PROBE_RETRIES, build_app_dir
from .models import AppRecord, DeploymentConfig, SanitizeResult, SecretPlanEntry
from .parser import slugify
from .recipes import GuestContext, Recipe, select_recipe
from .secret_plan import apply_secret_placeholders, plan_secrets
from .shell import choose_heredoc_delimiter, escape_heredoc, quote

logger = logging.getLogger(__name__)

GUEST_SCRIPT_PATH = "/tmp/install_internal.sh"

HOST_HELPERS = """YW='\\033[1;33m'
GN='\\033[0;32m'
RD='\\033[0;31m'
CL='\\033[0m'

msg_info() { echo -e "${YW}[INFO] ${1}${CL}"; }
msg_ok() { echo -e "${GN}[OK] ${1}${CL}"; }
msg_warn() { echo -e "${YW}[WARN] ${1}${CL}"; }
msg_err() { echo -e "${RD}[ERROR] ${1}${CL}"; }
"""


def build_net_config(config: DeploymentConfig) -> str:
    """Return the ``--net0`` value; static addresses are passed verbatim."""
    net = f"name=eth0,bridge={config.bridge}"
    if config.use_dhcp:
        return f"{net},ip=dhcp"
    if not config.static_ip:
        logger.warning("Static IP requested but none configured; net0 will carry an empty ip=.")
    net = f"{net},ip={config.static_ip}"
    if config.gateway:
        net = f"{net},gw={config.gateway}"
    return net


def _hostname(app_id: str) -> str:
    return app_id.replace("_", "-").replace(".", "-").strip("-") or "app"


def _resolve_identity(app: AppRecord, config: DeploymentConfig) -> Tuple[str, str]:
    app_id = slugify(config.app_id) or app.id
    app_name = config.app_name or app.name or app_id
    return app_id, app_name


def prepare_compose(
    app: AppRecord,
    config: DeploymentConfig,
    generate_secrets: bool = True,
) -> Tuple[SanitizeResult, List[SecretPlanEntry]]:
    """Plan generated secrets, then sanitize with their placeholders in place."""
    compose_text = config.compose_content or app.compose_text
    plan = plan_secrets(config.env_vars) if generate_secrets else []
    overrides = apply_secret_placeholders(config.env_vars, plan)
    result = sanitize_compose(
        compose_text,
        env_overrides=overrides,
        host_port=config.host_port,
        container_port=config.container_port,
        main_service=app.main_service or None,
    )
    return result, plan


def _host_variables(app_id: str, app_name: str, config: DeploymentConfig, recipe: Recipe) -> List[str]:
    values = [
        ("APP_ID", app_id),
        ("APP_NAME", app_name),
        ("HOSTNAME", _hostname(app_id)),
        ("PASSWORD", config.password or "password"),
        ("CTID", config.ct_id),
        ("CPU_CORES", config.cpu_cores),
        ("RAM_SIZE", config.ram_mb),
        ("DISK_SIZE", config.disk_gb),
        ("STORAGE", config.storage_pool),
        ("NET_CONFIG", build_net_config(config)),
        ("TEMPLATE_SEARCH", recipe.os_template),
    ]
    return [f"{name}={quote(value)}" for name, value in values]


def render_host_script(
    app_id: str,
    app_name: str,
    config: DeploymentConfig,
    recipe: Recipe,
    ctx: GuestContext,
) -> str:
    """Wrap a recipe's guest script in the container allocation envelope."""
    guest = escape_heredoc(recipe.guest_script(ctx))
    delimiter = choose_heredoc_delimiter(guest, "GUEST_EOF")

    lines = [
        "#!/usr/bin/env bash",
        f"# Provisions {' '.join(app_name.split())} in a Proxmox LXC container.",
        "set -e",
        "",
        *_host_variables(app_id, app_name, config, recipe),
        "",
        HOST_HELPERS,
        'msg_info "Starting automated installation for ${APP_NAME}..."',
        "",
        'if pct status "$CTID" &>/dev/null; then',
        '    msg_err "Container ID ${CTID} is already in use."',
        "    exit 1",
        "fi",
        "",
        "TEMPLATE_VOL=$(pveam available -section system | grep \"$TEMPLATE_SEARCH\" | head -n 1 | awk '{print $2}')",
        'if [ -z "$TEMPLATE_VOL" ]; then',
        '    msg_err "Template ${TEMPLATE_SEARCH} not found."',
        "    exit 1",
        "fi",
        'if ! pveam list local | grep -q "$TEMPLATE_VOL"; then',
        '    msg_info "Downloading template ${TEMPLATE_VOL}..."',
        '    pveam download local "$TEMPLATE_VOL"',
        "fi",
        'TEMPLATE="local:vztmpl/${TEMPLATE_VOL}"',
        "",
        'msg_info "Creating container ${CTID}..."',
        'pct create "$CTID" "$TEMPLATE" \\',
        "    --arch amd64 \\",
        '    --hostname "$HOSTNAME" \\',
        '    --cores "$CPU_CORES" \\',
        '    --memory "$RAM_SIZE" \\',
        "    --swap 512 \\",
        '    --storage "$STORAGE" \\',
        '    --password "$PASSWORD" \\',
        '    --rootfs "volume=${STORAGE}:${DISK_SIZE}" \\',
        '    --net0 "$NET_CONFIG" \\',
        "    --unprivileged 1 \\",
        "    --features nesting=1,keyctl=1 \\",
        "    --onboot 1",
        "",
        'pct start "$CTID"',
        'msg_info "Waiting for network connectivity..."',
        "NETWORK_READY=0",
        f"for i in $(seq 1 {NETWORK_PROBE_RETRIES}); do",
        f'    if lxc-attach -n "$CTID" -- ping -c1 -W1 {NETWORK_PROBE_HOST} &>/dev/null; then',
        "        NETWORK_READY=1",
        "        break",
        "    fi",
        "    sleep 1",
        "done",
        'if [ "$NETWORK_READY" -eq 1 ]; then',
        '    msg_ok "Network is up"',
        "else",
        f'    msg_warn "No network after {NETWORK_PROBE_RETRIES} attempts; continuing anyway."',
        "fi",
        "",
        f"lxc-attach -n \"$CTID\" -- bash -c 'cat > {GUEST_SCRIPT_PATH}' <<{delimiter}",
        guest.rstrip("\n"),
        delimiter,
        "",
        'msg_info "Running installation inside container ${CTID}..."',
        f'lxc-attach -n "$CTID" -- bash {GUEST_SCRIPT_PATH}',
        "",
        "IP=$(pct exec \"$CTID\" -- ip -4 -o addr show dev eth0 | awk '{print $4}' | cut -d/ -f1)",
        "",
        *recipe.completion_lines(ctx),
    ]
    return "\n".join(lines) + "\n"


def synthesize(app: AppRecord, config: DeploymentConfig) -> str:
    """Return the full provisioning script for ``app`` under ``config``.

    A matched community recipe replaces the generic Docker path; the
    allocation envelope around it is identical.
    """
    app_id, app_name = _resolve_identity(app, config)
    recipe = select_recipe(config.matched_recipe)

    compose_text = ""
    volumes: List[str] = []
    plan: List[SecretPlanEntry] = []
    if recipe.uses_compose:
        result, plan = prepare_compose(app, config)
        compose_text, volumes = result.text, result.volumes

    ctx = GuestContext(
        app_id=app_id,
        app_name=app_name,
        app_dir=build_app_dir(app_id),
        host_port=config.host_port,
        compose_text=compose_text,
        volumes=tuple(volumes),
        secret_plan=tuple(plan),
    )
    logger.info("Generating %s script for %s (CT %s)", recipe.name, app_id, config.ct_id)
    return render_host_script(app_id, app_name, config, recipe, ctx)


def generate_stack_file(app: AppRecord, config: DeploymentConfig) -> str:
    """Return the cleaned compose alone; overrides are baked in verbatim."""
    result, _ = prepare_compose(app, config, generate_secrets=False)
    return result.text


def generate(app: AppRecord, config: DeploymentConfig) -> str:
    """Dispatch on the configured target platform."""
    if config.target.is_stack_file:
        return generate_stack_file(app, config)
    return synthesize(app, config)


def artifact_filename(config: DeploymentConfig, app: Optional[AppRecord] = None) -> str:
    if config.target.is_stack_file:
        return "docker-compose.yml"
    app_id = slugify(config.app_id) or (app.id if app else "app")
    return f"install-{app_id}.sh"
