"""Command line interface for compose-to-LXC conversion."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

from .main import build_config, load_app, render_artifact, write_artifact
from .models import TargetPlatform
from .script_gen import artifact_filename


def _env_pair(value: str) -> str:
    if "=" not in value or not value.partition("=")[0].strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compose-lxc",
        description="Turn app-store docker-compose apps into Proxmox LXC install scripts.",
    )
    parser.add_argument("input", type=Path, help="Path to docker-compose.yml or an app folder")
    parser.add_argument("--sidecar", type=Path, help="config.json metadata next to the compose file.")
    parser.add_argument("--icon-url", help="Icon URL to use when the metadata has none.")
    parser.add_argument("--app-id", help="Identifier used when the metadata does not name the app.")
    parser.add_argument(
        "--target",
        choices=[target.value for target in TargetPlatform],
        default=TargetPlatform.PROXMOX_LXC.value,
        help="proxmox-lxc emits an install script; the others emit a cleaned compose.",
    )
    parser.add_argument("-o", "--output", type=Path, help="Output path (default: install-<app>.sh).")
    parser.add_argument("--defaults", type=Path, help="YAML file with global provisioning defaults.")

    lxc = parser.add_argument_group("container")
    lxc.add_argument("--ctid", type=int, dest="ct_id", help="Numeric container ID.")
    lxc.add_argument("--cores", type=int, dest="cpu_cores", help="CPU cores.")
    lxc.add_argument("--ram", type=int, dest="ram_mb", help="Memory in MB.")
    lxc.add_argument("--disk", type=int, dest="disk_gb", help="Root disk size in GB.")
    lxc.add_argument("--storage", dest="storage_pool", help="Storage pool, e.g. local-lvm.")
    lxc.add_argument("--bridge", help="Network bridge, e.g. vmbr0.")
    lxc.add_argument("--static-ip", help="Static address in CIDR form; disables DHCP.")
    lxc.add_argument("--gateway", help="Gateway for the static address.")
    lxc.add_argument("--password", help="Root password for the container.")

    app = parser.add_argument_group("application")
    app.add_argument("--host-port", help="Host port published for the main service.")
    app.add_argument("--container-port", help="Container port of the main service.")
    app.add_argument(
        "--env",
        action="append",
        type=_env_pair,
        default=[],
        metavar="KEY=VALUE",
        help="Environment override (repeatable). Use an empty value or 'auto' to generate secrets.",
    )
    app.add_argument("--recipe", help="Community script name to install instead of Docker.")

    parser.add_argument("--one-liner", action="store_true", help="Emit a base64 one-line command.")
    parser.add_argument("--dry-run", action="store_true", help="Print the artifact instead of writing it.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _env_overrides(pairs: List[str]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for pair in pairs:
        key, _, value = pair.partition("=")
        overrides[key.strip()] = value
    return overrides


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        app = load_app(args.input, args.sidecar, args.icon_url, args.app_id)
        settings = {
            "ct_id": args.ct_id,
            "cpu_cores": args.cpu_cores,
            "ram_mb": args.ram_mb,
            "disk_gb": args.disk_gb,
            "storage_pool": args.storage_pool,
            "bridge": args.bridge,
            "gateway": args.gateway,
            "password": args.password,
            "host_port": args.host_port,
            "container_port": args.container_port,
        }
        if args.static_ip:
            settings.update({"use_dhcp": False, "static_ip": args.static_ip})

        config = build_config(
            app,
            target=TargetPlatform(args.target),
            defaults_path=args.defaults,
            settings=settings,
            env_overrides=_env_overrides(args.env),
            matched_recipe=args.recipe,
        )
        text = render_artifact(app, config, one_liner=args.one_liner)
        output = args.output or Path(artifact_filename(config, app))
        write_artifact(text, output, args.dry_run)
        return 0
    except Exception as exc:  # pragma: no cover - protects CLI UX
        logging.error("compose-lxc failed: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
