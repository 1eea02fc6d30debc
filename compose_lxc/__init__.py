"""Convert app-store docker-compose apps into Proxmox LXC install scripts."""

from .models import AppRecord, DeploymentConfig, SanitizeResult, SecretPlanEntry, TargetPlatform
from .compose_normalize import sanitize_compose
from .parser import normalize, parse_umbrel_app
from .script_gen import generate_stack_file, synthesize
from .secret_plan import plan_secrets

__all__ = [
    "AppRecord",
    "DeploymentConfig",
    "SanitizeResult",
    "SecretPlanEntry",
    "TargetPlatform",
    "generate_stack_file",
    "normalize",
    "parse_umbrel_app",
    "plan_secrets",
    "sanitize_compose",
    "synthesize",
]
