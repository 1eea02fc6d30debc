"""FastAPI-based web API for compose-to-LXC conversion.

Every request is self-contained: the client sends the compose text (and the
configuration it edited) and receives the generated artifact. Nothing is
stored between calls.
"""
from __future__ import annotations

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel

from .config import config_for_app, load_global_defaults
from .models import AppRecord, DeploymentConfig, TargetPlatform
from .parser import normalize, parse_umbrel_app
from .script_gen import artifact_filename, generate
from .shell import build_one_liner

logger = logging.getLogger(__name__)

app = FastAPI(title="Compose to LXC")


class NormalizeRequest(BaseModel):
    compose: str
    sidecar: Optional[str] = None
    umbrel_manifest: Optional[str] = None
    icon_url: Optional[str] = None
    app_id: Optional[str] = None


class ConfigRequest(BaseModel):
    app: AppRecord
    target: TargetPlatform = TargetPlatform.PROXMOX_LXC
    matched_recipe: Optional[str] = None


class GenerateRequest(BaseModel):
    app: AppRecord
    config: DeploymentConfig


INDEX_HTML = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>Compose to LXC</title></head>
<body>
<h1>Compose to LXC</h1>
<p>POST a compose file to <code>/api/normalize</code>, seed a configuration with
<code>/api/config</code>, then fetch the artifact from <code>/api/generate</code>.</p>
</body>
</html>
"""


@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    return HTMLResponse(INDEX_HTML)


@app.post("/api/normalize")
async def normalize_app(payload: NormalizeRequest) -> dict:
    record = None
    if payload.umbrel_manifest:
        record = parse_umbrel_app(payload.umbrel_manifest, payload.compose, payload.icon_url)
    if record is None:
        record = normalize(payload.compose, payload.sidecar, payload.icon_url, app_id=payload.app_id)
    if record is None:
        raise HTTPException(status_code=400, detail="Compose does not describe an application.")
    return record.model_dump(mode="json")


@app.post("/api/config")
async def seed_config(payload: ConfigRequest) -> dict:
    config = config_for_app(
        payload.app,
        load_global_defaults(),
        target=payload.target,
        matched_recipe=payload.matched_recipe,
    )
    return config.model_dump(mode="json")


@app.post("/api/generate", response_class=PlainTextResponse)
async def generate_artifact(payload: GenerateRequest) -> PlainTextResponse:
    text = generate(payload.app, payload.config)
    filename = artifact_filename(payload.config, payload.app)
    return PlainTextResponse(
        text,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/one-liner", response_class=PlainTextResponse)
async def one_liner(payload: GenerateRequest) -> PlainTextResponse:
    if payload.config.target.is_stack_file:
        raise HTTPException(status_code=400, detail="One-liners are only available for install scripts.")
    return PlainTextResponse(build_one_liner(generate(payload.app, payload.config)))


def run(host: str = "127.0.0.1", port: int = 8001) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    logger.info("Serving Compose to LXC API on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":  # pragma: no cover
    run()
