"""ArtPulse FastAPI server: ANSI art to styled runs and HTML."""

from __future__ import annotations

import hashlib
import socket
import sys
import time
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import Depends, FastAPI, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

import html_render
from ansi_parser import parse_lines, parse_runs, strip_sgr
from engine_bridge import has_engine, render
from log_config import configure_logging, get_logger
from settings import PLACEHOLDER_TOKEN, Settings, get_settings

app = FastAPI(title="ArtPulse", version="1.0.0")
_security = HTTPBearer()
logger = get_logger(__name__)

OutputFormat = Literal["runs", "lines", "html", "text"]


def _verify(
    creds: HTTPAuthorizationCredentials = Depends(_security),
    settings: Settings = Depends(get_settings),
) -> str:
    if creds.credentials != settings.token:
        raise HTTPException(status_code=401, detail="Invalid token")
    return creds.credentials


def _check_size(text: str, settings: Settings) -> None:
    if len(text) > settings.max_input_chars:
        raise HTTPException(status_code=422, detail=f"Input exceeds {settings.max_input_chars} characters")


def _converted(raw: str, fmt: OutputFormat) -> Any:
    if fmt == "runs":
        return [run.to_dict() for run in parse_runs(raw)]
    if fmt == "lines":
        lines = parse_lines(raw)
        # Strip trailing empty lines to avoid dead space below the art
        while len(lines) > 1 and all(run["t"].strip() == "" for run in lines[-1]):
            lines.pop()
        return lines
    if fmt == "html":
        return html_render.convert(raw)
    return strip_sgr(raw)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "hostname": socket.gethostname(),
        "engine": await has_engine(),
    }


class ConvertRequest(BaseModel):
    text: str
    format: OutputFormat = "runs"


class RenderRequest(BaseModel):
    command: str
    args: list[str] = Field(default_factory=list)
    format: OutputFormat = "html"


class _RateLimiter:
    """Simple in-memory sliding-window rate limiter."""

    def __init__(self, max_per_sec: int = 20):
        self._max = max_per_sec
        self._timestamps: list[float] = []

    def check(self) -> None:
        now = time.monotonic()
        self._timestamps = [t for t in self._timestamps if now - t < 1.0]
        if len(self._timestamps) >= self._max:
            raise HTTPException(status_code=429, detail="Rate limit exceeded")
        self._timestamps.append(now)


_render_limiter = _RateLimiter(max_per_sec=get_settings().render_rate_per_sec)


@app.post("/convert")
async def post_convert(
    body: ConvertRequest,
    _: str = Depends(_verify),
    settings: Settings = Depends(get_settings),
):
    _check_size(body.text, settings)
    return {
        "format": body.format,
        "hash": hashlib.sha256(body.text.encode()).hexdigest()[:16],
        "result": _converted(body.text, body.format),
    }


@app.post("/render")
async def post_render(
    body: RenderRequest,
    _: str = Depends(_verify),
    settings: Settings = Depends(get_settings),
):
    _render_limiter.check()
    try:
        raw = await render(body.command, body.args)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RuntimeError as exc:
        logger.warning("render failed", command=body.command, error=str(exc))
        raise HTTPException(status_code=502, detail=str(exc))

    _check_size(raw, settings)
    return {
        "raw": raw,
        "format": body.format,
        "hash": hashlib.sha256(raw.encode()).hexdigest()[:16],
        "result": _converted(raw, body.format),
        "ts": datetime.now(timezone.utc).isoformat(),
    }


def run() -> None:
    import uvicorn

    settings = get_settings()
    configure_logging(settings)
    if settings.token == PLACEHOLDER_TOKEN:
        print(
            "\n\033[1;31mFATAL: AP_TOKEN is set to 'changeme'.\033[0m\n"
            "Generate a secure token:  python3 -c \"import secrets; print(secrets.token_urlsafe(32))\"\n"
            "Then set it:  export AP_TOKEN=<your-token>\n",
            file=sys.stderr,
        )
        sys.exit(1)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
