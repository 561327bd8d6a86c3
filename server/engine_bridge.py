"""Safe async wrappers around the art engine CLI."""

from __future__ import annotations

import asyncio
import re

from log_config import get_logger
from settings import get_settings

logger = get_logger(__name__)

_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")

_ALLOWED_COMMANDS: frozenset[str] = frozenset({
    "art", "artdb", "banner", "cal", "effect", "filter",
    "fortune", "gradient", "lolcat", "pattern", "qr", "say",
})

# Flags that write files, block on watch loops or touch the clipboard.
_BLOCKED_FLAGS: frozenset[str] = frozenset({"copy", "output", "output-dir", "watch"})
_BLOCKED_SHORT_FLAGS: frozenset[str] = frozenset({"o"})

_MAX_ARGS = 16
_MAX_ARG_LENGTH = 512


def _validate_args(command: str, args: list[str]) -> list[str]:
    if command not in _ALLOWED_COMMANDS:
        raise ValueError(f"Engine command {command!r} not allowed")
    if len(args) > _MAX_ARGS:
        raise ValueError(f"Too many arguments (max {_MAX_ARGS})")
    for arg in args:
        if len(arg) > _MAX_ARG_LENGTH:
            raise ValueError(f"Argument exceeds {_MAX_ARG_LENGTH} characters")
        if _CONTROL_RE.search(arg):
            raise ValueError(f"Invalid engine argument: {arg!r}")
    _check_flags(args)
    return args


def _check_flags(args: list[str]) -> None:
    for arg in args:
        if arg == "--":
            return
        if arg.startswith("--"):
            name = arg[2:].split("=", 1)[0]
            if name in _BLOCKED_FLAGS:
                raise ValueError(f"Engine flag {arg!r} not allowed")
        elif arg.startswith("-") and len(arg) > 1:
            # short flags may be clustered (-qo) or carry a value (-ofile)
            if _BLOCKED_SHORT_FLAGS & set(arg[1:].split("=", 1)[0]):
                raise ValueError(f"Engine flag {arg!r} not allowed")


async def _run(*args: str) -> str:
    settings = get_settings()
    logger.debug("engine exec", argv=args)
    try:
        proc = await asyncio.create_subprocess_exec(
            settings.engine_bin,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise RuntimeError(f"Cannot start art engine {settings.engine_bin}: {exc}") from exc
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=settings.engine_timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise RuntimeError(f"Art engine timed out after {settings.engine_timeout:g}s")
    if proc.returncode != 0:
        msg = stderr.decode("utf-8", errors="replace").strip() if stderr else f"engine exited {proc.returncode}"
        logger.warning("engine failed", argv=args, returncode=proc.returncode)
        raise RuntimeError(msg)
    return stdout.decode("utf-8", errors="replace")


async def render(command: str, args: list[str] | None = None) -> str:
    """Run one art engine subcommand and return its raw output.

    The output usually carries SGR escapes (gradients, effects) and is
    meant to be fed to the ANSI interpreter.
    """
    argv = _validate_args(command, list(args or []))
    return await _run(command, *argv)


async def has_engine() -> bool:
    """Check if the art engine binary runs."""
    try:
        await _run("--version")
        return True
    except RuntimeError:
        return False
