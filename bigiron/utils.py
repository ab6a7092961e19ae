"""Utility functions for bigiron-virt."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional
from xml.etree.ElementTree import Element, tostring

from bigiron.constants import (
    _LOG_VERBOSE,
    SIZE_EXPONENTS,
    SIZE_STRING_RE,
    TRUTHY,
)
from bigiron.exceptions import CommandError, ParseError


def log(level: str, message: str) -> None:
    """Lightweight structured logging with one colour per level."""
    if level == "DEBUG" and not _LOG_VERBOSE:
        return
    colours = {
        "INFO": "\033[0;34m",
        "WARN": "\033[1;33m",
        "ERROR": "\033[0;31m",
        "SUCCESS": "\033[0;32m",
        "DEBUG": "\033[0;90m",
    }
    colour = colours.get(level, "")
    reset = "\033[0m" if colour else ""
    print(f"{colour}[{level}]{reset} {message}", flush=True)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.lower() in TRUTHY


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def find_binary(candidates: Iterable[str]) -> Optional[str]:
    """Return the first candidate program found on PATH."""
    for name in candidates:
        if shutil.which(name):
            return name
    return None


def parse_size_to_bytes(raw: str) -> int:
    """Convert a scaled size string such as ``512Mi`` or ``100G`` to bytes.

    Plain suffixes are decimal (powers of 1000), an ``i`` after the suffix
    selects binary powers of 1024. A bare number is a byte count.
    """
    match = SIZE_STRING_RE.match(raw.strip()) if isinstance(raw, str) else None
    if not match:
        raise ParseError(f"Invalid size '{raw}'. Use a number with optional suffix K, M, G, T (e.g. '20G', '512Mi')")
    number, unit, binary = match.groups()
    if binary and not unit:
        raise ParseError(f"Invalid size '{raw}': binary marker 'i' needs a unit")
    base = 1024 if binary else 1000
    return int(number) * base ** SIZE_EXPONENTS[unit.lower()]


def element_to_str(root: Element) -> str:
    """Serialize an ElementTree element to a pretty-printed XML string without declaration."""
    from xml.dom.minidom import parseString

    raw = tostring(root, encoding="unicode")
    return parseString(raw).documentElement.toprettyxml(indent="  ").strip()


def run(cmd: List[str], check: bool = True, **kwargs) -> subprocess.CompletedProcess:
    """Run command with logging; failures surface as CommandError."""
    log("DEBUG", f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, check=check, text=True, capture_output=True, **kwargs)
    except FileNotFoundError as exc:
        raise CommandError(f"{cmd[0]} not found; is it installed?") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or "").strip()
        message = f"{cmd[0]} exited with status {exc.returncode}"
        if detail:
            message += f": {detail}"
        raise CommandError(message) from exc
    return result
