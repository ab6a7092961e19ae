"""Host configuration loaded from environment variables."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bigiron.constants import (
    DEFAULT_DATA_DIR,
    DEFAULT_QEMU_IMG,
    IMAGES_SUBDIR,
    INSTANCES_SUBDIR,
    ISO_BINARIES,
    LIBVIRT_URI,
)
from bigiron.exceptions import ManagerError
from bigiron.utils import find_binary, get_env, get_env_bool


@dataclass
class HostConfig:
    data_dir: Path
    images_dir: Path
    instances_dir: Path
    libvirt_uri: str = LIBVIRT_URI
    metadata_api: bool = False
    qemu_img: str = DEFAULT_QEMU_IMG
    iso_tool: Optional[str] = None


def _path_env(name: str, default: Path) -> Path:
    raw = get_env(name)
    if raw is None or not raw.strip():
        return default
    path = Path(raw.strip())
    if not path.is_absolute():
        raise ManagerError(f"{name} must be an absolute path (got '{raw}')")
    return path


def load_host_config() -> HostConfig:
    data_dir = _path_env("BIGIRON_DATA_DIR", DEFAULT_DATA_DIR)
    images_dir = _path_env("BIGIRON_IMAGES_DIR", data_dir / IMAGES_SUBDIR)
    instances_dir = _path_env("BIGIRON_INSTANCES_DIR", data_dir / INSTANCES_SUBDIR)
    if images_dir == instances_dir:
        raise ManagerError("BIGIRON_IMAGES_DIR and BIGIRON_INSTANCES_DIR must be different directories")

    libvirt_uri = (get_env("LIBVIRT_URI") or LIBVIRT_URI).strip()
    qemu_img = (get_env("QEMU_IMG") or DEFAULT_QEMU_IMG).strip()

    iso_tool = (get_env("ISO_TOOL") or "").strip() or None
    if iso_tool is None:
        iso_tool = find_binary(ISO_BINARIES)

    return HostConfig(
        data_dir=data_dir,
        images_dir=images_dir,
        instances_dir=instances_dir,
        libvirt_uri=libvirt_uri,
        metadata_api=get_env_bool("BIGIRON_METADATA_API", False),
        qemu_img=qemu_img,
        iso_tool=iso_tool,
    )
