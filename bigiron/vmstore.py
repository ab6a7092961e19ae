"""Per-instance working directories and copy-on-write instance disks."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from bigiron.constants import DEFAULT_QEMU_IMG, INSTANCE_DISK_NAME
from bigiron.exceptions import InstanceExistsError, InstanceNotFoundError, StorageError
from bigiron.statestore import DirectoryStore
from bigiron.utils import log, run


def create_image(
    filepath: Path,
    resize: Optional[int] = None,
    backing_file: Optional[Path] = None,
    qemu_img: str = DEFAULT_QEMU_IMG,
) -> None:
    """Create a qcow2 image, optionally backed by another qcow2 file."""
    cmd = [qemu_img, "create", "-q"]
    if backing_file is not None:
        cmd.extend(["-b", str(backing_file), "-F", "qcow2"])
    cmd.extend(["-f", "qcow2", str(filepath)])
    if resize is not None:
        cmd.append(str(resize))
    run(cmd)


class VMStore:
    def __init__(self, path: Union[str, Path], qemu_img: str = DEFAULT_QEMU_IMG) -> None:
        self.store = DirectoryStore(path)
        self.qemu_img = qemu_img

    def path_for_instance(self, name: str) -> Path:
        if not name or "/" in name or name in (".", ".."):
            raise StorageError(f"Invalid instance name '{name}'")
        return self.store.join(name)

    def exists(self, name: str) -> bool:
        return self.path_for_instance(name).is_dir()

    def list_instances(self) -> List[str]:
        return [name for name in self.store.list_files() if self.store.join(name).is_dir()]

    def allocate(self, name: str) -> Path:
        path = self.path_for_instance(name)
        try:
            path.mkdir()
        except FileExistsError as exc:
            raise InstanceExistsError(f"Instance '{name}' already exists at {path}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot create instance directory {path}: {exc}") from exc
        log("INFO", f"Allocated instance directory {path}")
        return path

    def create_instance_disk(self, name: str, base_image: Path, resize: Optional[int] = None) -> Path:
        disk = self.path_for_instance(name) / INSTANCE_DISK_NAME
        size_note = f" ({resize} bytes)" if resize is not None else ""
        log("INFO", f"Creating instance disk {disk} backed by {base_image}{size_note}")
        create_image(disk, resize=resize, backing_file=Path(base_image).resolve(), qemu_img=self.qemu_img)
        return disk

    def destroy(self, name: str) -> None:
        """Remove every file in the instance directory, then the directory.

        Stops at the first failure; whatever could not be removed stays.
        """
        path = self.path_for_instance(name)
        if not path.is_dir():
            raise InstanceNotFoundError(f"No instance '{name}' in {self.store.path}")
        try:
            for entry in sorted(path.iterdir()):
                entry.unlink()
            path.rmdir()
        except OSError as exc:
            raise StorageError(f"Failed to remove instance '{name}': {exc}") from exc
        log("INFO", f"Removed instance directory {path}")
