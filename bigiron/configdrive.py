"""cloud-init NoCloud configuration drive (cidata ISO) generation."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from bigiron.constants import CIDATA_ISO_NAME, CIDATA_VOLUME_ID, ISO_BINARIES
from bigiron.exceptions import CommandError, StorageError
from bigiron.utils import find_binary, log, run


def create_iso(output_path: Path, files: Sequence[Path], iso_tool: Optional[str] = None) -> None:
    """Pack ``files`` into a Joliet/Rock Ridge volume labelled ``cidata``."""
    tool = iso_tool or find_binary(ISO_BINARIES)
    if tool is None:
        raise CommandError(f"No ISO authoring tool found (tried {', '.join(ISO_BINARIES)})")
    cmd = [
        tool,
        "-output",
        str(output_path),
        "-input-charset",
        "utf-8",
        "-volid",
        CIDATA_VOLUME_ID,
        "-joliet",
        "-rock",
    ]
    cmd.extend(str(f) for f in files)
    run(cmd)


@dataclass
class ConfigDriveMetadata:
    instance_id: str
    local_hostname: str
    network_interfaces: Optional[str] = None
    public_keys: List[str] = field(default_factory=list)

    @classmethod
    def for_instance(cls, instance_name: str) -> "ConfigDriveMetadata":
        return cls(instance_id=instance_name, local_hostname=instance_name)

    def add_public_key(self, public_key: str) -> None:
        self.public_keys.append(public_key)

    def add_network_block(self, network_block: str) -> None:
        self.network_interfaces = network_block

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "instance-id": self.instance_id,
            "local-hostname": self.local_hostname,
        }
        if self.network_interfaces is not None:
            out["network-interfaces"] = self.network_interfaces
        if self.public_keys:
            out["public-keys"] = list(self.public_keys)
        return out

    def to_bytes(self) -> bytes:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False).encode("utf-8")


class ConfigDriveBuilder:
    """Collects meta-data, user-data and network-config for one instance."""

    def __init__(self, instance_name: str, iso_tool: Optional[str] = None) -> None:
        self.metadata = ConfigDriveMetadata.for_instance(instance_name)
        self.userdata: Optional[bytes] = None
        self.network_config: Optional[bytes] = None
        self.iso_tool = iso_tool

    def add_userdata(self, userdata: Union[str, bytes]) -> "ConfigDriveBuilder":
        self.userdata = userdata.encode("utf-8") if isinstance(userdata, str) else userdata
        return self

    def add_network_config(self, network_config: bytes) -> "ConfigDriveBuilder":
        self.network_config = network_config
        return self

    def build(self, base_dir: Union[str, Path]) -> Path:
        """Write ``cidata.iso`` into ``base_dir`` and return its path.

        Files are staged in a temporary subdirectory which is removed whether
        or not the ISO tool succeeds. The ISO itself is written next to the
        staging directory, never inside it.
        """
        base = Path(base_dir)
        iso_path = base / CIDATA_ISO_NAME
        try:
            with tempfile.TemporaryDirectory(prefix="cidata-", dir=base) as tmpdir:
                staging = Path(tmpdir)
                meta_path = staging / "meta-data"
                user_path = staging / "user-data"
                meta_path.write_bytes(self.metadata.to_bytes())
                # the ISO tool needs at least one data file, so user-data is always written
                user_path.write_bytes(self.userdata or b"")
                files = [user_path, meta_path]
                if self.network_config:
                    net_path = staging / "network-config"
                    net_path.write_bytes(self.network_config)
                    files.append(net_path)
                create_iso(iso_path, files, iso_tool=self.iso_tool)
        except OSError as exc:
            raise StorageError(f"Failed to stage configuration drive in {base}: {exc}") from exc
        log("SUCCESS", f"Built configuration drive {iso_path}")
        return iso_path
