"""Shared test fixtures: fake hypervisor and fake external tools."""

from __future__ import annotations

import hashlib
import random
import subprocess
from pathlib import Path
from typing import Dict, List

import pytest

from bigiron.exceptions import DomainNotFoundError
from bigiron.images import ImageRepository
from bigiron.vmstore import VMStore


class FakeHypervisor:
    """Records created domains and stops them by name."""

    def __init__(self) -> None:
        self.created: List[str] = []
        self.running: dict = {}
        self.destroyed: List[str] = []

    def create_domain(self, xml: str) -> None:
        from xml.etree.ElementTree import fromstring

        name = fromstring(xml).findtext("name")
        self.created.append(xml)
        self.running[name] = xml

    def destroy_domain(self, name: str) -> None:
        if name not in self.running:
            raise DomainNotFoundError(f"Domain {name} not found")
        del self.running[name]
        self.destroyed.append(name)


class FakeTools:
    """Stands in for qemu-img and the ISO tool by creating their output files.

    The ISO tool fake also keeps a copy of every staged file, keyed by file
    name, since the staging directory is gone once the drive is built.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.iso_contents: Dict[str, bytes] = {}

    def __call__(self, cmd, check=True, **kwargs):
        self.calls.append(list(cmd))
        if cmd[1] == "create":
            Path(cmd[cmd.index("-f") + 2]).write_bytes(b"QFI\xfb")
        elif "-output" in cmd:
            for staged in cmd[cmd.index("-rock") + 1 :]:
                self.iso_contents[Path(staged).name] = Path(staged).read_bytes()
            Path(cmd[cmd.index("-output") + 1]).write_bytes(b"CD001")
        return subprocess.CompletedProcess(cmd, 0, "", "")

    def by_program(self, program: str) -> List[List[str]]:
        return [c for c in self.calls if c[0] == program]


@pytest.fixture
def fake_hypervisor() -> FakeHypervisor:
    return FakeHypervisor()


@pytest.fixture
def fake_tools(monkeypatch) -> FakeTools:
    tools = FakeTools()
    monkeypatch.setattr("bigiron.vmstore.run", tools)
    monkeypatch.setattr("bigiron.configdrive.run", tools)
    return tools


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def base_image(tmp_path):
    """A fake source image and its SHA-256 digest."""
    data = b"not really a qcow2 image\n" * 64
    path = tmp_path / "source" / "base.img"
    path.parent.mkdir()
    path.write_bytes(data)
    return path, hashlib.sha256(data).hexdigest()


@pytest.fixture
def image_repo(tmp_path) -> ImageRepository:
    return ImageRepository(tmp_path / "images")


@pytest.fixture
def vmstore(tmp_path) -> VMStore:
    return VMStore(tmp_path / "instances")


@pytest.fixture
def machine_yaml(base_image):
    path, digest = base_image
    return f"""\
kind: Machine
metadata:
  name: othervm
spec:
  cpu: 4
  memory: 512Mi
  image:
    url: "file://{path}"
    hash: {digest}
    resize: 100G
  storage:
    - kind: File
      path: /var/lib/data/localfile01.qcow2
    - kind: Block
      path: /dev/sdb
  nics:
    - kind: Bridge
      parent: obsbr0
      address:
        kind: IPv6SLAAC
    - kind: Macvtap
      parent: eth0
      address:
        kind: IPv4Static
        addr: "192.168.3.160/24"
        gateway: "192.168.3.1"
        nameservers:
          - 192.168.3.1
  userdata: |
    #cloud-config
    ssh_pwauth: true
"""


_ENV_VARS = [
    "BIGIRON_DATA_DIR",
    "BIGIRON_IMAGES_DIR",
    "BIGIRON_INSTANCES_DIR",
    "BIGIRON_METADATA_API",
    "LIBVIRT_URI",
    "QEMU_IMG",
    "ISO_TOOL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Clear all environment variables that load_host_config() reads."""
    for key in _ENV_VARS:
        monkeypatch.delenv(key, raising=False)
