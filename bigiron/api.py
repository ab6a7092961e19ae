"""Entry points that apply resource documents against this host."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional

from bigiron.config import HostConfig, load_host_config
from bigiron.hostmanager import HostManager, MachineStatus
from bigiron.hypervisor import LibvirtHypervisor
from bigiron.images import ImageRepository
from bigiron.models import Machine, resources_from_yaml
from bigiron.vmstore import VMStore


def _open_hypervisor(config: HostConfig) -> LibvirtHypervisor:
    hypervisor = LibvirtHypervisor(config.libvirt_uri)
    hypervisor.connect()
    return hypervisor


@contextmanager
def open_host_manager(config: Optional[HostConfig] = None) -> Iterator[HostManager]:
    if config is None:
        config = load_host_config()
    vmstore = VMStore(config.instances_dir, qemu_img=config.qemu_img)
    images = ImageRepository(config.images_dir)
    hypervisor = _open_hypervisor(config)
    try:
        yield HostManager(
            vmstore,
            images,
            hypervisor,
            metadata_api=config.metadata_api,
            iso_tool=config.iso_tool,
        )
    finally:
        hypervisor.close()


def create_from_yaml(text: str, config: Optional[HostConfig] = None) -> List[Machine]:
    """Create every machine declared in ``text``, in document order."""
    machines = resources_from_yaml(text)
    with open_host_manager(config) as manager:
        for machine in machines:
            manager.create_machine(machine)
    return machines


def list_machines(config: Optional[HostConfig] = None) -> List[MachineStatus]:
    if config is None:
        config = load_host_config()
    # listing only reads the instance store; no hypervisor connection needed
    return HostManager(VMStore(config.instances_dir), ImageRepository(config.images_dir), None).list_machines()


def destroy_machine(name: str, config: Optional[HostConfig] = None) -> None:
    with open_host_manager(config) as manager:
        manager.destroy_machine(name)
