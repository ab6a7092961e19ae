"""libvirt domain descriptor construction, start and destroy."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Union
from xml.etree.ElementTree import Element, SubElement

from bigiron.constants import DISK_DEV_PREFIX, EXTRA_DRIVE_LETTERS, SMBIOS_PRODUCT, SMBIOS_VENDOR
from bigiron.exceptions import DomainNotFoundError, DriveLettersExhaustedError, ManagerError
from bigiron.network import interface_element
from bigiron.utils import element_to_str, log

MAX_EXTRA_DRIVES = len(EXTRA_DRIVE_LETTERS)


def storage_target(index: int) -> str:
    """Target device for the ``index``-th extra storage device (0 -> vdb)."""
    if index < 0 or index >= MAX_EXTRA_DRIVES:
        raise DriveLettersExhaustedError(
            f"not enough drive letters for storage drive #{index + 1} (at most {MAX_EXTRA_DRIVES} supported)"
        )
    return f"{DISK_DEV_PREFIX}{EXTRA_DRIVE_LETTERS[index]}"


@dataclass(frozen=True)
class StorageDevice:
    disk_type: str  # "file" or "block"
    path: str
    target: str

    def to_element(self) -> Element:
        disk = Element("disk", type=self.disk_type, device="disk")
        source_attr = "file" if self.disk_type == "file" else "dev"
        SubElement(disk, "source", {source_attr: self.path})
        SubElement(disk, "target", dev=self.target, bus="virtio")
        return disk


@dataclass(frozen=True)
class CdromDevice:
    path: str

    def to_element(self) -> Element:
        cdrom = Element("disk", type="file", device="cdrom")
        SubElement(cdrom, "driver", name="qemu", type="raw")
        SubElement(cdrom, "source", file=self.path)
        SubElement(cdrom, "readonly")
        SubElement(cdrom, "target", dev="hdc", bus="ide")
        return cdrom


@dataclass(frozen=True)
class InterfaceDevice:
    kind: str  # "Bridge" or "Macvtap"
    parent: str
    mac_address: str

    def to_element(self) -> Element:
        return interface_element(self.kind, self.parent, self.mac_address)


Device = Union[StorageDevice, CdromDevice, InterfaceDevice]


class DomainBuilder:
    """Accumulates devices for a domain and starts it once.

    ``hypervisor`` arguments are objects providing ``create_domain(xml)``
    and ``destroy_domain(name)``, normally
    :class:`bigiron.hypervisor.LibvirtHypervisor`.
    """

    def __init__(
        self,
        name: str,
        cpus: int,
        memory_bytes: int,
        image_file: Union[str, Path],
        metadata_api: bool = False,
    ) -> None:
        self.name = name
        self.cpus = cpus
        self.memory_bytes = memory_bytes
        self.image_file = str(image_file)
        self.metadata_api = metadata_api
        self.devices: List[Device] = []
        self._storage_count = 0
        self._built = False

    def add_bridged_interface(self, bridge: str, mac_address: str) -> "DomainBuilder":
        self.devices.append(InterfaceDevice("Bridge", bridge, mac_address))
        return self

    def add_macvtap_interface(self, device: str, mac_address: str) -> "DomainBuilder":
        self.devices.append(InterfaceDevice("Macvtap", device, mac_address))
        return self

    def add_file_backed_storage(self, path: Union[str, Path]) -> "DomainBuilder":
        return self._add_storage("file", path)

    def add_block_backed_storage(self, path: Union[str, Path]) -> "DomainBuilder":
        return self._add_storage("block", path)

    def _add_storage(self, disk_type: str, path: Union[str, Path]) -> "DomainBuilder":
        target = storage_target(self._storage_count)
        self.devices.append(StorageDevice(disk_type, str(path), target))
        self._storage_count += 1
        return self

    def add_cdrom_from_iso(self, iso_path: Union[str, Path]) -> "DomainBuilder":
        self.devices.append(CdromDevice(str(iso_path)))
        return self

    def _sysinfo_element(self) -> Element:
        sysinfo = Element("sysinfo", type="smbios")
        bios = SubElement(sysinfo, "bios")
        SubElement(bios, "entry", name="vendor").text = SMBIOS_VENDOR
        system = SubElement(sysinfo, "system")
        SubElement(system, "entry", name="product").text = SMBIOS_PRODUCT
        SubElement(system, "entry", name="manufacturer").text = SMBIOS_VENDOR
        return sysinfo

    def render(self) -> str:
        domain = Element("domain", type="kvm")
        SubElement(domain, "name").text = self.name
        SubElement(domain, "memory", unit="bytes").text = str(self.memory_bytes)
        SubElement(domain, "currentMemory", unit="bytes").text = str(self.memory_bytes)
        SubElement(domain, "vcpu").text = str(self.cpus)

        os_el = SubElement(domain, "os")
        if self.metadata_api:
            SubElement(os_el, "smbios", mode="sysinfo")
        SubElement(os_el, "type", arch="x86_64", machine="pc").text = "hvm"
        SubElement(os_el, "boot", dev="hd")

        features = SubElement(domain, "features")
        SubElement(features, "acpi")
        SubElement(features, "apic")
        SubElement(domain, "clock", offset="utc")
        pm = SubElement(domain, "pm")
        SubElement(pm, "suspend-to-mem", enabled="no")
        SubElement(pm, "suspend-to-disk", enabled="no")

        devices = SubElement(domain, "devices")
        disk = SubElement(devices, "disk", type="file", device="disk")
        SubElement(disk, "driver", name="qemu", type="qcow2", cache="writeback")
        SubElement(disk, "source", file=self.image_file)
        SubElement(disk, "target", dev=f"{DISK_DEV_PREFIX}a", bus="virtio")

        for device in self.devices:
            devices.append(device.to_element())

        serial = SubElement(devices, "serial", type="pty")
        SubElement(serial, "target", type="isa-serial", port="0")
        console = SubElement(devices, "console", type="pty")
        SubElement(console, "target", type="serial", port="0")
        SubElement(devices, "input", type="keyboard", bus="ps2")
        SubElement(devices, "input", type="mouse", bus="ps2")
        SubElement(devices, "memballoon", model="virtio")

        if self.metadata_api:
            domain.append(self._sysinfo_element())

        return element_to_str(domain)

    def build(self, hypervisor) -> None:
        """Create and start the domain. A builder can only be built once."""
        if self._built:
            raise ManagerError(f"Domain {self.name} has already been built")
        xml = self.render()
        log("DEBUG", f"Domain XML for {self.name}:\n{xml}")
        hypervisor.create_domain(xml)
        self._built = True
        log("SUCCESS", f"Domain {self.name} started")


def destroy_domain(hypervisor, name: str) -> bool:
    """Stop the named domain. Returns False when there was nothing to stop."""
    try:
        hypervisor.destroy_domain(name)
    except DomainNotFoundError:
        log("INFO", f"Domain {name} not found; nothing to stop")
        return False
    log("SUCCESS", f"Domain {name} destroyed")
    return True
