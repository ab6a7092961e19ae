"""Provisioning pipeline: create, destroy and list machines on this host."""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence

from bigiron.configdrive import ConfigDriveBuilder
from bigiron.domain import MAX_EXTRA_DRIVES, DomainBuilder, destroy_domain
from bigiron.exceptions import DriveLettersExhaustedError, ManagerError
from bigiron.images import ImageRepository
from bigiron.mac import Mac
from bigiron.models import BlockStorage, FileStorage, Machine, Nic, ResolvedNic
from bigiron.netconfig import build_network_config
from bigiron.utils import log, parse_size_to_bytes
from bigiron.vmstore import VMStore

UNKNOWN_STATUS = "unknown"


class MachineStatus(NamedTuple):
    id: str
    status: str


def resolve_nics(nics: Sequence[Nic], rng=None) -> List[ResolvedNic]:
    """Assign a freshly generated MAC address to every declared NIC."""
    return [ResolvedNic(nic=nic, macaddress=str(Mac.generate(rng))) for nic in nics]


class HostManager:
    def __init__(
        self,
        vmstore: VMStore,
        images: ImageRepository,
        hypervisor,
        rng=None,
        metadata_api: bool = False,
        iso_tool: Optional[str] = None,
    ) -> None:
        self.vmstore = vmstore
        self.images = images
        self.hypervisor = hypervisor
        self.rng = rng
        self.metadata_api = metadata_api
        self.iso_tool = iso_tool

    def create_machine(self, machine: Machine) -> None:
        name = machine.name
        spec = machine.spec

        if len(spec.storage) > MAX_EXTRA_DRIVES:
            raise DriveLettersExhaustedError(
                f"Machine {name} declares {len(spec.storage)} storage devices; at most {MAX_EXTRA_DRIVES} are supported"
            )
        memory_bytes = parse_size_to_bytes(spec.memory)
        resize = parse_size_to_bytes(spec.image.resize) if spec.image.resize is not None else None

        log("INFO", f"Creating machine {name} (cpus={spec.cpu}, memory={spec.memory})")

        image_id = self.images.import_image(spec.image.url, spec.image.hash)
        base_image = self.images.resolve_image(image_id)

        instance_dir = self.vmstore.allocate(name)
        disk = self.vmstore.create_instance_disk(name, base_image, resize)

        builder = DomainBuilder(name, spec.cpu, memory_bytes, disk, metadata_api=self.metadata_api)

        resolved = resolve_nics(spec.nics, self.rng)
        bridged_mac = None
        for nic in resolved:
            if nic.kind == "Bridge":
                builder.add_bridged_interface(nic.parent, nic.macaddress)
                bridged_mac = nic.macaddress
            elif nic.kind == "Macvtap":
                builder.add_macvtap_interface(nic.parent, nic.macaddress)
            else:
                raise ManagerError(f"Unsupported network kind: {nic.kind}")
            log("INFO", f"NIC {nic.kind} on {nic.parent}: mac={nic.macaddress}")

        network_config = build_network_config(resolved)

        drive = ConfigDriveBuilder(name, iso_tool=self.iso_tool)
        if network_config:
            drive.add_network_config(network_config)
        if spec.userdata is not None:
            drive.add_userdata(spec.userdata)
        iso_path = drive.build(instance_dir).resolve()
        builder.add_cdrom_from_iso(iso_path)

        for storage in spec.storage:
            if isinstance(storage, FileStorage):
                builder.add_file_backed_storage(storage.path)
            elif isinstance(storage, BlockStorage):
                builder.add_block_backed_storage(storage.path)

        builder.build(self.hypervisor)

        if bridged_mac is not None:
            log("INFO", f"IPv6 SLAAC: {Mac.parse(bridged_mac).to_ipv6_slaac_addr()}")

    def destroy_machine(self, name: str) -> None:
        destroy_domain(self.hypervisor, name)
        if not self.vmstore.exists(name):
            log("WARN", f"No local state for instance {name}")
            return
        self.vmstore.destroy(name)
        log("SUCCESS", f"Destroyed {name}")

    def list_machines(self) -> List[MachineStatus]:
        # status is not tracked locally
        return [MachineStatus(id=name, status=UNKNOWN_STATUS) for name in self.vmstore.list_instances()]
