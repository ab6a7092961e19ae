"""Tests for bigiron.hostmanager module."""

from __future__ import annotations

import random
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
import yaml

from bigiron.exceptions import DriveLettersExhaustedError, InstanceExistsError, IntegrityError
from bigiron.hostmanager import HostManager, MachineStatus, resolve_nics
from bigiron.mac import Mac
from bigiron.models import FileStorage, IPv6SLAAC, Nic, resources_from_yaml


@pytest.fixture
def manager(vmstore, image_repo, fake_hypervisor, fake_tools, rng):
    return HostManager(vmstore, image_repo, fake_hypervisor, rng=rng, iso_tool="genisoimage")


@pytest.fixture
def machine(machine_yaml):
    (machine,) = resources_from_yaml(machine_yaml)
    return machine


def _interfaces(xml):
    return ET.fromstring(xml).findall("devices/interface")


class TestResolveNics:
    def test_each_nic_gets_a_mac(self):
        nics = [Nic("Bridge", "br0", IPv6SLAAC()), Nic("Bridge", "br1", IPv6SLAAC())]
        resolved = resolve_nics(nics, random.Random(5))
        assert [r.nic for r in resolved] == nics
        assert all(r.macaddress.startswith("00:16:3e:") for r in resolved)

    def test_declared_nics_unchanged(self):
        nic = Nic("Bridge", "br0", IPv6SLAAC())
        resolve_nics([nic])
        assert not hasattr(nic, "macaddress")


class TestCreateMachine:
    def test_end_to_end(self, manager, machine, vmstore, image_repo, fake_hypervisor, fake_tools, base_image):
        _, digest = base_image
        manager.create_machine(machine)

        assert image_repo.list_images() == [f"{digest}.qcow2"]
        instance_dir = vmstore.path_for_instance("othervm")
        assert sorted(p.name for p in instance_dir.iterdir()) == ["cidata.iso", "instance.qcow2"]

        (qemu_cmd,) = fake_tools.by_program("qemu-img")
        assert qemu_cmd[qemu_cmd.index("-b") + 1] == str(image_repo.resolve_image(digest).resolve())
        assert qemu_cmd[-1] == str(100 * 1000**3)

        (xml,) = fake_hypervisor.created
        root = ET.fromstring(xml)
        assert root.findtext("name") == "othervm"
        assert root.findtext("vcpu") == "4"
        assert root.findtext("memory") == str(512 * 1024**2)
        assert root.find("devices/disk/source").get("file") == str(instance_dir / "instance.qcow2")

        cdrom = root.find("devices/disk[@device='cdrom']")
        assert cdrom.find("source").get("file") == str((instance_dir / "cidata.iso").resolve())

        extra = [d for d in root.findall("devices/disk[@device='disk']")][1:]
        assert [d.find("target").get("dev") for d in extra] == ["vdb", "vdc"]
        assert extra[0].find("source").get("file") == "/var/lib/data/localfile01.qcow2"
        assert extra[1].find("source").get("dev") == "/dev/sdb"

    def test_macs_match_network_config(self, manager, machine, fake_hypervisor, fake_tools):
        manager.create_machine(machine)
        interfaces = _interfaces(fake_hypervisor.created[0])
        assert [i.get("type") for i in interfaces] == ["bridge", "direct"]
        xml_macs = [i.find("mac").get("address") for i in interfaces]

        network = yaml.safe_load(fake_tools.iso_contents["network-config"])["network"]
        config_macs = [e["match"]["macaddress"] for e in network["ethernets"].values()]
        assert config_macs == xml_macs
        assert network["ethernets"]["id0"]["dhcp6"] is True
        assert network["ethernets"]["id1"]["addresses"] == ["192.168.3.160/24"]
        assert network["ethernets"]["id1"]["nameservers"]["addresses"] == ["192.168.3.1"]

    def test_userdata_and_metadata_on_drive(self, manager, machine, fake_tools):
        manager.create_machine(machine)
        assert fake_tools.iso_contents["user-data"] == b"#cloud-config\nssh_pwauth: true\n"
        assert b"instance-id: othervm" in fake_tools.iso_contents["meta-data"]

    def test_declaration_not_mutated(self, manager, machine, machine_yaml):
        manager.create_machine(machine)
        assert machine == resources_from_yaml(machine_yaml)[0]

    def test_slaac_address_logged(self, manager, machine, fake_hypervisor, capsys):
        manager.create_machine(machine)
        bridge_mac = _interfaces(fake_hypervisor.created[0])[0].find("mac").get("address")
        expected = Mac.parse(bridge_mac).to_ipv6_slaac_addr()
        assert f"IPv6 SLAAC: {expected}" in capsys.readouterr().out

    def test_without_nics_has_no_network_config(self, manager, machine, fake_tools, capsys):
        machine.spec.nics = []
        machine.spec.userdata = None
        manager.create_machine(machine)
        assert "network-config" not in fake_tools.iso_contents
        assert fake_tools.iso_contents["user-data"] == b""
        assert "IPv6 SLAAC" not in capsys.readouterr().out

    def test_existing_instance_rejected(self, manager, machine, vmstore, fake_hypervisor):
        vmstore.allocate("othervm")
        with pytest.raises(InstanceExistsError):
            manager.create_machine(machine)
        assert fake_hypervisor.created == []

    def test_too_many_storage_devices_fail_early(self, manager, machine, image_repo, vmstore, fake_tools):
        machine.spec.storage = [FileStorage(Path(f"/data/{i}.qcow2")) for i in range(26)]
        with pytest.raises(DriveLettersExhaustedError):
            manager.create_machine(machine)
        assert image_repo.list_images() == []
        assert vmstore.list_instances() == []
        assert fake_tools.calls == []

    def test_bad_hash_creates_nothing(self, manager, machine, vmstore, fake_hypervisor):
        machine.spec.image.hash = "f" * 64
        with pytest.raises(IntegrityError):
            manager.create_machine(machine)
        assert vmstore.list_instances() == []
        assert fake_hypervisor.created == []


class TestDestroyAndList:
    def test_destroy_removes_domain_and_state(self, manager, machine, vmstore, fake_hypervisor):
        manager.create_machine(machine)
        manager.destroy_machine("othervm")
        assert fake_hypervisor.destroyed == ["othervm"]
        assert not vmstore.exists("othervm")

    def test_destroy_is_idempotent(self, manager, machine, fake_hypervisor, capsys):
        manager.create_machine(machine)
        manager.destroy_machine("othervm")
        manager.destroy_machine("othervm")
        assert fake_hypervisor.destroyed == ["othervm"]
        assert "No local state for instance othervm" in capsys.readouterr().out

    def test_destroy_stopped_domain_still_cleans_up(self, manager, machine, vmstore, fake_hypervisor):
        manager.create_machine(machine)
        fake_hypervisor.running.clear()
        manager.destroy_machine("othervm")
        assert not vmstore.exists("othervm")

    def test_list_reports_unknown_status(self, manager, vmstore):
        vmstore.allocate("b")
        vmstore.allocate("a")
        assert manager.list_machines() == [MachineStatus("a", "unknown"), MachineStatus("b", "unknown")]

    def test_list_empty(self, manager):
        assert manager.list_machines() == []
