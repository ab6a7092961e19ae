"""libvirt interface definitions for bridged and macvtap NICs."""

from __future__ import annotations

from xml.etree.ElementTree import Element, SubElement

from bigiron.exceptions import ManagerError
from bigiron.mac import Mac


def interface_element(kind: str, parent: str, mac_address: str, model: str = "virtio") -> Element:
    """Build an ``<interface>`` element for a NIC of the given kind.

    ``Bridge`` attaches to an existing host bridge, ``Macvtap`` to a host
    device through a macvtap endpoint in bridge mode.
    """
    if not parent:
        raise ManagerError(f"{kind} interface needs a parent device")
    mac = str(Mac.parse(mac_address))

    if kind == "Bridge":
        iface = Element("interface", type="bridge")
        SubElement(iface, "source", bridge=parent)
    elif kind == "Macvtap":
        iface = Element("interface", type="direct")
        SubElement(iface, "source", dev=parent, mode="bridge")
    else:
        raise ManagerError(f"Unsupported network kind: {kind}")

    SubElement(iface, "mac", address=mac)
    if model == "virtio":
        SubElement(iface, "driver", name="vhost")
    SubElement(iface, "model", type=model)
    return iface
