"""cloud-init network-config (version 2) generation.

Supports the subset of the v2 format described at
https://cloudinit.readthedocs.io/en/latest/reference/network-config-format-v2.html
that bigiron needs: ethernet devices matched by MAC address.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from bigiron.exceptions import ManagerError
from bigiron.models import IPv4Static, IPv6SLAAC, ResolvedNic

NETWORK_CONFIG_VERSION = 2


@dataclass
class MatchBlock:
    macaddress: Optional[str] = None
    name: Optional[str] = None
    driver: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        fields = (("macaddress", self.macaddress), ("name", self.name), ("driver", self.driver))
        return {key: value for key, value in fields if value is not None}


@dataclass
class Nameservers:
    addresses: List[str]
    search: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.search is not None:
            out["search"] = list(self.search)
        out["addresses"] = list(self.addresses)
        return out


@dataclass
class Route:
    to: str
    via: str
    metric: int

    def to_dict(self) -> Dict[str, Any]:
        return {"to": self.to, "via": self.via, "metric": self.metric}


@dataclass
class Ethernet:
    match: MatchBlock
    dhcp4: Optional[bool] = None
    dhcp6: Optional[bool] = None
    addresses: Optional[List[str]] = None
    gateway4: Optional[str] = None
    gateway6: Optional[str] = None
    nameservers: Optional[Nameservers] = None
    routes: Optional[List[Route]] = None
    wakeonlan: Optional[bool] = None
    set_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the entry; unset fields are left out rather than written as null."""
        out: Dict[str, Any] = {"match": self.match.to_dict()}
        for key in ("dhcp4", "dhcp6", "addresses", "gateway4", "gateway6"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        if self.nameservers is not None:
            out["nameservers"] = self.nameservers.to_dict()
        if self.routes is not None:
            out["routes"] = [r.to_dict() for r in self.routes]
        if self.wakeonlan is not None:
            out["wakeonlan"] = self.wakeonlan
        if self.set_name is not None:
            out["set-name"] = self.set_name
        return out


def ethernet_for_nic(nic: ResolvedNic) -> Ethernet:
    if not nic.macaddress:
        raise ManagerError(f"NIC on '{nic.parent}' has no MAC address assigned")
    ether = Ethernet(match=MatchBlock(macaddress=nic.macaddress))
    address = nic.address
    if isinstance(address, IPv6SLAAC):
        ether.dhcp6 = True
    elif isinstance(address, IPv4Static):
        ether.addresses = [address.addr]
        ether.gateway4 = address.gateway
        if address.nameservers:
            ether.nameservers = Nameservers(addresses=list(address.nameservers))
    else:
        raise ManagerError(f"Unsupported address kind: {address!r}")
    return ether


def build_network_config(nics: Optional[Sequence[ResolvedNic]]) -> bytes:
    """Return the network-config document, or ``b""`` when there are no NICs."""
    if not nics:
        return b""
    ethernets = {f"id{index}": ethernet_for_nic(nic).to_dict() for index, nic in enumerate(nics)}
    document = {"network": {"version": NETWORK_CONFIG_VERSION, "ethernets": ethernets}}
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False).encode("utf-8")
