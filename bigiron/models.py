"""Resource models for bigiron-virt and their YAML representation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from bigiron.constants import NIC_KINDS
from bigiron.exceptions import ParseError
from bigiron.utils import parse_size_to_bytes


def _require(data: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in data or data[key] is None:
        raise ParseError(f"{where}: missing required field '{key}'")
    value = data[key]
    if kind is int and isinstance(value, bool):
        raise ParseError(f"{where}.{key} must be an integer")
    if not isinstance(value, kind):
        expected = " or ".join(k.__name__ for k in kind) if isinstance(kind, tuple) else kind.__name__
        raise ParseError(f"{where}.{key} must be of type {expected} (got {type(value).__name__})")
    return value


def _optional(data: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if data.get(key) is None:
        return None
    return _require(data, key, kind, where)


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ParseError(f"{where} must be a mapping")
    return value


@dataclass
class IPv6SLAAC:
    kind = "IPv6SLAAC"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind}


@dataclass
class IPv4Static:
    addr: str
    gateway: str
    nameservers: List[str] = field(default_factory=list)

    kind = "IPv4Static"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind, "addr": self.addr, "gateway": self.gateway}
        if self.nameservers:
            out["nameservers"] = list(self.nameservers)
        return out


AddressKind = Union[IPv6SLAAC, IPv4Static]


def address_from_dict(data: Any, where: str) -> AddressKind:
    data = _mapping(data, where)
    kind = _require(data, "kind", str, where)
    if kind == IPv6SLAAC.kind:
        return IPv6SLAAC()
    if kind == IPv4Static.kind:
        nameservers = data.get("nameservers") or []
        if not isinstance(nameservers, list) or not all(isinstance(ns, str) for ns in nameservers):
            raise ParseError(f"{where}.nameservers must be a list of strings")
        return IPv4Static(
            addr=_require(data, "addr", str, where),
            gateway=_require(data, "gateway", str, where),
            nameservers=list(nameservers),
        )
    raise ParseError(f"{where}: unknown address kind '{kind}'")


@dataclass
class Nic:
    kind: str  # "Bridge" or "Macvtap"
    parent: str
    address: AddressKind

    @classmethod
    def from_dict(cls, data: Any, where: str = "nic") -> "Nic":
        data = _mapping(data, where)
        kind = _require(data, "kind", str, where)
        if kind not in NIC_KINDS:
            raise ParseError(f"{where}: unknown nic kind '{kind}' (expected one of {', '.join(sorted(NIC_KINDS))})")
        return cls(
            kind=kind,
            parent=_require(data, "parent", str, where),
            address=address_from_dict(_require(data, "address", Mapping, where), f"{where}.address"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "parent": self.parent, "address": self.address.to_dict()}


@dataclass(frozen=True)
class ResolvedNic:
    """A declared NIC together with the MAC address assigned at provisioning."""

    nic: Nic
    macaddress: str

    @property
    def kind(self) -> str:
        return self.nic.kind

    @property
    def parent(self) -> str:
        return self.nic.parent

    @property
    def address(self) -> AddressKind:
        return self.nic.address


@dataclass
class FileStorage:
    path: Path

    kind = "File"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": str(self.path)}


@dataclass
class BlockStorage:
    path: Path

    kind = "Block"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": str(self.path)}


Storage = Union[FileStorage, BlockStorage]


def storage_from_dict(data: Any, where: str) -> Storage:
    data = _mapping(data, where)
    kind = _require(data, "kind", str, where)
    path = Path(_require(data, "path", str, where))
    if kind == FileStorage.kind:
        return FileStorage(path)
    if kind == BlockStorage.kind:
        return BlockStorage(path)
    raise ParseError(f"{where}: unknown storage kind '{kind}'")


@dataclass
class ImageSource:
    url: str
    hash: str
    resize: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"url": self.url, "hash": self.hash}
        if self.resize is not None:
            out["resize"] = self.resize
        return out


@dataclass
class Spec:
    cpu: int
    memory: str
    image: ImageSource
    storage: List[Storage] = field(default_factory=list)
    nics: List[Nic] = field(default_factory=list)
    userdata: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, where: str = "spec") -> "Spec":
        data = _mapping(data, where)
        cpu = _require(data, "cpu", int, where)
        if cpu < 1:
            raise ParseError(f"{where}.cpu must be >= 1 (got {cpu})")
        memory = _require(data, "memory", (str, int), where)
        memory = str(memory)
        parse_size_to_bytes(memory)

        image_data = _mapping(_require(data, "image", Mapping, where), f"{where}.image")
        resize = _optional(image_data, "resize", (str, int), f"{where}.image")
        if resize is not None:
            resize = str(resize)
            parse_size_to_bytes(resize)
        image = ImageSource(
            url=_require(image_data, "url", str, f"{where}.image"),
            hash=_require(image_data, "hash", str, f"{where}.image"),
            resize=resize,
        )

        storage_raw = _optional(data, "storage", list, where) or []
        nics_raw = _optional(data, "nics", list, where) or []
        return cls(
            cpu=cpu,
            memory=memory,
            image=image,
            storage=[storage_from_dict(s, f"{where}.storage[{i}]") for i, s in enumerate(storage_raw)],
            nics=[Nic.from_dict(n, f"{where}.nics[{i}]") for i, n in enumerate(nics_raw)],
            userdata=_optional(data, "userdata", str, where),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"cpu": self.cpu, "memory": self.memory, "image": self.image.to_dict()}
        if self.storage:
            out["storage"] = [s.to_dict() for s in self.storage]
        if self.nics:
            out["nics"] = [n.to_dict() for n in self.nics]
        if self.userdata is not None:
            out["userdata"] = self.userdata
        return out


@dataclass
class Metadata:
    name: str


@dataclass
class Machine:
    metadata: Metadata
    spec: Spec
    status: Optional[str] = None

    kind = "Machine"

    @classmethod
    def from_dict(cls, data: Any) -> "Machine":
        data = _mapping(data, "Machine")
        meta = _mapping(_require(data, "metadata", Mapping, "Machine"), "metadata")
        name = _require(meta, "name", str, "metadata")
        if not name or "/" in name or name in (".", ".."):
            raise ParseError(f"metadata.name '{name}' is not a valid machine name")
        return cls(
            metadata=Metadata(name=name),
            spec=Spec.from_dict(_require(data, "spec", Mapping, "Machine")),
            status=_optional(data, "status", str, "Machine"),
        )

    @property
    def name(self) -> str:
        return self.metadata.name

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind, "metadata": {"name": self.metadata.name}}
        if self.status is not None:
            out["status"] = self.status
        out["spec"] = self.spec.to_dict()
        return out

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)


RESOURCE_KINDS = {Machine.kind: Machine}


def resources_from_yaml(text: str) -> List[Machine]:
    """Parse a stream of ``---`` separated resource documents, in order."""
    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML resource document: {exc}") from exc

    resources = []
    for index, doc in enumerate(documents):
        if doc is None:
            continue
        if not isinstance(doc, Mapping):
            raise ParseError(f"Resource document #{index + 1} must be a mapping")
        kind = doc.get("kind")
        if not isinstance(kind, str):
            raise ParseError(f"Resource document #{index + 1}: 'kind' must be a string (got {kind!r})")
        model = RESOURCE_KINDS.get(kind)
        if model is None:
            raise ParseError(f"Resource document #{index + 1}: unknown kind '{kind}'")
        resources.append(model.from_dict(doc))
    return resources
