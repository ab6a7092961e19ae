"""MAC address generation and IPv6 SLAAC derivation."""

from __future__ import annotations

import ipaddress
import random
from typing import Tuple

from bigiron.constants import LINK_LOCAL_PREFIX, MAC_ADDRESS_RE, MAC_OUI
from bigiron.exceptions import MacParseError


class Mac:
    """A 6-octet hardware address."""

    __slots__ = ("octets",)

    def __init__(self, octets) -> None:
        octets = tuple(octets)
        if len(octets) != 6 or not all(isinstance(o, int) and 0 <= o <= 0xFF for o in octets):
            raise MacParseError(f"MAC address needs exactly 6 octets (got {octets!r})")
        self.octets: Tuple[int, ...] = octets

    @classmethod
    def generate(cls, rng=None) -> "Mac":
        """Return a random address in the 00:16:3e range.

        ``rng`` is any object with ``randint`` (``random.Random`` or the
        ``random`` module itself).
        """
        source = rng if rng is not None else random
        octets = list(MAC_OUI)
        octets.append(source.randint(0x00, 0x7F))
        octets.append(source.randint(0x00, 0xFF))
        octets.append(source.randint(0x00, 0xFF))
        return cls(octets)

    @classmethod
    def parse(cls, text: str) -> "Mac":
        if not isinstance(text, str) or not MAC_ADDRESS_RE.match(text):
            raise MacParseError(f"Invalid MAC address '{text}'")
        return cls(bytes.fromhex(text.replace(":", "")))

    def to_ipv6_slaac_addr(self) -> str:
        """Derive the link-local address using modified EUI-64."""
        o = self.octets
        # set the universal/local bit
        flipped = o[0] | 0x02
        groups = [
            (flipped, o[1]),
            (o[2], 0xFF),
            (0xFE, o[3]),
            (o[4], o[5]),
        ]
        suffix = ":".join(f"{hi:02x}{lo:02x}" for hi, lo in groups)
        return ipaddress.IPv6Address(LINK_LOCAL_PREFIX + suffix).compressed

    def __str__(self) -> str:
        return ":".join(f"{octet:02x}" for octet in self.octets)

    def __repr__(self) -> str:
        return f"Mac('{self}')"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Mac):
            return NotImplemented
        return self.octets == other.octets

    def __hash__(self) -> int:
        return hash(self.octets)
