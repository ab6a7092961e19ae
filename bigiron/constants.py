"""Global constants and path defaults for bigiron-virt."""

from __future__ import annotations

import os
import re
from pathlib import Path

DEFAULT_DATA_DIR = Path("/var/lib/bigiron-virt")
IMAGES_SUBDIR = "images"
INSTANCES_SUBDIR = "instances"
LIBVIRT_URI = os.environ.get("LIBVIRT_URI", "qemu:///system")
TRUTHY = {"1", "true", "yes", "on"}

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in TRUTHY

# Image repository
IMAGE_SUFFIX = ".qcow2"
IMAGE_COPY_CHUNK = 128 * 1024
SHA256_HEX_RE = re.compile(r"^[0-9a-f]{64}$")

# Instance store
INSTANCE_DISK_NAME = "instance.qcow2"
DEFAULT_QEMU_IMG = "qemu-img"

# Configuration drive
CIDATA_VOLUME_ID = "cidata"
CIDATA_ISO_NAME = "cidata.iso"
ISO_BINARIES = ("genisoimage", "mkisofs")

# Addresses
MAC_OUI = (0x00, 0x16, 0x3E)
MAC_ADDRESS_RE = re.compile(r"^[0-9a-fA-F]{2}(:[0-9a-fA-F]{2}){5}$")
LINK_LOCAL_PREFIX = "fe80::"

# Domain descriptor
DISK_DEV_PREFIX = "vd"
# vda is the boot disk; extra storage gets vdb..vdz
EXTRA_DRIVE_LETTERS = "bcdefghijklmnopqrstuvwxyz"
SMBIOS_VENDOR = "BigIron"
SMBIOS_PRODUCT = "OpenStack Nova"

NIC_KINDS = {"Bridge", "Macvtap"}

SIZE_STRING_RE = re.compile(r"^([0-9]+)([kKmMgGtT]?)(i?)$")
SIZE_EXPONENTS = {"": 0, "k": 1, "m": 2, "g": 3, "t": 4}
