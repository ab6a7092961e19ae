"""bigiron-virt package."""

__all__ = [
    "api",
    "cli",
    "config",
    "configdrive",
    "constants",
    "domain",
    "exceptions",
    "hostmanager",
    "hypervisor",
    "images",
    "mac",
    "models",
    "netconfig",
    "network",
    "statestore",
    "utils",
    "vmstore",
]
