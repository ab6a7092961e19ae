"""Custom exceptions for bigiron-virt."""


class ManagerError(RuntimeError):
    """Raised on unrecoverable configuration or runtime errors."""


class ParseError(ManagerError):
    """Malformed resource document, size string or address."""


class MacParseError(ParseError):
    """A string did not decode to exactly six octets."""


class IntegrityError(ManagerError):
    """Image data does not match its declared digest."""


class NotFoundError(ManagerError):
    pass


class ImageNotFoundError(NotFoundError):
    pass


class InstanceNotFoundError(NotFoundError):
    pass


class DomainNotFoundError(NotFoundError):
    pass


class InstanceExistsError(ManagerError):
    pass


class UnsupportedSourceError(ManagerError):
    """Image source locator uses a scheme other than file://."""


class CommandError(ManagerError):
    """An external program exited non-zero or could not be executed."""


class HypervisorError(ManagerError):
    pass


class StorageError(ManagerError):
    """Filesystem create/remove failure in a store."""


class DriveLettersExhaustedError(ManagerError):
    """More storage devices than target drive letters."""
