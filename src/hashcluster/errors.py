"""Exception types shared across the hashcluster package."""


class HashClusterError(Exception):
    """Base class for all hashcluster errors."""


class IncompatibilityError(HashClusterError, ValueError):
    """Raised when two hashes differ in bit length or algorithm id."""


class EmptyInputError(HashClusterError, ValueError):
    """Raised when a bulk operation receives no hashes."""


class MalformedSnapshotError(HashClusterError, ValueError):
    """Raised when a persisted composite snapshot is structurally invalid."""
