"""
Error taxonomy.

Every failure an entity module can hit is one of these. They are raised
inside the module and turned into an ``error`` notification at the
handler boundary, so none of them ever reach the user as a traceback.
"""

from __future__ import annotations


class WorkloadError(Exception):
    """Base class for all handled workload errors."""


class ValidationError(WorkloadError):
    """A required field is missing or a value is invalid."""


class PermissionDenied(WorkloadError):
    """The active role may not perform the requested action."""


class UploadError(WorkloadError):
    """Uploaded content has the wrong media type or is too large."""


class StorageReadError(WorkloadError):
    """Persisted content could not be decoded into a collection."""
