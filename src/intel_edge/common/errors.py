"""Exception hierarchy.

Validation errors fail fast at construction, repository errors abort a scan,
detection errors are caught per strategy by the scanner.
"""

from __future__ import annotations


class IntelEdgeError(Exception):
    """Base class for all intel-edge errors."""


class ValidationError(IntelEdgeError, ValueError):
    """Invalid value at construction or parse time."""


class RepositoryError(IntelEdgeError):
    """Entry or trade storage failed."""


class DetectionError(IntelEdgeError):
    """A strategy could not complete its detection pass."""


class ExecutionError(IntelEdgeError):
    """The execution pipeline refused its inputs."""
