"""Exception taxonomy for version parsing and dependency resolution."""

from typing import Optional, Sequence

from .models import ConflictKind, ConflictReport, ResolutionResult, ResolvedGraph


class MalformedVersionError(ValueError):
    """A version or constraint string cannot be parsed for comparison."""

    def __init__(self, version: str, reason: Optional[str] = None):
        msg = f"Malformed version string '{version}'"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.version = version


class UnsatisfiableConstraintError(ValueError):
    """No candidate version is allowed by every constraint."""

    def __init__(self, constraints: Sequence[str]):
        super().__init__(
            "No version satisfies all of: " + ", ".join(repr(c) for c in constraints)
        )
        self.constraints = list(constraints)


class NotationError(ValueError):
    """A dependency, force or exclusion notation is not well formed."""


class ResolutionError(Exception):
    """Base class for errors surfaced by a resolution request."""


class ConflictError(ResolutionError):
    """Resolution halted on a conflict; the report carries the details."""

    def __init__(self, report: ConflictReport):
        super().__init__(
            f"{report.group}:{report.module}: {report.message or report.kind.value}"
        )
        self.report = report


class UnsatisfiableConstraint(ConflictError):
    """Declarations require mutually incompatible versions and nothing forces one."""


class MalformedVersionString(ConflictError):
    """A declared version could not be parsed, so the conflict cannot be decided."""


class ExpansionError(ResolutionError):
    """The expand callback failed for a coordinate."""

    def __init__(self, coordinate: str, cause: BaseException):
        super().__init__(f"Failed to expand {coordinate}: {cause}")
        self.coordinate = coordinate
        self.cause = cause


def raise_for_conflict(result: ResolutionResult) -> ResolvedGraph:
    """Return the graph, or raise the exception matching a ConflictReport."""
    if isinstance(result, ConflictReport):
        if result.kind == ConflictKind.MALFORMED_VERSION_STRING:
            raise MalformedVersionString(result)
        raise UnsatisfiableConstraint(result)
    return result
