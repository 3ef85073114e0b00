"""
Exceptions raised by kubeplate. Errors that make the input unusable (values, template) abort an apply run, errors that
relate to a single resource are reported per resource.
"""

from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "KubeplateError",
    "ConfigError",
    "CredentialsError",
    "DecodeError",
    "RenderError",
    "TemplateNotFound",
    "TemplateDidNotConverge",
    "DiscoveryError",
    "ResolutionMiss",
    "ReconciliationError",
]


class KubeplateError(Exception):
    """Base class for all kubeplate errors."""


class ConfigError(KubeplateError):
    """Raised when the project configuration file is invalid."""


class CredentialsError(KubeplateError):
    """Raised when no usable cluster configuration could be loaded."""


@dataclass
class DecodeError(KubeplateError):
    """
    Raised when structured input (a values file or a manifest) is malformed.
    """

    message: str
    source: str | None = None

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


@dataclass
class RenderError(KubeplateError):
    """
    Raised when a template can not be rendered, be it because of a syntax error, an undefined value or an I/O error.
    """

    template: Path | str
    message: str
    lineno: int | None = None

    def __str__(self) -> str:
        location = f"{self.template}:{self.lineno}" if self.lineno is not None else str(self.template)
        return f"could not render template '{location}': {self.message}"


class TemplateNotFound(RenderError):
    """Raised when the template file does not exist or can not be read."""


class TemplateDidNotConverge(RenderError):
    """Raised when the rendered output still contains template syntax after the maximum number of passes."""


@dataclass
class DiscoveryError(KubeplateError):
    """
    Raised when the server's discovery information for a group-version can not be retrieved or is malformed.
    """

    group_version_kind: str
    message: str

    def __str__(self) -> str:
        return f"unable to discover API resource for {self.group_version_kind}: {self.message}"


@dataclass
class ResolutionMiss(KubeplateError):
    """
    Raised when the server does not serve a resource of the requested kind. This is not a failure of discovery
    itself; callers treat it as "not applicable" for the resource.
    """

    group_version_kind: str

    def __str__(self) -> str:
        return f"the server does not serve resources of kind {self.group_version_kind}"


@dataclass
class ReconciliationError(KubeplateError):
    """
    Raised when creating or patching a resource fails.
    """

    operation: str
    kind: str
    namespace: str | None
    name: str
    message: str

    def __str__(self) -> str:
        return f"could not {self.operation} {self.kind} '{self.namespace or ''}/{self.name}': {self.message}"
