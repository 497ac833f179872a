"""Domain objects shared by the vulnerability storage layer."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

METADATA_PREFIX = "kubescape.io"
API_GROUP_METADATA_KEY = f"{METADATA_PREFIX}/workload-api-group"
API_VERSION_METADATA_KEY = f"{METADATA_PREFIX}/workload-api-version"
ARTIFACT_TYPE_METADATA_KEY = f"{METADATA_PREFIX}/artifact-type"
CONTAINER_NAME_METADATA_KEY = f"{METADATA_PREFIX}/workload-container-name"
CONTEXT_METADATA_KEY = f"{METADATA_PREFIX}/context"
CONTEXT_METADATA_FILTERED = "filtered"
CONTEXT_METADATA_NON_FILTERED = "non-filtered"
IMAGE_ID_METADATA_KEY = f"{METADATA_PREFIX}/image-id"
IMAGE_NAME_METADATA_KEY = f"{METADATA_PREFIX}/image-name"
IMAGE_TAG_METADATA_KEY = f"{METADATA_PREFIX}/image-tag"
KIND_METADATA_KEY = f"{METADATA_PREFIX}/workload-kind"
NAME_METADATA_KEY = f"{METADATA_PREFIX}/workload-name"
NAMESPACE_METADATA_KEY = f"{METADATA_PREFIX}/workload-namespace"
STATUS_METADATA_KEY = f"{METADATA_PREFIX}/status"
TOOL_VERSION_METADATA_KEY = f"{METADATA_PREFIX}/tool-version"
WLID_METADATA_KEY = f"{METADATA_PREFIX}/wlid"
TIMESTAMP_METADATA_KEY = f"{METADATA_PREFIX}/timestamp"
IMAGE_ARTIFACT_TYPE = "image"


class KubevulnError(Exception):
    """Base class for errors raised by this package."""

    default_message = "kubevuln error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class CastingWorkloadError(KubevulnError):
    default_message = "failed to cast workload from context"


class MissingTimestampError(KubevulnError):
    default_message = "missing timestamp in context"


class ExpectedError(KubevulnError):
    default_message = "expected error"


class MockError(KubevulnError):
    default_message = "mock error"


class Severity(str, enum.Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NEGLIGIBLE = "Negligible"
    UNKNOWN = "Unknown"


@dataclass
class ScanCommand:
    """The workload a scan was requested for."""

    wlid: str = ""
    container_name: str = ""
    image_hash: str = ""
    image_tag: str = ""
    instance_id: str = ""


@dataclass(frozen=True)
class ScanContext:
    """Values carried alongside a scan request."""

    workload: Any = None
    timestamp: Any = None

    def require_workload(self) -> ScanCommand:
        if not isinstance(self.workload, ScanCommand):
            raise CastingWorkloadError()
        return self.workload

    def require_timestamp(self) -> int:
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise MissingTimestampError()
        return self.timestamp


def _get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Look a key up, falling back to a case-insensitive match."""
    value = data.get(key)
    if value is None:
        lowered = key.lower()
        value = next((v for k, v in data.items() if str(k).lower() == lowered), None)
    return default if value is None else value


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _flat(cls, data: Mapping[str, Any]):
    """Build a dataclass of string fields from camel-cased JSON keys."""
    return cls(**{f.name: _get(data, _camel(f.name), "") for f in fields(cls)})


@dataclass
class Descriptor:
    name: str = ""
    version: str = ""


@dataclass
class Artifact:
    id: str = ""
    name: str = ""
    version: str = ""
    type: str = ""
    purl: str = ""


@dataclass
class RelatedVulnerability:
    id: str = ""
    data_source: str = ""
    namespace: str = ""


@dataclass
class Vulnerability:
    id: str = ""
    data_source: str = ""
    namespace: str = ""
    severity: str = ""
    description: str = ""


@dataclass
class Match:
    vulnerability: Vulnerability = field(default_factory=Vulnerability)
    related_vulnerabilities: list = field(default_factory=list)
    artifact: Artifact = field(default_factory=Artifact)


def _match(data: Mapping[str, Any]) -> Match:
    return Match(
        vulnerability=_flat(Vulnerability, _get(data, "vulnerability", {})),
        related_vulnerabilities=[
            _flat(RelatedVulnerability, item) for item in _get(data, "relatedVulnerabilities", [])
        ],
        artifact=_flat(Artifact, _get(data, "artifact", {})),
    )


@dataclass
class GrypeDocument:
    """A vulnerability scan result."""

    descriptor: Descriptor = field(default_factory=Descriptor)
    matches: list = field(default_factory=list)
    source: dict = field(default_factory=dict)
    distro: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GrypeDocument":
        return cls(
            descriptor=_flat(Descriptor, _get(data, "descriptor", {})),
            matches=[_match(item) for item in _get(data, "matches", [])],
            source=dict(_get(data, "source", {})),
            distro=dict(_get(data, "distro", {})),
        )


@dataclass
class SyftDocument:
    """A software bill of materials."""

    artifacts: list = field(default_factory=list)
    artifact_relationships: list = field(default_factory=list)
    files: list = field(default_factory=list)
    source: dict = field(default_factory=dict)
    distro: dict = field(default_factory=dict)
    descriptor: Descriptor = field(default_factory=Descriptor)
    schema: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SyftDocument":
        return cls(
            artifacts=list(_get(data, "artifacts", [])),
            artifact_relationships=list(_get(data, "artifactRelationships", [])),
            files=list(_get(data, "files", [])),
            source=dict(_get(data, "source", {})),
            distro=dict(_get(data, "distro", {})),
            descriptor=_flat(Descriptor, _get(data, "descriptor", {})),
            schema=dict(_get(data, "schema", {})),
        )


def _str_map(value: Any) -> dict:
    return {str(k): str(v) for k, v in (value or {}).items()}


@dataclass
class CVEManifest:
    """A vulnerability manifest with the versions of the tools that made it."""

    name: str = ""
    annotations: dict = field(default_factory=dict)
    labels: dict = field(default_factory=dict)
    sbom_creator_version: str = ""
    cve_scanner_name: str = ""
    cve_scanner_version: str = ""
    cve_db_version: str = ""
    content: Optional[GrypeDocument] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CVEManifest":
        content = _get(data, "content")
        return cls(
            name=_get(data, "name", ""),
            annotations=_str_map(_get(data, "annotations")),
            labels=_str_map(_get(data, "labels")),
            sbom_creator_version=_get(data, "SBOMCreatorVersion", ""),
            cve_scanner_name=_get(data, "CVEScannerName", ""),
            cve_scanner_version=_get(data, "CVEScannerVersion", ""),
            cve_db_version=_get(data, "CVEDBVersion", ""),
            content=None if content is None else GrypeDocument.from_dict(content),
        )


@dataclass
class SBOM:
    """A bill of materials with the version of the tool that made it."""

    name: str = ""
    annotations: dict = field(default_factory=dict)
    labels: dict = field(default_factory=dict)
    sbom_creator_name: str = ""
    sbom_creator_version: str = ""
    status: str = ""
    content: Optional[SyftDocument] = None