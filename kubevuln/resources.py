"""Storage resources for vulnerability manifests, summaries, SBOMs and profiles."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

from kubevuln.models import GrypeDocument, SyftDocument


@dataclass
class ObjectMeta:
    """Identity and metadata shared by every stored resource."""

    name: str = ""
    namespace: str = ""
    annotations: dict = field(default_factory=dict)
    labels: dict = field(default_factory=dict)
    resource_version: str = ""


@dataclass
class VulnerabilityManifestToolMeta:
    """The scanner that produced a vulnerability manifest."""

    name: str = ""
    version: str = ""
    database_version: str = ""


@dataclass
class VulnerabilityManifestSpec:
    with_relevancy: bool = False
    tool: VulnerabilityManifestToolMeta = field(default_factory=VulnerabilityManifestToolMeta)
    payload: GrypeDocument = field(default_factory=GrypeDocument)


@dataclass
class VulnerabilityManifest:
    """A stored vulnerability scan result."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: VulnerabilityManifestSpec = field(default_factory=VulnerabilityManifestSpec)


@dataclass
class VulnerabilityCounters:
    all: int = 0
    relevant: int = 0


@dataclass
class SeveritySummary:
    critical: VulnerabilityCounters = field(default_factory=VulnerabilityCounters)
    high: VulnerabilityCounters = field(default_factory=VulnerabilityCounters)
    medium: VulnerabilityCounters = field(default_factory=VulnerabilityCounters)
    low: VulnerabilityCounters = field(default_factory=VulnerabilityCounters)
    negligible: VulnerabilityCounters = field(default_factory=VulnerabilityCounters)
    unknown: VulnerabilityCounters = field(default_factory=VulnerabilityCounters)


@dataclass
class VulnerabilitiesObjScope:
    """A pointer to a stored vulnerability manifest."""

    namespace: str = ""
    name: str = ""
    kind: str = ""


@dataclass
class VulnerabilitiesComponents:
    image_vulnerabilities_obj: VulnerabilitiesObjScope = field(
        default_factory=VulnerabilitiesObjScope
    )
    workload_vulnerabilities_obj: VulnerabilitiesObjScope = field(
        default_factory=VulnerabilitiesObjScope
    )


@dataclass
class VulnerabilityManifestSummarySpec:
    severities: SeveritySummary = field(default_factory=SeveritySummary)
    vulnerabilities: VulnerabilitiesComponents = field(default_factory=VulnerabilitiesComponents)


@dataclass
class VulnerabilityManifestSummary:
    """Per-container counts of vulnerabilities by severity."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: VulnerabilityManifestSummarySpec = field(
        default_factory=VulnerabilityManifestSummarySpec
    )


@dataclass
class SBOMSyftSpec:
    tool_name: str = ""
    tool_version: str = ""
    created_at: str = ""
    syft: SyftDocument = field(default_factory=SyftDocument)


@dataclass
class SBOMSyftFiltered:
    """An SBOM restricted to the components a workload actually uses."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: SBOMSyftSpec = field(default_factory=SBOMSyftSpec)
    status: dict = field(default_factory=dict)


@dataclass
class SBOMSyft:
    """A stored software bill of materials."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: SBOMSyftSpec = field(default_factory=SBOMSyftSpec)
    status: dict = field(default_factory=dict)

    def to_filtered(self) -> SBOMSyftFiltered:
        """Return the same SBOM as a filtered SBOM resource."""
        return SBOMSyftFiltered(
            metadata=copy.deepcopy(self.metadata),
            spec=copy.deepcopy(self.spec),
            status=copy.deepcopy(self.status),
        )


@dataclass
class ApplicationProfile:
    """The observed runtime behaviour of a workload."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: dict = field(default_factory=dict)