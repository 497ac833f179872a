"""A vulnerability store backed by the cluster storage API."""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Optional

from kubevuln.models import (
    API_GROUP_METADATA_KEY,
    API_VERSION_METADATA_KEY,
    CONTAINER_NAME_METADATA_KEY,
    CONTEXT_METADATA_FILTERED,
    CONTEXT_METADATA_KEY,
    CONTEXT_METADATA_NON_FILTERED,
    KIND_METADATA_KEY,
    NAME_METADATA_KEY,
    NAMESPACE_METADATA_KEY,
    SBOM,
    STATUS_METADATA_KEY,
    TIMESTAMP_METADATA_KEY,
    TOOL_VERSION_METADATA_KEY,
    WLID_METADATA_KEY,
    CVEManifest,
    GrypeDocument,
    ScanContext,
    Severity,
    SyftDocument,
)
from kubevuln.resources import (
    ApplicationProfile,
    ObjectMeta,
    SBOMSyft,
    SBOMSyftSpec,
    SeveritySummary,
    VulnerabilitiesComponents,
    VulnerabilitiesObjScope,
    VulnerabilityCounters,
    VulnerabilityManifest,
    VulnerabilityManifestSpec,
    VulnerabilityManifestSummary,
    VulnerabilityManifestSummarySpec,
    VulnerabilityManifestToolMeta,
)
from kubevuln.storage import (
    AlreadyExistsError,
    InMemoryStorageClient,
    NotFoundError,
    ResourceCollection,
    StorageError,
    retry_on_conflict,
)
from kubevuln.vex import OpenVulnerabilityExchangeContainer, _format_rfc3339, build_vex, extend_vex
from kubevuln.wlid import (
    get_kind_from_wlid,
    get_name_from_wlid,
    get_namespace_from_wlid,
    group_version_resource,
)

logger = logging.getLogger(__name__)

VULNERABILITY_MANIFEST_KIND_PLURAL = "vulnerabilitymanifests"

_NUM = r"0|[1-9][0-9]*"
_IDENT = r"[0-9A-Za-z-]+"
_SEMVER = re.compile(
    rf"v({_NUM})(?:\.({_NUM})(?:\.({_NUM})"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+({_IDENT}(?:\.{_IDENT})*))?)?)?",
    re.ASCII,
)


def _parse_semver(version: str) -> Optional[tuple]:
    match = _SEMVER.fullmatch(version or "")
    if match is None:
        return None
    major, minor, patch, prerelease, _build = match.groups()
    identifiers = prerelease.split(".") if prerelease else []
    if any(ident.isdigit() and len(ident) > 1 and ident[0] == "0" for ident in identifiers):
        return None
    return int(major), int(minor or 0), int(patch or 0), identifiers


def _compare_identifier(x: str, y: str) -> int:
    x_num, y_num = x.isdigit(), y.isdigit()
    if x_num != y_num:
        return -1 if x_num else 1
    if x_num:
        return (int(x) > int(y)) - (int(x) < int(y))
    return (x > y) - (x < y)


def _compare_prerelease(x: list, y: list) -> int:
    if x == y:
        return 0
    if not x:
        return 1
    if not y:
        return -1
    for dx, dy in zip(x, y):
        if dx != dy:
            return _compare_identifier(dx, dy)
    return -1 if len(x) < len(y) else 1


def compare_semver(v: str, w: str) -> int:
    """Compare two "v"-prefixed semantic versions; invalid ones sort lowest."""
    pv, pw = _parse_semver(v), _parse_semver(w)
    if pv is None and pw is None:
        return 0
    if pv is None:
        return -1
    if pw is None:
        return 1
    if pv[:3] != pw[:3]:
        return -1 if pv[:3] < pw[:3] else 1
    return _compare_prerelease(pv[3], pw[3])


def merge_maps(existing: dict, new: dict) -> None:
    """Merge new into existing, overwriting keys already there."""
    existing.update(new)


def _matches(manifest: CVEManifest) -> list:
    return manifest.content.matches if manifest.content is not None else []


def _severity_name(severity) -> str:
    return severity.value if isinstance(severity, Severity) else str(severity)


def parse_vulnerabilities_components(
    cve: CVEManifest, cvep: CVEManifest, namespace: str, with_relevancy: bool
) -> VulnerabilitiesComponents:
    """Point a summary at the image manifest and, with relevancy, the workload manifest."""
    components = VulnerabilitiesComponents(
        image_vulnerabilities_obj=VulnerabilitiesObjScope(
            namespace=namespace, name=cve.name, kind=VULNERABILITY_MANIFEST_KIND_PLURAL
        )
    )
    if with_relevancy:
        components.workload_vulnerabilities_obj = VulnerabilitiesObjScope(
            namespace=namespace, name=cvep.name, kind=VULNERABILITY_MANIFEST_KIND_PLURAL
        )
    return components


def parse_severities(cve: CVEManifest, cvep: CVEManifest, with_relevancy: bool) -> SeveritySummary:
    """Count matches per severity, overall and among relevant ones."""
    all_counts = Counter(_severity_name(m.vulnerability.severity) for m in _matches(cve))
    relevant_counts = (
        Counter(_severity_name(m.vulnerability.severity) for m in _matches(cvep))
        if with_relevancy
        else Counter()
    )

    def counters(severity: Severity) -> VulnerabilityCounters:
        return VulnerabilityCounters(
            all=all_counts[severity.value], relevant=relevant_counts[severity.value]
        )

    return SeveritySummary(
        critical=counters(Severity.CRITICAL),
        high=counters(Severity.HIGH),
        medium=counters(Severity.MEDIUM),
        low=counters(Severity.LOW),
        negligible=counters(Severity.NEGLIGIBLE),
        unknown=counters(Severity.UNKNOWN),
    )


def enrich_summary_annotations(ctx: ScanContext, annotations: Optional[dict]) -> dict:
    """Return annotations extended with the workload id, container and scan time."""
    enriched = dict(annotations or {})
    workload = ctx.require_workload()
    timestamp = ctx.require_timestamp()
    enriched[TIMESTAMP_METADATA_KEY] = str(timestamp)
    enriched[WLID_METADATA_KEY] = workload.wlid
    enriched[CONTAINER_NAME_METADATA_KEY] = workload.container_name
    return enriched


def enrich_summary_labels(ctx: ScanContext, labels: Optional[dict], with_relevancy: bool) -> dict:
    """Return labels extended with the context and the workload's identity."""
    enriched = dict(labels or {})
    enriched[CONTEXT_METADATA_KEY] = (
        CONTEXT_METADATA_FILTERED if with_relevancy else CONTEXT_METADATA_NON_FILTERED
    )
    workload = ctx.require_workload()
    kind = get_kind_from_wlid(workload.wlid)
    gvr = group_version_resource(kind)
    enriched[API_GROUP_METADATA_KEY] = gvr.group
    enriched[API_VERSION_METADATA_KEY] = gvr.version
    enriched[KIND_METADATA_KEY] = kind.lower()
    enriched[NAME_METADATA_KEY] = get_name_from_wlid(workload.wlid)
    enriched[NAMESPACE_METADATA_KEY] = get_namespace_from_wlid(workload.wlid)
    enriched[CONTAINER_NAME_METADATA_KEY] = workload.container_name
    return enriched


def cve_summary_resource_name(ctx: ScanContext) -> str:
    """Return the summary's resource name: <kind>-<name>-<container>, lower case."""
    workload = ctx.require_workload()
    kind = get_kind_from_wlid(workload.wlid).lower()
    name = get_name_from_wlid(workload.wlid).lower()
    return f"{kind}-{name}-{workload.container_name.lower()}"


def cve_summary_resource_namespace(ctx: ScanContext) -> str:
    """Return the namespace of the scanned workload."""
    return get_namespace_from_wlid(ctx.require_workload().wlid)


def _create_or_update(collection: ResourceCollection, obj, what: str, with_relevancy: bool) -> None:
    name = obj.metadata.name
    try:
        collection.create(obj)
    except AlreadyExistsError:

        def update():
            current = collection.get(name)
            merge_maps(current.metadata.annotations, obj.metadata.annotations)
            merge_maps(current.metadata.labels, obj.metadata.labels)
            current.spec = obj.spec
            return collection.update(current)

        try:
            retry_on_conflict(update)
        except StorageError as err:
            logger.warning(
                "failed to update %s in storage: %s (name=%s, relevant=%s)",
                what, err, name, with_relevancy,
            )
        else:
            logger.debug("updated %s in storage (name=%s, relevant=%s)", what, name, with_relevancy)
    except StorageError as err:
        logger.warning(
            "failed to store %s in storage: %s (name=%s, relevant=%s)",
            what, err, name, with_relevancy,
        )
    else:
        logger.debug("stored %s in storage (name=%s, relevant=%s)", what, name, with_relevancy)


class APIServerStore:
    """Keeps CVE manifests, summaries, VEX documents and SBOMs in cluster storage."""

    def __init__(self, namespace: str, storage_client=None) -> None:
        self.namespace = namespace
        self.storage_client = storage_client if storage_client is not None else InMemoryStorageClient()

    def get_application_profile(self, ctx, namespace: str, name: str) -> ApplicationProfile:
        """Return the named profile, or an empty one when it is absent."""
        if not name:
            logger.debug("empty name provided, skipping application profile retrieval")
            return ApplicationProfile()
        try:
            return self.storage_client.application_profiles(namespace).get(name)
        except NotFoundError:
            logger.debug("application profile not found in storage (name=%s)", name)
            return ApplicationProfile()
        except StorageError as err:
            logger.warning("failed to get application profile from apiserver: %s (name=%s)", err, name)
            raise StorageError(f"failed to get application profile from apiserver: {err}") from err

    def get_cve(
        self, ctx, name: str, sbom_creator_version: str, cve_scanner_version: str, cve_db_version: str
    ) -> CVEManifest:
        """Return the named manifest if it was made by the given tool versions."""
        if not name:
            logger.debug("empty name provided, skipping CVE retrieval")
            return CVEManifest()
        try:
            manifest = self.storage_client.vulnerability_manifests(self.namespace).get(name)
        except NotFoundError:
            logger.debug("CVE manifest not found in storage (name=%s)", name)
            return CVEManifest()
        except StorageError as err:
            logger.warning("failed to get CVE manifest from apiserver: %s (name=%s)", err, name)
            return CVEManifest()
        annotations = manifest.metadata.annotations
        tool = manifest.spec.tool
        if (
            annotations.get(TOOL_VERSION_METADATA_KEY, "") != sbom_creator_version
            or tool.version != cve_scanner_version
            or tool.database_version != cve_db_version
        ):
            logger.debug("discarding CVE manifest with outdated scanner version (name=%s)", name)
            return CVEManifest()
        logger.debug("got CVE manifest from storage (name=%s)", name)
        return CVEManifest(
            name=name,
            annotations=annotations,
            labels=manifest.metadata.labels,
            sbom_creator_version=sbom_creator_version,
            cve_scanner_version=cve_scanner_version,
            cve_db_version=cve_db_version,
            content=manifest.spec.payload,
        )

    def get_cve_summary(self, ctx: ScanContext) -> Optional[VulnerabilityManifestSummary]:
        """Return the summary for the workload in the context, or None."""
        name = cve_summary_resource_name(ctx)
        if not name:
            logger.debug("empty name provided, skipping summary CVE retrieval")
            return None
        try:
            summary = self.storage_client.vulnerability_manifest_summaries(self.namespace).get(name)
        except NotFoundError:
            logger.debug("summary CVE manifest not found in storage (name=%s)", name)
            return None
        except StorageError as err:
            logger.warning("failed to get summary CVE manifest from apiserver: %s (name=%s)", err, name)
            return None
        logger.debug("got summary CVE manifest from storage (name=%s)", name)
        return summary

    def store_cve(self, ctx, cve: CVEManifest, with_relevancy: bool) -> None:
        """Create or update a vulnerability manifest; storage failures are logged."""
        if not cve.name:
            logger.debug("skipping storing CVE manifest with empty name (relevant=%s)", with_relevancy)
            return
        labels = dict(cve.labels or {})
        labels[CONTEXT_METADATA_KEY] = (
            CONTEXT_METADATA_FILTERED if with_relevancy else CONTEXT_METADATA_NON_FILTERED
        )
        manifest = VulnerabilityManifest(
            metadata=ObjectMeta(name=cve.name, annotations=dict(cve.annotations or {}), labels=labels),
            spec=VulnerabilityManifestSpec(
                with_relevancy=with_relevancy,
                tool=VulnerabilityManifestToolMeta(
                    name=cve.cve_scanner_name,
                    version=cve.cve_scanner_version,
                    database_version=cve.cve_db_version,
                ),
                payload=cve.content if cve.content is not None else GrypeDocument(),
            ),
        )
        _create_or_update(
            self.storage_client.vulnerability_manifests(self.namespace),
            manifest,
            "CVE manifest",
            with_relevancy,
        )

    def store_cve_summary(
        self, ctx: ScanContext, cve: CVEManifest, cvep: CVEManifest, with_relevancy: bool
    ) -> None:
        """Create or update the severity summary of the workload in the context."""
        if not cve.name:
            logger.debug("skipping storing CVE manifest with empty name (relevant=%s)", with_relevancy)
            return
        annotations = enrich_summary_annotations(ctx, cve.annotations)
        labels = enrich_summary_labels(ctx, cve.labels, with_relevancy)
        name = cve_summary_resource_name(ctx)
        namespace = cve_summary_resource_namespace(ctx) or self.namespace
        summary = VulnerabilityManifestSummary(
            metadata=ObjectMeta(name=name, annotations=annotations, labels=labels),
            spec=VulnerabilityManifestSummarySpec(
                severities=parse_severities(cve, cvep, with_relevancy),
                vulnerabilities=parse_vulnerabilities_components(cve, cvep, namespace, with_relevancy),
            ),
        )
        _create_or_update(
            self.storage_client.vulnerability_manifest_summaries(namespace),
            summary,
            "CVE summary manifest",
            with_relevancy,
        )

    def store_vex(self, ctx, cve: CVEManifest, cvep: CVEManifest, with_relevancy: bool) -> None:
        """Create the VEX document for a manifest, or extend the one already stored."""
        if not cve.name:
            logger.debug("skipping storing VEX with empty name")
            return
        collection = self.storage_client.vex_containers(self.namespace)
        try:
            container = collection.get(cve.name)
        except NotFoundError:
            container = OpenVulnerabilityExchangeContainer(
                metadata=ObjectMeta(
                    name=cve.name,
                    labels=dict(cve.labels or {}),
                    annotations=dict(cve.annotations or {}),
                ),
                spec=build_vex(cve, cvep),
            )
            collection.create(container)
            return
        container.spec = extend_vex(container.spec, cve, cvep)
        collection.update(container)

    def get_sbom(self, ctx, name: str, sbom_creator_version: str) -> SBOM:
        """Return the named SBOM unless it was made by an older tool version."""
        if not name:
            logger.debug("empty name provided, skipping SBOM retrieval")
            return SBOM()
        try:
            manifest = self.storage_client.sbom_syfts(self.namespace).get(name)
        except NotFoundError:
            logger.debug("SBOM manifest not found in storage (name=%s)", name)
            return SBOM()
        except StorageError as err:
            logger.warning("failed to get SBOM from apiserver: %s (name=%s)", err, name)
            return SBOM()
        if compare_semver(manifest.spec.tool_version, sbom_creator_version) == -1:
            logger.debug("discarding SBOM with outdated scanner version (name=%s)", name)
            return SBOM()
        result = SBOM(
            name=name,
            annotations=manifest.metadata.annotations,
            labels=manifest.metadata.labels,
            sbom_creator_version=sbom_creator_version,
            content=manifest.spec.syft,
        )
        if STATUS_METADATA_KEY in manifest.metadata.annotations:
            result.status = manifest.metadata.annotations[STATUS_METADATA_KEY]
        logger.debug("got SBOM from storage (name=%s)", name)
        return result

    def store_sbom(self, ctx, sbom: SBOM, is_filtered: bool) -> None:
        """Create an SBOM resource; an existing one is left untouched."""
        if not sbom.name:
            logger.debug("skipping storing SBOM with empty name")
            return
        annotations = dict(sbom.annotations or {})
        annotations[STATUS_METADATA_KEY] = sbom.status
        manifest = SBOMSyft(
            metadata=ObjectMeta(name=sbom.name, annotations=annotations, labels=dict(sbom.labels or {})),
            spec=SBOMSyftSpec(
                tool_name=sbom.sbom_creator_name,
                tool_version=sbom.sbom_creator_version,
                created_at=_format_rfc3339(None),
                syft=sbom.content if sbom.content is not None else SyftDocument(),
            ),
        )
        try:
            if is_filtered:
                self.storage_client.sbom_syft_filtereds(self.namespace).create(manifest.to_filtered())
            else:
                self.storage_client.sbom_syfts(self.namespace).create(manifest)
        except AlreadyExistsError:
            logger.debug("SBOM manifest already exists in storage (name=%s)", sbom.name)
        except StorageError as err:
            logger.warning("failed to store SBOM into apiserver: %s (name=%s)", err, sbom.name)
        else:
            logger.debug("stored SBOM in storage (name=%s)", sbom.name)