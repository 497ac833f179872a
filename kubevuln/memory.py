"""A vulnerability store that keeps everything in dictionaries, for tests."""

from __future__ import annotations

from typing import Optional

from kubevuln.models import SBOM, CVEManifest, MockError
from kubevuln.resources import ApplicationProfile, VulnerabilityManifestSummary


def _cve_key(cve: CVEManifest) -> tuple:
    return (cve.name, cve.sbom_creator_version, cve.cve_scanner_version, cve.cve_db_version)


class MemoryStore:
    """Keeps application profiles, CVE manifests and SBOMs in memory.

    Entries are keyed by name together with the versions of the tools that
    produced them. A store built with ``get_error`` or ``store_error`` raises
    MockError from every read or write respectively.
    """

    def __init__(self, get_error: bool = False, store_error: bool = False) -> None:
        self.get_error = get_error
        self.store_error = store_error
        self._profiles: dict = {}
        self._cve_manifests: dict = {}
        self._sboms: dict = {}

    def _check_get(self) -> None:
        if self.get_error:
            raise MockError()

    def _check_store(self) -> None:
        if self.store_error:
            raise MockError()

    def get_application_profile(self, ctx, namespace: str, name: str) -> ApplicationProfile:
        """Return the stored profile, or an empty one."""
        self._check_get()
        return self._profiles.get((namespace, name), ApplicationProfile())

    def store_application_profile(self, ctx, profile: ApplicationProfile) -> None:
        """Store a profile under its namespace and name."""
        self._check_store()
        key = (profile.metadata.namespace, profile.metadata.name)
        self._profiles[key] = profile

    def get_cve(
        self, ctx, name: str, sbom_creator_version: str, cve_scanner_version: str, cve_db_version: str
    ) -> CVEManifest:
        """Return the manifest stored for these tool versions, or an empty one."""
        self._check_get()
        key = (name, sbom_creator_version, cve_scanner_version, cve_db_version)
        return self._cve_manifests.get(key, CVEManifest())

    def get_cve_summary(self, ctx) -> Optional[VulnerabilityManifestSummary]:
        """Summaries are not kept in memory; always None."""
        return None

    def store_cve(self, ctx, cve: CVEManifest, with_relevancy: bool) -> None:
        """Store a manifest under its name and tool versions."""
        self._check_store()
        self._cve_manifests[_cve_key(cve)] = cve

    def store_cve_summary(
        self, ctx, cve: CVEManifest, cvep: CVEManifest, with_relevancy: bool
    ) -> None:
        """Store the manifest and, with relevancy, the relevant manifest too."""
        self._check_store()
        if with_relevancy:
            self._cve_manifests[_cve_key(cvep)] = cvep
        self._cve_manifests[_cve_key(cve)] = cve

    def get_sbom(self, ctx, name: str, sbom_creator_version: str) -> SBOM:
        """Return the SBOM stored for this creator version, or an empty one."""
        self._check_get()
        return self._sboms.get((name, sbom_creator_version), SBOM())

    def store_sbom(self, ctx, sbom: SBOM, is_filtered: bool) -> None:
        """Store an SBOM under its name and creator version."""
        self._check_store()
        self._sboms[(sbom.name, sbom.sbom_creator_version)] = sbom

    def store_vex(self, ctx, cve: CVEManifest, cvep: CVEManifest, with_relevancy: bool) -> None:
        """VEX documents are not kept in memory; this does nothing."""
        return None