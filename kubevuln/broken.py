"""A vulnerability store whose operations always fail."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NoReturn

from kubevuln.models import SBOM, CVEManifest, ExpectedError
from kubevuln.resources import ApplicationProfile, VulnerabilityManifestSummary


@dataclass
class BrokenStore:
    """Raises ExpectedError from every operation except summary retrieval.

    Every attempted operation is recorded in ``attempts``, in call order.
    """

    attempts: list[str] = field(default_factory=list)

    def _fail(self, operation: str) -> NoReturn:
        self.attempts.append(operation)
        raise ExpectedError()

    def get_application_profile(self, ctx, namespace: str, name: str) -> ApplicationProfile:
        self._fail("get_application_profile")

    def get_sbom(self, ctx, name: str, sbom_creator_version: str) -> SBOM:
        self._fail("get_sbom")

    def get_cve_summary(self, ctx) -> VulnerabilityManifestSummary:
        """Return an empty summary."""
        self.attempts.append("get_cve_summary")
        return VulnerabilityManifestSummary()

    def store_sbom(self, ctx, sbom: SBOM, is_filtered: bool) -> None:
        self._fail("store_sbom")

    def get_cve(
        self, ctx, name: str, sbom_creator_version: str, cve_scanner_version: str, cve_db_version: str
    ) -> CVEManifest:
        self._fail("get_cve")

    def store_cve(self, ctx, cve: CVEManifest, with_relevancy: bool) -> None:
        self._fail("store_cve")

    def store_cve_summary(
        self, ctx, cve: CVEManifest, cvep: CVEManifest, with_relevancy: bool
    ) -> None:
        self._fail("store_cve_summary")

    def store_vex(self, ctx, cve: CVEManifest, cvep: CVEManifest, with_relevancy: bool) -> None:
        self._fail("store_vex")