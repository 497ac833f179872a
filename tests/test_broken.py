import pytest

from kubevuln.broken import BrokenStore
from kubevuln.models import SBOM, CVEManifest, ExpectedError, ScanContext
from kubevuln.resources import VulnerabilityManifestSummary

CTX = ScanContext()


def test_get_cve():
    with pytest.raises(ExpectedError):
        BrokenStore().get_cve(CTX, "", "", "", "")


def test_get_sbom():
    with pytest.raises(ExpectedError):
        BrokenStore().get_sbom(CTX, "", "")


def test_store_cve():
    with pytest.raises(ExpectedError):
        BrokenStore().store_cve(CTX, CVEManifest(), False)


def test_store_sbom():
    with pytest.raises(ExpectedError):
        BrokenStore().store_sbom(CTX, SBOM(), False)


def test_get_application_profile():
    with pytest.raises(ExpectedError):
        BrokenStore().get_application_profile(CTX, "ns", "name")


def test_store_cve_summary():
    with pytest.raises(ExpectedError):
        BrokenStore().store_cve_summary(CTX, CVEManifest(), CVEManifest(), True)


def test_store_vex():
    with pytest.raises(ExpectedError):
        BrokenStore().store_vex(CTX, CVEManifest(), CVEManifest(), False)


def test_get_cve_summary_returns_empty_summary():
    assert BrokenStore().get_cve_summary(CTX) == VulnerabilityManifestSummary()


def test_error_message():
    with pytest.raises(ExpectedError, match="expected error"):
        BrokenStore().get_cve(CTX, "name", "v1", "v1", "v1")