import pytest

from kubevuln.models import (
    CVEManifest,
    CastingWorkloadError,
    Descriptor,
    GrypeDocument,
    KubevulnError,
    MissingTimestampError,
    SBOM,
    ScanCommand,
    ScanContext,
    Severity,
    SyftDocument,
)

GRYPE = {
    "descriptor": {"name": "grype", "version": "v0.81.0"},
    "matches": [
        {
            "vulnerability": {
                "id": "CVE-2023-0001",
                "dataSource": "https://example.com/CVE-2023-0001",
                "severity": "High",
                "description": "a flaw",
            },
            "relatedVulnerabilities": [{"id": "GHSA-xxxx"}],
            "artifact": {"name": "openssl", "version": "1.1.1", "purl": "pkg:deb/debian/openssl@1.1.1"},
        }
    ],
}


def test_grype_from_dict_reads_matches():
    doc = GrypeDocument.from_dict(GRYPE)
    assert doc.descriptor.version == "v0.81.0"
    match = doc.matches[0]
    assert match.vulnerability.id == "CVE-2023-0001"
    assert match.vulnerability.data_source == "https://example.com/CVE-2023-0001"
    assert match.vulnerability.severity == Severity.HIGH
    assert [r.id for r in match.related_vulnerabilities] == ["GHSA-xxxx"]
    assert match.artifact.purl == "pkg:deb/debian/openssl@1.1.1"


def test_grype_from_empty_dict_has_defaults():
    doc = GrypeDocument.from_dict({})
    assert doc.matches == []
    assert doc.descriptor == Descriptor()


def test_grype_null_values_fall_back_to_defaults():
    doc = GrypeDocument.from_dict({"matches": None, "descriptor": None})
    assert doc == GrypeDocument()


def test_cve_manifest_from_dict_with_field_names():
    data = {
        "Name": "nginx",
        "Annotations": {"foo": "bar"},
        "SBOMCreatorVersion": "v1",
        "CVEScannerVersion": "v2",
        "CVEDBVersion": "v3",
        "Content": GRYPE,
    }
    cve = CVEManifest.from_dict(data)
    assert cve.name == "nginx"
    assert cve.annotations == {"foo": "bar"}
    assert (cve.sbom_creator_version, cve.cve_scanner_version, cve.cve_db_version) == ("v1", "v2", "v3")
    assert len(cve.content.matches) == 1


def test_cve_manifest_without_content():
    cve = CVEManifest.from_dict({"name": "x"})
    assert cve.content is None
    assert cve.labels == {}


def test_syft_from_dict():
    doc = SyftDocument.from_dict({"artifacts": [{"name": "bash"}], "artifactRelationships": [{"a": 1}]})
    assert doc.artifacts == [{"name": "bash"}]
    assert doc.artifact_relationships == [{"a": 1}]
    assert SyftDocument.from_dict({}) == SyftDocument()


def test_sbom_defaults():
    sbom = SBOM(name="s")
    assert sbom.content is None
    assert sbom.annotations == {}


def test_require_workload_returns_workload():
    workload = ScanCommand(wlid="wlid://cluster-aaa/namespace-bbb/deployment-ccc", container_name="c")
    assert ScanContext(workload=workload).require_workload() is workload


@pytest.mark.parametrize("value", [None, "not a workload", 42])
def test_require_workload_raises(value):
    with pytest.raises(CastingWorkloadError):
        ScanContext(workload=value).require_workload()


def test_require_timestamp():
    assert ScanContext(timestamp=1734957372).require_timestamp() == 1734957372
    with pytest.raises(MissingTimestampError):
        ScanContext().require_timestamp()
    with pytest.raises(KubevulnError):
        ScanContext(timestamp="1734957372").require_timestamp()