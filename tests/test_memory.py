import pytest

from kubevuln.memory import MemoryStore
from kubevuln.models import SBOM, CVEManifest, GrypeDocument, MockError, ScanContext, SyftDocument
from kubevuln.resources import ApplicationProfile, ObjectMeta


@pytest.fixture
def ctx():
    return ScanContext()


def test_get_cve_round_trip(ctx):
    store = MemoryStore(False, False)
    assert store.get_cve(ctx, "name", "", "", "").content is None
    cve = CVEManifest(name="name", content=GrypeDocument())
    store.store_cve(ctx, cve, False)
    got = store.get_cve(ctx, "name", "", "", "")
    assert got.content == GrypeDocument()
    assert got.name == "name"


def test_get_cve_keyed_by_versions(ctx):
    store = MemoryStore()
    store.store_cve(ctx, CVEManifest(name="name", cve_db_version="v1", content=GrypeDocument()), False)
    assert store.get_cve(ctx, "name", "", "", "v2").content is None
    assert store.get_cve(ctx, "name", "", "", "v1").cve_db_version == "v1"


def test_get_sbom_round_trip(ctx):
    store = MemoryStore(False, False)
    assert store.get_sbom(ctx, "name", "").content is None
    sbom = SBOM(name="name", content=SyftDocument())
    store.store_sbom(ctx, sbom, False)
    got = store.get_sbom(ctx, "name", "")
    assert got.content == SyftDocument()
    assert store.get_sbom(ctx, "name", "v9").content is None


def test_application_profile_round_trip(ctx):
    store = MemoryStore()
    profile = ApplicationProfile(metadata=ObjectMeta(name="prof", namespace="ns"), spec={"a": 1})
    store.store_application_profile(ctx, profile)
    assert store.get_application_profile(ctx, "ns", "prof").spec == {"a": 1}
    assert store.get_application_profile(ctx, "other", "prof") == ApplicationProfile()


def test_store_cve_summary_with_relevancy_stores_both(ctx):
    store = MemoryStore()
    cve = CVEManifest(name="full", content=GrypeDocument())
    cvep = CVEManifest(name="relevant", content=GrypeDocument())
    store.store_cve_summary(ctx, cve, cvep, True)
    assert store.get_cve(ctx, "full", "", "", "").name == "full"
    assert store.get_cve(ctx, "relevant", "", "", "").name == "relevant"


def test_store_cve_summary_without_relevancy_skips_relevant(ctx):
    store = MemoryStore()
    cve = CVEManifest(name="full", content=GrypeDocument())
    cvep = CVEManifest(name="relevant", content=GrypeDocument())
    store.store_cve_summary(ctx, cve, cvep, False)
    assert store.get_cve(ctx, "full", "", "", "").name == "full"
    assert store.get_cve(ctx, "relevant", "", "", "").content is None


def test_get_cve_summary_and_store_vex_keep_nothing(ctx):
    store = MemoryStore()
    cve = CVEManifest(name="name", content=GrypeDocument())
    store.store_vex(ctx, cve, cve, True)
    assert store.get_cve(ctx, "name", "", "", "").content is None
    assert store.get_cve_summary(ctx) is None


@pytest.mark.parametrize(
    ("call", "empty"),
    [
        (lambda s, c: s.get_cve(c, "n", "", "", ""), CVEManifest()),
        (lambda s, c: s.get_sbom(c, "n", ""), SBOM()),
        (lambda s, c: s.get_application_profile(c, "ns", "n"), ApplicationProfile()),
    ],
)
def test_get_error(ctx, call, empty):
    assert call(MemoryStore(), ctx) == empty
    store = MemoryStore(get_error=True)
    with pytest.raises(MockError):
        call(store, ctx)


@pytest.mark.parametrize(
    "call",
    [
        lambda s, c: s.store_cve(c, CVEManifest(name="n"), False),
        lambda s, c: s.store_cve_summary(c, CVEManifest(name="n"), CVEManifest(), True),
        lambda s, c: s.store_sbom(c, SBOM(name="n"), False),
        lambda s, c: s.store_application_profile(c, ApplicationProfile()),
    ],
)
def test_store_error(ctx, call):
    store = MemoryStore(store_error=True)
    with pytest.raises(MockError):
        call(store, ctx)