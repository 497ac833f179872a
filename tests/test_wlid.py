import pytest

from kubevuln.wlid import (
    GroupVersionResource,
    get_kind_from_wlid,
    get_name_from_wlid,
    get_namespace_from_wlid,
    group_version_resource,
)


@pytest.mark.parametrize(
    "wlid, kind, name, namespace",
    [
        ("wlid://cluster-aaa/namespace-bbb/deployment-ccc", "deployment", "ccc", "bbb"),
        ("wlid://cluster-aaa/namespace-456/cronjob-123", "cronjob", "123", "456"),
        ("wlid://cluster-aaa/namespace-anyNamespaceJob/job-anyJob", "job", "anyJob", "anyNamespaceJob"),
        ("wlid://cluster-aaa/namespace-kube-system/pod-etcd-control-plane", "pod", "etcd-control-plane", "kube-system"),
    ],
)
def test_wlid_parts(wlid, kind, name, namespace):
    assert get_kind_from_wlid(wlid) == kind
    assert get_name_from_wlid(wlid) == name
    assert get_namespace_from_wlid(wlid) == namespace


def test_empty_wlid():
    assert get_kind_from_wlid("") == ""
    assert get_name_from_wlid("") == ""
    assert get_namespace_from_wlid("") == ""


def test_short_wlid_has_no_name():
    assert get_name_from_wlid("wlid://cluster-aaa/namespace-bbb") == ""
    assert get_namespace_from_wlid("wlid://cluster-aaa/namespace-bbb") == "bbb"


@pytest.mark.parametrize(
    "kind, group, version",
    [("deployment", "apps", "v1"), ("cronjob", "batch", "v1"), ("job", "batch", "v1")],
)
def test_group_version_resource(kind, group, version):
    gvr = group_version_resource(kind)
    assert (gvr.group, gvr.version) == (group, version)


def test_group_version_resource_ignores_case():
    assert group_version_resource("Deployment") == group_version_resource("deployment")
    assert group_version_resource("job") == GroupVersionResource("batch", "v1", "jobs")


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        group_version_resource("nothing")