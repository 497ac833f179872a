"""Parsing of workload identifiers and Kubernetes kind lookups."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GroupVersionResource:
    group: str
    version: str
    resource: str


_RESOURCES = {
    "pod": GroupVersionResource("", "v1", "pods"),
    "replicationcontroller": GroupVersionResource("", "v1", "replicationcontrollers"),
    "deployment": GroupVersionResource("apps", "v1", "deployments"),
    "replicaset": GroupVersionResource("apps", "v1", "replicasets"),
    "statefulset": GroupVersionResource("apps", "v1", "statefulsets"),
    "daemonset": GroupVersionResource("apps", "v1", "daemonsets"),
    "job": GroupVersionResource("batch", "v1", "jobs"),
    "cronjob": GroupVersionResource("batch", "v1", "cronjobs"),
}


def _part(wlid: str, index: int) -> str:
    """Split a wlid into cluster, namespace, kind and name; return one of them."""
    if not wlid:
        return ""
    parts = wlid.removeprefix("wlid://").split("/")
    parts[0] = parts[0].removeprefix("cluster-")
    if len(parts) >= 2:
        parts[1] = parts[1].removeprefix("namespace-")
    if len(parts) >= 3 and "-" in parts[2]:
        kind, _, name = parts[2].partition("-")
        parts[2:3] = [kind, name]
    return parts[index] if len(parts) > index else ""


def get_kind_from_wlid(wlid: str) -> str:
    return _part(wlid, 2)


def get_name_from_wlid(wlid: str) -> str:
    return _part(wlid, 3)


def get_namespace_from_wlid(wlid: str) -> str:
    return _part(wlid, 1)


def group_version_resource(kind: str) -> GroupVersionResource:
    """Return the API group, version and resource of a workload kind."""
    try:
        return _RESOURCES[kind.lower()]
    except KeyError:
        raise ValueError(f"resource '{kind}' unknown") from None