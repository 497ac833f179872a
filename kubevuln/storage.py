"""An in-memory stand-in for the cluster storage API."""

from __future__ import annotations

import copy
import time
from typing import Callable, Iterator, TypeVar

T = TypeVar("T")

_VULNERABILITY_MANIFESTS = "vulnerabilitymanifests"
_VULNERABILITY_MANIFEST_SUMMARIES = "vulnerabilitymanifestsummaries"
_VEX_CONTAINERS = "openvulnerabilityexchangecontainers"
_SBOM_SYFTS = "sbomsyfts"
_SBOM_SYFT_FILTEREDS = "sbomsyftfiltereds"
_APPLICATION_PROFILES = "applicationprofiles"


class StorageError(Exception):
    """Base class for storage failures."""


class NotFoundError(StorageError):
    """The requested resource does not exist."""


class AlreadyExistsError(StorageError):
    """A resource with this name already exists."""


class ConflictError(StorageError):
    """The resource was modified since it was read."""


class ResourceCollection:
    """Resources of one kind in one namespace, stored as independent copies."""

    def __init__(self, kind: str, namespace: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self._items: dict = {}

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator:
        return (copy.deepcopy(item) for item in self._items.values())

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def get(self, name: str):
        """Return a copy of the named resource."""
        try:
            return copy.deepcopy(self._items[name])
        except KeyError:
            raise NotFoundError(f'{self.kind} "{name}" not found') from None

    def create(self, obj):
        """Store a new resource and return the stored copy."""
        name = obj.metadata.name
        if name in self._items:
            raise AlreadyExistsError(f'{self.kind} "{name}" already exists')
        stored = copy.deepcopy(obj)
        stored.metadata.namespace = self.namespace
        stored.metadata.resource_version = "1"
        self._items[name] = stored
        return copy.deepcopy(stored)

    def update(self, obj):
        """Replace an existing resource and return the stored copy."""
        name = obj.metadata.name
        current = self._items.get(name)
        if current is None:
            raise NotFoundError(f'{self.kind} "{name}" not found')
        wanted = obj.metadata.resource_version
        if wanted and wanted != current.metadata.resource_version:
            raise ConflictError(
                f'operation cannot be fulfilled on {self.kind} "{name}": '
                "the object has been modified"
            )
        stored = copy.deepcopy(obj)
        stored.metadata.namespace = self.namespace
        stored.metadata.resource_version = str(int(current.metadata.resource_version) + 1)
        self._items[name] = stored
        return copy.deepcopy(stored)


class InMemoryStorageClient:
    """Hands out resource collections by kind and namespace."""

    def __init__(self) -> None:
        self._collections: dict = {}

    def _collection(self, kind: str, namespace: str) -> ResourceCollection:
        key = (kind, namespace)
        if key not in self._collections:
            self._collections[key] = ResourceCollection(kind, namespace)
        return self._collections[key]

    def vulnerability_manifests(self, namespace: str) -> ResourceCollection:
        return self._collection(_VULNERABILITY_MANIFESTS, namespace)

    def vulnerability_manifest_summaries(self, namespace: str) -> ResourceCollection:
        return self._collection(_VULNERABILITY_MANIFEST_SUMMARIES, namespace)

    def vex_containers(self, namespace: str) -> ResourceCollection:
        return self._collection(_VEX_CONTAINERS, namespace)

    def sbom_syfts(self, namespace: str) -> ResourceCollection:
        return self._collection(_SBOM_SYFTS, namespace)

    def sbom_syft_filtereds(self, namespace: str) -> ResourceCollection:
        return self._collection(_SBOM_SYFT_FILTEREDS, namespace)

    def application_profiles(self, namespace: str) -> ResourceCollection:
        return self._collection(_APPLICATION_PROFILES, namespace)


def retry_on_conflict(
    operation: Callable[[], T],
    steps: int = 5,
    initial_delay: float = 0.01,
    factor: float = 1.0,
) -> T:
    """Run an operation, retrying it while it fails with a conflict."""
    if steps < 1:
        raise ValueError("steps must be at least 1")
    delay = initial_delay
    for attempt in range(steps):
        try:
            return operation()
        except ConflictError:
            if attempt == steps - 1:
                raise
            time.sleep(delay)
            delay *= factor
    raise AssertionError("unreachable")