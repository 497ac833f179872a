# kubevuln

Storage repositories for the results of container vulnerability scanning:
CVE manifests, SBOMs, per-workload vulnerability summaries and VEX
documents. The package has no dependencies beyond the standard library.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## What is inside

- `kubevuln.models`: the domain data: `ScanCommand`, `ScanContext`
  (with `require_workload()` and `require_timestamp()`), `CVEManifest`,
  `SBOM`, `GrypeDocument`, `SyftDocument` and the `Severity` enum, the
  metadata key constants, and the errors the stores raise
  (`KubevulnError` and its subclasses `CastingWorkloadError`,
  `MissingTimestampError`, `ExpectedError`, `MockError`).
  `GrypeDocument.from_dict`, `SyftDocument.from_dict` and
  `CVEManifest.from_dict` build these objects from decoded JSON.
- `kubevuln.apiserver`: `APIServerStore`, which keeps manifests,
  summaries, SBOMs and VEX documents in a storage client. It discards CVE
  manifests whose tool versions differ from the ones asked for and SBOMs
  made by an older creator version (`compare_semver`), and updates
  existing manifests and summaries with retries on conflict. Storage
  failures while storing manifests, summaries and SBOMs are logged, not
  raised. The module also holds `parse_severities`,
  `parse_vulnerabilities_components`, `enrich_summary_annotations`,
  `enrich_summary_labels`, `cve_summary_resource_name`,
  `cve_summary_resource_namespace` and `merge_maps`.
- `kubevuln.memory`: `MemoryStore`, an in-memory store keyed by name and
  tool versions; `get_error` and `store_error` make every read or write
  raise `MockError`.
- `kubevuln.broken`: `BrokenStore`, whose operations raise
  `ExpectedError` (except `get_cve_summary`, which returns an empty
  summary) and which records each attempt in `attempts`.
- `kubevuln.storage`: `InMemoryStorageClient`, the `ResourceCollection`
  objects it hands out per kind and namespace, the `StorageError`
  family (`NotFoundError`, `AlreadyExistsError`, `ConflictError`) and
  `retry_on_conflict`.
- `kubevuln.resources`: the stored resource types
  (`VulnerabilityManifest`, `VulnerabilityManifestSummary`, `SBOMSyft`,
  `SBOMSyftFiltered`, `ApplicationProfile` and their parts).
- `kubevuln.vex`: `build_vex`, `extend_vex`, `mark_relevant_as_affected`,
  `sort_statements`, `calculate_canonical_hash` and the VEX data types.
- `kubevuln.wlid`: reading kind, name and namespace out of workload ids,
  and `group_version_resource` for the common workload kinds.
- `kubevuln.reference`: `parse_reference` and `parse_normalized_named`
  for container image references.
- `kubevuln.tools`: `normalize_reference`, `labels_from_image_id`,
  `sanitize_label`, `is_dns1123_label`, `remove_container_from_slug`,
  `package_version` (the installed version of a distribution, or
  `"unknown"`) and file helpers (`file_content`, `file_to_sbom`,
  `file_to_cve_manifest`, `delete_contents`).

## Example

```python
from kubevuln.apiserver import APIServerStore
from kubevuln.models import CVEManifest, GrypeDocument, ScanCommand, ScanContext

store = APIServerStore(namespace="kubescape")
ctx = ScanContext(
    workload=ScanCommand(
        wlid="wlid://cluster-aaa/namespace-default/deployment-nginx",
        container_name="nginx",
    ),
)
store.store_cve(ctx, CVEManifest(name="nginx-cve", content=GrypeDocument()), False)
manifest = store.get_cve(ctx, "nginx-cve", "", "", "")
```

Image references:

```python
from kubevuln.tools import labels_from_image_id, normalize_reference

normalize_reference("nginx")            # "docker.io/library/nginx:latest"
labels_from_image_id("registry.com:8080/myapp:tag")
```

## What this package does not do

- It does not talk to a Kubernetes cluster. `APIServerStore` works
  against any object with the methods of `InMemoryStorageClient`, and uses
  an `InMemoryStorageClient` when none is given; no client for a real API
  server is included.
- It does not scan images. It stores and summarises SBOMs and CVE
  manifests produced elsewhere; there is no SBOM generator or
  vulnerability scanner.
- It has no command-line program and no HTTP service.