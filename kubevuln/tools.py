"""Helpers for labels, image references and test fixtures."""

from __future__ import annotations

import json
import re
import shutil
from importlib import metadata
from pathlib import Path

from kubevuln.models import (
    ARTIFACT_TYPE_METADATA_KEY,
    IMAGE_ARTIFACT_TYPE,
    IMAGE_ID_METADATA_KEY,
    IMAGE_NAME_METADATA_KEY,
    IMAGE_TAG_METADATA_KEY,
    CVEManifest,
    SyftDocument,
)
from kubevuln.reference import ReferenceError, parse_normalized_named, parse_reference

_OFFENDING_CHARS = re.compile(r"[@:/ ._]")
_DNS1123_LABEL = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?")
_LABEL_MAX = 63


def package_version(name: str) -> str:
    """Return the installed version of a distribution, or "unknown"."""
    try:
        return metadata.version(name)
    except (metadata.PackageNotFoundError, ValueError):
        return "unknown"


def sanitize_label(s: str) -> str:
    """Turn a string into a valid DNS-1123 label."""
    sanitized = _OFFENDING_CHARS.sub("-", s)[:_LABEL_MAX]
    return sanitized.removesuffix("-")


def is_dns1123_label(value: str) -> bool:
    return len(value) <= _LABEL_MAX and _DNS1123_LABEL.fullmatch(value) is not None


def labels_from_image_id(image_id: str) -> dict:
    """Build sanitized labels describing an image reference."""
    labels = {ARTIFACT_TYPE_METADATA_KEY: IMAGE_ARTIFACT_TYPE}
    try:
        ref = parse_reference(image_id)
    except ReferenceError:
        return labels
    labels[IMAGE_ID_METADATA_KEY] = sanitize_label(str(ref))
    labels[IMAGE_NAME_METADATA_KEY] = sanitize_label(ref.name())
    if ref.tag:
        labels[IMAGE_TAG_METADATA_KEY] = sanitize_label(ref.tag)
    return {key: value for key, value in labels.items() if is_dns1123_label(value)}


def file_content(path) -> bytes:
    """Return a file's bytes, or empty bytes if it cannot be read."""
    try:
        return Path(path).read_bytes()
    except OSError:
        return b""


def file_to_sbom(path) -> SyftDocument:
    """Load an SBOM from a JSON file; unreadable content gives an empty document."""
    try:
        data = json.loads(file_content(path))
    except ValueError:
        data = None
    return SyftDocument.from_dict(data) if isinstance(data, dict) else SyftDocument()


def file_to_cve_manifest(path) -> CVEManifest:
    """Load a CVE manifest from a JSON file."""
    return CVEManifest.from_dict(json.loads(Path(path).read_bytes()))


def delete_contents(directory) -> None:
    """Remove everything inside a directory, keeping the directory itself."""
    for entry in Path(directory).iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def normalize_reference(ref: str) -> str:
    """Return the fully qualified form of an image reference, or the input if invalid."""
    try:
        return str(parse_normalized_named(ref).with_default_tag())
    except ReferenceError:
        return ref


def remove_container_from_slug(slug: str, container: str) -> str:
    """Strip the container name and everything after it from a slug."""
    index = slug.rfind(container)
    if index == -1:
        return slug
    if index == 0:
        raise ValueError(f"container {container!r} starts slug {slug!r}")
    return slug[: index - 1]