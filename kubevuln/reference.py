"""Parsing of container image references."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

NAME_TOTAL_LENGTH_MAX = 255

_ALNUM = r"[a-z0-9]+"
_PATH_COMPONENT = rf"{_ALNUM}(?:(?:[._]|__|-+){_ALNUM})*"
_PATH = rf"{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*"
_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_DOMAIN = rf"{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*(?::[0-9]+)?"
_TAG = r"\w[\w.-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"

_REFERENCE_RE = re.compile(
    rf"(?:({_DOMAIN})/)?({_PATH})(?::({_TAG}))?(?:@({_DIGEST}))?", re.ASCII
)
_IDENTIFIER_RE = re.compile(r"[a-f0-9]{64}")
_DIGEST_LENGTHS = {"sha256": 64, "sha384": 96, "sha512": 128}


class ReferenceError(ValueError):
    """An image reference could not be parsed."""


@dataclass(frozen=True)
class Reference:
    """A parsed image reference: repository name, optional tag and digest."""

    path: str
    domain: str = ""
    tag: str = ""
    digest: str = ""

    def name(self) -> str:
        return f"{self.domain}/{self.path}" if self.domain else self.path

    def with_default_tag(self) -> "Reference":
        """Add the "latest" tag when the reference has neither tag nor digest."""
        return self if self.tag or self.digest else replace(self, tag="latest")

    def __str__(self) -> str:
        tag = f":{self.tag}" if self.tag else ""
        digest = f"@{self.digest}" if self.digest else ""
        return f"{self.name()}{tag}{digest}"


def parse_reference(text: str) -> Reference:
    """Parse an image reference as written, without normalisation."""
    match = _REFERENCE_RE.fullmatch(text)
    if match is None:
        if _REFERENCE_RE.fullmatch(text.lower()):
            raise ReferenceError("repository name must be lowercase")
        raise ReferenceError("invalid reference format")
    domain, path, tag, digest = (group or "" for group in match.groups())
    if len(f"{domain}/{path}" if domain else path) > NAME_TOTAL_LENGTH_MAX:
        raise ReferenceError(
            f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters"
        )
    if digest:
        algorithm, _, encoded = digest.partition(":")
        if algorithm not in _DIGEST_LENGTHS:
            raise ReferenceError("unsupported digest algorithm")
        if len(encoded) != _DIGEST_LENGTHS[algorithm] or encoded != encoded.lower():
            raise ReferenceError("invalid checksum digest")
    return Reference(path=path, domain=domain, tag=tag, digest=digest)


def parse_normalized_named(text: str) -> Reference:
    """Parse a reference the way the docker command line does, filling in defaults."""
    if _IDENTIFIER_RE.fullmatch(text):
        raise ReferenceError(
            f"invalid repository name ({text}), cannot specify 64-byte hexadecimal strings"
        )
    head, sep, rest = text.partition("/")
    if sep and (any(c in head for c in ".:") or head == "localhost"):
        domain, remainder = head, rest
    else:
        domain, remainder = "docker.io", text
    if domain == "index.docker.io":
        domain = "docker.io"
    if domain == "docker.io" and "/" not in remainder:
        remainder = f"library/{remainder}"
    remote_name = remainder.split(":", 1)[0]
    if remote_name.lower() != remote_name:
        raise ReferenceError("invalid reference format: repository name must be lowercase")
    return parse_reference(f"{domain}/{remainder}")