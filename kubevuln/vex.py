"""Building and hashing VEX documents from vulnerability manifests."""

from __future__ import annotations

import calendar
import copy
import enum
import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import quote

from kubevuln.models import IMAGE_ID_METADATA_KEY, CVEManifest, Match
from kubevuln.resources import ObjectMeta

IMPACT_NOT_LOADED = "Vulnerable component is not loaded into the memory"
IMPACT_LOADED = "Vulnerable component is loaded into the memory"

_ZERO_TIME_UNIX = -62135596800
_RFC3339 = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})"
)


class Status(str, enum.Enum):
    NOT_AFFECTED = "not_affected"
    AFFECTED = "affected"
    FIXED = "fixed"
    UNDER_INVESTIGATION = "under_investigation"


class Justification(str, enum.Enum):
    COMPONENT_NOT_PRESENT = "component_not_present"
    VULNERABLE_CODE_NOT_PRESENT = "vulnerable_code_not_present"
    VULNERABLE_CODE_NOT_IN_EXECUTE_PATH = "vulnerable_code_not_in_execute_path"
    INLINE_MITIGATIONS_ALREADY_EXIST = "inline_mitigations_already_exist"


@dataclass
class Component:
    id: str = ""
    hashes: dict = field(default_factory=dict)
    identifiers: dict = field(default_factory=dict)


@dataclass
class Subcomponent(Component):
    """A package inside a product."""


@dataclass
class Product(Component):
    subcomponents: list = field(default_factory=list)


@dataclass
class VexVulnerability:
    id: str = ""
    name: str = ""
    description: str = ""
    aliases: list = field(default_factory=list)


@dataclass
class Statement:
    vulnerability: VexVulnerability = field(default_factory=VexVulnerability)
    products: list = field(default_factory=list)
    status: Status = Status.UNDER_INVESTIGATION
    justification: Optional[Justification] = None
    impact_statement: str = ""
    timestamp: str = ""


@dataclass
class VexMetadata:
    context: str = "https://openvex.dev/ns/v0.2.0"
    id: str = ""
    author: str = "kubescape.io"
    author_role: str = "smart vulnerability scanner :-)"
    timestamp: str = ""
    last_updated: str = ""
    version: int = 0
    tooling: str = "kubescape-vulnerability-analyzer"


@dataclass
class VEX:
    metadata: VexMetadata = field(default_factory=VexMetadata)
    statements: list = field(default_factory=list)


@dataclass
class OpenVulnerabilityExchangeContainer:
    """A stored VEX document."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: VEX = field(default_factory=VEX)


def _parse_rfc3339(text: str) -> datetime:
    match = _RFC3339.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp: {text!r}")
    date, clock, fraction, offset = match.groups()
    offset = "+00:00" if offset.upper() == "Z" else offset
    parsed = datetime.fromisoformat(f"{date}T{clock}{offset}")
    return parsed + timedelta(microseconds=int((fraction or "0")[:6].ljust(6, "0")))


def _format_rfc3339(moment: Optional[datetime]) -> str:
    moment = (moment or datetime.now()).astimezone().replace(microsecond=0)
    if moment.utcoffset() == timedelta(0):
        return moment.strftime("%Y-%m-%dT%H:%M:%SZ")
    return moment.isoformat()


def _unix(moment: datetime) -> int:
    return calendar.timegm(moment.utctimetuple())


def create_product(image_pullable: str, package_purl: str) -> Product:
    """Describe a package inside an image as a VEX product."""
    *repo_parts, image_name = image_pullable.removeprefix("docker://").split("/")
    safe = "$&+:=@"
    image_field = (
        f"pkg:oci/{quote(image_name, safe=safe)}"
        f"?repository_url={quote('/'.join(repo_parts), safe=safe)}"
    )
    return Product(id=image_field, subcomponents=[Subcomponent(id=package_purl)])


def _matches(cve: CVEManifest) -> list:
    return cve.content.matches if cve.content is not None else []


def _not_affected(match: Match, image_pullable: str, vuln_id: str, vuln_name: str) -> Statement:
    return Statement(
        vulnerability=VexVulnerability(
            id=vuln_id,
            name=vuln_name,
            description=match.vulnerability.description,
            aliases=[related.id for related in match.related_vulnerabilities],
        ),
        products=[create_product(image_pullable, match.artifact.purl)],
        status=Status.NOT_AFFECTED,
        justification=Justification.VULNERABLE_CODE_NOT_PRESENT,
        impact_statement=IMPACT_NOT_LOADED,
    )


def mark_relevant_as_affected(vex_doc: VEX, cvep: CVEManifest) -> None:
    """Mark statements for vulnerabilities found in the relevant manifest as affected."""
    for match in _matches(cvep):
        for statement in vex_doc.statements:
            if statement.vulnerability.id == match.vulnerability.id and any(
                sub.id == match.artifact.purl
                for product in statement.products
                for sub in product.subcomponents
            ):
                statement.status = Status.AFFECTED
                statement.justification = None
                statement.impact_statement = IMPACT_LOADED


def _finalize(vex_doc: VEX) -> None:
    sort_statements(vex_doc.statements, _parse_rfc3339(vex_doc.metadata.timestamp))
    vex_doc.metadata.id = calculate_canonical_hash(vex_doc)


def build_vex(cve: CVEManifest, cvep: CVEManifest, timestamp: Optional[datetime] = None) -> VEX:
    """Create a VEX document covering every match of a manifest."""
    image_pullable = cve.annotations.get(IMAGE_ID_METADATA_KEY, "")
    stamp = _format_rfc3339(timestamp)
    vex_doc = VEX(metadata=VexMetadata(timestamp=stamp, last_updated=stamp))
    vex_doc.statements = [
        _not_affected(m, image_pullable, m.vulnerability.id, m.vulnerability.data_source)
        for m in _matches(cve)
    ]
    mark_relevant_as_affected(vex_doc, cvep)
    _finalize(vex_doc)
    return vex_doc


def _covers(statement: Statement, match: Match) -> bool:
    products = statement.products
    return (
        bool(products and products[0].subcomponents)
        and statement.vulnerability.id == match.vulnerability.id
        and products[0].subcomponents[0].id == match.artifact.purl
    )


def extend_vex(
    vex_doc: VEX, cve: CVEManifest, cvep: CVEManifest, timestamp: Optional[datetime] = None
) -> VEX:
    """Return a new revision of a VEX document with new matches added and relevance updated."""
    updated = copy.deepcopy(vex_doc)
    image_pullable = cve.annotations.get(IMAGE_ID_METADATA_KEY, "")
    for match in _matches(cve):
        if not any(_covers(statement, match) for statement in updated.statements):
            updated.statements.append(
                _not_affected(
                    match, image_pullable, match.vulnerability.data_source, match.vulnerability.id
                )
            )
    mark_relevant_as_affected(updated, cvep)
    updated.metadata.last_updated = _format_rfc3339(timestamp)
    updated.metadata.version += 1
    _finalize(updated)
    return updated


def sort_statements(statements: list, document_timestamp: datetime) -> None:
    """Sort statements in place by vulnerability name, then by time."""

    def key(statement: Statement):
        try:
            moment = _parse_rfc3339(statement.timestamp)
        except ValueError:
            moment = document_timestamp
        return statement.vulnerability.name, moment

    statements.sort(key=key)


def _component_string(component: Component) -> str:
    pairs = [*component.hashes.items(), *component.identifiers.items()]
    return f":{component.id}" + "".join(f":{kind}@{value}" for kind, value in pairs)


def _statement_unix(statement: Statement, document_unix: int) -> int:
    if not statement.timestamp:
        return document_unix
    try:
        return _unix(_parse_rfc3339(statement.timestamp))
    except ValueError:
        return _ZERO_TIME_UNIX


def calculate_canonical_hash(vex_doc: VEX) -> str:
    """Return the SHA-256 of the document's canonical string, as hex."""
    meta = vex_doc.metadata
    document_time = _parse_rfc3339(meta.timestamp)
    document_unix = _unix(document_time)
    parts = [f"{document_unix}:{meta.version}:{meta.author}"]
    statements = list(vex_doc.statements)
    sort_statements(statements, document_time)
    for statement in statements:
        vuln = statement.vulnerability
        justification = Justification(statement.justification).value if statement.justification else ""
        products = sorted(
            _component_string(product) + "".join(map(_component_string, product.subcomponents))
            for product in statement.products
        )
        parts += [
            f":{vuln.id}:{vuln.name}" + ":".join(sorted(vuln.aliases)),
            f":{Status(statement.status).value}:{justification}",
            f":{_statement_unix(statement, document_unix)}",
            ":" + ":".join(products),
        ]
    return hashlib.sha256("".join(parts).encode("utf-8")).hexdigest()