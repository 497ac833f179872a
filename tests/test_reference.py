import pytest

from kubevuln.reference import ReferenceError, parse_normalized_named, parse_reference

DIGEST = "sha256:be178c0543eb17f5f3043021c9e5fcf30285e557a4fc309cce97ff9ca6182912"


def test_parse_full_reference():
    ref = parse_reference(f"registry.com:8080/myapp:tag2@{DIGEST}")
    assert ref.domain == "registry.com:8080"
    assert ref.path == "myapp"
    assert ref.tag == "tag2"
    assert ref.digest == DIGEST
    assert ref.name() == "registry.com:8080/myapp"


def test_parse_name_only():
    ref = parse_reference("myapp")
    assert ref.domain == ""
    assert ref.name() == "myapp"
    assert ref.tag == "" and ref.digest == ""


@pytest.mark.parametrize(
    "text",
    [
        "myapp",
        "registry.com:8080/myapp:tag",
        f"registry.com:8080/myapp@{DIGEST}",
        "quay.io/matthiasb_1/storage",
        "public-registry.systest-ns-na6n:5000/nginx:test",
    ],
)
def test_string_round_trip(text):
    assert str(parse_reference(text)) == text


@pytest.mark.parametrize(
    "text",
    ["", "MyApp", "a" * 256, "nginx@sha256:abc", "nginx@md5:" + "0" * 32, "nginx:" + "x" * 200, "-bad"],
)
def test_parse_errors(text):
    with pytest.raises(ReferenceError):
        parse_reference(text)


def test_uppercase_digest_is_rejected():
    with pytest.raises(ValueError):
        parse_reference("nginx@" + DIGEST.upper().replace("SHA256", "sha256"))


def test_normalized_official_image():
    ref = parse_normalized_named("nginx")
    assert str(ref.with_default_tag()) == "docker.io/library/nginx:latest"


def test_normalized_legacy_domain():
    ref = parse_normalized_named("index.docker.io/library/nginx:latest")
    assert str(ref) == "docker.io/library/nginx:latest"


def test_with_default_tag_keeps_digest():
    text = "quay.io/kubescape/kubevuln@sha256:616d1d4312551b94088deb6ddab232ecabbbff0c289949a0d5f12d4b527c3f8a"
    ref = parse_normalized_named(text)
    assert ref.with_default_tag() == ref
    assert str(ref) == text


def test_normalized_rejects_uppercase_and_identifiers():
    with pytest.raises(ReferenceError):
        parse_normalized_named("Nginx")
    with pytest.raises(ReferenceError):
        parse_normalized_named("73e957703f1266530db0aeac1fd6a3f87c1e59943f4c13eb340bb8521c6041d7")