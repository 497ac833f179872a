"""Storage repositories for CVE manifests, SBOMs, vulnerability summaries and VEX documents."""

__version__ = "0.1.0"