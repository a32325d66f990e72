"""Annotation codec for subscriptions and recorded fingerprints.

Layout, for prefix ``translations.example.org``::

    metadata.annotations (object):
        translations.example.org/domains: "catalog,emails"

    spec.template.metadata.annotations (pod template):
        translations.example.org/catalog: "<sha1 hex>"
        translations.example.org/emails:  "<sha1 hex>"
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Annotation name holding the subscription list; never a catalog domain.
RESERVED_DOMAIN = "domains"


class MetadataCodec:
    """Reads and writes transync annotations under one prefix."""

    def __init__(self, prefix: str) -> None:
        if not prefix or prefix.endswith("/"):
            raise ValueError(f"Invalid annotation prefix: {prefix!r}")
        self.prefix = prefix

    @property
    def domains_key(self) -> str:
        return f"{self.prefix}/{RESERVED_DOMAIN}"

    def key_for(self, domain: str) -> str:
        return f"{self.prefix}/{domain}"

    def parse_subscriptions(self, annotations: Mapping[str, str] | None) -> list[str]:
        """Return the ordered domain list from ``<prefix>/domains``.

        The reserved name itself is dropped: its key is the subscription list.
        """
        if not annotations:
            return []
        raw = annotations.get(self.domains_key)
        if raw is None:
            return []
        domains = (domain.strip() for domain in raw.split(","))
        return [domain for domain in domains if domain and domain != RESERVED_DOMAIN]

    def parse_observed_fingerprints(self, annotations: Mapping[str, str] | None) -> dict[str, str]:
        """Return ``domain -> fingerprint`` for every ``<prefix>/<domain>`` key."""
        if not annotations:
            return {}
        scope = f"{self.prefix}/"
        observed: dict[str, str] = {}
        for key, value in annotations.items():
            if not key.startswith(scope):
                continue
            domain = key[len(scope) :]
            if domain and domain != RESERVED_DOMAIN:
                observed[domain] = value
        return observed

    def write_changes(self, template_metadata: dict[str, Any], changeset: Mapping[str, str]) -> None:
        """Set ``<prefix>/<domain>`` on the pod template metadata for each change.

        The ``annotations`` container is created when absent.  Existing keys
        not named in *changeset* are left alone.
        """
        if not changeset:
            return
        annotations = template_metadata.get("annotations")
        if annotations is None:
            annotations = template_metadata["annotations"] = {}
        for domain, fingerprint in changeset.items():
            annotations[self.key_for(domain)] = fingerprint
