"""Workload shapes handled by transync.

All three supported kinds embed a pod template at ``spec.template``.  Objects
are kept as JSON-shaped dicts (camelCase keys, exactly what the cluster API
and the admission request carry) and normalised through ``Workload`` so
callers never branch on kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class WorkloadKind(StrEnum):
    """Workload kinds carrying a pod template."""

    DAEMON_SET = "DaemonSet"
    DEPLOYMENT = "Deployment"
    STATEFUL_SET = "StatefulSet"

    @classmethod
    def parse(cls, value: str) -> WorkloadKind | None:
        """Return the kind for *value*, or None when it is not supported."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class Workload:
    """A workload object plus the changeset last computed for it.

    ``obj`` is mutated in place by the metadata codec.
    """

    kind: WorkloadKind
    obj: dict[str, Any]
    changeset: dict[str, str] = field(default_factory=dict)

    @property
    def metadata(self) -> dict[str, Any]:
        return self.obj.get("metadata") or {}

    @property
    def name(self) -> str:
        return str(self.metadata.get("name") or self.metadata.get("generateName") or "")

    @property
    def namespace(self) -> str:
        return str(self.metadata.get("namespace") or "")

    @property
    def key(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"

    def own_annotations(self) -> dict[str, str]:
        """Annotations on the object itself (where subscriptions live)."""
        return self.metadata.get("annotations") or {}

    def template_metadata(self, create: bool = False) -> dict[str, Any]:
        """Metadata of the embedded pod template.

        With ``create=True`` missing ``spec``/``template``/``metadata``
        containers are added to ``obj`` so the result can be written to.
        """
        if not create:
            spec = self.obj.get("spec") or {}
            template = spec.get("template") or {}
            return template.get("metadata") or {}

        spec = self.obj.get("spec")
        if spec is None:
            spec = self.obj["spec"] = {}
        template = spec.get("template")
        if template is None:
            template = spec["template"] = {}
        meta = template.get("metadata")
        if meta is None:
            meta = template["metadata"] = {}
        return meta

    def template_annotations(self) -> dict[str, str]:
        """Annotations on the pod template (where observed fingerprints live)."""
        return self.template_metadata().get("annotations") or {}
