"""Conversion of CustomResourceDefinition manifests into definitions documents.

Each served version of a CRD becomes one definition carrying the version's
``openAPIV3Schema`` and a group-version-kind extension, so CRDs are indexed
exactly like built-in resources.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kubeschema.errors import MalformedInputError
from kubeschema.models import GVK_EXTENSION

_LOG = logging.getLogger(__name__)

CRD_SOURCE = "cluster-crds"

CRD_KIND = "CustomResourceDefinition"


class CRDNames(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: str = Field(min_length=1)
    plural: str | None = None


class CRDVersion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    served: bool = True
    storage: bool = False
    schema_: dict[str, Any] | None = Field(default=None, alias="schema")

    @property
    def openapi_schema(self) -> dict[str, Any]:
        if not self.schema_:
            return {}
        return self.schema_.get("openAPIV3Schema") or {}


class CRDSpec(BaseModel):
    model_config = ConfigDict(extra="ignore")

    group: str = Field(min_length=1)
    names: CRDNames
    versions: list[CRDVersion] = Field(min_length=1)


class CustomResourceDefinition(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    api_version: str = Field(default="apiextensions.k8s.io/v1", alias="apiVersion")
    kind: str
    spec: CRDSpec


def definition_key_for(group: str, version: str, kind: str) -> str:
    """Build a definition key in the Kubernetes style, e.g. ``io.argoproj.v1alpha1.Application``."""
    reversed_group = ".".join(reversed(group.split(".")))
    return f"{reversed_group}.{version}.{kind}"


def parse_crd(manifest: Any) -> CustomResourceDefinition:
    """Validate a parsed manifest as a CustomResourceDefinition."""
    if not isinstance(manifest, dict) or manifest.get("kind") != CRD_KIND:
        raise MalformedInputError(f"Manifest is not a {CRD_KIND}")

    try:
        return CustomResourceDefinition.model_validate(manifest)
    except ValidationError as e:
        name = (manifest.get("metadata") or {}).get("name", "<unnamed>")
        problems = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise MalformedInputError(f"Invalid {CRD_KIND} '{name}': {problems}") from e


def crd_to_definitions(manifest: Any) -> dict[str, Any]:
    """Convert one CRD manifest to a ``definitions`` mapping."""
    crd = parse_crd(manifest)
    group = crd.spec.group
    kind = crd.spec.names.kind

    definitions: dict[str, Any] = {}
    for version in crd.spec.versions:
        if not version.served:
            _LOG.debug("Skipping unserved version %s of %s.%s", version.name, kind, group)
            continue

        node = copy.deepcopy(version.openapi_schema)
        node.setdefault("type", "object")
        node[GVK_EXTENSION] = [{"group": group, "version": version.name, "kind": kind}]
        definitions[definition_key_for(group, version.name, kind)] = node

    return definitions


def load_crd_documents(paths: list[Path]) -> dict[str, Any]:
    """Read CRD manifests from YAML files and merge them into one document.

    Files may contain several YAML documents; anything that is not a CRD is
    skipped.
    """
    definitions: dict[str, Any] = {}
    for path in paths:
        try:
            with path.open(encoding="utf-8") as f:
                manifests = list(yaml.safe_load_all(f))
        except yaml.YAMLError as e:
            raise MalformedInputError(f"{path}: invalid YAML ({e})") from e

        for manifest in manifests:
            if not isinstance(manifest, dict) or manifest.get("kind") != CRD_KIND:
                continue
            definitions.update(crd_to_definitions(manifest))

    _LOG.info("Converted %d CRD versions from %d files", len(definitions), len(paths))
    return {"definitions": definitions}
