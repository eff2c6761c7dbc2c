from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from kubeschema.workspace import ConfigProvider

OBJECT_META = {
    "description": "Standard object metadata.",
    "type": "object",
    "properties": {
        "name": {"description": "Name of the object.", "type": "string"},
        "namespace": {"type": "string"},
        "labels": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}

DEFINITIONS: dict[str, Any] = {
    "io.k8s.apimachinery.pkg.apis.meta.v1.ObjectMeta": OBJECT_META,
    "io.k8s.api.core.v1.Container": {
        "description": "A single application container.",
        "type": "object",
        "required": ["name"],
        "properties": {
            "name": {"type": "string"},
            "image": {"type": "string"},
        },
    },
    "io.k8s.api.core.v1.PodSpec": {
        "type": "object",
        "required": ["containers"],
        "properties": {
            "containers": {
                "description": "List of containers belonging to the pod.",
                "type": "array",
                "items": {"$ref": "#/definitions/io.k8s.api.core.v1.Container"},
            },
            "nodeName": {"type": "string"},
        },
    },
    "io.k8s.api.core.v1.Pod": {
        "description": "Pod is a collection of containers that can run on a host.",
        "type": "object",
        "properties": {
            "apiVersion": {"type": "string"},
            "kind": {"type": "string"},
            "metadata": {"$ref": "#/definitions/io.k8s.apimachinery.pkg.apis.meta.v1.ObjectMeta"},
            "spec": {"$ref": "#/definitions/io.k8s.api.core.v1.PodSpec"},
        },
        "x-kubernetes-group-version-kind": [{"group": "", "kind": "Pod", "version": "v1"}],
    },
    "io.k8s.api.core.v1.PodTemplateSpec": {
        "type": "object",
        "properties": {
            "metadata": {"$ref": "#/definitions/io.k8s.apimachinery.pkg.apis.meta.v1.ObjectMeta"},
            "spec": {"$ref": "#/definitions/io.k8s.api.core.v1.PodSpec"},
        },
    },
    "io.k8s.api.apps.v1.DeploymentSpec": {
        "type": "object",
        "required": ["selector", "template"],
        "properties": {
            "replicas": {"description": "Number of desired pods.", "type": "integer", "format": "int32"},
            "selector": {
                "type": "object",
                "properties": {
                    "matchLabels": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                    }
                },
            },
            "template": {"$ref": "#/definitions/io.k8s.api.core.v1.PodTemplateSpec"},
        },
    },
    "io.k8s.api.apps.v1.Deployment": {
        "description": "Deployment enables declarative updates for Pods and ReplicaSets.",
        "type": "object",
        "properties": {
            "apiVersion": {"type": "string"},
            "kind": {"type": "string"},
            "metadata": {"$ref": "#/definitions/io.k8s.apimachinery.pkg.apis.meta.v1.ObjectMeta"},
            "spec": {"$ref": "#/definitions/io.k8s.api.apps.v1.DeploymentSpec"},
        },
        "x-kubernetes-group-version-kind": [{"group": "apps", "kind": "Deployment", "version": "v1"}],
    },
    "io.k8s.api.rbac.v1.RoleBinding": {
        "description": "RoleBinding references a role and grants it to subjects.",
        "type": "object",
        "properties": {
            "metadata": {"$ref": "#/definitions/io.k8s.apimachinery.pkg.apis.meta.v1.ObjectMeta"},
            "roleRef": {"type": "object", "properties": {"name": {"type": "string"}}},
        },
        "x-kubernetes-group-version-kind": [
            {"group": "rbac.authorization.k8s.io", "kind": "RoleBinding", "version": "v1"}
        ],
    },
    "io.k8s.apiextensions.v1.JSONSchemaProps": {
        "description": "A JSON-Schema following Specification Draft 4.",
        "type": "object",
        "properties": {
            "type": {"type": "string"},
            "not": {"$ref": "#/definitions/io.k8s.apiextensions.v1.JSONSchemaProps"},
        },
    },
    "io.k8s.api.autoscaling.v1.Scale": {
        "description": "Scale represents a scaling request for a resource.",
        "type": "object",
        "properties": {"spec": {"type": "object", "properties": {"replicas": {"type": "integer"}}}},
        "x-kubernetes-group-version-kind": [
            {"group": "autoscaling", "kind": "Scale", "version": "v1"},
            {"group": "autoscaling", "kind": "Scale", "version": "v2"},
        ],
    },
}


@pytest.fixture
def definitions_document() -> dict[str, Any]:
    return {"definitions": copy.deepcopy(DEFINITIONS)}


@pytest.fixture
def definitions_file(tmp_path: Path, definitions_document: dict[str, Any]) -> Path:
    path: Path = tmp_path / "_definitions.json"
    path.write_text(json.dumps(definitions_document), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def reset_config_provider():
    ConfigProvider.reset()
    yield
    ConfigProvider.reset()
