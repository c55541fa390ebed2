"""Tests for command output formatting."""

import io
import json
from collections.abc import Callable

import yaml

from app_deployer.drift import build_config_drift, deployment_config_drift
from app_deployer.manifest import BuildConfig, ConfigMap, DeploymentConfig
from app_deployer.tool.format import (
    DriftTable,
    JsonManifestFormatter,
    YamlManifestFormatter,
)


def test_drift_table(
    make_build_config: Callable[..., BuildConfig],
    make_deployment_config: Callable[..., DeploymentConfig],
) -> None:
    """Test drift rows are printed as aligned columns."""
    drift = build_config_drift(make_build_config(), "v3")
    assert drift
    drifts = [drift] + deployment_config_drift(
        make_deployment_config(images=["registry/api:v3"]), "v3"
    )

    output = io.StringIO()
    DriftTable().print(drifts, file=output)

    assert output.getvalue().splitlines() == [
        "KIND                NAME          IMAGE              DESIRED    STATE",
        "BuildConfig         api           registry/api:v2    v3         Drifted",
        "DeploymentConfig    api-deploy    registry/api:v3    v3         Converged",
    ]


def test_drift_table_empty() -> None:
    """Test nothing is printed without rows."""
    assert list(DriftTable().format([])) == []


def test_manifest_formatters(
    make_config_map: Callable[..., ConfigMap],
    make_build_config: Callable[..., BuildConfig],
) -> None:
    """Test objects are printed as kubernetes documents."""
    objects = [make_config_map(), make_build_config()]

    output = io.StringIO()
    YamlManifestFormatter().print(objects, file=output)
    assert output.getvalue().startswith("---\napiVersion: v1\nkind: ConfigMap\n")
    docs = list(yaml.safe_load_all(output.getvalue()))
    assert [doc["kind"] for doc in docs] == ["ConfigMap", "BuildConfig"]
    assert docs[1]["status"] == {"lastVersion": 5}

    output = io.StringIO()
    JsonManifestFormatter().print(objects, file=output)
    assert json.loads(output.getvalue()) == docs
