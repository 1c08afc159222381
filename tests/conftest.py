"""Pytest fixtures for codedeployctl tests."""

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from click.testing import CliRunner
from moto import mock_aws

from codedeployctl.clients.aws import ClientBundle
from codedeployctl.config import PublisherConfig
from codedeployctl.core.cancel import CancellationToken
from codedeployctl.deploy.models import AMBIENT_CREDENTIAL, Credential


class FakeClock:
    """Deterministic clock advanced by FakeToken.sleep."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeToken(CancellationToken):
    """Cancellation token whose sleep moves a FakeClock instead of blocking."""

    def __init__(self, clock: FakeClock, cancel_after: int | None = None):
        super().__init__()
        self.clock = clock
        self.sleeps: list[float] = []
        self._cancel_after = cancel_after

    def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()
        if self._cancel_after is not None and len(self.sleeps) >= self._cancel_after:
            self.cancel("SIGTERM")
            self.raise_if_cancelled()
        self.sleeps.append(seconds)
        self.clock.advance(seconds)


class StaticResolver:
    """Credential resolver stand-in that always returns one credential."""

    def __init__(self, credential: Credential = AMBIENT_CREDENTIAL):
        self.credential = credential
        self.strategies: list[Any] = []

    def resolve(self, strategy: Any) -> Credential:
        self.strategies.append(strategy)
        return self.credential


class StaticClientFactory:
    """Client factory stand-in returning a prepared bundle."""

    def __init__(self, bundle: ClientBundle):
        self.bundle = bundle
        self.calls: list[tuple[Any, ...]] = []

    def build(self, region: str, credential: Credential, proxy: Any = None) -> ClientBundle:
        self.calls.append((region, credential, proxy))
        return self.bundle


def deployment_response(
    status: str,
    complete_time: datetime | None = None,
    start_time: datetime | None = None,
    deployment_id: str = "d-TEST12345",
) -> dict[str, Any]:
    """Build a get_deployment response body."""
    info: dict[str, Any] = {
        "deploymentId": deployment_id,
        "status": status,
        "deploymentOverview": {
            "Pending": 0,
            "InProgress": 0 if complete_time else 1,
            "Succeeded": 1 if status == "Succeeded" else 0,
            "Failed": 1 if status == "Failed" else 0,
            "Skipped": 0,
        },
    }
    if start_time is not None:
        info["startTime"] = start_time
    if complete_time is not None:
        info["completeTime"] = complete_time
    return {"deploymentInfo": info}


def make_codedeploy(
    applications: list[str] | None = None,
    deployment_groups: list[str] | None = None,
) -> MagicMock:
    """Mock CodeDeploy client with paginated listings."""
    client = MagicMock()
    pages = {
        "list_applications": [{"applications": applications or []}],
        "list_deployment_groups": [{"deploymentGroups": deployment_groups or []}],
    }

    def get_paginator(name: str) -> MagicMock:
        paginator = MagicMock()
        paginator.paginate.return_value = pages[name]
        return paginator

    client.get_paginator.side_effect = get_paginator
    client.create_deployment.return_value = {"deploymentId": "d-TEST12345"}
    client.register_application_revision.return_value = {}
    return client


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path) -> Generator[None, None, None]:
    """Clean environment variables before each test."""
    for key in list(os.environ):
        if key.startswith("CODEDEPLOYCTL_") or key in ("JOB_NAME", "AWS_PROFILE"):
            monkeypatch.delenv(key, raising=False)
    for key in ("AWS_REGION", "AWS_DEFAULT_REGION"):
        monkeypatch.delenv(key, raising=False)

    # Keep the user's ~/.codedeployctl and ~/.aws out of the tests
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    yield


@pytest.fixture
def aws_credentials(monkeypatch) -> None:
    """Fake credentials so moto never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_client(aws_credentials) -> Generator[Any, None, None]:
    """Moto-backed S3 client with bucket 'b' created."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="b")
        yield client


@pytest.fixture
def codedeploy_client() -> MagicMock:
    """CodeDeploy mock knowing application app1 with group grp1."""
    return make_codedeploy(applications=["app1"], deployment_groups=["grp1"])


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_token(fake_clock: FakeClock) -> FakeToken:
    return FakeToken(fake_clock)


@pytest.fixture
def publisher_config() -> PublisherConfig:
    """Minimal publisher configuration."""
    return PublisherConfig(
        bucket="b",
        prefix="releases/",
        application_name="app1",
        deployment_group_name="grp1",
        region="us-east-1",
    )


@pytest.fixture
def workspace(tmp_path) -> Path:
    """A small build workspace."""
    root = tmp_path / "workspace"
    (root / "src" / "pkg").mkdir(parents=True)
    (root / "scripts").mkdir()
    (root / ".git").mkdir()
    (root / "appspec.yml").write_text("version: 0.0\nos: linux\n")
    (root / "src" / "app.py").write_text("print('hello')\n")
    (root / "src" / "pkg" / "util.py").write_text("X = 1\n")
    (root / "scripts" / "start.sh").write_text("#!/bin/sh\n")
    (root / "README.txt").write_text("readme\n")
    (root / ".git" / "config").write_text("[core]\n")
    return root


@pytest.fixture
def temp_config_file(tmp_path) -> str:
    """Create a temporary config file."""
    config_content = """
version: "1"
global:
  output_format: table
profiles:
  default:
    bucket: b
    prefix: releases/
    application_name: app1
    deployment_group_name: grp1
    region: us-east-1
  staging:
    bucket: staging-bucket
    application_name: app1
    deployment_group_name: staging
    region: eu-west-1
    auth:
      method: access-keys
      access_key_id: AKIAEXAMPLEKEY
      secret_access_key: very-secret
"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(config_content)
    return str(config_file)
