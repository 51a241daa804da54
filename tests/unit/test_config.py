"""Tests for RollgateSettings."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from rollgate.config import RollgateSettings


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    # No stray .env or ROLLGATE_* variables from the developer's shell.
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("ROLLGATE_"):
            monkeypatch.delenv(name)


class TestDefaults:
    def test_defaults(self):
        settings = RollgateSettings()
        assert settings.aws_region == "us-east-1"
        assert settings.rollout_poll_interval_seconds == 5.0
        assert settings.harness_port == 4444
        assert settings.harness_shm_size == "2g"
        assert settings.harness_endpoint == "http://localhost:4444"
        assert settings.report_dir == Path(".rollgate/reports")

    def test_registry_uri_without_account_is_repository(self):
        assert RollgateSettings(repository="web").registry_uri == "web"

    def test_registry_uri_with_account(self):
        settings = RollgateSettings(account_id="123456789012", aws_region="eu-west-1", repository="web")
        assert settings.registry_uri == "123456789012.dkr.ecr.eu-west-1.amazonaws.com/web"

    def test_frozen(self):
        settings = RollgateSettings()
        with pytest.raises(ValidationError):
            settings.cluster = "other"


class TestEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ROLLGATE_CLUSTER", "prod")
        monkeypatch.setenv("ROLLGATE_ROLLOUT_TIMEOUT_SECONDS", "1200")
        settings = RollgateSettings()
        assert settings.cluster == "prod"
        assert settings.rollout_timeout_seconds == 1200.0

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("ROLLGATE_SERVICE=web\n", encoding="utf-8")
        assert RollgateSettings().service == "web"


class TestDescriptor:
    def test_descriptor_carries_settings(self):
        settings = RollgateSettings(
            cluster="c1",
            service="s1",
            family="web",
            container_port=8080,
            log_group="/ecs/web",
            aws_region="eu-west-1",
            rollout_timeout_seconds=300,
            rollout_poll_interval_seconds=2,
        )
        descriptor = settings.descriptor({"FLASK_APP": "app.py"})
        assert (descriptor.cluster, descriptor.service, descriptor.family) == ("c1", "s1", "web")
        assert descriptor.port == 8080
        assert descriptor.env_vars == {"FLASK_APP": "app.py"}
        assert descriptor.log_config.group == "/ecs/web"
        assert descriptor.log_config.region == "eu-west-1"
        assert descriptor.overall_timeout == 300.0
        assert descriptor.poll_interval == 2.0
