"""Test the command line entry point."""

import argparse
import json

import pytest

from mood_insight import main as cli_main
from mood_insight.ai.errors import RateLimitExceededError
from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisFocus,
    BackendKind,
    CanonicalInsight,
    ConfigurationStatus,
    DetailLevel,
    InsightResult,
)
from mood_insight.config import clear_settings_cache, get_settings


class _Backend:
    kind = BackendKind.GEMINI_DIRECT

    def __init__(self, outcome):
        self.outcome = outcome
        self.configs = []

    async def generate_insight(self, request, config=None, *, cancel_event=None):
        self.configs.append(config)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    def is_configured(self):
        return True

    def get_configuration_status(self):
        return ConfigurationStatus.configured_for("stub")


@pytest.fixture
def records_file(tmp_path):
    path = tmp_path / "records.json"
    path.write_text(
        json.dumps(
            {
                "start_date": "2024-01-01",
                "end_date": "2024-01-07",
                "mood_records": [{"date": "2024-01-02", "mood": 4}],
                "activities": [],
            }
        ),
        encoding="utf-8",
    )
    return path


def _use_backend(monkeypatch, backend):
    monkeypatch.setattr(cli_main, "create_backend", lambda *args, **kwargs: backend)


def test_apply_overrides():
    args = argparse.Namespace(
        focus="ACTIVITY_FOCUSED", detail=None, style=None, comparison=None
    )

    config = cli_main.apply_overrides(AnalysisConfig(), args)

    assert config.focus == AnalysisFocus.ACTIVITY_FOCUSED
    assert config.detail_level == DetailLevel.STANDARD


@pytest.mark.asyncio
async def test_analyze_success(monkeypatch, records_file):
    insight = CanonicalInsight(summary="s", mood_analysis="m", activity_analysis="a")
    backend = _Backend(InsightResult(success=True, data=insight))
    _use_backend(monkeypatch, backend)

    code = await cli_main.main(
        [
            "analyze",
            str(records_file),
            "--backend",
            "GEMINI_DIRECT",
            "--detail",
            "CONCISE",
        ]
    )

    assert code == 0
    assert backend.configs[0].detail_level == DetailLevel.CONCISE


@pytest.mark.asyncio
async def test_analyze_domain_error(monkeypatch, records_file):
    _use_backend(monkeypatch, _Backend(RateLimitExceededError()))

    code = await cli_main.main(["analyze", str(records_file)])

    assert code == 1


@pytest.mark.asyncio
async def test_analyze_unreadable_file(tmp_path):
    code = await cli_main.main(["analyze", str(tmp_path / "missing.json")])

    assert code == 2


@pytest.mark.asyncio
async def test_config_is_persisted():
    code = await cli_main.main(["config", "--focus", "MOOD_FOCUSED"])

    assert code == 0
    stored = json.loads(get_settings().store_path.read_text(encoding="utf-8"))
    assert stored["analysis_focus"] == "MOOD_FOCUSED"


@pytest.mark.asyncio
async def test_export_csv(tmp_path):
    output = tmp_path / "metrics.csv"

    code = await cli_main.main(["export-csv", "--output", str(output)])

    assert code == 0
    assert output.read_text(encoding="utf-8").startswith("Timestamp,Implementation")


class TestBackendSelection:
    @pytest.fixture
    def proxy_only_env(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "")
        monkeypatch.setenv("BACKEND_TOKEN", "proxy-token")
        monkeypatch.setenv("BACKEND_KIND", "gemini_direct")
        clear_settings_cache()

    @pytest.mark.asyncio
    async def test_configured_backend_is_used_when_valid(self):
        context = await cli_main.build_runtime_context(get_settings())

        assert context.select_backend_kind() == BackendKind.GEMINI_DIRECT

    @pytest.mark.asyncio
    async def test_incomplete_backend_switches_to_usable_one(self, proxy_only_env):
        context = await cli_main.build_runtime_context(get_settings())

        assert not context.backend_config(BackendKind.GEMINI_DIRECT).is_valid()
        assert context.select_backend_kind() == BackendKind.BACKEND_PROXY

    @pytest.mark.asyncio
    async def test_explicit_backend_is_kept(self, proxy_only_env):
        context = await cli_main.build_runtime_context(get_settings())

        selected = context.select_backend_kind("GEMINI_DIRECT")

        assert selected == BackendKind.GEMINI_DIRECT

    @pytest.mark.asyncio
    async def test_nothing_usable_keeps_configured_kind(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "")
        clear_settings_cache()
        context = await cli_main.build_runtime_context(get_settings())

        assert context.select_backend_kind() == BackendKind.GEMINI_DIRECT

    @pytest.mark.asyncio
    async def test_backend_receives_config_from_settings(self, proxy_only_env):
        context = await cli_main.build_runtime_context(get_settings())

        backend = context.backend(BackendKind.BACKEND_PROXY)

        assert backend.is_configured()
        assert backend.base_url == "https://backend.test/api/v1"
        assert backend.auth_provider.get_bearer_token() == "proxy-token"

    @pytest.mark.asyncio
    async def test_analyze_uses_selected_backend(
        self, monkeypatch, proxy_only_env, records_file
    ):
        kinds = []
        insight = CanonicalInsight(
            summary="s", mood_analysis="m", activity_analysis="a"
        )
        backend = _Backend(InsightResult(success=True, data=insight))

        def fake_create_backend(kind, **kwargs):
            kinds.append((kind, kwargs["backend_config"].mode))
            return backend

        monkeypatch.setattr(cli_main, "create_backend", fake_create_backend)

        code = await cli_main.main(["analyze", str(records_file)])

        assert code == 0
        assert kinds == [(BackendKind.BACKEND_PROXY, BackendKind.BACKEND_PROXY)]
