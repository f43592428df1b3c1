"""Tests for configuration helpers."""

from stoma_tracker.config import Settings, parse_provider_ids
from stoma_tracker.domain.foods import ProviderId


def test_parse_provider_ids() -> None:
    assert parse_provider_ids("crowd, Government,,unknown") == frozenset(
        {ProviderId.CROWD, ProviderId.GOVERNMENT}
    )
    assert parse_provider_ids("") == frozenset()
    assert parse_provider_ids(None) == frozenset()


def test_settings_defaults(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.delenv("FDC_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    settings = Settings(_env_file=None)

    assert settings.fdc_api_key == "DEMO_KEY"
    assert settings.openai_api_key is None
    assert settings.similarity_threshold == 0.7
    assert parse_provider_ids(settings.default_providers) == frozenset(
        {ProviderId.CROWD, ProviderId.GOVERNMENT}
    )
