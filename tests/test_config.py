"""Tests for configuration loading, validation and live updates."""

import pytest

from phishlens import config as config_module
from phishlens.config import (
    Config,
    ConfigStore,
    ScoringThresholds,
    load_config,
    validate_config,
)
from phishlens.errors import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *a, **k: None)
    for var in (
        "CONFIG_DIR",
        "TRUSTED_DOMAINS",
        "PHISHLENS_THRESHOLD_SAFE",
        "PHISHLENS_THRESHOLD_SUSPICIOUS",
        "PHISHLENS_THRESHOLD_DANGEROUS",
        "PROVIDER_TIMEOUT",
        "ANALYSIS_TIMEOUT",
        "DATA_DIR",
        "HISTORY_LIMIT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    return tmp_path


class TestLoadConfig:
    def test_defaults(self, clean_env):
        cfg = load_config()
        assert cfg.thresholds == ScoringThresholds(80, 60, 40)
        assert cfg.provider_timeout == 8.0
        assert "google.com" in cfg.trusted_domains
        assert cfg.favicon_fingerprints is None
        assert validate_config(cfg) == []

    def test_environment_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("PHISHLENS_THRESHOLD_SAFE", "85")
        monkeypatch.setenv("PHISHLENS_ENABLED_PROVIDERS", "heuristics, SSL")
        monkeypatch.setenv("TRUSTED_DOMAINS", "www.Example.org,intranet.local")
        monkeypatch.setenv("VIRUSTOTAL_API_KEY", "vt")
        monkeypatch.setenv("PROVIDER_TIMEOUT", "2.5")

        cfg = load_config()
        assert cfg.thresholds.safe == 85
        assert cfg.enabled_providers == frozenset({"heuristics", "ssl"})
        assert {"example.org", "intranet.local", "google.com"} <= cfg.trusted_domains
        assert cfg.virustotal_api_key == "vt"
        assert cfg.provider_timeout == 2.5

    def test_heuristics_yaml(self, clean_env):
        (clean_env / "heuristics.yaml").write_text(
            "domain:\n"
            "  suspicious_tlds: [.zip, mov]\n"
            "  suspicious_keywords: [Invoice]\n"
            "  misspellings:\n"
            "    paypal: [paypai]\n"
            "trusted_domains: [corp.example]\n"
        )
        (clean_env / "favicons.yaml").write_text("brands: []\n")

        cfg = load_config()
        assert cfg.suspicious_tlds == frozenset({"zip", "mov"})
        assert cfg.suspicious_keywords == ("invoice",)
        assert cfg.misspelling_table() == {"paypal": ("paypai",)}
        assert cfg.trusted_domains == frozenset({"corp.example"})
        assert cfg.favicon_fingerprints == clean_env / "favicons.yaml"

    def test_malformed_heuristics_yaml_is_ignored(self, clean_env):
        (clean_env / "heuristics.yaml").write_text("domain: [unclosed")
        cfg = load_config()
        assert cfg.suspicious_tlds == Config().suspicious_tlds

    def test_non_mapping_heuristics_yaml_is_ignored(self, clean_env):
        (clean_env / "heuristics.yaml").write_text("- just\n- a list\n")
        assert load_config().suspicious_keywords == Config().suspicious_keywords


class TestValidateConfig:
    def test_threshold_order(self):
        errors = validate_config(Config(thresholds=ScoringThresholds(60, 60, 40)))
        assert any("safe > suspicious > dangerous" in e for e in errors)

    def test_threshold_range(self):
        errors = validate_config(Config(thresholds=ScoringThresholds(120, 60, 40)))
        assert any("0..100" in e for e in errors)

    def test_unknown_provider_and_limits(self):
        errors = validate_config(
            Config(
                enabled_providers=frozenset({"heuristics", "whois"}),
                provider_timeout=0,
                history_limit=0,
                favicon_similarity_threshold=150,
            )
        )
        assert len(errors) == 4
        assert "Unknown providers enabled: whois" in errors


class TestConfigStore:
    def test_rejects_invalid_initial_config(self):
        with pytest.raises(ConfigurationError):
            ConfigStore(Config(analysis_timeout=-1))

    def test_update_thresholds_from_mapping(self):
        store = ConfigStore()
        updated = store.update(thresholds={"safe": 90, "suspicious": 70, "dangerous": 50})
        assert updated.thresholds == ScoringThresholds(90, 70, 50)
        assert store.snapshot() is updated

    def test_invalid_update_keeps_prior_config(self):
        store = ConfigStore()
        before = store.snapshot()
        with pytest.raises(ConfigurationError) as excinfo:
            store.update(thresholds={"safe": 50, "suspicious": 60, "dangerous": 40})
        assert excinfo.value.errors
        assert store.snapshot() is before

    def test_non_integer_thresholds_rejected(self):
        store = ConfigStore()
        with pytest.raises(ConfigurationError):
            store.update(thresholds={"safe": "high"})

    def test_unknown_field_rejected(self):
        store = ConfigStore()
        with pytest.raises(ConfigurationError):
            store.update(colour="blue")

    def test_update_sets_are_normalized(self):
        store = ConfigStore()
        updated = store.update(
            enabled_providers=["heuristics", "text"],
            trusted_domains=["www.bank.example"],
        )
        assert updated.enabled_providers == frozenset({"heuristics", "text"})
        assert updated.trusted_domains == frozenset({"bank.example"})

    def test_snapshots_are_immutable(self):
        snapshot = ConfigStore().snapshot()
        with pytest.raises(AttributeError):
            snapshot.provider_timeout = 1.0
