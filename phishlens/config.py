"""Configuration management for PhishLens."""

import dataclasses
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .constants import ALL_SIGNAL_KINDS
from .errors import ConfigurationError
from .utils.domains import canonicalize_domain

logger = logging.getLogger(__name__)


# Default heuristics. These can be overridden via config/heuristics.yaml
# without touching code.
DEFAULT_SUSPICIOUS_TLDS: frozenset[str] = frozenset(
    {"tk", "ml", "ga", "cf", "gq", "xyz", "top", "club", "online", "site"}
)

DEFAULT_SUSPICIOUS_KEYWORDS: tuple[str, ...] = (
    "secure",
    "account",
    "login",
    "signin",
    "verify",
    "update",
    "confirm",
    "banking",
    "authorize",
    "authentication",
    "password",
    "support",
    "wallet",
    "security",
    "pay",
    "sign-in",
    "appleid",
    "confirm-identity",
)

DEFAULT_MISSPELLED_DOMAINS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("paypal", ("paypa1l", "paypall", "paypa1", "paypa-l", "payypal")),
    ("microsoft", ("micros0ft", "rnicrosoft", "micrososft", "microsoft-secure")),
    ("amazon", ("arnaz0n", "arnazon", "amazan", "amazonn")),
    ("apple", ("app1e", "appl3", "appie", "apple-id", "apple-secure")),
    ("facebook", ("faceb00k", "faceboook", "facebokk", "facbook")),
    ("google", ("g00gle", "googgle", "gooogle", "goggle")),
    ("netflix", ("netf1ix", "netflixx", "net-flix", "netflixaccount")),
    ("instagram", ("instagran", "lnstagram", "instagrarn")),
    ("linkedin", ("linkedln", "linked-in", "linkedim")),
    ("twitter", ("twltter", "tvvitter", "tvvlter")),
    ("outlook", ("0utlook", "outlooks", "outlook-mail")),
    ("chase", ("chasebank", "chaseonline", "chase-secure")),
    ("wellsfargo", ("wells-fargo", "wellsfargobank", "wellsfargo-secure")),
    ("bankofamerica", ("bankofamerica-secure", "bank0famerica", "bancofamerica")),
)

DEFAULT_TRUSTED_DOMAINS: frozenset[str] = frozenset(
    {
        "google.com",
        "microsoft.com",
        "apple.com",
        "amazon.com",
        "facebook.com",
        "youtube.com",
        "gmail.com",
        "outlook.com",
        "github.com",
        "linkedin.com",
    }
)


@dataclass(frozen=True)
class ScoringThresholds:
    """Lower bounds of the Safe / Low Risk / Medium Risk tiers."""

    safe: int = 80
    suspicious: int = 60
    dangerous: int = 40

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ScoringThresholds":
        try:
            return cls(
                safe=int(data.get("safe", cls.safe)),
                suspicious=int(data.get("suspicious", cls.suspicious)),
                dangerous=int(data.get("dangerous", cls.dangerous)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError([f"Thresholds must be integers: {exc}"]) from exc

    def errors(self) -> list[str]:
        problems: list[str] = []
        if not 0 <= self.dangerous <= 100 or not 0 <= self.safe <= 100:
            problems.append("Thresholds must lie within 0..100")
        if not self.safe > self.suspicious > self.dangerous:
            problems.append(
                "Thresholds must satisfy safe > suspicious > dangerous "
                f"(got {self.safe}/{self.suspicious}/{self.dangerous})"
            )
        return problems


@dataclass(frozen=True)
class Config:
    """Detection configuration. Instances are immutable snapshots."""

    thresholds: ScoringThresholds = field(default_factory=ScoringThresholds)
    enabled_providers: frozenset[str] = ALL_SIGNAL_KINDS

    # Provider credentials (optional, providers without them report "no data")
    safe_browsing_api_key: str = ""
    virustotal_api_key: str = ""
    phishtank_api_key: str = ""
    classifier_endpoint: str = ""

    # Operational limits (seconds)
    provider_timeout: float = 8.0
    analysis_timeout: float = 15.0

    # URL heuristics
    max_subdomains: int = 3
    max_url_length: int = 100
    long_url_threshold: int = 75
    suspicious_tlds: frozenset[str] = DEFAULT_SUSPICIOUS_TLDS
    suspicious_keywords: tuple[str, ...] = DEFAULT_SUSPICIOUS_KEYWORDS
    misspelled_domains: tuple[tuple[str, tuple[str, ...]], ...] = DEFAULT_MISSPELLED_DOMAINS
    trusted_domains: frozenset[str] = DEFAULT_TRUSTED_DOMAINS

    # Favicon similarity
    favicon_similarity_threshold: float = 90.0
    favicon_fingerprints: Optional[Path] = None

    # Paths / caller-side persistence
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    history_limit: int = 100
    intel_cache_ttl_hours: int = 24

    def misspelling_table(self) -> dict[str, tuple[str, ...]]:
        return dict(self.misspelled_domains)

    def provider_enabled(self, name: str) -> bool:
        return name in self.enabled_providers


def _split_csv(value: str) -> list[str]:
    return [item.strip().lower() for item in (value or "").split(",") if item.strip()]


def _load_heuristics(config_dir: Path) -> dict:
    """Load heuristic overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring heuristics.yaml: top level must be a mapping")
        return {}

    def _coerce_list(raw) -> list[str]:
        if not isinstance(raw, (list, tuple, set)):
            return []
        return [str(item).strip().lower() for item in raw if str(item).strip()]

    def _coerce_misspellings(raw) -> tuple[tuple[str, tuple[str, ...]], ...]:
        if not isinstance(raw, dict):
            return ()
        table = []
        for brand, variants in raw.items():
            cleaned = tuple(_coerce_list(variants))
            if str(brand).strip() and cleaned:
                table.append((str(brand).strip().lower(), cleaned))
        return tuple(table)

    domain_cfg = data.get("domain", {}) if isinstance(data.get("domain"), dict) else {}

    overrides: dict[str, Any] = {}
    tlds = _coerce_list(domain_cfg.get("suspicious_tlds"))
    if tlds:
        overrides["suspicious_tlds"] = frozenset(t.lstrip(".") for t in tlds)
    keywords = _coerce_list(domain_cfg.get("suspicious_keywords"))
    if keywords:
        overrides["suspicious_keywords"] = tuple(keywords)
    misspellings = _coerce_misspellings(domain_cfg.get("misspellings"))
    if misspellings:
        overrides["misspelled_domains"] = misspellings
    trusted = _coerce_list(data.get("trusted_domains"))
    if trusted:
        overrides["trusted_domains"] = frozenset(canonicalize_domain(d) or d for d in trusted)
    return overrides


def load_config() -> Config:
    """Load configuration from environment variables and config/heuristics.yaml."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)

    enabled_raw = os.getenv("PHISHLENS_ENABLED_PROVIDERS", "all").strip().lower()
    if enabled_raw in {"", "all", "*"}:
        enabled = ALL_SIGNAL_KINDS
    else:
        enabled = frozenset(_split_csv(enabled_raw))

    trusted = set(heuristics.pop("trusted_domains", DEFAULT_TRUSTED_DOMAINS))
    trusted |= {canonicalize_domain(d) or d for d in _split_csv(os.getenv("TRUSTED_DOMAINS", ""))}

    fingerprints = config_dir / "favicons.yaml"

    return Config(
        thresholds=ScoringThresholds(
            safe=int(os.getenv("PHISHLENS_THRESHOLD_SAFE", "80")),
            suspicious=int(os.getenv("PHISHLENS_THRESHOLD_SUSPICIOUS", "60")),
            dangerous=int(os.getenv("PHISHLENS_THRESHOLD_DANGEROUS", "40")),
        ),
        enabled_providers=enabled,
        safe_browsing_api_key=os.getenv("SAFE_BROWSING_API_KEY", ""),
        virustotal_api_key=os.getenv("VIRUSTOTAL_API_KEY", ""),
        phishtank_api_key=os.getenv("PHISHTANK_API_KEY", ""),
        classifier_endpoint=os.getenv("CLASSIFIER_ENDPOINT", ""),
        provider_timeout=float(os.getenv("PROVIDER_TIMEOUT", "8")),
        analysis_timeout=float(os.getenv("ANALYSIS_TIMEOUT", "15")),
        max_subdomains=int(os.getenv("MAX_SUBDOMAINS", "3")),
        max_url_length=int(os.getenv("MAX_URL_LENGTH", "100")),
        favicon_similarity_threshold=float(os.getenv("FAVICON_SIMILARITY_THRESHOLD", "90")),
        favicon_fingerprints=fingerprints if fingerprints.exists() else None,
        trusted_domains=frozenset(trusted),
        data_dir=Path(os.getenv("DATA_DIR", "./data")),
        history_limit=int(os.getenv("HISTORY_LIMIT", "100")),
        **heuristics,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = list(config.thresholds.errors())

    unknown = set(config.enabled_providers) - ALL_SIGNAL_KINDS
    if unknown:
        errors.append(f"Unknown providers enabled: {', '.join(sorted(unknown))}")
    if config.provider_timeout <= 0:
        errors.append("PROVIDER_TIMEOUT must be positive")
    if config.analysis_timeout <= 0:
        errors.append("ANALYSIS_TIMEOUT must be positive")
    if config.max_subdomains < 0:
        errors.append("MAX_SUBDOMAINS must not be negative")
    if config.max_url_length <= 0 or config.long_url_threshold <= 0:
        errors.append("URL length limits must be positive")
    if not 0 < config.favicon_similarity_threshold <= 100:
        errors.append("FAVICON_SIMILARITY_THRESHOLD must lie within (0, 100]")
    if config.history_limit < 1:
        errors.append("HISTORY_LIMIT must be at least 1")

    if config.provider_enabled("classifier") and not config.classifier_endpoint:
        logger.debug("No CLASSIFIER_ENDPOINT configured; classifier provider disabled")

    return errors


class ConfigStore:
    """Process-wide holder of the active configuration.

    Analyses read a snapshot at call start; updates swap the whole object,
    so in-flight analyses keep scoring against the snapshot they took.
    """

    def __init__(self, config: Optional[Config] = None):
        config = config or Config()
        errors = validate_config(config)
        if errors:
            raise ConfigurationError(errors)
        self._config = config
        self._lock = threading.Lock()

    def snapshot(self) -> Config:
        with self._lock:
            return self._config

    def update(self, **changes: Any) -> Config:
        """Apply changes atomically. Raises ConfigurationError and keeps the prior config."""
        thresholds = changes.get("thresholds")
        if isinstance(thresholds, Mapping):
            changes["thresholds"] = ScoringThresholds.from_mapping(thresholds)
        if "enabled_providers" in changes:
            changes["enabled_providers"] = frozenset(changes["enabled_providers"])
        if "trusted_domains" in changes:
            changes["trusted_domains"] = frozenset(
                canonicalize_domain(d) or d for d in changes["trusted_domains"]
            )

        with self._lock:
            try:
                candidate = dataclasses.replace(self._config, **changes)
            except TypeError as exc:
                raise ConfigurationError([str(exc)]) from exc
            errors = validate_config(candidate)
            if errors:
                logger.warning("Rejected configuration update: %s", "; ".join(errors))
                raise ConfigurationError(errors)
            self._config = candidate

        logger.info("Detection configuration updated: %s", ", ".join(sorted(changes)) or "no changes")
        return candidate
