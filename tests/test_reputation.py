"""Tests for the domain reputation provider and its service clients."""

import aiohttp
import pytest

from phishlens.analyzer.features import extract
from phishlens.analyzer.provider_reputation import DomainReputationProvider, aggregate_verdicts
from phishlens.analyzer.reputation_services import (
    PhishTankClient,
    SafeBrowsingClient,
    VirusTotalClient,
)
from phishlens.analyzer.signals import ServiceVerdict
from phishlens.config import Config
from phishlens.errors import ProviderUnavailableError


class _FakeHttpxResponse:
    def __init__(self, status_code: int, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if not isinstance(self._payload, dict):
            raise ValueError("not JSON")
        return self._payload


class _FakeAsyncClient:
    calls: list = []
    response = _FakeHttpxResponse(200, {"results": {}})

    def __init__(self, *args, **kwargs):
        pass

    async def post(self, url, data=None, headers=None):
        type(self).calls.append((url, data))
        return type(self).response

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


@pytest.fixture
def fake_httpx(monkeypatch):
    import httpx

    _FakeAsyncClient.calls = []
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    return _FakeAsyncClient


URL = "http://paypa1-login.tk/verify"


def _features():
    return extract(URL)


class TestAggregate:
    def test_clean_verdicts(self):
        signal = aggregate_verdicts([ServiceVerdict(service="A"), ServiceVerdict(service="B")])
        assert not signal.threat_detected
        assert not signal.in_blacklist
        assert signal.reputation == 75
        assert signal.data_sources == ("A", "B")

    def test_flagged_or_blacklisted_lowers_reputation(self):
        assert aggregate_verdicts([ServiceVerdict(service="A", flagged=True)]).reputation == 25
        blacklisted = aggregate_verdicts([ServiceVerdict(service="P", blacklisted=True)])
        assert blacklisted.in_blacklist
        assert not blacklisted.threat_detected
        assert blacklisted.reputation == 25


class TestDomainReputationProvider:
    @pytest.mark.asyncio
    async def test_no_services_configured_is_unchecked(self, config, fake_aiohttp):
        fake_aiohttp(lambda method, url, kwargs: AssertionError("no request expected"))
        signal = await DomainReputationProvider().check(URL, _features(), config)
        assert not signal.checked
        assert signal.data_sources == ()

    @pytest.mark.asyncio
    async def test_safe_browsing_match(self, fake_aiohttp, fake_response):
        sessions = fake_aiohttp(
            lambda method, url, kwargs: fake_response(
                200, {"matches": [{"threatType": "SOCIAL_ENGINEERING"}]}
            )
        )
        config = Config(safe_browsing_api_key="sb-key")
        signal = await DomainReputationProvider().check(URL, _features(), config)

        assert signal.threat_detected
        assert signal.reputation == 25
        assert signal.data_sources == ("Google Safe Browsing",)
        assert signal.services[0].detail == "SOCIAL_ENGINEERING"

        method, url, kwargs = sessions[0].calls[0]
        assert method == "POST"
        assert url == SafeBrowsingClient.API_URL
        assert kwargs["params"] == {"key": "sb-key"}
        assert kwargs["json"]["threatInfo"]["threatEntries"] == [{"url": URL}]
        assert "SOCIAL_ENGINEERING" in kwargs["json"]["threatInfo"]["threatTypes"]

    @pytest.mark.asyncio
    async def test_virustotal_counts_malicious_engines(self, fake_aiohttp, fake_response):
        payload = {"data": {"attributes": {"last_analysis_stats": {"malicious": 3, "harmless": 60}}}}
        sessions = fake_aiohttp(lambda method, url, kwargs: fake_response(200, payload))
        config = Config(virustotal_api_key="vt-key")
        provider = DomainReputationProvider(vt_min_interval=0)
        signal = await provider.check(URL, _features(), config)

        assert signal.threat_detected
        assert signal.services[0].detail == "3/63 engines flagged"
        method, url, kwargs = sessions[0].calls[0]
        assert url.endswith(VirusTotalClient.url_id(URL))
        assert kwargs["headers"] == {"x-apikey": "vt-key"}

    @pytest.mark.asyncio
    async def test_virustotal_unknown_url_is_clean(self, fake_aiohttp, fake_response):
        fake_aiohttp(lambda method, url, kwargs: fake_response(404, {}))
        config = Config(virustotal_api_key="vt-key")
        signal = await DomainReputationProvider(vt_min_interval=0).check(URL, _features(), config)
        assert not signal.threat_detected
        assert signal.reputation == 75

    @pytest.mark.asyncio
    async def test_phishtank_verified_phish(self, fake_httpx):
        fake_httpx.response = _FakeHttpxResponse(
            200, {"results": {"in_database": True, "verified": True, "valid": True}}
        )
        config = Config(phishtank_api_key="pt-key")
        signal = await DomainReputationProvider().check(URL, _features(), config)

        assert signal.in_blacklist
        assert not signal.threat_detected
        assert signal.reputation == 25
        url, data = fake_httpx.calls[0]
        assert url == PhishTankClient.CHECK_URL
        assert data == {"url": URL, "format": "json", "app_key": "pt-key"}

    @pytest.mark.asyncio
    async def test_phishtank_unverified_entry_is_not_blacklisted(self, fake_httpx):
        fake_httpx.response = _FakeHttpxResponse(
            200, {"results": {"in_database": True, "verified": False}}
        )
        config = Config(phishtank_api_key="pt-key")
        signal = await DomainReputationProvider().check(URL, _features(), config)
        assert not signal.in_blacklist

    @pytest.mark.asyncio
    async def test_all_services_failing_raises(self, fake_aiohttp, fake_response):
        fake_aiohttp(lambda method, url, kwargs: fake_response(500, {}))
        config = Config(safe_browsing_api_key="sb", virustotal_api_key="vt")
        provider = DomainReputationProvider(vt_min_interval=0)
        with pytest.raises(ProviderUnavailableError):
            await provider.check(URL, _features(), config)

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_answers_and_skips_cache(self, fake_aiohttp, fake_response):
        def handler(method, url, kwargs):
            if "safebrowsing" in url:
                return aiohttp.ClientConnectionError("connection reset")
            return fake_response(200, {"data": {"attributes": {"last_analysis_stats": {"harmless": 5}}}})

        fake_aiohttp(handler)
        config = Config(safe_browsing_api_key="sb", virustotal_api_key="vt")
        provider = DomainReputationProvider(vt_min_interval=0)
        signal = await provider.check(URL, _features(), config)

        assert signal.checked
        assert signal.data_sources == ("VirusTotal",)
        assert "Google Safe Browsing" in signal.error
        assert provider.cache.get(URL) is None

    @pytest.mark.asyncio
    async def test_virustotal_spacing_does_not_drop_other_verdicts(self, fake_aiohttp, fake_response):
        def handler(method, url, kwargs):
            if "safebrowsing" in url:
                return fake_response(200, {"matches": [{"threatType": "SOCIAL_ENGINEERING"}]})
            return fake_response(200, {"data": {"attributes": {"last_analysis_stats": {"harmless": 5}}}})

        sessions = fake_aiohttp(handler)
        config = Config(safe_browsing_api_key="sb", virustotal_api_key="vt")
        provider = DomainReputationProvider(vt_min_interval=60.0)

        first = await provider.check(URL, _features(), config)
        other = "http://paypa1-login.tk/other"
        second = await provider.check(other, extract(other), config)

        assert first.data_sources == ("Google Safe Browsing", "VirusTotal")
        assert second.threat_detected
        assert second.data_sources == ("Google Safe Browsing",)
        assert "rate limited" in second.error
        vt_calls = [c for s in sessions for c in s.calls if "virustotal" in c[1]]
        assert len(vt_calls) == 1

    @pytest.mark.asyncio
    async def test_results_are_cached(self, fake_aiohttp, fake_response):
        sessions = fake_aiohttp(lambda method, url, kwargs: fake_response(200, {}))
        config = Config(safe_browsing_api_key="sb")
        provider = DomainReputationProvider()

        first = await provider.check(URL, _features(), config)
        second = await provider.check(URL, _features(), config)

        assert first == second
        assert len(sessions) == 1


def test_virustotal_url_id_is_unpadded_base64():
    assert VirusTotalClient.url_id("http://example.com/") == "aHR0cDovL2V4YW1wbGUuY29tLw"
