"""Scoring rule implementations, one per feature group or signal kind."""

from __future__ import annotations

from ..constants import Severity, SignalKind
from .rules import Finding, RuleResult, ScoringContext
from .signals import (
    ClassifierSignal,
    FaviconSignal,
    HeuristicSignal,
    ReputationSignal,
    SSLSignal,
    TextSignal,
)


class UrlStructureRule:
    name = "url_structure"

    def apply(self, context: ScoringContext) -> RuleResult:
        result = RuleResult(name=self.name)
        f = context.features
        if f.has_ip:
            result.add("ip_address", -15, "URL contains IP address instead of domain name")
        if f.has_at_symbol:
            result.add("at_symbol", -10, "URL contains @ symbol which can be used for deception")
        if f.url_length > context.config.long_url_threshold:
            result.add("long_url", -5, f"Unusually long URL ({f.url_length} characters)")
        if f.subdomain_count > context.config.max_subdomains:
            result.add(
                "subdomains", -10, f"Excessive number of subdomains ({f.subdomain_count})"
            )
        if f.is_https:
            result.add("https", 10, "Site uses secure HTTPS connection")
        return result


class PageContentRule:
    name = "page_content"

    def apply(self, context: ScoringContext) -> RuleResult:
        result = RuleResult(name=self.name)
        f = context.features
        content = f.content
        if content is None:
            return result
        if content.password_input_count and not f.is_https:
            result.add("insecure_password", -15, "Password field on a page without HTTPS")
        if content.external_form_services:
            services = ", ".join(content.external_form_services)
            result.add("form_service", -10, f"Form submits to a third-party form service ({services})")
        if content.iframe_count:
            result.add("iframes", -3, f"Page embeds {content.iframe_count} iframe(s)")
        return result


class HeuristicsRule:
    name = "heuristics"

    def apply(self, context: ScoringContext) -> RuleResult:
        result = RuleResult(name=self.name)
        signal = context.signal(SignalKind.HEURISTICS)
        if not isinstance(signal, HeuristicSignal):
            return result
        if signal.suspicious_tld:
            result.add("suspicious_tld", -10, f"Domain uses a suspicious TLD (.{signal.tld})")
        if signal.misspellings:
            brand, variant = signal.misspellings[0]
            result.add(
                "misspelled_brand",
                -30,
                f"Domain contains a misspelling of {brand} ({variant})",
            )
        if signal.keyword_density == "strong":
            result.add(
                "keywords",
                -15,
                f"URL contains many suspicious keywords ({', '.join(signal.keyword_matches)})",
            )
        elif signal.keyword_density == "weak":
            result.add(
                "keywords",
                -5,
                f"URL contains suspicious keywords ({', '.join(signal.keyword_matches)})",
            )
        if signal.is_data_uri:
            result.add("data_uri", -25, "Page is served from a data: URI")
        result.metadata.update(
            has_ip=signal.has_ip,
            long_url=signal.long_url,
            excessive_subdomains=signal.excessive_subdomains,
        )
        return result


class SSLRule:
    name = "ssl"

    def apply(self, context: ScoringContext) -> RuleResult:
        result = RuleResult(name=self.name)
        signal = context.signal(SignalKind.SSL)
        if not isinstance(signal, SSLSignal):
            return result
        if not signal.has_ssl:
            result.add("no_ssl", -15, "Site does not use secure HTTPS connection")
        if signal.security_level == "poor":
            if signal.has_ssl:
                message = "Site uses untrusted SSL certificate"
            else:
                message = "Connection security is poor"
            result.add("ssl_poor", -10, message)
        elif signal.security_level == "excellent":
            result.add("ssl_excellent", 10, "Connection security is excellent")
        if signal.is_ev:
            result.add("ssl_ev", 10, "Site uses Extended Validation SSL certificate")
        return result


class FaviconRule:
    name = "favicon"

    def apply(self, context: ScoringContext) -> RuleResult:
        result = RuleResult(name=self.name)
        signal = context.signal(SignalKind.FAVICON)
        if isinstance(signal, FaviconSignal) and signal.matches_known_site:
            brand = signal.target_brand or "a known brand"
            result.add(
                "favicon_match",
                -20,
                f"Favicon similar to {brand} ({signal.similarity_score:g}% match)",
            )
        return result


class TextRule:
    name = "text"

    def apply(self, context: ScoringContext) -> RuleResult:
        result = RuleResult(name=self.name)
        signal = context.signal(SignalKind.TEXT)
        if not isinstance(signal, TextSignal):
            return result
        count = signal.suspicious_phrase_count
        if signal.threat_level == "high":
            result.add("phrases", -15, f"Page contains multiple suspicious phrases ({count} found)")
        elif signal.threat_level == "medium":
            result.add("phrases", -7, f"Page contains some suspicious phrases ({count} found)")
        if signal.urgency_level == "high":
            result.add("urgency", -10, "Page uses urgent language to create pressure")
        if signal.brand_impersonation is not None:
            brand = signal.brand_impersonation.detected_brand
            result.add("brand_impersonation", -15, f"Possible {brand} impersonation detected")
        return result


class ReputationRule:
    name = "reputation"

    def apply(self, context: ScoringContext) -> RuleResult:
        result = RuleResult(name=self.name)
        signal = context.signal(SignalKind.REPUTATION)
        if not isinstance(signal, ReputationSignal):
            return result
        if signal.threat_detected:
            result.add("threat", -25, "Domain flagged by security services as malicious")
        if signal.in_blacklist:
            result.add("blacklist", -20, "Domain appears in known phishing blacklists")
        if signal.threat_detected or signal.in_blacklist:
            result.adjustment += signal.reputation / 10
            return result
        sources = ", ".join(signal.data_sources) or "reputation services"
        result.add(
            "reputation_score",
            signal.reputation / 10,
            f"Domain reputation {signal.reputation}/100 ({sources})",
        )
        return result


class ClassifierRule:
    """Surfaces the classifier's own explanation; its score is applied by the engine."""

    name = "classifier"

    def apply(self, context: ScoringContext) -> RuleResult:
        result = RuleResult(name=self.name)
        signal = context.signal(SignalKind.CLASSIFIER)
        if not isinstance(signal, ClassifierSignal):
            return result
        for item_type, text in signal.explanation:
            result.findings.append(
                Finding(
                    check="classifier",
                    points=0,
                    message=text,
                    severity=Severity.from_string(item_type),
                )
            )
        return result


DEFAULT_RULES = (
    UrlStructureRule(),
    PageContentRule(),
    HeuristicsRule(),
    SSLRule(),
    FaviconRule(),
    TextRule(),
    ReputationRule(),
    ClassifierRule(),
)
