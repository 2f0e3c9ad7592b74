"""Exception hierarchy for PhishLens."""


class PhishLensError(Exception):
    """Base exception for PhishLens errors."""

    pass


class InvalidUrlError(PhishLensError):
    """URL could not be parsed into something we can analyze."""

    def __init__(self, url: str, message: str = "Unparsable URL"):
        self.url = url
        self.message = message
        super().__init__(f"{message}: {url!r}")


class ProviderError(PhishLensError):
    """A signal provider failed to produce a result."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within its time budget."""

    def __init__(self, provider: str, timeout: float):
        self.timeout = timeout
        super().__init__(provider, f"timed out after {timeout:g}s")


class ProviderUnavailableError(ProviderError):
    """Provider backend is unreachable or returned an unusable answer."""

    pass


class ConfigurationError(PhishLensError):
    """Configuration update rejected."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid configuration")
