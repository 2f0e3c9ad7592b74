"""PhishLens: phishing risk scoring for visited pages."""

__version__ = "0.1.0"
