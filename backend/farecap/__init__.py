"""PearlCard capped fare engine."""

__version__ = "2.0.0"
