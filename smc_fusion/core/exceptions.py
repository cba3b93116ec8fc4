"""
Custom exceptions for the signal pipeline
"""


class SignalPipelineError(Exception):
    """Base exception for signal pipeline errors"""


class ConfigurationError(SignalPipelineError):
    """Configuration related errors"""


class MarketDataError(SignalPipelineError):
    """Required market data is absent (a configured timeframe was never supplied)"""


class WeightStateError(SignalPipelineError):
    """Persisted learner weights are unreadable or malformed"""
