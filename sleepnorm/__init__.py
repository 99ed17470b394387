"""sleepnorm: normalize free-text and structured sleep exports into records."""

__version__ = "0.1.0"
