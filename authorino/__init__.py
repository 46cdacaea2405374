"""Building blocks for an external authorization service: JSON selectors, expressions, host index, response evaluators, metadata fetchers, logging and metrics."""

__version__ = "0.1.0"