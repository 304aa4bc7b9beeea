"""Building blocks for dynamic DNS updaters: address detection, record
reconciliation, domain expressions and Healthchecks.io pings."""

__version__ = "0.1.0"