"""Poll listing pages and announce entries that beat configured price thresholds."""

__version__ = "0.1.0"
