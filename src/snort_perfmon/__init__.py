"""snort_perfmon – periodic metric extraction from Snort perfmon files."""

__version__ = "0.1.0"
