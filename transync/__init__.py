"""transync: keeps workload pod templates annotated with translation catalog fingerprints."""

__version__ = "0.1.0"
