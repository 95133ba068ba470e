"""Data probes — catalog and pricing data points."""
