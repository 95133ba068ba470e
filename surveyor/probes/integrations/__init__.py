"""Integration probes — back-office systems the tenant connects to."""
