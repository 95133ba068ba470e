"""Portal probes — the tenant's customer-facing web portal."""
