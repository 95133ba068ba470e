"""Channel probes — messaging channels configured for the tenant."""
