"""Built-in probes, auto-discovered by the probe registry."""
