"""Runtime configuration for Brainiark OS."""
