"""Package version, reported to the control plane in request headers."""

__version__ = "0.1.0"
