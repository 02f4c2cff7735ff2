"""
toolrelay Observability Package.

Provides:
- Metrics (Prometheus)
- Structured logging (structlog)
"""

from relay_obs import metrics
from relay_obs.logging import get_logger, job_context, setup_logging

__all__ = ["get_logger", "job_context", "setup_logging", "metrics"]
