"""
Prometheus Metrics Registration.

Metrics for the polling agent and tool invocations. Exposing them (e.g.
with prometheus_client.start_http_server) is left to the host process.
"""

from prometheus_client import Counter, Histogram

# ============================================================================
# COUNTERS
# ============================================================================

tool_executions_total = Counter(
    "toolrelay_tool_executions_total",
    "Total tool executions",
    ["tool_name", "result_type"],  # resolution, rejection, interrupt
)

poll_cycles_total = Counter(
    "toolrelay_poll_cycles_total",
    "Poll cycles by outcome",
    ["outcome"],  # success, failure
)

jobs_received_total = Counter(
    "toolrelay_jobs_received_total",
    "Jobs fetched from the control plane",
    ["known"],  # true for tools served by this machine
)

# ============================================================================
# HISTOGRAMS
# ============================================================================

tool_execution_duration = Histogram(
    "toolrelay_tool_execution_duration_seconds",
    "Tool execution duration",
    ["tool_name"],
    buckets=(0.01, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)
