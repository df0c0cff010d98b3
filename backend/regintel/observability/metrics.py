"""
Prometheus metrics for the compliance engine.

Counters and histograms covering turns, concept capture, conversation
context persistence and graph node resolution.
"""

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

# ── Turn metrics ─────────────────────────────────────────────────────────────

compliance_turns_total = Counter(
    "compliance_turns_total",
    "Total compliance engine turns",
    ["mode", "outcome"],
)

compliance_turn_duration_seconds = Histogram(
    "compliance_turn_duration_seconds",
    "Compliance turn duration in seconds",
    ["mode"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

# ── Concept capture metrics ──────────────────────────────────────────────────

concepts_captured_total = Counter(
    "concepts_captured_total",
    "Canonical concept node ids resolved from capture_concepts tool calls",
)

concept_capture_failures_total = Counter(
    "concept_capture_failures_total",
    "Concept capture failures",
    ["stage"],
)

# ── Context metrics ──────────────────────────────────────────────────────────

conversation_context_operations_total = Counter(
    "conversation_context_operations_total",
    "Conversation context store operations",
    ["operation", "outcome"],
)

node_resolution_failures_total = Counter(
    "node_resolution_failures_total",
    "Graph lookups for active node metadata that failed",
)


def render_metrics() -> bytes:
    """Prometheus text exposition of the default registry."""
    return generate_latest(REGISTRY)
