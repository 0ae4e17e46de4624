"""Prometheus metrics for IncorpFlow.

Defines and exposes operational metrics for monitoring and alerting.
"""

from prometheus_client import Counter, Histogram

http_requests_total = Counter(
    "incorpflow_http_requests_total",
    "Total HTTP requests handled",
    ["method", "status_class"]  # status_class: 2xx|4xx|5xx
)

# Workflow metrics
registrations_created_total = Counter(
    "incorpflow_registrations_created_total",
    "Total registrations created"
)

registration_transitions_total = Counter(
    "incorpflow_registration_transitions_total",
    "Workflow operations applied to registrations",
    ["operation", "to_status"]  # operation: advance|publish|acknowledge|reject_payment|...
)

registration_conflicts_total = Counter(
    "incorpflow_registration_conflicts_total",
    "Compare-and-swap conflicts on registration updates",
    ["outcome"]  # outcome: retried|exhausted
)

# Document slot metrics
slot_mutations_total = Counter(
    "incorpflow_slot_mutations_total",
    "Document slot mutations committed",
    ["slot", "operation"]  # operation: set|append|remove|merge|clear
)

# Blob store metrics
blob_operations_total = Counter(
    "incorpflow_blob_operations_total",
    "Blob store operations",
    ["operation", "status"]  # operation: store|delete|retrieve, status: success|error|timeout
)

blob_operation_duration_seconds = Histogram(
    "incorpflow_blob_operation_duration_seconds",
    "Time spent in blob store calls in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

orphaned_blobs_total = Counter(
    "incorpflow_orphaned_blobs_total",
    "Blobs left behind because a cleanup delete failed"
)
