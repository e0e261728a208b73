from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge


REGISTRY = CollectorRegistry()

HEALTH_HITS = Counter("tryon_api_healthz_hits", "Health endpoint hits", registry=REGISTRY)
READY_GAUGE = Gauge("tryon_api_ready", "Readiness status (1=ready, 0=not)", registry=REGISTRY)

GENERATIONS = Counter(
    "tryon_generations_total",
    "Completed generation requests by endpoint",
    ["endpoint"],
    registry=REGISTRY,
)
ERRORS = Counter(
    "tryon_errors_total",
    "Handled request errors by error code",
    ["code"],
    registry=REGISTRY,
)
UPLOADS = Counter("tryon_uploads_total", "Stored uploads by kind", ["kind"], registry=REGISTRY)
PROXY_RESPONSES = Counter(
    "tryon_proxy_responses_total",
    "Image proxy responses by status code",
    ["status"],
    registry=REGISTRY,
)
