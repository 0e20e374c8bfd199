from prometheus_client import CollectorRegistry, Counter

registry = CollectorRegistry()

screenshots_total = Counter(
    "authshot_screenshots_total",
    "Screenshots served, by cache outcome",
    ["cache"],
    registry=registry,
)
sessions_total = Counter(
    "authshot_sessions_total",
    "Session acquisitions, by status",
    ["status"],
    registry=registry,
)
