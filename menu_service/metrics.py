from prometheus_client import Counter, Gauge

PROVISIONING_ATTEMPTS = Counter(
    "cassandra_provisioning_attempts_total",
    "Connect/provision attempts made by the connection manager",
    ["outcome"],  # success | failed
)

STORAGE_READY = Gauge(
    "cassandra_storage_ready",
    "Whether the Cassandra keyspace and table are provisioned (0=no, 1=yes)",
)

SEARCH_RESULTS = Counter(
    "menu_search_rows_total",
    "Rows scanned and matched by the in-memory menu search",
    ["kind"],  # scanned | matched
)
