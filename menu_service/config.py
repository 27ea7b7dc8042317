from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"
    port: int = 5000

    # Cassandra, comma separated contact points; CASSANDRA_HOST is the single-host spelling
    cassandra_hosts: str = Field(
        "localhost",
        validation_alias=AliasChoices("cassandra_hosts", "cassandra_host"),
    )
    cassandra_dc: str = "datacenter1"
    cassandra_port: int = 9042
    cassandra_keyspace: str = "food_menu"
    cassandra_replication_class: str = "SimpleStrategy"
    cassandra_replication_factor: int = 1
    cassandra_connect_timeout: float = 30.0
    cassandra_request_timeout: float = 30.0
    cassandra_fetch_size: int = 1000

    # Startup provisioning retry (fixed delay, no attempt cap)
    reconnect_delay: float = 5.0

    # Observability, empty endpoint disables tracing
    otlp_endpoint: str = "http://jaeger:4318/v1/traces"

    model_config = {"env_file": ".env", "populate_by_name": True}

    @property
    def contact_points(self) -> list[str]:
        return [host.strip() for host in self.cassandra_hosts.split(",") if host.strip()]


settings = Settings()
