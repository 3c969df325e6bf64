import os
from dataclasses import dataclass


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class TrafficConfig:
    """
    Everything the service needs to know about one tracked site.
    Built once at startup and handed to whoever needs it.
    """
    db_path: str = "traffic.sqlite3"
    storage_key: str = "site_traffic_data"
    dash_token: str = "changeme"
    retention_days: int = 30
    cors_allow_origins: tuple = ()
    debug: bool = False

    def __post_init__(self):
        if self.retention_days < 0:
            raise ValueError(f"retention_days must be >= 0, got {self.retention_days}")

    @classmethod
    def from_env(cls, environ=None) -> "TrafficConfig":
        env = os.environ if environ is None else environ

        # CORS allowlist (only needed when the tracked site lives on another origin)
        origins = env.get("CORS_ALLOW_ORIGINS", "").split(",")

        return cls(
            db_path=env.get("TRAFFIC_DB", "traffic.sqlite3"),
            storage_key=env.get("TRAFFIC_STORAGE_KEY", "site_traffic_data"),
            dash_token=env.get("TRAFFIC_DASH_TOKEN", "changeme"),
            retention_days=int(env.get("TRAFFIC_RETENTION_DAYS", "30")),
            cors_allow_origins=tuple(o.strip() for o in origins if o.strip()),
            debug=_as_bool(env.get("TRAFFIC_DEBUG", "")),
        )
