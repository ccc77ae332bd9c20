# =============================================================================
# core/config.py  —  Runtime Configuration
# =============================================================================
#
# All knobs come from environment variables.  main.py calls load_dotenv()
# before anything reads them, so a local .env file works too.
#
#   GCLOUD_PATH                 gcloud executable          (default: gcloud)
#   GCP_ASSET_COMMAND_TIMEOUT   seconds per gcloud call    (default: no limit)
#   GCP_ASSET_LOG_LEVEL         logging level              (default: INFO)
#   GCP_ASSET_COLOR_LOGS        ANSI colors in log lines   (default: true)
# =============================================================================

from dataclasses import dataclass
import os
from typing import Optional

UNSET_SENTINELS = {"", "none", "null", "unset"}
FALSE_VALUES = {"false", "0", "no", "off"}


def env_value(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip()
    if value.lower() in UNSET_SENTINELS:
        return default
    return value


def _env_timeout(name: str) -> Optional[float]:
    value = env_value(name)
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}") from None
    if seconds <= 0:
        return None
    return seconds


@dataclass(frozen=True)
class Settings:
    gcloud_path: str = "gcloud"
    command_timeout: Optional[float] = None
    log_level: str = "INFO"
    color_logs: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gcloud_path=env_value("GCLOUD_PATH", "gcloud"),
            command_timeout=_env_timeout("GCP_ASSET_COMMAND_TIMEOUT"),
            log_level=env_value("GCP_ASSET_LOG_LEVEL", "INFO").upper(),
            color_logs=env_value("GCP_ASSET_COLOR_LOGS", "true").lower() not in FALSE_VALUES,
        )
