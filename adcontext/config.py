"""
Configuration for adcontext
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from .constants import COMPLETION_RETRY_DELAY, LOCATION_TIMEOUT

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={value!r}")
        return default


# Identity
APP_ID_OVERRIDE = os.getenv("ADCONTEXT_APP_ID")

# Logging
LOGGING_ENABLED = _env_bool("ADCONTEXT_LOGGING", False)

# Location
LOCATION_ENABLED = _env_bool("ADCONTEXT_LOCATION_ENABLED", True)
LOCATION_TIMEOUT_SECONDS = _env_float("ADCONTEXT_LOCATION_TIMEOUT", LOCATION_TIMEOUT)

# Delivery
COMPLETION_RETRY_SECONDS = _env_float("ADCONTEXT_COMPLETION_RETRY_DELAY", COMPLETION_RETRY_DELAY)

# Payload policy: report 5G connections as CELL_4G
REPORT_5G_AS_4G = _env_bool("ADCONTEXT_REPORT_5G_AS_4G", True)

# Reverse geocoding (Nominatim usage policy requires an identifying user agent)
GEOCODER_URL = os.getenv("ADCONTEXT_GEOCODER_URL", "https://nominatim.openstreetmap.org/reverse")
GEOCODER_USER_AGENT = os.getenv("ADCONTEXT_GEOCODER_USER_AGENT", "adcontext (set your email)")


@dataclass
class ContextConfig:
    """SDK configuration."""
    app_id_override: Optional[str] = None
    logging_enabled: bool = False
    location_enabled: bool = True
    location_timeout: float = LOCATION_TIMEOUT
    completion_retry_delay: float = COMPLETION_RETRY_DELAY
    report_5g_as_4g: bool = True
    geocoder_url: str = "https://nominatim.openstreetmap.org/reverse"
    geocoder_user_agent: str = "adcontext (set your email)"

    def validate(self) -> List[str]:
        """Return a list of problems (empty if valid)."""
        problems = []
        if self.location_timeout <= 0:
            problems.append("location_timeout must be positive")
        if self.completion_retry_delay < 0:
            problems.append("completion_retry_delay must not be negative")
        if self.app_id_override is not None and not self.app_id_override.strip():
            problems.append("app_id_override must not be blank")
        if not self.geocoder_url.startswith(("http://", "https://")):
            problems.append("geocoder_url must be an http(s) URL")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(cls) -> "ContextConfig":
        """Load from environment variables."""
        return cls(
            app_id_override=APP_ID_OVERRIDE or None,
            logging_enabled=LOGGING_ENABLED,
            location_enabled=LOCATION_ENABLED,
            location_timeout=LOCATION_TIMEOUT_SECONDS,
            completion_retry_delay=COMPLETION_RETRY_SECONDS,
            report_5g_as_4g=REPORT_5G_AS_4G,
            geocoder_url=GEOCODER_URL,
            geocoder_user_agent=GEOCODER_USER_AGENT,
        )

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "ContextConfig":
        """
        Load from a YAML file.

        Expected format (the top-level key is optional):
        adcontext:
          app_id_override: com.example.app
          logging_enabled: true
          location_timeout: 5
        """
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        if "adcontext" in data:
            data = data["adcontext"] or {}
        return cls.from_dict(data)
