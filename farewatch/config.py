"""Configuration utilities.

Central place to load environment driven settings (API credentials, route, thresholds).
Avoids scattering os.getenv calls around the codebase.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env once on module import
load_dotenv()

PRIMARY = "primary"
SECONDARY = "secondary"

API_HOSTS = {
    PRIMARY: "https://api.amadeus.com",
    SECONDARY: "https://test.api.amadeus.com",
}

_ENV_ALIASES = {
    "primary": PRIMARY,
    "production": PRIMARY,
    "secondary": SECONDARY,
    "test": SECONDARY,
}


class ConfigError(ValueError):
    """Raised when the environment does not describe a runnable configuration."""


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _environment_env(name: str, default: str) -> str:
    raw = (os.getenv(name) or default).strip().lower()
    if raw not in _ENV_ALIASES:
        raise ConfigError(f"{name} must be one of {sorted(_ENV_ALIASES)}, got {raw!r}")
    return _ENV_ALIASES[raw]


@dataclass(slots=True)
class Settings:
    amadeus_key: str | None = None
    amadeus_secret: str | None = None
    environment: str = PRIMARY
    origin: str = "CGH"
    destination: str = "CWB"
    weeks_ahead: int = 10
    # Python weekday numbering (Mon=0, Sun=6)
    outbound_weekday: int = 3
    return_offset_days: int = 3
    min_hour_outbound: int = 19
    min_hour_return: int = 18
    currency: str = "BRL"
    max_results: int = 50
    search_retries: int = 2
    week_pacing_seconds: float = 1.5
    output_json: Path = Path("data/prices.json")
    carriers_file: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        carriers_file = os.getenv("CARRIERS_FILE")
        return cls(
            amadeus_key=os.getenv("AMADEUS_KEY"),
            amadeus_secret=os.getenv("AMADEUS_SECRET"),
            environment=_environment_env("AMADEUS_ENV", PRIMARY),
            origin=os.getenv("FARE_ORIGIN", "CGH").upper(),
            destination=os.getenv("FARE_DESTINATION", "CWB").upper(),
            weeks_ahead=_int_env("FARE_WEEKS", 10),
            min_hour_outbound=_int_env("FARE_MIN_HOUR_OUTBOUND", 19),
            min_hour_return=_int_env("FARE_MIN_HOUR_RETURN", 18),
            currency=os.getenv("FARE_CURRENCY", "BRL").upper(),
            output_json=Path(os.getenv("OUTPUT_JSON", "data/prices.json")),
            carriers_file=Path(carriers_file) if carriers_file else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def credentials_configured(self) -> bool:
        return all([self.amadeus_key, self.amadeus_secret])

    def validate(self) -> None:
        if not self.credentials_configured():
            raise ConfigError("AMADEUS_KEY and AMADEUS_SECRET must both be set")
        if self.environment not in API_HOSTS:
            raise ConfigError(f"Unknown API environment {self.environment!r}")
        if self.weeks_ahead < 1:
            raise ConfigError("FARE_WEEKS must be at least 1")
        for name, hour in (("FARE_MIN_HOUR_OUTBOUND", self.min_hour_outbound),
                           ("FARE_MIN_HOUR_RETURN", self.min_hour_return)):
            if not 0 <= hour <= 23:
                raise ConfigError(f"{name} must be within 0..23, got {hour}")
        if not 0 <= self.outbound_weekday <= 6:
            raise ConfigError(f"outbound_weekday must be within 0..6, got {self.outbound_weekday}")

    def route_config(self) -> dict[str, str | int]:
        """Route parameters echoed into the generated report."""
        return {
            "origin": self.origin,
            "destination": self.destination,
            "minHourOutbound": self.min_hour_outbound,
            "minHourReturn": self.min_hour_return,
            "weeksAhead": self.weeks_ahead,
            "currency": self.currency,
        }
