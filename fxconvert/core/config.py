from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

RATE_SOURCE_KINDS = {"xml-feed", "json-feed", "static", "stored"}


class Settings(BaseSettings):
    """Converter settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., DEFAULT_CURRENCY,
    RATE_SOURCE_URI, RATE_SOURCE, RATES_MAX_AGE_SECONDS, PERSIST_SNAPSHOTS).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Currency Converter"
    debug: bool = False
    version: str = "0.1.0"

    # Conversion target
    default_currency: str = "USD"

    # Rate feed
    rate_source: str = "xml-feed"
    rate_source_uri: str = "http://toolserver.org/~kaldari/rates.xml"
    http_timeout_seconds: float = 10.0
    http_retries: int = 2

    # Staleness: 0 disables the age check
    rates_max_age_seconds: int = 3600

    # Optional snapshot persistence
    persist_snapshots: bool = False
    snapshot_keep: int = 10
    data_dir: Path = Path("data")
    db_filename: str = "rates.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    def init_post_load(self) -> None:
        """Finalize derived fields and validate the provider selection."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        if self.persist_snapshots or self.rate_source == "stored":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        if self.rate_source not in RATE_SOURCE_KINDS:
            raise ValueError(
                f"Unsupported rate_source '{self.rate_source}'. Allowed: {sorted(RATE_SOURCE_KINDS)}"
            )
        if not self.default_currency or " " in self.default_currency:
            raise ValueError(f"Invalid default_currency '{self.default_currency}'")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
