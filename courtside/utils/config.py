"""Configuration management."""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OddsApiConfig(BaseModel):
    """The Odds API configuration."""
    api_key: str = ""
    base_url: str = "https://api.the-odds-api.com/v4"
    regions: str = "us"
    bookmaker: str = "fanduel"
    bookmaker_title: str = "FanDuel"
    market: str = "totals"
    odds_format: str = "american"
    timeout_seconds: float = 60.0
    fallback_sports: List[str] = Field(default_factory=lambda: [
        "basketball_nba",
        "basketball_ncaab",
        "basketball_wnba",
        "basketball_euroleague",
        "basketball_nbl",
    ])


class TelegramConfig(BaseModel):
    """Telegram bot configuration."""
    bot_token: str = ""
    chat_id: str = ""
    commands_enabled: bool = False


class AnalyzerConfig(BaseModel):
    """Projection and confidence heuristics."""
    projection_divisor: float = 0.75
    min_edge: float = 10.0
    base_confidence: float = 60.0
    max_confidence: float = 95.0
    high_pace: float = 2.4
    low_pace: float = 2.0
    quarter_seconds: int = 720
    time_bonus_seconds: int = 390


class WindowConfig(BaseModel):
    """In-game alert window."""
    target_period: int = 3
    target_seconds: int = 420
    tolerance_seconds: int = 30


class CacheConfig(BaseModel):
    """Game cache staleness thresholds."""
    schedule_ttl_hours: float = 6
    live_ttl_seconds: float = 30
    retention_hours: float = 24


class GatewayConfig(BaseModel):
    """Which scheduled games are polled for live scores."""
    lookback_hours: float = 4
    lookahead_hours: float = 2


class MonitorConfig(BaseModel):
    """Alert deduplication limits."""
    dedup_max: int = 100
    dedup_keep: int = 50


class SchedulerConfig(BaseModel):
    """Background job cadence."""
    timezone: str = "America/New_York"
    daily_refresh_hour: int = 8
    check_interval_seconds: int = 30
    active_start_hour: int = 12
    active_end_hour: int = 3


class LedgerConfig(BaseModel):
    """Bet ledger storage."""
    data_dir: str = "data"
    read_only: bool = False


class DashboardConfig(BaseModel):
    """Web dashboard server."""
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class Settings(BaseModel):
    """Application settings."""
    odds_api: OddsApiConfig = Field(default_factory=OddsApiConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    window: WindowConfig = Field(default_factory=WindowConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)


# (section, field, env var, converter)
ENV_OVERRIDES = [
    ("odds_api", "api_key", "ODDS_API_KEY", str),
    ("telegram", "bot_token", "TELEGRAM_BOT_TOKEN", str),
    ("telegram", "chat_id", "TELEGRAM_CHAT_ID", str),
    ("scheduler", "timezone", "COURTSIDE_TIMEZONE", str),
    ("ledger", "data_dir", "COURTSIDE_DATA_DIR", str),
    ("ledger", "read_only", "COURTSIDE_READ_ONLY", lambda v: v.lower() in ("1", "true", "yes")),
    ("dashboard", "port", "PORT", int),
]


class ConfigManager:
    """Manages application configuration files."""

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize the config manager.

        Args:
            config_dir: Path to config directory. Defaults to ./config
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            # Look for config in current directory or next to the package
            self.config_dir = Path("config")
            if not self.config_dir.exists():
                self.config_dir = Path(__file__).parent.parent.parent / "config"

        self._settings: Optional[Settings] = None

    @property
    def settings_path(self) -> Path:
        """Path to settings.json."""
        return self.config_dir / "settings.json"

    def load_settings(self) -> Settings:
        """Load settings from file and environment variables."""
        settings_data: Dict[str, Any] = {}

        if self.settings_path.exists():
            with open(self.settings_path, "r") as f:
                settings_data = json.load(f)

        for section, key, env_var, convert in ENV_OVERRIDES:
            value = os.environ.get(env_var)
            if value:
                settings_data.setdefault(section, {})[key] = convert(value)

        self._settings = Settings(**settings_data)
        return self._settings

    def save_settings(self, settings: Settings) -> None:
        """Save settings to file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.settings_path, "w") as f:
            json.dump(settings.model_dump(), f, indent=2)

        self._settings = settings

    def get_settings(self) -> Settings:
        """Get cached settings or load from file."""
        if self._settings is None:
            self._settings = self.load_settings()
        return self._settings

    def reload(self) -> Settings:
        """Force reload the configuration file."""
        self._settings = None
        return self.load_settings()
