"""Configuration schema — Pydantic models for config.yaml."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"
    buffer_size: int = 1000
    buffer_retention_s: int = 1800


class RouterConfig(BaseModel):
    auto_trade_threshold: float = Field(default=0.70, ge=0.0, le=1.0)
    recency_capacity: int = 1000
    account_refresh_s: float = 10.0
    history_refresh_s: float = 120.0
    history_lookback_days: int = 30
    backlog_window_minutes: int = 60
    settings_path: str = ".trading_settings.json"


class ClassifierConfig(BaseModel):
    base_url: str = "https://api.groq.com/openai/v1"
    api_key: str = ""
    models: list[str] = Field(default_factory=lambda: [
        "openai/gpt-oss-120b",
        "openai/gpt-oss-20b",
        "llama-3.3-70b-versatile",
        "llama-3.1-8b-instant",
    ])
    model_timeout_s: float = 5.0
    temperature: float = 0.1
    max_tokens: int = 1000


class TelegramConfig(BaseModel):
    base_url: str = "https://api.telegram.org"
    bot_token: str = ""
    poll_timeout_s: int = 30
    backlog_size: int = 100
    backoff_base_s: float = 1.0
    backoff_cap_s: float = 60.0
    max_attempts: int = 8


class PaperConfig(BaseModel):
    initial_balance: float = 10000
    currency: str = "USD"
    leverage: int = 100
    contract_size: float = 1.0
    spread_pct: float = 0.0002
    slippage_pct: float = 0.0005
    fee_pct: float = 0.0004
    quote_staleness_s: float = 30.0
    monitor_interval_s: float = 5.0
    hl_ws_url: str = "wss://api.hyperliquid.xyz/ws"
    quote_feed_enabled: bool = True


class ApiConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    observer_queue_size: int = 1000


class AppConfig(BaseModel):
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    router: RouterConfig = Field(default_factory=RouterConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    paper: PaperConfig = Field(default_factory=PaperConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
