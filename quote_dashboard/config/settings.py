from pydantic_settings import BaseSettings, SettingsConfigDict

from quote_dashboard.errors import ConfigurationError
from quote_dashboard.utils.symbol_normalizer import parse_symbol_list

DEFAULT_PROVIDER_URLS = {
    "yahoo": "https://query1.finance.yahoo.com/v7/finance/quote",
    "alpha_vantage": "https://www.alphavantage.co/query",
}


class Settings(BaseSettings):
    app_name: str = "Trading Dashboard API"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    schema_version: str = "1.0"

    provider: str = "yahoo"
    provider_base_url: str | None = None
    provider_api_key: str | None = None
    request_timeout_seconds: float = 8.0

    cache_ttl_seconds: int = 600
    request_delay_seconds: float = 3.0

    tracked_symbols: str = "AAPL,GOOGL,MSFT,TSLA,NVDA,AMZN,META,NFLX"

    refresh_interval_seconds: int = 600
    fetch_workers: int = 4

    cors_origins: str = "http://localhost:3000"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def tracked_symbol_list(self) -> list[str]:
        return parse_symbol_list(self.tracked_symbols)

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def resolved_provider_url(self) -> str:
        if self.provider_base_url is not None:
            return self.provider_base_url.strip()
        return DEFAULT_PROVIDER_URLS.get(self.provider.lower(), "")

    def validate_provider(self) -> None:
        """Fail fast on settings that would make every fetch fail."""
        name = self.provider.lower()
        if name not in DEFAULT_PROVIDER_URLS:
            raise ConfigurationError(f"unknown quote provider: {self.provider}")
        if not self.resolved_provider_url:
            raise ConfigurationError("provider base URL is empty")
        if name == "alpha_vantage" and not (self.provider_api_key or "").strip():
            raise ConfigurationError("PROVIDER_API_KEY is required for the alpha_vantage provider")
        try:
            symbols = self.tracked_symbol_list
        except ValueError as exc:
            raise ConfigurationError(f"invalid tracked symbol list: {exc}") from exc
        if not symbols:
            raise ConfigurationError("tracked symbol list is empty")


settings = Settings()
