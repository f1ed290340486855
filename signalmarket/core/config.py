"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here: currencies, networks, plan
durations, upstream URLs and deposit wallets.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for the outcome refresh endpoint.
        database_url: Full SQLAlchemy URL. Overrides the postgres_* fields.
        jwt_secret: HMAC secret used to verify bearer tokens.
        jwt_algorithm: JWT signing algorithm.
        default_currency: Currency recorded on every ledger entry.
        default_network: Chain assumed when a deposit or withdrawal names none.
        default_plan_duration_days: Used for plans without a duration.
        follower_plan_years: Lifetime of a free Follower subscription.
        price_cache_ttl_seconds: How long a CoinGecko price is reused.
        upstream_timeout_seconds: Timeout for every outbound HTTP call.
        history_limit: Entries returned by the transaction history.
        trending_limit: Signals returned by the trending listing.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "SignalMarket"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "10/minute"

    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "signalmarket"
    create_schema_on_startup: bool = True

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"

    default_currency: str = "USDT"
    default_network: str = "TRC20"
    default_plan_duration_days: int = 30
    follower_plan_years: int = 100

    price_cache_ttl_seconds: float = 60.0
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    upstream_timeout_seconds: float = 10.0

    tronscan_api_url: str = "https://apilist.tronscan.org/api"
    etherscan_api_url: str = "https://api.etherscan.io/api"
    etherscan_api_key: str = ""
    trc20_wallet_address: str = ""
    erc20_wallet_address: str = ""

    history_limit: int = 20
    trending_limit: int = 5

    def get_database_url(self) -> str:
        """Return the effective database URL.

        Priority:
        1. Explicit `DATABASE_URL`
        2. Build a PostgreSQL URL from postgres_* values
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
