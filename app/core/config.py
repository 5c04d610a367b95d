from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

ALCHEMY_NETWORK_HOSTS = {
    "mainnet": "eth-mainnet.g.alchemy.com",
    "sepolia": "eth-sepolia.g.alchemy.com",
}


class Settings(BaseSettings):
    PROJECT_NAME: str = "NairaSwap API"
    API_V1_STR: str = "/api/v1"
    APP_ENV: str = "development"  # "development", "staging" or "production"

    # Error tracking (disabled when empty)
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # Circuit breaker defaults for outbound service calls
    BREAKER_FAILURE_THRESHOLD: int = 3
    BREAKER_RESET_TIMEOUT_MS: int = 30000
    BREAKER_CALL_TIMEOUT_MS: int = 20000  # 0 disables the per-call timeout

    # Blockchain (Ethereum JSON-RPC)
    ETH_RPC_URL: str = ""  # Overrides the Alchemy URL when set
    ALCHEMY_API_KEY: str = ""
    BLOCKCHAIN_NETWORK: str = "sepolia"  # "mainnet" or "sepolia"
    REQUIRED_CONFIRMATIONS: int = 3

    # Price feed
    COINGECKO_API_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_API_KEY: str = ""
    PRICE_CACHE_TTL_SECONDS: int = 60

    # Korapay
    KORAPAY_BASE_URL: str = "https://api.korapay.com/merchant/api/v1"
    KORAPAY_PUBLIC_KEY: str = ""
    KORAPAY_SECRET_KEY: str = ""

    HTTP_TIMEOUT_SECONDS: float = 10.0

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

    @property
    def eth_rpc_url(self) -> str:
        if self.ETH_RPC_URL:
            return self.ETH_RPC_URL
        host = ALCHEMY_NETWORK_HOSTS.get(self.BLOCKCHAIN_NETWORK, ALCHEMY_NETWORK_HOSTS["sepolia"])
        return f"https://{host}/v2/{self.ALCHEMY_API_KEY}"

    @property
    def breaker_call_timeout_ms(self) -> int | None:
        return self.BREAKER_CALL_TIMEOUT_MS or None


settings = Settings()
