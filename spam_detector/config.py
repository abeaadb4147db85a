from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # RPC endpoints (round-robin pool)
    rpc_urls: list[str] = ["https://rpc.ankr.com/eth", "https://1rpc.io/eth"]
    chain_id: int = 1
    rpc_timeout_seconds: float = 10.0

    # Provider pool
    provider_retry_attempts: int = 3
    provider_retry_wait_seconds: float = 5.0
    provider_retry_jitter_seconds: float = 1.0
    provider_max_failures: int = 3
    provider_concurrency: int = 2

    # Tick loop
    tick_interval_seconds: int = 4 * 60 * 60
    analysis_concurrency: int = 1

    # Finalize after N consecutive ticks without changes (0 = disabled)
    stable_ticks_to_finalize: int = 0

    # Interpretation
    standalone_spam_modules: list[str] = ["TokenImpersonation"]
    airdrop_spam_modules: list[str] = [
        "TooMuchAirdropActivity",
        "TooManyHoneyPotOwners",
        "LowActivityAfterAirdrop",
    ]
    finalizing_modules: list[str] = [
        "ObservationTimeIsOver",
        "HighActivity",
        "TooMuchAirdropActivity",
    ]
    exonerating_modules: list[str] = ["HighActivity"]

    # Memoization (milliseconds)
    code_memo_ttl_ms: int = 24 * 60 * 60 * 1000
    honeypot_memo_ttl_ms: int = 3 * 24 * 60 * 60 * 1000
    metadata_memo_ttl_ms: int = 60 * 60 * 1000

    # Reference token list
    token_list_url: str = ""
    token_list_ttl_seconds: int = 24 * 60 * 60

    # Persistent data
    data_path: str = "data"

    # Server
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
