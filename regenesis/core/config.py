"""Core configuration for the regenesis surgery."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Surgery settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REGENESIS_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Regenesis Surgery"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Input / output files ─────────────────────────────────────────────
    state_dump_file_path: str = "state-dump.latest.json"
    genesis_dump_file_path: str = "genesis-dump.json"
    etherscan_file_path: str = "etherscan-contracts.json"
    pools_file_path: str = "uniswap-pools.json"
    output_file_path: str = "output-dump.json"

    # ── Chain RPC ────────────────────────────────────────────────────────
    l1_testnet_provider_url: str = "http://localhost:8545"
    l1_mainnet_provider_url: str = "http://localhost:8546"
    l2_provider_url: str = "http://localhost:9545"
    l1_chain_id: int = 1
    l2_chain_id: int = 10
    rpc_max_concurrent: int = 8
    rpc_max_retries: int = 3
    rpc_retry_base_delay: float = 1.0
    rpc_timeout_seconds: float = 30.0

    # ── Compilers ────────────────────────────────────────────────────────
    solc_dir: str = "solc-bin"
    compile_max_workers: int = Field(default_factory=lambda: os.cpu_count() or 1)

    # ── Surgery ──────────────────────────────────────────────────────────
    surgery_batch_size: int = 256


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
