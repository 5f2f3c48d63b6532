"""Configuration management using Pydantic Settings"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bonus_manager.domain.planner import PlannerConfig

DEFAULT_LOGIN_URL = "https://www.myanonamouse.net/login.php?returnto=%2Fstore.php"
DEFAULT_STORE_URL = "https://www.myanonamouse.net/store.php"


class Settings(BaseSettings):
    """Application configuration loaded from MAM_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="MAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Credentials
    email: str = Field("", validation_alias=AliasChoices("MAM_EMAIL", "MAM_USERNAME", "email"))
    password: str = ""

    # Site
    login_url: str = DEFAULT_LOGIN_URL
    store_url: str = DEFAULT_STORE_URL
    bonus_selector: str = "#tmBP"

    # Modes
    apply: bool = False
    headless: bool = True
    snapshot_only: bool = False
    json_output: bool = False

    # Bonus economy
    bonus_cap: int = 99999
    bonus_threshold: int = 98000
    bonus_target: int = 90000
    donate_points: int = 2000  # Per-cycle donation when the page doesn't advertise one
    min_upload_spend: int = 500
    vip_week_cap: float = 12.8
    bonus_ceiling: int = 500000  # Larger numbers are table totals, not balances

    # Acknowledgment URL fragments per step kind
    donate_ack_pattern: str = "millionaires"
    vip_ack_pattern: str = "spendtype=VIP"
    upload_ack_pattern: str = "spendtype=upload"

    # Timing
    timeout_ms: int = 45000
    settle_timeout_ms: int = 10000
    settle_fallback_ms: int = 1200

    # Human-like pacing (browser adapter only)
    typing_delay_ms: int = 60
    action_delay_min_ms: int = 250
    action_delay_max_ms: int = 900

    # Diagnostics
    debug_dir: str = "./debug"
    capture_debug: bool = True

    # Service
    service_name: str = "bonus-manager"
    log_level: str = "INFO"
    snapshot_ttl_seconds: float = 300.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.email and self.password)

    def planner_config(self) -> PlannerConfig:
        """Site limits handed to the shared spend planner"""
        return PlannerConfig(vip_week_cap=self.vip_week_cap, upload_unit=self.min_upload_spend)


settings = Settings()
