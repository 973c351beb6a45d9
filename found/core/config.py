from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Found Automation Agents"
    environment: str = "dev"
    debug: bool = True

    database_url: str = "sqlite:///data/found.db"
    activity_feed_limit: int = 30

    linkedin_email: str = ""
    linkedin_password: str = ""
    linkedin_storage_state_path: Path = Path("data/linkedin-storage-state.json")
    linkedin_browser_headless: bool = True
    linkedin_browser_channel: str = "chrome"
    chromium_executable_path: str = ""
    # Opening Easy Apply also needs approvals.submit_applications on the request.
    linkedin_allow_auto_submit: bool = False
    browser_timeout_ms: int = 60000
    browser_settle_ms: int = 2500
    browser_action_settle_ms: int = 1200

    greenhouse_boards: str = "stripe,figma,datadog,airbnb,notion,asana,coinbase,vercel,linear"
    lever_sites: str = "netflix,shopify,segment,tripactions,postman,atlassian,udemy"
    external_feed_timeout_seconds: float = 9.0
    external_feed_workers: int = 8

    automation_bus_max_subscribers: int = 50
    automation_bus_queue_size: int = 100
    automation_bus_heartbeat_seconds: float = 25.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
