"""Application configuration via pydantic-settings with DEPSCOUT_ env prefix."""

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load .env into os.environ so the npx subprocess sees the same environment.
load_dotenv(override=False)


class Settings(BaseSettings):
    registry_url: str = "https://registry.npmjs.org"
    probe_timeout_seconds: float = 5.0
    max_concurrent_evidence: int = 20
    ncu_command: str = "npx --yes npm-check-updates"
    github_token: str = ""
    user_agent: str = "depscout"
    report_file_name: str = "next-updates-report.json"

    model_config = {"env_prefix": "DEPSCOUT_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
