"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Azure OpenAI backend
    azure_endpoint: str = ""
    azure_api_key: str = ""
    azure_api_version: str = "2024-06-01"
    azure_default_deployment: str = "gpt4-Omni"

    # Bedrock backend (credentials come from the boto3 chain)
    aws_region: str = "us-east-1"
    bedrock_default_model_id: str = "anthropic.claude-3-5-sonnet-20240620-v1:0"

    # Relay
    stream_idle_timeout: float = 60.0  # Seconds to wait for each chunk, 0 = unbounded
    callback_timeout: float = 10.0

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def idle_timeout(self) -> float | None:
        """Per-chunk bound for asyncio.timeout (None disables it)."""
        return self.stream_idle_timeout if self.stream_idle_timeout > 0 else None


@lru_cache
def get_settings() -> Settings:
    return Settings()
