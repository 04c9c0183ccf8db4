from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class AIConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LUMIPATH_AI__",
        env_file=".env",
        extra="ignore",
    )

    # "backend" proxies through the document backend's /claude/* routes,
    # "azure" talks to Azure OpenAI directly.
    provider: Literal["backend", "azure"] = "backend"
    backend_url: str = "http://localhost:4000"
    auth_token: str = ""
    timeout_s: float = 120.0


class AzureOpenAIConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LUMIPATH_AZURE_OPENAI__",
        env_file=".env",
        extra="ignore",
    )

    endpoint: str = ""
    api_key: str = ""
    deployment: str = "gpt-4o-mini"
    api_version: str = "2024-12-01-preview"
    max_tokens: int = 4096


class AnalysisConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LUMIPATH_ANALYSIS__",
        env_file=".env",
        extra="ignore",
    )

    numeric_ratio: float = 0.7
    preview_rows: int = 10
    sample_rows: int = 5
    top_categories: int = 10
    max_upload_mb: int = 25

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ai: AIConfig = AIConfig()
    azure_openai: AzureOpenAIConfig = AzureOpenAIConfig()
    analysis: AnalysisConfig = AnalysisConfig()


settings = Settings()
