"""
Configuration

Application settings and environment configuration for eval-engine.
"""

from typing import Dict, List, Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration settings.

    Supports both environment variables and .env file loading.
    Environment variables take precedence over .env file values.
    """

    # Application settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(
        default="info", description="Log level (debug, info, warning, error)"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate log level."""
        allowed_levels = {"debug", "info", "warning", "error"}
        normalized = v.lower().strip()
        if normalized not in allowed_levels:
            raise ValueError(
                f"log_level must be one of {sorted(allowed_levels)}, got '{v}'"
            )
        return normalized

    # API settings
    api__title: str = Field(default="eval-engine", description="API title")
    api__description: str = Field(
        default="Prompt and endpoint test execution engine",
        description="API description",
    )
    api__version: str = Field(default="1.0.0", description="API version")
    api__docs_url: str = Field(default="/docs", description="API documentation URL")
    api__redoc_url: str = Field(default="/redoc", description="ReDoc documentation URL")

    # CORS settings
    cors__allow_origins: str = Field(
        default="*", description="Allowed origins for CORS (comma-separated)"
    )
    cors__allow_credentials: bool = Field(
        default=False, description="Allow credentials in CORS"
    )
    cors__allow_methods: str = Field(
        default="GET,POST",
        description="Allowed HTTP methods (comma-separated)",
    )
    cors__allow_headers: str = Field(
        default="*", description="Allowed headers (comma-separated)"
    )

    # AI API Keys (secured with SecretStr)
    ai__openai_api_key: Optional[SecretStr] = Field(
        default=None, description="OpenAI API key"
    )
    ai__anthropic_api_key: Optional[SecretStr] = Field(
        default=None, description="Anthropic API key"
    )
    ai__gemini_api_key: Optional[SecretStr] = Field(
        default=None, description="Google Gemini API key"
    )
    ai__grok_api_key: Optional[SecretStr] = Field(
        default=None, description="xAI Grok API key"
    )
    ai__deepseek_api_key: Optional[SecretStr] = Field(
        default=None, description="DeepSeek API key"
    )
    ai__openrouter_api_key: Optional[SecretStr] = Field(
        default=None, description="OpenRouter API key"
    )

    # Execution defaults
    execution__default_provider: str = Field(
        default="openai", description="Provider used when a prompt version has none"
    )
    execution__default_model: str = Field(
        default="gpt-4o-mini", description="Model used when a prompt version has none"
    )
    execution__max_concurrency: int = Field(
        default=5, ge=1, description="Default parallel test case limit"
    )
    execution__max_iterations: int = Field(
        default=100, ge=1, description="Upper bound for run iterations"
    )
    execution__endpoint_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Timeout for endpoint target requests"
    )

    # LLM judge defaults
    judge__default_provider: str = Field(
        default="openai", description="Judge provider when the config has none"
    )
    judge__default_model: str = Field(
        default="gpt-4o-mini", description="Judge model when the config has none"
    )
    judge__scoring_temperature: float = Field(
        default=0.3, ge=0.0, le=2.0, description="Temperature for judge scoring"
    )
    judge__validation_temperature: float = Field(
        default=0.1, ge=0.0, le=2.0, description="Temperature for judge validation"
    )
    judge__max_tokens: int = Field(
        default=1024, gt=0, description="Max tokens for judge responses"
    )

    # Server-sent events
    sse__heartbeat_interval_seconds: float = Field(
        default=15.0, gt=0, description="Interval between SSE heartbeat events"
    )

    # Logfire monitoring settings
    logfire__enabled: bool = Field(
        default=False, description="Enable Logfire monitoring"
    )
    logfire__service_name: str = Field(
        default="eval_engine", description="Logfire service name"
    )
    logfire__environment: str = Field(
        default="development", description="Logfire environment"
    )
    logfire__token: Optional[SecretStr] = Field(
        default=None, description="Logfire token"
    )
    logfire__disable_scrubbing: Optional[bool] = Field(
        default=False, description="Disable Logfire scrubbing"
    )

    # Optional Logfire instrumentation toggles
    logfire__instrument__pydantic_ai: bool = Field(
        default=True, description="Enable Logfire pydantic-ai instrumentation"
    )
    logfire__instrument__httpx: bool = Field(
        default=True, description="Enable Logfire HTTPX instrumentation"
    )
    logfire__instrument__fastapi: bool = Field(
        default=True, description="Enable Logfire FastAPI instrumentation"
    )
    logfire__httpx_capture_all: bool = Field(
        default=False, description="Capture all HTTPX requests (can be verbose)"
    )

    # Logging file settings (optional)
    log__dir: str = Field(
        default="logs", description="Directory where log files are stored"
    )
    log__file_path: Optional[str] = Field(
        default=None, description="Custom log file path; overrides log__dir if set"
    )
    log__file_level: str = Field(default="INFO", description="File handler log level")
    log__file_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Max size of a log file before rotation",
    )
    log__file_backup_count: int = Field(
        default=3, ge=0, description="Number of backup log files to keep"
    )

    # Properties for list conversion
    @property
    def cors_allow_origins_list(self) -> List[str]:
        """Convert comma-separated origins to list."""
        return [origin.strip() for origin in str(self.cors__allow_origins).split(",")]

    @property
    def cors_allow_methods_list(self) -> List[str]:
        """Convert comma-separated methods to list."""
        return [method.strip() for method in str(self.cors__allow_methods).split(",")]

    @property
    def cors_allow_headers_list(self) -> List[str]:
        """Convert comma-separated headers to list."""
        return [header.strip() for header in str(self.cors__allow_headers).split(",")]

    def provider_api_keys(self) -> Dict[str, str]:
        """Return configured provider API keys keyed by provider name."""
        keys = {
            "openai": self.ai__openai_api_key,
            "anthropic": self.ai__anthropic_api_key,
            "gemini": self.ai__gemini_api_key,
            "grok": self.ai__grok_api_key,
            "deepseek": self.ai__deepseek_api_key,
            "openrouter": self.ai__openrouter_api_key,
        }
        return {
            provider: secret.get_secret_value()
            for provider, secret in keys.items()
            if secret is not None
        }

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        env_nested_delimiter="__",
    )


def create_settings() -> Settings:
    """
    Create and validate settings instance.

    Returns:
        Settings: Configured settings instance

    Raises:
        RuntimeError: If configuration validation fails
    """
    try:
        settings_instance = Settings()

        api_keys_count = len(settings_instance.provider_api_keys())

        print("🔧 Configuration loaded successfully")
        print(f"   Environment: {settings_instance.environment}")
        print(f"   Debug mode: {settings_instance.debug}")
        print(f"   Log level: {settings_instance.log_level}")
        print(f"   Provider API keys configured: {api_keys_count}/6")

        if api_keys_count == 0:
            print(
                "⚠️  No provider API keys configured. Prompt targets and the judge "
                "need per-run credentials."
            )

        return settings_instance

    except Exception as e:
        print(f"❌ Configuration loading failed: {e}")
        print("Please ensure all required environment variables are set")
        raise RuntimeError(f"Configuration loading failed: {e}") from e


# Global configuration instance
settings = create_settings()
