from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    max_upload_bytes: int = 25 * 1024 * 1024
    verify_declared_type: bool = False

    pdf_engine: str = "pdfplumber"
    pdf_timeout_seconds: float = 30.0
    pdf_min_text_chars: int = 10
    pdf_min_text_chars_with_fallback: int = 50
    enable_vision_fallback_for_pdf: bool = False

    image_analysis_mode: str = "ocr"
    truncation_budget_chars: int = 6000

    completion_provider: str = "openai"
    completion_base_url: str | None = None
    completion_json_mode: bool = True

    openai_api_key: str = ""
    openai_model_name: str = "gpt-4o-2024-11-20"
    openai_vision_model_name: str = "gpt-4o-2024-11-20"
    openai_timeout_seconds: int = 120
    openai_temperature: float | None = None

    analysis_min_tokens: int = 3000
    analysis_max_tokens: int = 8000
    ocr_max_tokens: int = 4000

    pipeline_timeout_seconds: float = 120.0

    rate_limit_enabled: bool = False
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 10
    rate_limit_block_seconds: int = 300
