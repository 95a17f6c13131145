from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Astromate API"
    log_level: str = "INFO"

    # chat-completion provider used for compatibility reports
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_max_tokens: int = 500

    # hosted conversation assistant; conversations are disabled when empty
    assistant_api_url: str = ""

    astrologer_api_key: str = ""
    astrologer_api_host: str = "astrologer.p.rapidapi.com"
    astrologer_api_url: str = "https://astrologer.p.rapidapi.com/api/v4/birth-chart"
    zodiac_type: str = "Tropic"
    # used when a profile has no timezone of its own
    default_timezone: str = "UTC"

    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_user_agent: str = "astromate-api"

    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    # Comma-separated origins for CORS.
    cors_allow_origins: str = "*"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
