from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    DATABASE_URL: str = "sqlite:///./receipt_split.db"
    AUTO_CREATE_TABLES: bool = False

    OPENAI_API_KEY: str = ""
    OPENAI_OCR_MODEL: str = "gpt-4o-mini"
    OPENAI_STRUCT_MODEL: str = "gpt-4o-mini"

    UPLOAD_DIR: str = "uploads"
    IMAGE_BASE_URL: str = "/uploads"
    MAX_UPLOAD_BYTES: int = 10 << 20

    LOG_LEVEL: str = "INFO"


settings = Settings()
