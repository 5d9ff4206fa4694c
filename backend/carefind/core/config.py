from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Load backend/.env and ignore any extra keys we don't model yet.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- database ---
    # empty URI -> in-memory catalog seeded from CATALOG_SEED_PATH
    MONGO_URI: str = ""
    MONGO_DB: str = "carefind"
    MONGO_TIMEOUT_MS: int = 1000
    CATALOG_SEED_PATH: str = ""

    # --- server / cors ---
    API_PORT: int = 8000
    ALLOWED_ORIGIN: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # --- search tuning ---
    SEARCH_RETRIEVAL_CAP: int = 500
    SEARCH_DEFAULT_LIMIT: int = 200
    SEARCH_MIN_POSITIVE_RESULTS: int = 10

    # --- suggestions ---
    SUGGEST_FETCH_CAP: int = 15
    SUGGEST_MAX_RESULTS: int = 8
    SUGGEST_MIN_QUERY_LENGTH: int = 2


settings = Settings()
