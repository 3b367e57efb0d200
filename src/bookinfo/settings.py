from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    # Remote knowledge base
    SPARQL_ENDPOINT: str = "https://dbpedia.org/sparql"
    SPARQL_METHOD: str = "POST"  # GET | POST
    SPARQL_TIMEOUT: float = 20.0
    QUERY_LANGUAGE: str = "en"

    # Fallback identifier list used when a request carries none
    URIS_FILE: str = "uris.json"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    STATIC_DIR: str = "public"

    # Observability
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"  # plain | json
    METRICS_ENABLED: bool = True
    SENTRY_DSN: str | None = None

    ENV: str = "dev"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
