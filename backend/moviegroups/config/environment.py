from pathlib import Path
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

ENV_PATH = Path(__file__).resolve().parent.parent.parent / '.env'


class AppConfig(BaseModel):
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    database_url: str = "sqlite:///./movie_groups.db"

    tmdb_api_key: Optional[str] = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    # bounded upstream call: timeout per attempt plus a single retry
    upstream_timeout_seconds: float = 5.0
    upstream_retries: int = 1

    cors_origins: List[str] = ["*"]

    log_dir: Path = Path("logs")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_path: Path = ENV_PATH) -> "AppConfig":
        load_dotenv(dotenv_path=env_path)

        jwt_secret_key = os.getenv('JWT_SECRET_KEY')
        if not jwt_secret_key:
            raise ValueError("JWT_SECRET_KEY is not set")

        values = {
            'jwt_secret_key': jwt_secret_key,
            'jwt_algorithm': os.getenv('JWT_ALGORITHM', 'HS256'),
            'jwt_access_token_expire_minutes': int(os.getenv('JWT_ACCESS_TOKEN_EXPIRE_MINUTES', '60')),
            'database_url': _database_url_from_env(),
            'tmdb_api_key': os.getenv('TMDB_API_KEY'),
            'tmdb_base_url': os.getenv('TMDB_BASE_URL', 'https://api.themoviedb.org/3'),
            'upstream_timeout_seconds': float(os.getenv('UPSTREAM_TIMEOUT_SECONDS', '5')),
            'upstream_retries': int(os.getenv('UPSTREAM_RETRIES', '1')),
            'log_dir': Path(os.getenv('LOG_DIR', 'logs')),
            'log_level': os.getenv('LOG_LEVEL', 'INFO'),
        }

        cors_origins = os.getenv('CORS_ORIGINS', '')
        if cors_origins.strip():
            values['cors_origins'] = [origin.strip() for origin in cors_origins.split(',') if origin.strip()]

        return cls(**values)


def _database_url_from_env() -> str:
    database_url = os.getenv('DATABASE_URL')
    if database_url:
        return database_url

    if os.getenv('USE_SQLITE', 'false').lower() == 'true':
        return "sqlite:///./movie_groups.db"

    DB_USER = os.getenv('DB_USER')
    if not DB_USER:
        raise ValueError("DB_USER is not set")

    DB_PASSWORD = os.getenv('DB_PASSWORD')
    if not DB_PASSWORD:
        raise ValueError("DB_PASSWORD is not set")

    DB_HOST = os.getenv('DB_HOST')
    if not DB_HOST:
        raise ValueError("DB_HOST is not set")

    DB_PORT = os.getenv('DB_PORT', '5432')
    DB_NAME = os.getenv('DB_NAME', 'movie_groups')
    return f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
