import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _database_url_from_parts() -> str:
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "financeiro_db")
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "")
    credentials = f"{user}:{password}" if password else user
    return f"postgresql+asyncpg://{credentials}@{host}:{port}/{name}"


HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

DATABASE_URL = os.getenv("DATABASE_URL") or _database_url_from_parts()
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_IDLE_TIMEOUT = int(os.getenv("DB_IDLE_TIMEOUT", "30"))
DB_CONNECT_TIMEOUT = int(os.getenv("DB_CONNECT_TIMEOUT", "5"))

SESSION_SECRET = os.getenv("SESSION_SECRET") or os.getenv("JWT_SECRET", "segredo-desenvolvimento")
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "finance_session")
# Off by default: the cookie travels over plain HTTP unless the deployment opts in.
SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE")

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = _env_bool("LOG_JSON", "true")


@dataclass(frozen=True)
class Settings:
    database_url: str = DATABASE_URL
    db_pool_size: int = DB_POOL_SIZE
    db_idle_timeout: int = DB_IDLE_TIMEOUT
    db_connect_timeout: int = DB_CONNECT_TIMEOUT
    session_secret: str = SESSION_SECRET
    session_ttl_hours: int = SESSION_TTL_HOURS
    session_cookie_name: str = SESSION_COOKIE_NAME
    session_cookie_secure: bool = SESSION_COOKIE_SECURE
    bcrypt_rounds: int = BCRYPT_ROUNDS
    cors_origins: list = field(default_factory=lambda: ["*"])
