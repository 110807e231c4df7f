import os

from keyshare.core.errors import ConfigError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _env_bool(environ, name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _env_number(environ, name: str, default, cast):
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative")
    return value


def _env_required(environ, name: str) -> str:
    value = environ.get(name, "").strip()
    if not value:
        raise ConfigError(f"{name} not set")
    return value


class Settings:
    BASE_URL: str
    UPLOAD_DIRECTORY: str
    DATABASE_URL: str = "sqlite+aiosqlite:///./keyshare.db"
    DB_POOL_SIZE: int = 10
    DB_ECHO: bool = False
    CF_ID: str | None = None
    CF_EMAIL: str | None = None
    CF_KEY: str | None = None
    CF_API_BASE: str = "https://api.cloudflare.com/client/v4"
    PURGE_TIMEOUT_SECONDS: float = 10.0
    SERVE_UPLOADS: bool = True
    RECONCILE_INTERVAL_SECONDS: int = 0
    RECONCILE_REMOVE_ORPHANS: bool = False
    RECONCILE_GRACE_SECONDS: int = 3600
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 5006

    def __init__(self, BASE_URL: str, UPLOAD_DIRECTORY: str, **overrides):
        self.BASE_URL = BASE_URL.rstrip("/")
        self.UPLOAD_DIRECTORY = UPLOAD_DIRECTORY
        for name, value in overrides.items():
            if not hasattr(type(self), name):
                raise ConfigError(f"Unknown setting {name}")
            setattr(self, name, value)
        if self.CF_ID and not (self.CF_EMAIL and self.CF_KEY):
            raise ConfigError("CF_ID is set but CF_EMAIL or CF_KEY is missing")

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            BASE_URL=_env_required(env, "BASE_URL"),
            UPLOAD_DIRECTORY=_env_required(env, "UPLOAD_DIRECTORY"),
            DATABASE_URL=env.get("DATABASE_URL") or cls.DATABASE_URL,
            DB_POOL_SIZE=_env_number(env, "DB_POOL_SIZE", cls.DB_POOL_SIZE, int),
            DB_ECHO=_env_bool(env, "DB_ECHO", cls.DB_ECHO),
            CF_ID=env.get("CF_ID") or None,
            CF_EMAIL=env.get("CF_EMAIL") or None,
            CF_KEY=env.get("CF_KEY") or None,
            CF_API_BASE=(env.get("CF_API_BASE") or cls.CF_API_BASE).rstrip("/"),
            PURGE_TIMEOUT_SECONDS=_env_number(env, "PURGE_TIMEOUT_SECONDS", cls.PURGE_TIMEOUT_SECONDS, float),
            SERVE_UPLOADS=_env_bool(env, "SERVE_UPLOADS", cls.SERVE_UPLOADS),
            RECONCILE_INTERVAL_SECONDS=_env_number(env, "RECONCILE_INTERVAL_SECONDS", cls.RECONCILE_INTERVAL_SECONDS, int),
            RECONCILE_REMOVE_ORPHANS=_env_bool(env, "RECONCILE_REMOVE_ORPHANS", cls.RECONCILE_REMOVE_ORPHANS),
            RECONCILE_GRACE_SECONDS=_env_number(env, "RECONCILE_GRACE_SECONDS", cls.RECONCILE_GRACE_SECONDS, int),
            LOG_LEVEL=(env.get("LOG_LEVEL") or cls.LOG_LEVEL).upper(),
            HOST=env.get("HOST") or cls.HOST,
            PORT=_env_number(env, "PORT", cls.PORT, int),
        )

    @property
    def cdn_enabled(self) -> bool:
        return bool(self.CF_ID)
