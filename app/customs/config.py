import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    storage_root: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    access_token_max_age: int
    password_reset_max_age: int
    max_upload_bytes: int
    reminder_days_ahead: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///customs.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_root=_getenv("STORAGE_ROOT", ""),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "us-east-1"),
        s3_bucket=_getenv("S3_BUCKET", "dispatch-documents"),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        access_token_max_age=_getenv_int("ACCESS_TOKEN_MAX_AGE", 8 * 60 * 60),
        password_reset_max_age=_getenv_int("PASSWORD_RESET_MAX_AGE", 60 * 60),
        max_upload_bytes=_getenv_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
        reminder_days_ahead=_getenv_int("REMINDER_DAYS_AHEAD", 3),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_ROOT": s.storage_root,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "ACCESS_TOKEN_MAX_AGE": s.access_token_max_age,
        "PASSWORD_RESET_MAX_AGE": s.password_reset_max_age,
        # per-file limit for dispatch documents
        "MAX_UPLOAD_BYTES": s.max_upload_bytes,
        "REMINDER_DAYS_AHEAD": s.reminder_days_ahead,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,
        # whole-request limit; leaves room for multipart overhead
        "MAX_CONTENT_LENGTH": s.max_upload_bytes + 1024 * 1024,
    }
