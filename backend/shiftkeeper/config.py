# backend/shiftkeeper/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shiftkeeper.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shiftkeeper.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Stores without their own timezone column fall back to this zone
    DEFAULT_STORE_TIMEZONE = os.environ.get("DEFAULT_STORE_TIMEZONE", "America/Chicago")

    # Off: clock windows are not checked at all. On: a clock-in/out outside
    # its window is rejected with CLOCK_WINDOW_VIOLATION.
    CLOCK_WINDOW_ENFORCEMENT = _env_bool("CLOCK_WINDOW_ENFORCEMENT", False)

    # Shifts longer than this are held out of payroll until a manager signs off
    MAX_SHIFT_HOURS = int(os.environ.get("MAX_SHIFT_HOURS", "13"))

    SAFE_CLOSEOUT_LEAD_MINUTES = int(os.environ.get("SAFE_CLOSEOUT_LEAD_MINUTES", "30"))
    # Register close on rollover nights, minutes after local midnight (22:00)
    ROLLOVER_REGISTER_CLOSE_MINUTES = int(os.environ.get("ROLLOVER_REGISTER_CLOSE_MINUTES", str(22 * 60)))

    OPENWEATHERMAP_API_KEY = os.environ.get("OPENWEATHERMAP_API_KEY")
    OPENWEATHERMAP_URL = os.environ.get(
        "OPENWEATHERMAP_URL",
        "https://api.openweathermap.org/data/2.5/weather",
    )
    WEATHER_TIMEOUT_SECONDS = float(os.environ.get("WEATHER_TIMEOUT_SECONDS", "5"))
    WEATHER_ASYNC = _env_bool("WEATHER_ASYNC", True)

    # Comma-separated browser origins allowed to call the API
    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )
