# Overview: Best-effort weather context for shift start/end; never blocks or fails a request.

from __future__ import annotations

import threading

import httpx
from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Shift, Store


PHASES = ("start", "end")


def fetch_current_weather(
    latitude: float,
    longitude: float,
    *,
    api_key: str,
    url: str,
    timeout: float,
    client: httpx.Client | None = None,
    logger=None,
) -> dict | None:
    """
    Current conditions from OpenWeatherMap.

    Returns {"condition", "description", "temp_f"} or None on any failure.
    """
    params = {"lat": latitude, "lon": longitude, "appid": api_key, "units": "imperial"}
    try:
        if client is not None:
            resp = client.get(url, params=params, timeout=timeout)
        else:
            resp = httpx.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        if logger is not None:
            logger.warning("Weather lookup failed for (%s, %s): %s", latitude, longitude, exc)
        return None

    weather = (data.get("weather") or [{}])[0]
    temp = (data.get("main") or {}).get("temp")
    return {
        "condition": weather.get("main"),
        "description": weather.get("description"),
        "temp_f": round(temp) if isinstance(temp, (int, float)) else None,
    }


def capture_for_shift(shift_id: int, phase: str, *, client: httpx.Client | None = None) -> bool:
    """Fetch and store weather for one shift phase. Returns True if stored."""
    if phase not in PHASES:
        raise ValueError(f"phase must be one of: {', '.join(PHASES)}")

    config = current_app.config
    api_key = config.get("OPENWEATHERMAP_API_KEY")
    if not api_key:
        return False

    row = (
        db.session.query(Store.latitude, Store.longitude)
        .join(Shift, Shift.store_id == Store.id)
        .filter(Shift.id == shift_id)
        .first()
    )
    if not row or row.latitude is None or row.longitude is None:
        return False

    result = fetch_current_weather(
        row.latitude,
        row.longitude,
        api_key=api_key,
        url=config["OPENWEATHERMAP_URL"],
        timeout=config["WEATHER_TIMEOUT_SECONDS"],
        client=client,
        logger=current_app.logger,
    )
    if result is None:
        return False

    # Core UPDATE: leaves version_id alone so a concurrent clock-out on the
    # same row does not see a stale version.
    values = {
        f"{phase}_weather_condition": (result["condition"] or None),
        f"{phase}_weather_desc": (result["description"] or None),
        f"{phase}_temp_f": result["temp_f"],
    }
    try:
        db.session.execute(update(Shift.__table__).where(Shift.__table__.c.id == shift_id).values(**values))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("Failed to store %s weather for shift %s", phase, shift_id, exc_info=True)
        return False
    return True


def _run_capture(app, shift_id: int, phase: str) -> None:
    with app.app_context():
        try:
            capture_for_shift(shift_id, phase)
        except Exception:
            app.logger.exception("Weather capture crashed for shift %s (%s)", shift_id, phase)


def schedule_capture(shift_id: int, phase: str) -> threading.Thread | None:
    """
    Fire-and-forget weather capture after a clock-in/out has committed.

    Runs on a daemon thread unless WEATHER_ASYNC is off. Without an API key
    this is a no-op.
    """
    app = current_app._get_current_object()
    if not app.config.get("OPENWEATHERMAP_API_KEY"):
        return None

    if not app.config.get("WEATHER_ASYNC", True):
        _run_capture(app, shift_id, phase)
        return None

    thread = threading.Thread(
        target=_run_capture,
        args=(app, shift_id, phase),
        name=f"weather-{phase}-{shift_id}",
        daemon=True,
    )
    thread.start()
    return thread
