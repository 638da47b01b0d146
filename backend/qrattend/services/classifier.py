# backend/qrattend/services/classifier.py
"""Attendance classification.

Maps an attendance event time onto on-time / late / partial relative to the
session start. Every caller (QR scan, join-request approval) resolves the
session start through ``resolve_session_start`` so the preference order is
the same everywhere.
"""
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from qrattend.models.attendance import AttendanceType
from qrattend.utils.clock import as_utc

DEFAULT_LATE_THRESHOLD_MINUTES = 15
DEFAULT_PARTIAL_THRESHOLD_MINUTES = 30

def classify(
    event_time: datetime,
    session_start: datetime,
    late_threshold_minutes: Optional[int] = None,
    partial_threshold_minutes: Optional[int] = None
) -> AttendanceType:
    """Classify an event against the session start.

    delay <= late threshold               -> ON_TIME (early arrivals included)
    late threshold < delay <= partial     -> LATE
    delay > partial threshold             -> PARTIAL
    """
    if late_threshold_minutes is None:
        late_threshold_minutes = DEFAULT_LATE_THRESHOLD_MINUTES
    if partial_threshold_minutes is None:
        partial_threshold_minutes = DEFAULT_PARTIAL_THRESHOLD_MINUTES

    delay_minutes = (as_utc(event_time) - as_utc(session_start)).total_seconds() / 60

    if delay_minutes <= late_threshold_minutes:
        return AttendanceType.ON_TIME
    if delay_minutes <= partial_threshold_minutes:
        return AttendanceType.LATE
    return AttendanceType.PARTIAL

def session_zone(name: Optional[str]) -> tzinfo:
    """Zone used to read scheduled_date + start_time/end_time."""
    if not name or name.upper() == 'UTC':
        return timezone.utc
    return ZoneInfo(name)

def scheduled_instant(session_date, wall_time, zone_name: Optional[str] = None) -> datetime:
    """Combine a calendar date and wall-clock time into a UTC instant."""
    local = datetime.combine(session_date, wall_time).replace(tzinfo=session_zone(zone_name))
    return local.astimezone(timezone.utc)

def resolve_session_start(session, zone_name: Optional[str] = None) -> datetime:
    """Prefer the moment the trainer activated the session, else the schedule."""
    if session.actual_start_time is not None:
        return as_utc(session.actual_start_time)
    return scheduled_instant(session.scheduled_date, session.start_time, zone_name)

def classify_for_session(
    event_time: datetime,
    session,
    zone_name: Optional[str] = None,
    default_late: Optional[int] = None,
    default_partial: Optional[int] = None
) -> AttendanceType:
    """Classify an event using the session's own thresholds."""
    late = session.late_threshold_minutes
    partial = session.partial_threshold_minutes
    return classify(
        event_time,
        resolve_session_start(session, zone_name),
        late if late is not None else default_late,
        partial if partial is not None else default_partial
    )
