"""Clock capability injected into the attendance services."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import current_app, has_app_context

def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach or convert to UTC. Naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

class SystemClock:
    """Wall clock."""
    
    def now(self) -> datetime:
        return utcnow()

class FixedClock:
    """Clock frozen at a given instant until moved explicitly."""
    
    def __init__(self, instant: datetime):
        self.instant = as_utc(instant)
    
    def now(self) -> datetime:
        return self.instant
    
    def set(self, instant: datetime) -> None:
        self.instant = as_utc(instant)
    
    def advance(self, **kwargs) -> datetime:
        self.instant = self.instant + timedelta(**kwargs)
        return self.instant

def get_clock():
    """Clock configured on the current app, or the wall clock."""
    if has_app_context():
        clock = current_app.config.get('ATTENDANCE_CLOCK')
        if clock is not None:
            return clock
    return SystemClock()
