# backend/qrattend/services/ledger.py
"""Attendance ledger access.

Every write is keyed on the (session_id, user_id) unique constraint and goes
through the database's INSERT ... ON CONFLICT, so two handlers racing for the
same participant never produce two rows. Reads normalize the two status
encodings found in stored rows into a single ``AttendanceOutcome``.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.dialects import postgresql, sqlite

from qrattend import db
from qrattend.models.attendance import Attendance, AttendanceStatus, AttendanceType
from qrattend.utils.clock import utcnow

CONFLICT_KEY = ['session_id', 'user_id']

@dataclass(frozen=True)
class AttendanceOutcome:
    """Absent, or Present with a classification."""
    present: bool
    classification: Optional[AttendanceType] = None

    @classmethod
    def absent(cls) -> 'AttendanceOutcome':
        return cls(present=False)

    @classmethod
    def present_as(cls, classification: AttendanceType) -> 'AttendanceOutcome':
        return cls(present=True, classification=classification)

    @property
    def status(self) -> AttendanceStatus:
        """Canonical stored status."""
        return AttendanceStatus.PRESENT if self.present else AttendanceStatus.ABSENT

    @property
    def status_value(self) -> str:
        return self.status.value

    @property
    def type_value(self) -> Optional[str]:
        return self.classification.value if self.classification else None

def normalize(status: Optional[AttendanceStatus], attendance_type: Optional[AttendanceType]) -> AttendanceOutcome:
    """Read either encoding: present+type, or legacy late/partial/absent status."""
    if status is None or status == AttendanceStatus.ABSENT:
        return AttendanceOutcome.absent()
    if status == AttendanceStatus.LATE:
        return AttendanceOutcome.present_as(AttendanceType.LATE)
    if status == AttendanceStatus.PARTIAL:
        return AttendanceOutcome.present_as(AttendanceType.PARTIAL)
    return AttendanceOutcome.present_as(attendance_type or AttendanceType.ON_TIME)

# Conditions evaluated against the existing row when a write conflicts
NOT_CREDITED = Attendance.__table__.c.status == AttendanceStatus.ABSENT
NOT_TIMED = or_(
    Attendance.__table__.c.status == AttendanceStatus.ABSENT,
    Attendance.__table__.c.join_time.is_(None)
)

def conflict_insert(table):
    """Dialect insert construct that supports ON CONFLICT.

    Only PostgreSQL and SQLite are supported.
    """
    dialect = db.session.get_bind().dialect.name
    if dialect == 'postgresql':
        return postgresql.insert(table)
    if dialect == 'sqlite':
        return sqlite.insert(table)
    raise RuntimeError(
        f'Unsupported database dialect "{dialect}": attendance writes need PostgreSQL or SQLite.'
    )

class AttendanceLedger:
    """One row per (session, user)."""

    @staticmethod
    def get(session_id: int, user_id: int) -> Optional[Attendance]:
        return Attendance.query.filter_by(session_id=session_id, user_id=user_id).first()

    @staticmethod
    def reload(session_id: int, user_id: int) -> Optional[Attendance]:
        """Fetch the committed row, discarding anything cached in the session."""
        return Attendance.query.populate_existing().filter_by(
            session_id=session_id, user_id=user_id
        ).first()

    @staticmethod
    def outcome_of(record: Optional[Attendance]) -> Optional[AttendanceOutcome]:
        if record is None:
            return None
        return normalize(record.status, record.attendance_type)

    @staticmethod
    def write(
        session_id: int,
        user_id: int,
        outcome: AttendanceOutcome,
        join_time: Optional[datetime],
        replace_when=None,
        **audit
    ) -> bool:
        """Insert or update the row for (session, user).

        ``replace_when`` restricts the update half of the upsert to existing
        rows matching the condition; when it does not match nothing is
        written and False is returned. Without it the existing row is always
        overwritten.
        """
        now = utcnow()
        table = Attendance.__table__
        values = {
            'session_id': session_id,
            'user_id': user_id,
            'status': outcome.status,
            'attendance_type': outcome.classification,
            'join_time': join_time,
            'created_at': now,
            'updated_at': now,
        }
        for key in ('qr_token_used', 'ip_address', 'user_agent'):
            if audit.get(key) is not None:
                values[key] = audit[key]

        stmt = conflict_insert(table).values(**values)
        update_set = {
            key: stmt.excluded[key]
            for key in values
            if key not in ('session_id', 'user_id', 'created_at')
        }
        stmt = stmt.on_conflict_do_update(
            index_elements=CONFLICT_KEY,
            set_=update_set,
            where=replace_when
        )
        result = db.session.execute(stmt)
        return result.rowcount != 0

    @staticmethod
    def backfill_absent(session_id: int, user_ids: Iterable[int]) -> int:
        """Insert absent rows, skipping anyone who already has a row of any kind."""
        recorded = {
            row.user_id for row in
            db.session.query(Attendance.user_id).filter_by(session_id=session_id)
        }
        missing = sorted(set(user_ids) - recorded)
        if not missing:
            return 0

        now = utcnow()
        stmt = conflict_insert(Attendance.__table__).values([
            {
                'session_id': session_id,
                'user_id': user_id,
                'status': AttendanceStatus.ABSENT,
                'created_at': now,
                'updated_at': now,
            }
            for user_id in missing
        ]).on_conflict_do_nothing(index_elements=CONFLICT_KEY)
        result = db.session.execute(stmt)
        return result.rowcount if result.rowcount is not None and result.rowcount >= 0 else len(missing)
