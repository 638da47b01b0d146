"""Training program model."""
from qrattend import db
from qrattend.models.base import BaseModel

class Training(BaseModel):
    """A training program grouping one or more sessions."""

    __tablename__ = 'trainings'

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True)

    sessions = db.relationship('TrainingSession', backref='training', lazy='dynamic')

    def __repr__(self):
        return f'<Training {self.title}>'
