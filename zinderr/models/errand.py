from zinderr.extensions import db
from zinderr.utils.dates import utcnow
import uuid

ERRAND_STATUSES = ("open", "in_progress", "completed", "cancelled")

ERRAND_CATEGORIES = (
    "Groceries",
    "Package Delivery",
    "Pharmacy",
    "Bill Payments",
    "Courier",
    "Home Help",
    "Shopping",
    "Food Pickup",
    "Laundry",
    "Others",
)

def gen_errand_id():
    return f"ERR-{str(uuid.uuid4())[:8]}"

class Errand(db.Model):
    __tablename__ = "errands"

    __table_args__ = (
        db.Index("idx_errands_status", "status"),
        db.Index("idx_errands_poster_id", "poster_id"),
        db.Index("idx_errands_assigned_runner_id", "assigned_runner_id"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_errand_id)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    location = db.Column(db.String(255))
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    deadline = db.Column(db.DateTime, nullable=True)
    category = db.Column(db.String(50), nullable=False, default="Others")
    image_url = db.Column(db.String(1024), nullable=True)
    notes = db.Column(db.Text)

    destination_lat = db.Column(db.Float, nullable=True)
    destination_lng = db.Column(db.Float, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="open")

    poster_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    assigned_runner_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True)
    completed_by_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True)

    # Moderation
    is_flagged = db.Column(db.Boolean, default=False)
    flagged_at = db.Column(db.DateTime, nullable=True)
    is_disabled = db.Column(db.Boolean, default=False)
    disabled_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    poster = db.relationship("User", foreign_keys=[poster_id], backref="posted_errands", lazy=True)
    assigned_runner = db.relationship("User", foreign_keys=[assigned_runner_id], backref="assigned_errands", lazy=True)

    def is_participant(self, user_id):
        return user_id in (self.poster_id, self.assigned_runner_id)

    def counterpart_of(self, user_id):
        if user_id == self.poster_id:
            return self.assigned_runner_id
        if user_id == self.assigned_runner_id:
            return self.poster_id
        return None

    def __repr__(self):
        return f"<Errand {self.id} ({self.status})>"
