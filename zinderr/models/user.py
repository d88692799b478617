from zinderr.extensions import db
from zinderr.utils.dates import utcnow
import uuid

ROLES = ("poster", "runner", "admin")
VERIFICATION_STATUSES = ("pending", "verified", "rejected")

def gen_uuid(prefix=None):
    uid = str(uuid.uuid4())
    return f"{prefix}-{uid}" if prefix else uid

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("usr"))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255))
    username = db.Column(db.String(50), unique=True, nullable=True)
    display_username = db.Column(db.Boolean, default=False)
    role = db.Column(db.String(20), nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    avatar_url = db.Column(db.String(1024), nullable=True)

    # Rating aggregates, recomputed from visible mutual ratings
    average_rating = db.Column(db.Float, default=0.0)
    total_ratings = db.Column(db.Integer, default=0)
    last_rating_update = db.Column(db.DateTime, nullable=True)

    completed_tasks = db.Column(db.Integer, default=0)
    verification_status = db.Column(db.String(20), default="pending")
    ghana_card_front_url = db.Column(db.String(1024), nullable=True)
    ghana_card_back_url = db.Column(db.String(1024), nullable=True)
    selfie_url = db.Column(db.String(1024), nullable=True)
    verification_submitted_at = db.Column(db.DateTime, nullable=True)
    verified_at = db.Column(db.DateTime, nullable=True)

    is_suspended = db.Column(db.Boolean, default=False)
    suspended_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)

    @property
    def public_name(self):
        if self.display_username and self.username:
            return self.username
        return self.full_name

    @property
    def has_verification_documents(self):
        return all((self.ghana_card_front_url, self.ghana_card_back_url, self.selfie_url))

