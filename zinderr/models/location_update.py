from zinderr.extensions import db
from zinderr.utils.dates import utcnow
import uuid

def gen_location_id():
    return f"loc-{str(uuid.uuid4())[:8]}"

class LocationUpdate(db.Model):
    __tablename__ = "location_updates"

    id = db.Column(db.String(50), primary_key=True, default=gen_location_id)
    errand_id = db.Column(db.String(50), db.ForeignKey("errands.id"), nullable=False, index=True)
    user_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)

    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    accuracy = db.Column(db.Float, nullable=True)

    location_timestamp = db.Column(db.DateTime, default=utcnow)

    user = db.relationship("User", lazy=True)
