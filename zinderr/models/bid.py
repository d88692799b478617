from zinderr.extensions import db
from zinderr.utils.dates import utcnow
import uuid

BID_STATUSES = ("pending", "accepted", "rejected", "retracted")

# Statuses that occupy a runner's single slot on an errand
ACTIVE_BID_STATUSES = ("pending", "accepted", "rejected")

def gen_bid_id():
    return f"BID-{str(uuid.uuid4())[:8]}"

class Bid(db.Model):
    __tablename__ = "bids"

    __table_args__ = (
        db.Index(
            "uq_bids_active_errand_runner",
            "errand_id",
            "runner_id",
            unique=True,
            sqlite_where=db.text("status != 'retracted'"),
            postgresql_where=db.text("status != 'retracted'"),
        ),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_bid_id)
    errand_id = db.Column(db.String(50), db.ForeignKey("errands.id"), nullable=False, index=True)
    runner_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    message = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending")

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    retracted_at = db.Column(db.DateTime, nullable=True)
    retraction_reason = db.Column(db.Text, nullable=True)

    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    errand = db.relationship("Errand", backref=db.backref("bids", lazy=True))
    runner = db.relationship("User", backref=db.backref("bids", lazy=True))

    def __repr__(self):
        return f"<Bid {self.id} ({self.status})>"
