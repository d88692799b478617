from zinderr.extensions import db
from zinderr.utils.dates import utcnow
import uuid

def gen_tx_id():
    return f"tx_{uuid.uuid4().hex[:12]}"

class Transaction(db.Model):
    """Payout record written when an errand is marked completed."""

    __tablename__ = "transactions"

    id = db.Column(db.String(50), primary_key=True, default=gen_tx_id)
    errand_id = db.Column(db.String(50), db.ForeignKey("errands.id"), nullable=False, unique=True)
    poster_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    runner_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), default="completed")

    completed_at = db.Column(db.DateTime, default=utcnow)
    created_at = db.Column(db.DateTime, default=utcnow)

    errand = db.relationship("Errand", backref=db.backref("transaction", uselist=False))
    poster = db.relationship("User", foreign_keys=[poster_id], lazy=True)
    runner = db.relationship("User", foreign_keys=[runner_id], lazy=True)
