from zinderr.extensions import db
from zinderr.utils.dates import utcnow

class Wallet(db.Model):
    __tablename__ = "wallets"

    id = db.Column(db.String(50), primary_key=True)
    runner_id = db.Column(db.String(50), db.ForeignKey("users.id"), unique=True, nullable=False)

    total_earned = db.Column(db.Numeric(10, 2), default=0)
    available_balance = db.Column(db.Numeric(10, 2), default=0)
    total_withdrawn = db.Column(db.Numeric(10, 2), default=0)
    currency = db.Column(db.String(10), default="GHS")

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    runner = db.relationship("User", backref=db.backref("wallet", uselist=False))
