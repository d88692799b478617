from zinderr.extensions import db
from zinderr.utils.dates import utcnow
import uuid

RATING_TYPES = ("poster_to_runner", "runner_to_poster")

def gen_rating_id():
    return f"rat-{str(uuid.uuid4())[:8]}"

class MutualRating(db.Model):
    __tablename__ = "mutual_ratings"

    __table_args__ = (
        db.UniqueConstraint("errand_id", "rater_id", name="uq_mutual_ratings_errand_rater"),
        db.Index("idx_mutual_ratings_rated_id", "rated_id"),
        db.Index("idx_mutual_ratings_hidden_until", "hidden_until"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_rating_id)

    errand_id = db.Column(db.String(50), db.ForeignKey("errands.id"), nullable=False)
    transaction_id = db.Column(db.String(50), db.ForeignKey("transactions.id"), nullable=True)

    rater_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    rated_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)

    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    rating_type = db.Column(db.String(30), nullable=False)

    is_hidden = db.Column(db.Boolean, nullable=False, default=True)
    hidden_until = db.Column(db.DateTime, nullable=False)

    report_reason = db.Column(db.Text, nullable=True)
    report_submitted_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)

    errand = db.relationship("Errand", backref=db.backref("ratings", lazy=True))
    rater = db.relationship("User", foreign_keys=[rater_id], lazy=True)
    rated = db.relationship("User", foreign_keys=[rated_id], lazy=True)

    def is_visible_at(self, now):
        return not self.is_hidden or self.hidden_until <= now
