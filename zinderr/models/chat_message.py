from zinderr.extensions import db
from zinderr.utils.dates import utcnow
import uuid

def gen_msg_id():
    return f"msg-{str(uuid.uuid4())[:8]}"

class ChatMessage(db.Model):
    __tablename__ = "chat_messages"

    __table_args__ = (
        db.Index("idx_chat_messages_errand_id", "errand_id"),
        db.Index("idx_chat_messages_recipient_unread", "recipient_id", "is_read"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_msg_id)
    errand_id = db.Column(db.String(50), db.ForeignKey("errands.id"), nullable=False)
    sender_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    recipient_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    errand = db.relationship("Errand", backref=db.backref("messages", lazy=True))
    sender = db.relationship("User", foreign_keys=[sender_id], lazy=True)
