"""Notification model.

Record of a push sent to an issue reporter (status change or manager
reply). Written once, after the push goes out.
"""

import uuid

from app.extensions import db


class Notification(db.Model):
    __tablename__ = "notifications"

    TYPES = ["status_update", "comment"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(db.String(36), nullable=False, index=True)  # recipient
    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(50), nullable=False)  # status_update | comment
    issue_id = db.Column(db.String(36), db.ForeignKey("issues.id"), nullable=True)
    read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True))

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "body": self.body,
            "type": self.type,
            "issueId": self.issue_id,
            "read": self.read,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.type} -> {self.user_id}>"
