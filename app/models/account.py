"""Account model.

Sign-in identity: credentials and display name, keyed by the stable UID
that the `users` profile row shares. Flask-Login integration via UserMixin.
"""

import uuid

from flask_login import UserMixin

from app.extensions import db


class Account(UserMixin, db.Model):
    __tablename__ = "accounts"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self):
        return f"<Account {self.email}>"
