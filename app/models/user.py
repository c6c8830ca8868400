"""User profile model.

One row per account UID: role, full name and device push token. The row can
be missing for a signed-in account (deleted by an admin, or never created);
callers treat a missing row or a missing role as an employee.
"""

from app.extensions import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True)  # same UID as accounts.id
    email = db.Column(db.String(255))
    full_name = db.Column(db.String(255))
    role = db.Column(db.String(50), nullable=True)  # employee | manager | admin
    push_token = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "role": self.role,
            "pushToken": self.push_token,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"


def _iso(value):
    return value.isoformat() if value is not None else None
