"""Issue models.

- Issue: a problem report filed by an employee.
- IssueComment: append-only discussion thread on an issue.

Issues are exchanged as camelCase dicts (the mobile client's field names).
FIELDS maps those keys to columns; keys with no column are kept in `extra`
and handed back unchanged.
"""

import uuid

from app.extensions import db


class Issue(db.Model):
    __tablename__ = "issues"

    # -- Valid statuses (no transition rules: any status may follow any other) --
    STATUSES = ["Open", "In Progress", "Resolved"]

    # -- Category labels offered by the report form --
    CATEGORIES = ["Maintenance", "Safety", "IT", "Supply"]

    # -- Client field name -> column name --
    FIELDS = {
        "userId": "user_id",
        "userEmail": "user_email",
        "title": "title",
        "description": "description",
        "category": "category",
        "severity": "severity",
        "priority": "priority",
        "impact": "impact",
        "reproducibility": "reproducibility",
        "location": "location",
        "assetId": "asset_id",
        "contactPhone": "contact_phone",
        "bestTime": "best_time",
        "stepsToReproduce": "steps_to_reproduce",
        "expectedResult": "expected_result",
    }

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(db.String(36), index=True)
    user_email = db.Column(db.String(255))
    title = db.Column(db.String(255))
    description = db.Column(db.Text)
    category = db.Column(db.String(50))  # Maintenance | Safety | IT | Supply
    severity = db.Column(db.String(50))
    priority = db.Column(db.String(50))
    impact = db.Column(db.String(255))
    reproducibility = db.Column(db.String(50))
    location = db.Column(db.String(255))
    asset_id = db.Column(db.String(100))
    contact_phone = db.Column(db.String(50))
    best_time = db.Column(db.String(100))
    steps_to_reproduce = db.Column(db.Text)
    expected_result = db.Column(db.Text)
    status = db.Column(
        db.String(50), default="Open", nullable=False
    )  # Open | In Progress | Resolved
    extra = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), index=True)
    updated_at = db.Column(db.DateTime(timezone=True))

    # --- Relationships ---
    comments = db.relationship(
        "IssueComment",
        back_populates="issue",
        order_by="IssueComment.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_comments=True):
        """Document view of the issue. Optional fields that were never set are omitted."""
        data = dict(self.extra or {})
        for key, column in self.FIELDS.items():
            value = getattr(self, column)
            if value is not None:
                data[key] = value
        data["id"] = self.id
        data["status"] = self.status
        data["createdAt"] = _iso(self.created_at)
        if self.updated_at is not None:
            data["updatedAt"] = _iso(self.updated_at)
        if include_comments:
            data["comments"] = [c.to_dict() for c in self.comments]
        return data

    def __repr__(self):
        return f"<Issue {self.id} ({self.status})>"


class IssueComment(db.Model):
    __tablename__ = "issue_comments"

    # Integer sequence: insertion order is the thread order.
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    issue_id = db.Column(
        db.String(36), db.ForeignKey("issues.id"), nullable=False, index=True
    )
    text = db.Column(db.Text, nullable=False)
    role = db.Column(db.String(50))  # manager | employee
    author_name = db.Column(db.String(255))
    created_at = db.Column(db.DateTime(timezone=True))

    # --- Relationships ---
    issue = db.relationship("Issue", back_populates="comments")

    def to_dict(self):
        return {
            "text": self.text,
            "role": self.role,
            "authorName": self.author_name,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<IssueComment issue={self.issue_id} role={self.role}>"


def _iso(value):
    return value.isoformat() if value is not None else None
