"""
Auth models — users and their console-wide role.

Token issuance lives outside this service; the board only needs to know
who a user is (for attribution and author checks) and which console role
they hold (for elevated overrides).
"""

from datetime import datetime, timezone

from workboard.models import db

# Console roles. Only the first two are elevated on the workflow board.
USER_ROLES = {
    "SUPER_ADMIN",
    "ADMIN",
    "SALES_MANAGER",
    "SALES_REP",
    "INVENTORY_MANAGER",
    "FINANCE_OFFICER",
    "EXECUTIVE_VIEWER",
}


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    full_name = db.Column(db.String(200))
    avatar_url = db.Column(db.String(500))
    role = db.Column(
        db.String(30), nullable=False, default="SALES_REP",
        comment="SUPER_ADMIN | ADMIN | SALES_MANAGER | SALES_REP | ...",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    project_memberships = db.relationship(
        "ProjectMember", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_summary(self) -> dict:
        """Compact author/assignee shape embedded in board payloads."""
        return {
            "id": self.id,
            "name": self.full_name,
            "email": self.email,
            "image": self.avatar_url,
        }

    def to_dict(self) -> dict:
        return {
            **self.to_summary(),
            "role": self.role,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"
