"""
Users and provider profiles.

Role is fixed at creation; status drives whether the user may take part in
new bookings. Provider profiles double as the per-provider lock row used by
the interval conflict index (see services/interval_index.py).
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Text

from service_booking.db.base import Base, TimestampMixin
from service_booking.models.enums import UserRole, UserStatus, sql_in


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(200), nullable=False)
    role = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=UserStatus.PENDING.value)
    is_deleted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(f"role IN ({sql_in(UserRole)})", name="check_user_role"),
        CheckConstraint(f"status IN ({sql_in(UserStatus)})", name="check_user_status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value and not self.is_deleted

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role}, status={self.status})>"


class ProviderProfile(Base, TimestampMixin):
    __tablename__ = "provider_profiles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    bio = Column(Text, nullable=True)
    # Bumped inside every reservation/release transaction for this provider
    schedule_version = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ProviderProfile(user_id={self.user_id}, schedule_version={self.schedule_version})>"
