"""
Service catalogue: hierarchical categories and provider-owned services.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from service_booking.db.base import Base, TimestampMixin


class ServiceCategory(Base, TimestampMixin):
    __tablename__ = "service_categories"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("service_categories.id"), nullable=True, index=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)

    __table_args__ = (
        # NULL parents are not covered by this constraint; entity_service checks root names
        UniqueConstraint("parent_id", "name", name="uq_service_categories_parent_name"),
    )

    def __repr__(self) -> str:
        return f"<ServiceCategory(id={self.id}, name={self.name}, parent={self.parent_id})>"


class Service(Base, TimestampMixin):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("service_categories.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    duration_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="check_service_base_price_non_negative"),
        CheckConstraint(
            "duration_minutes IS NULL OR duration_minutes > 0",
            name="check_service_duration_positive",
        ),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, title={self.title}, active={self.is_active})>"
