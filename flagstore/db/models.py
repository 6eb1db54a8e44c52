"""
SQLAlchemy ORM models for the database feature store.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint

from flagstore.db.database import Base


class StoredFeature(Base):
    """A resolved feature value for one (feature, scope key) pair."""
    __tablename__ = "features"
    __table_args__ = (
        # One value per feature and scope
        UniqueConstraint("name", "scope", name="uq_features_name_scope"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    scope = Column(String(255), nullable=False)
    value = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)
