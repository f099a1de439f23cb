"""
Pricing Config Version database model.

A version groups every pricing row (configs, multipliers, zone fees,
surge thresholds) that is published together.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, Index, ForeignKey, text
from sqlalchemy.sql import func
from ride_pricing.app.db.session import Base
from ride_pricing.app.models.pricing_enums import VersionStatus


class PricingConfigVersion(Base):
    """
    Pricing config version model.

    At most one version is ACTIVE at a time. The partial unique index backs
    the transactional swap done on activation.
    """
    __tablename__ = "pricing_config_versions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    status = Column(Enum(VersionStatus), default=VersionStatus.DRAFT, nullable=False, index=True)

    # Validity
    effective_from = Column(DateTime(timezone=True), nullable=True)
    effective_until = Column(DateTime(timezone=True), nullable=True)

    # Lineage
    cloned_from_id = Column(Integer, ForeignKey('pricing_config_versions.id'), nullable=True)

    # Audit
    created_by = Column(Integer, nullable=True)
    activated_by = Column(Integer, nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Unique constraint: only one active version
    __table_args__ = (
        Index('ix_pricing_versions_single_active', 'status', unique=True,
              postgresql_where=text("status = 'ACTIVE'"),
              sqlite_where=text("status = 'ACTIVE'")),
    )

    def __repr__(self):
        return f"<PricingConfigVersion(id={self.id}, name='{self.name}', status='{self.status.value}')>"
