from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text, UniqueConstraint, func

from sftpgo_manager.db import Base


class Record(Base):
    __tablename__ = "records"
    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(64), nullable=False)
    record_key = Column(String(255), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(Text, nullable=False, default="")
    value = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("tenant_id", "record_key", name="uq_records_tenant_key"),
        Index("idx_records_tenant", "tenant_id"),
    )

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "record_key": self.record_key,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "value": self.value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
