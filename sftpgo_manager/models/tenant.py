from sqlalchemy import Column, DateTime, Integer, String, Text, func

from sftpgo_manager.db import Base


class Tenant(Base):
    __tablename__ = "tenants"
    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(64), unique=True, nullable=False)  # S3 key prefix
    username = Column(String(255), unique=True, nullable=False)
    password = Column(String(255), nullable=False, default="")  # cleartext, see DESIGN.md
    public_key = Column(Text, nullable=False, default="")
    home_dir = Column(String(1024), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        """Convert to dictionary for API responses"""
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "username": self.username,
            "password": self.password,
            "home_dir": self.home_dir,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.public_key:
            data["public_key"] = self.public_key
        return data
