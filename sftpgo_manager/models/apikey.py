from sqlalchemy import Column, DateTime, Integer, String, func

from sftpgo_manager.db import Base


class ApiKey(Base):
    __tablename__ = "api_keys"
    id = Column(Integer, primary_key=True)
    key_hash = Column(String(64), unique=True, nullable=False)  # sha256 of the raw key
    label = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self, raw_key: str) -> dict:
        """API response shape; the raw key is only known at creation time"""
        return {
            "id": self.id,
            "key": raw_key,
            "label": self.label or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
