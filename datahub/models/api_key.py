from sqlalchemy import Column, String, DateTime, Enum
from .base import Base
from .dataset import utcnow


class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(String(36), primary_key=True)
    key_hash = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    status = Column(
        Enum("active", "revoked", name="api_key_status"),
        nullable=False,
        default="active",
        index=True,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_used_at = Column(DateTime(timezone=True))
    revoked_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<ApiKey(id='{self.id}', name='{self.name}', status='{self.status}')>"
