import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, BigInteger, DateTime, Text, Index
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TSVECTOR
from .base import Base


def utcnow():
    return datetime.now(timezone.utc)


class Dataset(Base):
    __tablename__ = "datasets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    version = Column(String(50), default="1.0.0")
    description = Column(Text)
    source_type = Column(String(50), nullable=False)
    source_config = Column(JSONB, default=dict)
    collected_at = Column(DateTime(timezone=True), default=utcnow)
    collected_by = Column(String(255), default="unknown")
    collection_params = Column(JSONB, default=dict)
    item_count = Column(Integer, default=0)
    total_size_bytes = Column(BigInteger, default=0)
    storage_backend = Column(String(50), nullable=False)
    storage_path = Column(String(1024), nullable=False)
    host = Column(String(255))
    owner = Column(String(255))
    tags = Column(ARRAY(Text), default=list)
    status = Column(String(50), default="active")
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    checksum = Column(String(64))
    schema_version = Column(String(20), default="1.0")

    # Maintained by the datasets_search_vector_update trigger (see db/schema.py)
    search_vector = Column(TSVECTOR)

    __table_args__ = (
        Index("ix_datasets_search_vector", "search_vector", postgresql_using="gin"),
        Index(
            "ix_datasets_name_trgm",
            "name",
            postgresql_using="gin",
            postgresql_ops={"name": "gin_trgm_ops"},
        ),
        Index("ix_datasets_tags", "tags", postgresql_using="gin"),
        Index("ix_datasets_source_type", "source_type"),
        Index("ix_datasets_status", "status"),
        Index("ix_datasets_owner", "owner"),
        Index("ix_datasets_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Dataset(id='{self.id}', name='{self.name}', source_type='{self.source_type}')>"
