import uuid
from contextlib import contextmanager
from typing import Optional
from sqlalchemy import create_engine, delete, func, select, text
from sqlalchemy.orm import sessionmaker, Session

from datahub.config import DB_STATEMENT_TIMEOUT_MS, POSTGRES_URL
from datahub.models import Dataset
from datahub.models.dataset import utcnow
from datahub.models.service import DatasetCreate, DatasetStats

# Create engine and session factory
engine = create_engine(
    POSTGRES_URL,
    pool_pre_ping=True,
    connect_args={"options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}"},
)
SessionLocal = sessionmaker(bind=engine)

# Fields a PATCH may touch; everything else is fixed at registration
UPDATABLE_FIELDS = (
    "name",
    "version",
    "description",
    "source_config",
    "collection_params",
    "item_count",
    "total_size_bytes",
    "storage_path",
    "host",
    "owner",
    "tags",
    "status",
    "checksum",
)


@contextmanager
def get_db_session():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_session():
    """FastAPI dependency; routes commit their own writes."""
    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping(session: Session) -> None:
    session.execute(text("SELECT 1"))


def list_datasets(
    session: Session,
    source_type: Optional[str] = None,
    status: Optional[str] = None,
    owner: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Dataset], int]:
    conditions = []
    if source_type:
        conditions.append(Dataset.source_type == source_type)
    if status:
        conditions.append(Dataset.status == status)
    if owner:
        conditions.append(Dataset.owner == owner)

    count_stmt = select(func.count()).select_from(Dataset).where(*conditions)
    total = int(session.scalar(count_stmt) or 0)
    if total == 0 or offset >= total:
        return [], total

    stmt = (
        select(Dataset)
        .where(*conditions)
        .order_by(Dataset.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    datasets = session.execute(stmt).scalars().all()
    return list(datasets), total


def create_dataset(session: Session, data: DatasetCreate) -> Dataset:
    now = utcnow()
    values = data.model_dump(exclude={"id"})
    dataset = Dataset(
        **values,
        id=data.id or str(uuid.uuid4()),
        collected_at=now,
        created_at=now,
        updated_at=now,
        schema_version="1.0",
    )
    session.add(dataset)
    session.commit()
    session.refresh(dataset)
    return dataset


def get_dataset(session: Session, dataset_id: str) -> Optional[Dataset]:
    return session.get(Dataset, dataset_id)


def update_dataset(
    session: Session, dataset_id: str, fields: dict
) -> Optional[Dataset]:
    dataset = session.get(Dataset, dataset_id)
    if dataset is None:
        return None

    for field, value in fields.items():
        if field in UPDATABLE_FIELDS:
            setattr(dataset, field, value)
    dataset.updated_at = utcnow()

    session.commit()
    session.refresh(dataset)
    return dataset


def delete_dataset(session: Session, dataset_id: str) -> bool:
    result = session.execute(delete(Dataset).where(Dataset.id == dataset_id))
    session.commit()
    return result.rowcount > 0


def get_dataset_stats(session: Session) -> DatasetStats:
    totals = session.execute(
        select(
            func.count().label("total_datasets"),
            func.coalesce(func.sum(Dataset.item_count), 0).label("total_items"),
            func.coalesce(func.sum(Dataset.total_size_bytes), 0).label("total_bytes"),
        ).select_from(Dataset)
    ).one()

    by_source_type = session.execute(
        select(Dataset.source_type, func.count()).group_by(Dataset.source_type)
    ).all()
    by_status = session.execute(
        select(Dataset.status, func.count()).group_by(Dataset.status)
    ).all()

    return DatasetStats(
        total_datasets=int(totals.total_datasets),
        total_items=int(totals.total_items),
        total_bytes=int(totals.total_bytes),
        by_source_type={row[0]: int(row[1]) for row in by_source_type},
        by_status={row[0]: int(row[1]) for row in by_status},
    )
