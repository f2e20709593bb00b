import logging
from sqlalchemy import DDL, event
from sqlalchemy.engine import Engine

from datahub.models import Base, Dataset

logger = logging.getLogger(__name__)

SEARCH_VECTOR_FUNCTION = DDL(
    """
    CREATE OR REPLACE FUNCTION datasets_search_vector_update() RETURNS trigger AS $$
    BEGIN
      NEW.search_vector :=
        setweight(to_tsvector('english', coalesce(NEW.name, '')), 'A') ||
        setweight(to_tsvector('english', coalesce(NEW.description, '')), 'B') ||
        setweight(to_tsvector('english', coalesce(array_to_string(NEW.tags, ' '), '')), 'C') ||
        setweight(to_tsvector('english', coalesce(NEW.owner, '')), 'D');
      RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """
)

SEARCH_VECTOR_TRIGGER = DDL(
    """
    CREATE TRIGGER datasets_search_vector_trigger
      BEFORE INSERT OR UPDATE ON datasets
      FOR EACH ROW EXECUTE PROCEDURE datasets_search_vector_update()
    """
)

# gin_trgm_ops on datasets.name needs the extension before the index is built
event.listen(
    Dataset.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS pg_trgm"),
)
event.listen(Dataset.__table__, "after_create", SEARCH_VECTOR_FUNCTION)
event.listen(Dataset.__table__, "after_create", SEARCH_VECTOR_TRIGGER)


def init_db(engine: Engine) -> None:
    """Create the extension, tables, search trigger and indexes if missing."""
    logger.info("Creating database schema")
    Base.metadata.create_all(engine)
    logger.info("Database schema is up to date")
