import logging

from datahub.config import configure_logging
from datahub.db.database import engine
from datahub.db.schema import init_db

logger = logging.getLogger(__name__)


def start():
    configure_logging()
    try:
        init_db(engine)
    except Exception:
        logger.exception("Migration failed")
        raise SystemExit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    start()
