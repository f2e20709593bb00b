"""Issue, list, revoke and delete DataHub API keys.

The plaintext key is printed once by ``issue``; only its SHA-256 digest is
stored, so a lost key has to be revoked and reissued.
"""

import argparse
import logging
from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from datahub.auth import issue_api_key
from datahub.config import API_KEY_HEADER, configure_logging
from datahub.db.database import get_db_session
from datahub.models import ApiKey
from datahub.models.dataset import utcnow

logger = logging.getLogger(__name__)


def issue(session: Session, name: str) -> str:
    api_key, key = issue_api_key(session, name)
    logger.info(f"Issued API key {api_key.id} ({name})")
    print(f"Name: {name}")
    print(f"Key:  {key}")
    print()
    print("Save this key now, it cannot be shown again.")
    print(f"Send it in the {API_KEY_HEADER} header.")
    return key


def list_keys(session: Session) -> list[ApiKey]:
    keys = session.scalars(select(ApiKey).order_by(ApiKey.created_at.desc())).all()
    if not keys:
        print("No API keys found.")
        return []

    print(f"{'ID':<35}{'Name':<25}{'Status':<10}Created")
    print("-" * 80)
    for key in keys:
        created = key.created_at.date().isoformat() if key.created_at else ""
        print(f"{key.id:<35}{key.name:<25}{key.status:<10}{created}")
    return list(keys)


def revoke(session: Session, id_or_name: str) -> bool:
    result = session.execute(
        update(ApiKey)
        .where(
            or_(ApiKey.id == id_or_name, ApiKey.name == id_or_name),
            ApiKey.status == "active",
        )
        .values(status="revoked", revoked_at=utcnow())
    )
    if result.rowcount == 0:
        logger.error(f"No active API key found with ID or name: {id_or_name}")
        return False
    logger.info(f"Revoked {result.rowcount} API key(s) matching {id_or_name}")
    return True


def remove(session: Session, id_or_name: str) -> bool:
    result = session.execute(
        delete(ApiKey).where(or_(ApiKey.id == id_or_name, ApiKey.name == id_or_name))
    )
    if result.rowcount == 0:
        logger.error(f"No API key found with ID or name: {id_or_name}")
        return False
    logger.info(f"Deleted {result.rowcount} API key(s) matching {id_or_name}")
    return True


def start():
    configure_logging()

    parser = argparse.ArgumentParser(description="DataHub API key management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    issue_parser = subparsers.add_parser("issue", help="Create a new API key")
    issue_parser.add_argument("name")
    subparsers.add_parser("list", help="List all API keys")
    revoke_parser = subparsers.add_parser("revoke", help="Revoke an API key")
    revoke_parser.add_argument("id_or_name")
    delete_parser = subparsers.add_parser("delete", help="Delete an API key")
    delete_parser.add_argument("id_or_name")
    args = parser.parse_args()

    ok = True
    with get_db_session() as session:
        if args.command == "issue":
            issue(session, args.name)
        elif args.command == "list":
            list_keys(session)
        elif args.command == "revoke":
            ok = revoke(session, args.id_or_name)
        elif args.command == "delete":
            ok = remove(session, args.id_or_name)

    if not ok:
        raise SystemExit(1)


if __name__ == "__main__":
    start()
