"""
Run a SQL file against the database behind explicit guards and a fresh backup.

    ALLOW_DESTRUCTIVE_ACTIONS=true python -m app.ops.safe_run_sql scripts/cleanup.sql --approve --token=...
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.ops.backup import OpsError, check_destructive_guards, create_backup, run_psql_file, verify_backup

logger = logging.getLogger(__name__)


def read_sql_file(path) -> str:
    path = Path(path)
    if not path.is_file():
        raise OpsError(f"Archivo SQL no encontrado: {path}")
    content = path.read_text(encoding="utf-8")
    if not content.strip():
        raise OpsError("El archivo SQL está vacío.")
    return content


def safe_run_sql(path, approve: bool, token: Optional[str]) -> Path:
    """Returns the backup taken before running the file."""
    check_destructive_guards(approve, token)
    read_sql_file(path)

    backup = verify_backup(create_backup())
    logger.info("Backup verified, running %s (%s)", path, settings.ENVIRONMENT)
    try:
        run_psql_file(path)
    except OpsError:
        logger.error("SQL failed; restore from %s if needed", backup)
        raise
    return backup


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a SQL file with backup and confirmation guards")
    parser.add_argument("file")
    parser.add_argument("--approve", action="store_true")
    parser.add_argument("--token", default=None)
    args = parser.parse_args(argv)
    configure_logging()

    try:
        safe_run_sql(args.file, args.approve, args.token)
    except OpsError as e:
        logger.error("%s", e)
        return 1
    logger.info("SQL executed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
