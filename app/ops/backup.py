"""
Database backups through the PostgreSQL client tools.

    python -m app.ops.backup create
    python -m app.ops.backup verify backups/trainfit_backup_20250101-090000.sql
    python -m app.ops.backup restore backups/trainfit_backup_20250101-090000.sql --approve --token=...
"""
import argparse
import logging
import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from app.core.config import settings
from app.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

DUMP_HEADER = "-- PostgreSQL database dump"
HEADER_SCAN_LINES = 20


class OpsError(Exception):
    pass


def libpq_url(url: Optional[str] = None) -> str:
    """pg_dump/psql do not understand SQLAlchemy driver suffixes."""
    url = url or settings.DATABASE_URL
    return url.replace("postgresql+asyncpg://", "postgresql://", 1)


def check_destructive_guards(approve: bool, token: Optional[str], environ=None) -> None:
    """Raise OpsError unless a destructive action has been explicitly allowed."""
    environ = os.environ if environ is None else environ
    approved = approve or environ.get("CONFIRM_SQL") == "YES"

    if settings.is_production and not approved:
        raise OpsError("Acción destructiva bloqueada en producción. Usa --approve o CONFIRM_SQL=YES.")
    if not settings.ALLOW_DESTRUCTIVE_ACTIONS:
        raise OpsError("Acciones destructivas deshabilitadas. Establece ALLOW_DESTRUCTIVE_ACTIONS=true.")
    if not approved:
        raise OpsError("Se requiere confirmación explícita. Ejecuta con --approve o CONFIRM_SQL=YES.")
    if settings.APPROVAL_TOKEN:
        if token != settings.APPROVAL_TOKEN:
            raise OpsError("Token de aprobación inválido o faltante. Usa --token=<APPROVAL_TOKEN>.")
    elif settings.is_production:
        raise OpsError("APPROVAL_TOKEN no configurado; es obligatorio en producción.")


def backup_path(backup_dir: Optional[str] = None, now: Optional[datetime] = None) -> Path:
    now = now or datetime.now()
    return Path(backup_dir or settings.BACKUP_DIR) / f"trainfit_backup_{now.strftime('%Y%m%d-%H%M%S')}.sql"


def create_backup(backup_dir: Optional[str] = None) -> Path:
    target = backup_path(backup_dir)
    target.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Creating backup %s", target)
    result = subprocess.run(
        ["pg_dump", "--no-owner", "--file", str(target), libpq_url()],
        capture_output=True, text=True,
    )
    if result.returncode != 0:
        raise OpsError(f"pg_dump falló: {result.stderr.strip()}")
    return target


def verify_backup(path) -> Path:
    path = Path(path)
    if not path.is_file():
        raise OpsError(f"Archivo de backup no encontrado: {path}")
    if path.stat().st_size == 0:
        raise OpsError("El archivo de backup está vacío")
    with path.open(encoding="utf-8", errors="replace") as f:
        head = [next(f, "") for _ in range(HEADER_SCAN_LINES)]
    if not any(line.startswith(DUMP_HEADER) for line in head):
        raise OpsError("El archivo no parece un dump de PostgreSQL")
    logger.info("Backup %s verified (%.2f KB)", path, path.stat().st_size / 1024)
    return path


def run_psql_file(path) -> None:
    result = subprocess.run(
        ["psql", "--single-transaction", "-v", "ON_ERROR_STOP=1", "--file", str(path), libpq_url()],
        capture_output=True, text=True,
    )
    if result.returncode != 0:
        raise OpsError(f"psql falló: {result.stderr.strip()}")


def restore_backup(path, approve: bool, token: Optional[str]) -> None:
    check_destructive_guards(approve, token)
    verify_backup(path)
    logger.warning("Restoring database from %s", path)
    run_psql_file(path)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="TrainFit database backups")
    sub = parser.add_subparsers(dest="cmd", required=True)

    create = sub.add_parser("create")
    create.add_argument("--dir", default=None)

    verify = sub.add_parser("verify")
    verify.add_argument("file")

    restore = sub.add_parser("restore")
    restore.add_argument("file")
    restore.add_argument("--approve", action="store_true")
    restore.add_argument("--token", default=None)

    args = parser.parse_args(argv)
    configure_logging()

    try:
        if args.cmd == "create":
            path = create_backup(args.dir)
            verify_backup(path)
            print(path)
        elif args.cmd == "verify":
            verify_backup(args.file)
        elif args.cmd == "restore":
            restore_backup(args.file, args.approve, args.token)
    except OpsError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
