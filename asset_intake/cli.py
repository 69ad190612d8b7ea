"""Management CLI.

Usage:
    python -m asset_intake.cli create-admin EMAIL PASSWORD   # add a dashboard account
    python -m asset_intake.cli export-submissions PATH       # write all submissions to .xlsx
    python -m asset_intake.cli purge-sessions DAYS           # drop unfinished forms idle > DAYS
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session

from asset_intake.auth.password import hash_password
from asset_intake.config import settings
from asset_intake.intake.catalog import get_catalog
from asset_intake.models.admin_user import AdminUser
from asset_intake.models.intake_session import IntakeSession
from asset_intake.models.submission import Submission
from asset_intake.services.export import build_workbook

USAGE = "Usage: python -m asset_intake.cli [create-admin EMAIL PASSWORD|export-submissions PATH|purge-sessions DAYS]"


def _session() -> Session:
    return Session(create_engine(settings.database_url_sync))


def create_admin(email: str, password: str) -> int:
    if len(password) < 6:
        print("Password must be at least 6 characters.")
        return 1
    email = email.strip().lower()
    with _session() as db:
        if db.execute(select(AdminUser).where(AdminUser.email == email)).scalar_one_or_none():
            print(f"Admin {email} already exists.")
            return 1
        db.add(AdminUser(email=email, hashed_password=hash_password(password)))
        db.commit()
    print(f"Created admin {email}")
    return 0


def export_submissions(path: str) -> int:
    with _session() as db:
        rows = db.execute(select(Submission).order_by(Submission.created_at.desc())).scalars().all()
        content = build_workbook(list(rows), get_catalog(settings.asset_catalog))
    Path(path).write_bytes(content)
    print(f"Wrote {len(rows)} submission(s) to {path}")
    return 0


def purge_sessions(days: int) -> int:
    cutoff = datetime.utcnow() - timedelta(days=days)
    with _session() as db:
        result = db.execute(
            delete(IntakeSession).where(
                IntakeSession.is_complete == False,  # noqa: E712
                IntakeSession.updated_at < cutoff,
            )
        )
        db.commit()
    print(f"Purged {result.rowcount} unfinished session(s) idle since {cutoff:%Y-%m-%d}")
    return 0


def main(argv: list[str]) -> int:
    cmd = argv[0] if argv else ""
    if cmd == "create-admin" and len(argv) == 3:
        return create_admin(argv[1], argv[2])
    if cmd == "export-submissions" and len(argv) == 2:
        return export_submissions(argv[1])
    if cmd == "purge-sessions" and len(argv) == 2 and argv[1].isdigit():
        return purge_sessions(int(argv[1]))
    print(USAGE)
    return 2


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
