"""Tracks one employee's progress through the intake wizard.

One row per session (created when the form is opened). `state` holds the
wizard snapshot: step pointer, completed steps, the validated draft and
the in-progress asset sub-forms. `current_step` and `is_complete` are
denormalised out of it for listing and purging.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from asset_intake.database import Base


class IntakeSession(Base):
    __tablename__ = "intake_sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    state: Mapped[dict | None] = mapped_column(JSON, default=None)
    current_step: Mapped[str] = mapped_column(String(30), default="employee")
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    # Set once the draft has been finalized
    submission_id: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, index=True
    )
