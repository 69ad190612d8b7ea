"""Submission: one finalized asset-assignment record.

Flat employee/job columns plus the selection and the per-asset detail
blocks as JSON. Exactly one of employee_number / employee_email is set,
depending on the contact mode the form ran in.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, JSON, String, func
from sqlalchemy.orm import Mapped, mapped_column

from asset_intake.database import Base


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # ── Employee ───────────────────────────────────────────────
    employee_name: Mapped[str] = mapped_column(String(100), nullable=False)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    employee_number: Mapped[str | None] = mapped_column(String(10))
    employee_email: Mapped[str | None] = mapped_column(String(255))

    # ── Job ────────────────────────────────────────────────────
    company: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    department: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    designation: Mapped[str] = mapped_column(String(100), nullable=False)

    # ── Assets ─────────────────────────────────────────────────
    # ["Laptop", "SIM Card"]
    selected_assets: Mapped[list] = mapped_column(JSON, default=list)
    # {"laptop": {"brand": ..., "serialNumber": ..., ...}, "sim_card": {...}}
    asset_details: Mapped[dict] = mapped_column(JSON, default=dict)
    confirmed: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False, index=True
    )

    # Load server-side created_at right after INSERT
    __mapper_args__ = {"eager_defaults": True}
