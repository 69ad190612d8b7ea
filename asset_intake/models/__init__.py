"""Aggregate model imports for Alembic auto-detection."""

from asset_intake.models.admin_user import AdminUser  # noqa: F401
from asset_intake.models.intake_session import IntakeSession  # noqa: F401
from asset_intake.models.submission import Submission  # noqa: F401
