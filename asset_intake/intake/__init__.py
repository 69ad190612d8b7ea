"""Intake form core: schemas, catalog, wizard state machine, assembler."""

from .assembler import AssetBlockState, AssetDetailAssembler, UploadFailure, UploadReport
from .catalog import AssetCatalog, CatalogEntry, DetailShape, get_catalog
from .draft import SubmissionDraft
from .profile import IntakeProfile
from .wizard import IntakeWizard, WizardStep

__all__ = [
    "AssetBlockState",
    "AssetDetailAssembler",
    "UploadFailure",
    "UploadReport",
    "AssetCatalog",
    "CatalogEntry",
    "DetailShape",
    "get_catalog",
    "SubmissionDraft",
    "IntakeProfile",
    "IntakeWizard",
    "WizardStep",
]
