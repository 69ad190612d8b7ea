"""Per-deployment intake profile.

Bundles the configuration choices the form core needs (contact mode,
name rule, image requirement, error policy, catalog) so that the wizard
and the schemas never read global settings directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from asset_intake.intake.catalog import STANDARD_CATALOG, AssetCatalog, get_catalog


@dataclass(frozen=True)
class IntakeProfile:
    contact_mode: Literal["phone", "email"] = "phone"
    name_letters_only: bool = True
    require_images: bool = True
    collect_all_errors: bool = True
    catalog: AssetCatalog = field(default=STANDARD_CATALOG)

    @classmethod
    def from_settings(cls, settings) -> "IntakeProfile":
        return cls(
            contact_mode=settings.contact_mode,
            name_letters_only=settings.name_letters_only,
            require_images=settings.require_asset_images,
            collect_all_errors=settings.collect_all_errors,
            catalog=get_catalog(settings.asset_catalog),
        )

    def validation_context(self) -> dict:
        """Context passed to pydantic validators."""
        return {"profile": self}
