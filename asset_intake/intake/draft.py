"""SubmissionDraft: the record one wizard run accumulates.

The draft only ever holds validated slices: each field is filled by the
matching step's "Next" transition. `to_dict()` / `from_dict()` give the
JSON form used for save/resume and for the review screen.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from asset_intake.intake.catalog import AssetCatalog
from asset_intake.intake.schemas import SHAPE_MODELS, AssetBlock, EmployeeDetails, JobDetails


@dataclass
class SubmissionDraft:
    employee: EmployeeDetails | None = None
    job: JobDetails | None = None
    selected_assets: list[str] = field(default_factory=list)
    # detail key (e.g. "laptop") → validated block
    asset_details: dict[str, AssetBlock] = field(default_factory=dict)
    confirmed: bool = False

    def prune_to(self, keys: list[str]) -> None:
        """Drop blocks whose asset type is no longer selected."""
        for key in list(self.asset_details):
            if key not in keys:
                del self.asset_details[key]

    def to_dict(self) -> dict:
        return {
            "employee": self.employee.to_form() if self.employee else None,
            "job": self.job.to_form() if self.job else None,
            "selectedAssets": list(self.selected_assets),
            "assetDetails": {k: block.to_form() for k, block in self.asset_details.items()},
            "confirmed": self.confirmed,
        }

    @classmethod
    def from_dict(cls, data: dict | None, catalog: AssetCatalog) -> "SubmissionDraft":
        """Rebuild a stored draft. Blocks are typed by their catalog entry."""
        if not data:
            return cls()
        details: dict[str, AssetBlock] = {}
        for key, block in (data.get("assetDetails") or {}).items():
            model = SHAPE_MODELS[catalog.by_key(key).shape]
            details[key] = model.model_construct(**_by_field_name(model, block))
        return cls(
            employee=EmployeeDetails.model_construct(**_by_field_name(EmployeeDetails, data["employee"]))
            if data.get("employee") else None,
            job=JobDetails.model_construct(**_by_field_name(JobDetails, data["job"]))
            if data.get("job") else None,
            selected_assets=list(data.get("selectedAssets") or []),
            asset_details=details,
            confirmed=bool(data.get("confirmed", False)),
        )


def _by_field_name(model, form: dict) -> dict:
    """Map camelCase keys back to field names for model_construct()."""
    names = {f.alias or name: name for name, f in model.model_fields.items()}
    return {names.get(k, k): v for k, v in form.items()}
