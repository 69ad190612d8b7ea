"""Field schemas for every intake step and asset detail shape.

Each step model validates one slice of the submission. Models accept and
emit camelCase (the names the form uses) and trim all strings. Rules that
depend on the deployment (contact mode, letters-only names, the closed
company/department lists) read the `IntakeProfile` from the pydantic
validation context, so one set of models serves every deployment.

`check()` is the entry point used by the wizard: it never raises, it
returns either the validated model or a {field: message} mapping.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from asset_intake.intake.catalog import DetailShape
from asset_intake.intake.profile import IntakeProfile
from asset_intake.schemas.validators import validate_email

NAME_REGEX = re.compile(r"^[A-Za-z\s]+$")
MOBILE_REGEX = re.compile(r"^[6-9]\d{9}$")

NAME_MAX = 100
EMPLOYEE_ID_MAX = 50
DESIGNATION_MAX = 100
IMEI_MAX = 15
DESCRIPTION_MAX = 500

_DEFAULT_PROFILE = IntakeProfile()


def _profile(info: ValidationInfo) -> IntakeProfile:
    return (info.context or {}).get("profile") or _DEFAULT_PROFILE


def _required(value: str, label: str, max_length: int | None = None) -> str:
    if not value:
        raise ValueError(f"{label} is required")
    if max_length is not None and len(value) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return value


class FormModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_form(self) -> dict:
        """Dump with the form's camelCase names."""
        return self.model_dump(by_alias=True)


# ── Step 1: Employee ────────────────────────────────────────

class EmployeeDetails(FormModel):
    full_name: str = Field("", validate_default=True)
    # 10-digit mobile number or email address, depending on contact mode
    contact: str = Field("", validate_default=True)
    employee_id: str = Field("", validate_default=True)

    @field_validator("full_name")
    @classmethod
    def _check_full_name(cls, v: str, info: ValidationInfo) -> str:
        _required(v, "Full name", NAME_MAX)
        if _profile(info).name_letters_only and not NAME_REGEX.match(v):
            raise ValueError("Name must contain only letters")
        return v

    @field_validator("contact")
    @classmethod
    def _check_contact(cls, v: str, info: ValidationInfo) -> str:
        if _profile(info).contact_mode == "email":
            return validate_email(v)
        if not MOBILE_REGEX.match(v):
            raise ValueError("Enter a valid 10-digit mobile number")
        return v

    @field_validator("employee_id")
    @classmethod
    def _check_employee_id(cls, v: str) -> str:
        return _required(v, "Employee ID", EMPLOYEE_ID_MAX)


# ── Step 2: Job ─────────────────────────────────────────────

class JobDetails(FormModel):
    company: str = Field("", validate_default=True)
    department: str = Field("", validate_default=True)
    designation: str = Field("", validate_default=True)

    @field_validator("company")
    @classmethod
    def _check_company(cls, v: str, info: ValidationInfo) -> str:
        _required(v, "Company")
        if v not in _profile(info).catalog.companies:
            raise ValueError("Select a company from the list")
        return v

    @field_validator("department")
    @classmethod
    def _check_department(cls, v: str, info: ValidationInfo) -> str:
        _required(v, "Department")
        if v not in _profile(info).catalog.departments:
            raise ValueError("Select a department from the list")
        return v

    @field_validator("designation")
    @classmethod
    def _check_designation(cls, v: str) -> str:
        return _required(v, "Designation", DESIGNATION_MAX)


# ── Step 3: Asset selection ─────────────────────────────────

class AssetSelection(FormModel):
    selected_assets: list[str] = Field(default_factory=list, validate_default=True)

    @field_validator("selected_assets")
    @classmethod
    def _check_selection(cls, v: list[str], info: ValidationInfo) -> list[str]:
        catalog = _profile(info).catalog
        unique: list[str] = []
        for label in v:
            label = label.strip()
            if label and label not in unique:
                unique.append(label)
        if not unique:
            raise ValueError("Select at least one asset")
        unknown = [label for label in unique if not catalog.has_label(label)]
        if unknown:
            raise ValueError(f"Unknown asset type: {', '.join(unknown)}")
        return unique


# ── Step 4: Asset detail shapes ─────────────────────────────

def _unique(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class LaptopDetails(FormModel):
    """Laptop, desktop and tablet blocks."""
    brand: str = Field("", validate_default=True)
    serial_number: str = Field("", validate_default=True)
    # Not checked against the catalog: the UI only offers catalog values.
    accessories: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)

    @field_validator("brand")
    @classmethod
    def _check_brand(cls, v: str) -> str:
        return _required(v, "Brand")

    @field_validator("serial_number")
    @classmethod
    def _check_serial(cls, v: str) -> str:
        return _required(v, "Serial number")

    @field_validator("accessories")
    @classmethod
    def _dedupe_accessories(cls, v: list[str]) -> list[str]:
        return _unique(v)


class MobileDetails(FormModel):
    brand: str = Field("", validate_default=True)
    imei_number: str = Field("", validate_default=True)
    accessories: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)

    @field_validator("brand")
    @classmethod
    def _check_brand(cls, v: str) -> str:
        return _required(v, "Brand")

    @field_validator("imei_number")
    @classmethod
    def _check_imei(cls, v: str) -> str:
        return _required(v, "IMEI", IMEI_MAX)

    @field_validator("accessories")
    @classmethod
    def _dedupe_accessories(cls, v: list[str]) -> list[str]:
        return _unique(v)


class BrandOnlyDetails(FormModel):
    brand: str = Field("", validate_default=True)

    @field_validator("brand")
    @classmethod
    def _check_brand(cls, v: str) -> str:
        return _required(v, "Brand")


class SimCardDetails(FormModel):
    sim_number: str = Field("", validate_default=True)

    @field_validator("sim_number")
    @classmethod
    def _check_sim(cls, v: str) -> str:
        if not MOBILE_REGEX.match(v):
            raise ValueError("Enter a valid 10-digit SIM number")
        return v


class DescribedDetails(FormModel):
    description: str = Field("", validate_default=True)

    @field_validator("description")
    @classmethod
    def _check_description(cls, v: str) -> str:
        return _required(v, "Description", DESCRIPTION_MAX)


AssetBlock = Union[LaptopDetails, MobileDetails, BrandOnlyDetails, SimCardDetails, DescribedDetails]

SHAPE_MODELS: dict[DetailShape, type[FormModel]] = {
    DetailShape.LAPTOP_LIKE: LaptopDetails,
    DetailShape.MOBILE_LIKE: MobileDetails,
    DetailShape.SIMPLE_BRAND: BrandOnlyDetails,
    DetailShape.SIMPLE_SIM: SimCardDetails,
    DetailShape.SIMPLE_DESCRIPTION: DescribedDetails,
}

# Text fields each shape's sub-form edits (camelCase, as the form sends them)
SHAPE_TEXT_FIELDS: dict[DetailShape, tuple[str, ...]] = {
    DetailShape.LAPTOP_LIKE: ("brand", "serialNumber"),
    DetailShape.MOBILE_LIKE: ("brand", "imeiNumber"),
    DetailShape.SIMPLE_BRAND: ("brand",),
    DetailShape.SIMPLE_SIM: ("simNumber",),
    DetailShape.SIMPLE_DESCRIPTION: ("description",),
}


# ── Step 5: Review ──────────────────────────────────────────

class ReviewConfirmation(FormModel):
    confirmed: bool = Field(False, validate_default=True)

    @field_validator("confirmed")
    @classmethod
    def _must_confirm(cls, v: bool) -> bool:
        if not v:
            raise ValueError("Please confirm the details are correct")
        return v


# ── Checking ────────────────────────────────────────────────

@dataclass
class FieldCheck:
    """Outcome of a schema check: a validated value or field errors."""
    value: Any = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def field_errors(exc: ValidationError, model: type[BaseModel] | None = None) -> dict[str, str]:
    """Flatten a pydantic ValidationError to {camelCaseField: first message}."""
    aliases = {}
    if model is not None:
        aliases = {name: f.alias or name for name, f in model.model_fields.items()}
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        name = str(loc[0]) if loc else "form"
        name = aliases.get(name, name)
        if name in errors:
            continue
        ctx = err.get("ctx") or {}
        errors[name] = str(ctx["error"]) if "error" in ctx else err["msg"]
    return errors


def check(model: type[FormModel], data: dict | None, profile: IntakeProfile) -> FieldCheck:
    try:
        value = model.model_validate(data or {}, context=profile.validation_context())
    except ValidationError as exc:
        return FieldCheck(errors=field_errors(exc, model))
    return FieldCheck(value=value)
