"""Spreadsheet export of submissions.

One row per submission. Per-asset columns are flattened from the active
catalog, e.g. "Laptop Brand", "Laptop Serial", "Mobile Phone IMEI",
"SIM Card Number"; all image URLs of a submission share one column.
"""

import io

from openpyxl import Workbook

from asset_intake.intake.catalog import AssetCatalog, DetailShape
from asset_intake.models.submission import Submission
from asset_intake.services.submissions import all_images

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# shape → [(column suffix, block field)]
_SHAPE_COLUMNS: dict[DetailShape, list[tuple[str, str]]] = {
    DetailShape.LAPTOP_LIKE: [("Brand", "brand"), ("Serial", "serialNumber"), ("Accessories", "accessories")],
    DetailShape.MOBILE_LIKE: [("Brand", "brand"), ("IMEI", "imeiNumber"), ("Accessories", "accessories")],
    DetailShape.SIMPLE_BRAND: [("Brand", "brand")],
    DetailShape.SIMPLE_SIM: [("Number", "simNumber")],
    DetailShape.SIMPLE_DESCRIPTION: [("Description", "description")],
}

BASE_HEADERS = [
    "Employee Name",
    "Employee ID",
    "Contact",
    "Company",
    "Department",
    "Designation",
    "Assets",
]


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def export_columns(catalog: AssetCatalog) -> list[tuple[str, str, str]]:
    """(header, detail key, block field) for every flattened asset column."""
    columns = []
    for entry in catalog.entries:
        for suffix, field_name in _SHAPE_COLUMNS[entry.shape]:
            columns.append((f"{entry.label} {suffix}", entry.key, field_name))
    return columns


def submission_row(submission: Submission, columns: list[tuple[str, str, str]]) -> list:
    details = submission.asset_details or {}
    row = [
        submission.employee_name,
        submission.employee_id,
        submission.employee_number or submission.employee_email or "",
        submission.company,
        submission.department,
        submission.designation,
        ", ".join(submission.selected_assets or []),
    ]
    for _header, key, field_name in columns:
        row.append(_cell((details.get(key) or {}).get(field_name)))
    row.append(", ".join(all_images(details)))
    row.append(submission.created_at.strftime("%Y-%m-%d %H:%M") if submission.created_at else "")
    return row


def build_workbook(submissions: list[Submission], catalog: AssetCatalog) -> bytes:
    columns = export_columns(catalog)
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Submissions"
    sheet.append(BASE_HEADERS + [header for header, _, _ in columns] + ["Images", "Submitted At"])
    for submission in submissions:
        sheet.append(submission_row(submission, columns))
    sheet.freeze_panes = "A2"

    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()
