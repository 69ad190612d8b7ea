"""Asset Detail Assembler: one sub-form per selected asset type.

Each selected type gets its own `AssetBlockState`: the text fields of its
detail shape, an ordered accessory set and an ordered list of image URLs.
The assembler is keyed by detail key (e.g. "laptop"), never by which
block the user is looking at, so an upload that finishes after the user
navigated elsewhere still lands on the block it was started for.

Validation at "Next" time runs the shape's field schema plus the
non-text rules (at least one image for structured shapes when the
profile requires it, no upload still in flight). By default every block
is checked and all failures are reported together; a profile with
`collect_all_errors=False` stops at the first failing block.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from asset_intake.intake.catalog import CatalogEntry, DetailShape
from asset_intake.intake.profile import IntakeProfile
from asset_intake.intake.schemas import SHAPE_MODELS, SHAPE_TEXT_FIELDS, AssetBlock, FieldCheck, check
from asset_intake.middleware.exceptions import (
    ResourceNotFoundError,
    StepRejectedError,
    UploadError,
    WizardStateError,
)
from asset_intake.storage.base import ImageFile, ObjectStore, check_image, generate_object_name

logger = logging.getLogger(__name__)


@dataclass
class AssetBlockState:
    key: str
    label: str
    shape: DetailShape
    fields: dict[str, str] = field(default_factory=dict)
    accessories: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    pending_uploads: int = 0

    @classmethod
    def empty(cls, entry: CatalogEntry) -> "AssetBlockState":
        return cls(
            key=entry.key,
            label=entry.label,
            shape=entry.shape,
            fields={name: "" for name in SHAPE_TEXT_FIELDS[entry.shape]},
        )

    def form_data(self) -> dict:
        data = dict(self.fields)
        if self.shape.is_structured:
            data["accessories"] = list(self.accessories)
            data["images"] = list(self.images)
        return data

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "shape": self.shape.value,
            "fields": dict(self.fields),
            "accessories": list(self.accessories),
            "images": list(self.images),
            "uploading": self.pending_uploads > 0,
            "pendingUploads": self.pending_uploads,
        }


@dataclass
class UploadFailure:
    filename: str
    reason: str


@dataclass
class UploadReport:
    key: str
    uploaded: list[str] = field(default_factory=list)
    failures: list[UploadFailure] = field(default_factory=list)
    # True when the asset type was deselected before the batch finished
    discarded: bool = False

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "uploaded": list(self.uploaded),
            "failures": [{"filename": f.filename, "reason": f.reason} for f in self.failures],
            "discarded": self.discarded,
        }


class AssetDetailAssembler:
    def __init__(self, profile: IntakeProfile):
        self.profile = profile
        self._blocks: dict[str, AssetBlockState] = {}

    # ── Block set ────────────────────────────────────────────

    @property
    def keys(self) -> list[str]:
        return list(self._blocks)

    def blocks(self) -> list[AssetBlockState]:
        return list(self._blocks.values())

    def block(self, key: str) -> AssetBlockState:
        try:
            return self._blocks[key]
        except KeyError:
            raise ResourceNotFoundError("Asset block", key) from None

    def sync(self, labels: list[str]) -> None:
        """Match the block set to a selection: add new types, drop removed ones."""
        catalog = self.profile.catalog
        synced: dict[str, AssetBlockState] = {}
        for label in labels:
            entry = catalog.by_label(label)
            synced[entry.key] = self._blocks.get(entry.key) or AssetBlockState.empty(entry)
        dropped = set(self._blocks) - set(synced)
        if dropped:
            logger.debug(f"Dropping asset blocks: {', '.join(sorted(dropped))}")
        self._blocks = synced

    # ── Sub-form edits ───────────────────────────────────────

    def set_fields(self, key: str, values: dict) -> AssetBlockState:
        """Update text fields (and optionally the whole accessory set)."""
        state = self.block(key)
        unknown = [
            name for name in values
            if name not in state.fields and not (name == "accessories" and state.shape.is_structured)
        ]
        if unknown:
            raise StepRejectedError(
                {name: f"Not a field of {state.label}" for name in unknown}
            )
        accessories = values.get("accessories")
        if accessories is not None and (
            not isinstance(accessories, list) or not all(isinstance(a, str) for a in accessories)
        ):
            raise StepRejectedError({"accessories": "Accessories must be a list of names"})
        for name, value in values.items():
            if name == "accessories":
                state.accessories = []
                for accessory in value or []:
                    if accessory not in state.accessories:
                        state.accessories.append(accessory)
            else:
                state.fields[name] = "" if value is None else str(value)
        return state

    def toggle_accessory(self, key: str, accessory: str) -> list[str]:
        state = self.block(key)
        if not state.shape.is_structured:
            raise WizardStateError(f"{state.label} has no accessories")
        if accessory in state.accessories:
            state.accessories.remove(accessory)
        else:
            state.accessories.append(accessory)
        return list(state.accessories)

    def add_images(self, key: str, urls: list[str]) -> list[str]:
        state = self.block(key)
        if not state.shape.is_structured:
            raise WizardStateError(f"{state.label} does not take images")
        state.images.extend(urls)
        return list(state.images)

    def remove_image(self, key: str, index: int) -> str:
        state = self.block(key)
        if index < 0 or index >= len(state.images):
            raise ResourceNotFoundError("Image", f"{key}[{index}]")
        return state.images.pop(index)

    # ── Uploads ──────────────────────────────────────────────

    def begin_upload(self, key: str) -> AssetBlockState:
        """Mark a batch as in flight; the block fails validation until it ends."""
        state = self.block(key)
        if not state.shape.is_structured:
            raise WizardStateError(f"{state.label} does not take images")
        state.pending_uploads += 1
        return state

    def end_upload(self, key: str) -> AssetBlockState | None:
        """Clear one in-flight mark. None if the type was deselected meanwhile."""
        state = self._blocks.get(key)
        if state is not None:
            state.pending_uploads = max(0, state.pending_uploads - 1)
        return state

    async def upload_images(
        self,
        key: str,
        files: list[ImageFile],
        store: ObjectStore,
        *,
        timeout: float = 30.0,
        max_bytes: int = 5 * 1024 * 1024,
    ) -> UploadReport:
        """Upload a batch concurrently and append the URLs to the block.

        URLs are appended in the order the files were given. If the type
        was deselected while the batch ran, nothing is appended.
        """
        self.begin_upload(key)
        try:
            report = await self.store_batch(key, files, store, timeout=timeout, max_bytes=max_bytes)
        finally:
            current = self.end_upload(key)

        if current is None:
            report.discarded = True
            logger.info(
                f"Discarding {len(report.uploaded)} upload(s) for deselected asset '{key}'"
            )
        else:
            current.images.extend(report.uploaded)
        return report

    async def store_batch(
        self,
        key: str,
        files: list[ImageFile],
        store: ObjectStore,
        *,
        timeout: float = 30.0,
        max_bytes: int = 5 * 1024 * 1024,
    ) -> UploadReport:
        """Store a batch concurrently without touching any block.

        Each file is checked and uploaded on its own with a timeout; a
        failing file is reported and skipped, its siblings carry on.
        """
        outcomes = await asyncio.gather(
            *(self._upload_one(f, store, timeout, max_bytes) for f in files)
        )
        report = UploadReport(key=key)
        for outcome in outcomes:
            if isinstance(outcome, UploadFailure):
                report.failures.append(outcome)
            else:
                report.uploaded.append(outcome)
        return report

    async def _upload_one(
        self,
        file: ImageFile,
        store: ObjectStore,
        timeout: float,
        max_bytes: int,
    ) -> str | UploadFailure:
        try:
            check_image(file, max_bytes)
            name = generate_object_name(file.filename)
            await asyncio.wait_for(store.upload(file.data, name, file.content_type), timeout)
            return store.public_url(name)
        except UploadError as exc:
            reason = exc.reason
        except asyncio.TimeoutError:
            reason = "Upload timed out"
        except OSError as exc:
            reason = f"Upload failed: {exc}"
        logger.warning(f"Image upload failed for {file.filename}: {reason}")
        return UploadFailure(filename=file.filename, reason=reason)

    # ── Validation ───────────────────────────────────────────

    def validate_block(self, key: str) -> FieldCheck:
        state = self.block(key)
        result = check(SHAPE_MODELS[state.shape], state.form_data(), self.profile)
        errors = dict(result.errors)
        if state.shape.is_structured:
            if state.pending_uploads:
                errors["images"] = "Image upload in progress"
            elif self.profile.require_images and not state.images:
                errors["images"] = "Upload at least one image"
        if errors:
            return FieldCheck(errors=errors)
        return result

    def validate_all(self) -> dict[str, AssetBlock]:
        """Validate every block. Raises StepRejectedError keyed by asset key."""
        blocks: dict[str, AssetBlock] = {}
        errors: dict[str, dict[str, str]] = {}
        for key in self.keys:
            result = self.validate_block(key)
            if result.ok:
                blocks[key] = result.value
                continue
            errors[key] = result.errors
            if not self.profile.collect_all_errors:
                break
        if errors:
            labels = ", ".join(self._blocks[k].label for k in errors)
            raise StepRejectedError(errors, message=f"Incomplete: {labels}")
        return blocks

    # ── Save / resume ────────────────────────────────────────

    def snapshot(self) -> list[dict]:
        return [state.to_dict() for state in self._blocks.values()]

    def restore(self, data: list[dict] | None) -> None:
        catalog = self.profile.catalog
        self._blocks = {}
        for item in data or []:
            entry = catalog.by_key(item["key"])
            state = AssetBlockState.empty(entry)
            state.fields.update(
                {k: v for k, v in (item.get("fields") or {}).items() if k in state.fields}
            )
            state.accessories = list(item.get("accessories") or [])
            state.images = list(item.get("images") or [])
            state.pending_uploads = int(item.get("pendingUploads") or 0)
            self._blocks[entry.key] = state
