"""Asset catalog: the selectable equipment types and their detail shapes.

A catalog is plain configuration: an ordered list of entries, each naming
the label shown in the selection step, the key its block is stored under
in `asset_details`, the accessories the UI offers, and which detail shape
(and therefore which schema) applies. Deployments pick one catalog by
name via the ASSET_CATALOG setting.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class DetailShape(str, enum.Enum):
    LAPTOP_LIKE = "laptop_like"      # brand + serialNumber + accessories + images
    MOBILE_LIKE = "mobile_like"      # brand + imeiNumber + accessories + images
    SIMPLE_BRAND = "simple_brand"    # brand
    SIMPLE_SIM = "simple_sim"        # simNumber
    SIMPLE_DESCRIPTION = "simple_description"  # description

    @property
    def is_structured(self) -> bool:
        return self in (DetailShape.LAPTOP_LIKE, DetailShape.MOBILE_LIKE)


# ── Closed lists offered by the job step ────────────────────

COMPANIES: tuple[str, ...] = (
    "RKS MOTOR",
    "BROADDCAST BUSINESS SOLUTIONS",
    "VERAVITA",
    "AUTOZONE",
)

DEPARTMENTS: tuple[str, ...] = (
    "Accounts",
    "Admin",
    "Audit",
    "Consultant",
    "F&B",
    "Front Office",
    "GST",
    "HR",
    "Housekeeping",
    "Kitchen",
    "Maintenance",
    "Operations",
    "Painter",
    "Purchase",
    "Sales",
    "Service",
    "Business Head",
    "Digital Marketing Manager",
    "Performance Marketing Executive",
    "Social Media Manager",
    "Graphic Designer",
    "SEO Executive",
    "Web Developer",
    "Operations Manager",
    "IT",
)

# ── Accessory lists ─────────────────────────────────────────

LAPTOP_ACCESSORIES: tuple[str, ...] = (
    "Mouse",
    "Keyboard",
    "Monitor",
    "Laptop Bag",
)

MOBILE_ACCESSORIES: tuple[str, ...] = (
    "Case/Cover",
    "Screen Protector",
    "Earbuds",
    "Charger",
    "Car Mount",
)


@dataclass(frozen=True)
class CatalogEntry:
    label: str
    key: str
    icon: str
    shape: DetailShape
    accessories: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "key": self.key,
            "icon": self.icon,
            "shape": self.shape.value,
            "accessories": list(self.accessories),
        }


@dataclass(frozen=True)
class AssetCatalog:
    name: str
    entries: tuple[CatalogEntry, ...]
    companies: tuple[str, ...] = COMPANIES
    departments: tuple[str, ...] = DEPARTMENTS
    _by_label: dict[str, CatalogEntry] = field(init=False, repr=False, compare=False)
    _by_key: dict[str, CatalogEntry] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_label", {e.label: e for e in self.entries})
        object.__setattr__(self, "_by_key", {e.key: e for e in self.entries})

    def labels(self) -> list[str]:
        return [e.label for e in self.entries]

    def has_label(self, label: str) -> bool:
        return label in self._by_label

    def by_label(self, label: str) -> CatalogEntry:
        try:
            return self._by_label[label]
        except KeyError:
            raise KeyError(f"Unknown asset type: {label}") from None

    def by_key(self, key: str) -> CatalogEntry:
        try:
            return self._by_key[key]
        except KeyError:
            raise KeyError(f"Unknown asset key: {key}") from None

    def keys_for(self, labels: list[str]) -> list[str]:
        """Detail keys for a selection, in selection order."""
        return [self.by_label(label).key for label in labels]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "assets": [e.to_dict() for e in self.entries],
            "companies": list(self.companies),
            "departments": list(self.departments),
        }


STANDARD_CATALOG = AssetCatalog(
    name="standard",
    entries=(
        CatalogEntry("Laptop", "laptop", "laptop", DetailShape.LAPTOP_LIKE, LAPTOP_ACCESSORIES),
        CatalogEntry("Desktop", "desktop", "monitor", DetailShape.LAPTOP_LIKE, LAPTOP_ACCESSORIES),
        CatalogEntry("Mobile Phone", "mobile", "smartphone", DetailShape.MOBILE_LIKE, MOBILE_ACCESSORIES),
        CatalogEntry("Tablet / iPad", "tablet", "tablet", DetailShape.LAPTOP_LIKE, LAPTOP_ACCESSORIES),
        CatalogEntry("SIM Card", "sim_card", "sim", DetailShape.SIMPLE_SIM),
        CatalogEntry("Headset", "headset", "headphones", DetailShape.SIMPLE_BRAND),
        CatalogEntry("Other Assets", "other", "package", DetailShape.SIMPLE_DESCRIPTION),
    ),
)

CLASSIC_CATALOG = AssetCatalog(
    name="classic",
    entries=(
        CatalogEntry("Laptop", "laptop", "laptop", DetailShape.LAPTOP_LIKE, LAPTOP_ACCESSORIES),
        CatalogEntry("Desktop", "desktop", "monitor", DetailShape.LAPTOP_LIKE, LAPTOP_ACCESSORIES),
        CatalogEntry("Mobile", "mobile", "smartphone", DetailShape.MOBILE_LIKE, MOBILE_ACCESSORIES),
        CatalogEntry("Headset", "headset", "headphones", DetailShape.SIMPLE_BRAND),
        CatalogEntry("Charger", "charger", "plug", DetailShape.SIMPLE_BRAND),
        CatalogEntry("Other Accessories", "other", "package", DetailShape.SIMPLE_DESCRIPTION),
    ),
)

CATALOGS: dict[str, AssetCatalog] = {
    STANDARD_CATALOG.name: STANDARD_CATALOG,
    CLASSIC_CATALOG.name: CLASSIC_CATALOG,
}


def get_catalog(name: str) -> AssetCatalog:
    try:
        return CATALOGS[name]
    except KeyError:
        raise ValueError(
            f"Unknown asset catalog '{name}' (expected one of: {', '.join(CATALOGS)})"
        ) from None
