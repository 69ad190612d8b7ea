"""Image storage for asset photos."""

from .base import ImageFile, ObjectStore, check_image, generate_object_name
from .local import LocalObjectStore, get_object_store

__all__ = [
    "ImageFile",
    "ObjectStore",
    "check_image",
    "generate_object_name",
    "LocalObjectStore",
    "get_object_store",
]
