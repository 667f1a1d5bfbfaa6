"""
Bookable resource reference.

An event books either nothing in particular (a solo provider booking), a
physical space, or a vehicle. Stored on the Event as (resource_kind,
resource_id); in code it is one of the variants below so the collision
scoping rule is chosen per variant instead of by a null check.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from .errors import ValidationError

KIND_NONE = "none"
KIND_SPACE = "space"
KIND_VEHICLE = "vehicle"

RESOURCE_KINDS = (KIND_NONE, KIND_SPACE, KIND_VEHICLE)


@dataclass(frozen=True)
class NoResource:
    kind: ClassVar[str] = KIND_NONE
    resource_id: ClassVar[Optional[int]] = None

    @property
    def calendar_key(self) -> str:
        return "solo"


@dataclass(frozen=True)
class PhysicalResource:
    resource_id: int
    kind: ClassVar[str] = KIND_SPACE

    @property
    def calendar_key(self) -> str:
        return str(self.resource_id)


@dataclass(frozen=True)
class VehicleResource:
    resource_id: int
    kind: ClassVar[str] = KIND_VEHICLE

    @property
    def calendar_key(self) -> str:
        return str(self.resource_id)


ResourceRef = Union[NoResource, PhysicalResource, VehicleResource]


def resource_ref(kind: Optional[str], resource_id: Optional[int]) -> ResourceRef:
    """Build the variant from stored columns or request fields."""
    kind = (kind or KIND_NONE).strip().lower()
    if kind == KIND_NONE:
        if resource_id is not None:
            raise ValidationError("resource_id must be omitted when resource_kind is 'none'")
        return NoResource()
    if kind not in RESOURCE_KINDS:
        raise ValidationError(f"resource_kind must be one of {list(RESOURCE_KINDS)}")
    if resource_id is None:
        raise ValidationError(f"resource_id is required when resource_kind is '{kind}'")
    if kind == KIND_SPACE:
        return PhysicalResource(int(resource_id))
    return VehicleResource(int(resource_id))
