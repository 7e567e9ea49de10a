"""
Location Directory.

Read-only catalog of the four-level administrative hierarchy
(region -> sub-region -> LGA -> ward) stored in the `administrative_units`
collection as {id, name, level, parent_id}.

Names are only unique among one parent's children, so every name lookup is
scoped by the parent id.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from cocoa_connect.db.store import RecordStore

from .errors import AmbiguousOrMissing, NotFound
from .roles import ProfileField

logger = logging.getLogger(__name__)


class Level(str, Enum):
    """Administrative levels, root to leaf."""
    REGION = "region"
    SUB_REGION = "sub_region"
    LGA = "lga"
    WARD = "ward"

    @property
    def depth(self) -> int:
        return _ORDER.index(self)

    @property
    def parent(self) -> "Level | None":
        return _ORDER[self.depth - 1] if self.depth > 0 else None

    @property
    def child(self) -> "Level | None":
        return _ORDER[self.depth + 1] if self.depth + 1 < len(_ORDER) else None

    @property
    def field(self) -> ProfileField:
        """The onboarding field holding the selection at this level."""
        return ProfileField(self.value)

    def deeper(self) -> list["Level"]:
        """All levels below this one, nearest first."""
        return _ORDER[self.depth + 1:]


_ORDER: list[Level] = list(Level)


class AdministrativeUnit(BaseModel):
    """One node of the administrative hierarchy."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    name: str
    level: Level
    parent_id: str | None = None


def check_hierarchy(units: list[AdministrativeUnit]) -> list[str]:
    """
    List every violation of the hierarchy invariants in `units`.

    - regions have no parent
    - every other unit's parent exists at the level immediately above
    - names are unique among one parent's children
    """
    problems = []
    by_id = {u.id: u for u in units}
    seen: set[tuple[str | None, Level, str]] = set()

    for unit in units:
        if unit.level.parent is None:
            if unit.parent_id is not None:
                problems.append(f"{unit.level.value} {unit.id} must not have a parent")
        else:
            parent = by_id.get(unit.parent_id) if unit.parent_id else None
            if parent is None:
                problems.append(f"{unit.level.value} {unit.id} has unknown parent {unit.parent_id}")
            elif parent.level != unit.level.parent:
                problems.append(
                    f"{unit.level.value} {unit.id} has a {parent.level.value} parent, "
                    f"expected {unit.level.parent.value}"
                )

        key = (unit.parent_id, unit.level, unit.name.strip())
        if key in seen:
            problems.append(f"duplicate {unit.level.value} name {unit.name!r} under {unit.parent_id}")
        seen.add(key)

    return problems


class LocationDirectory:
    """
    Parent-scoped lookups over the administrative hierarchy.

    Stateless apart from the store handle; every call goes to the backend.
    """

    def __init__(self, store: RecordStore, collection: str = "administrative_units"):
        self.store = store
        self.collection = collection

    async def list_children(self, parent_id: str | None, level: Level) -> list[AdministrativeUnit]:
        """
        List the units of `level` directly under `parent_id`.

        With parent_id=None only the root level (regions) can be listed.
        Raises NotFound if the parent is not a unit of `level.parent`.
        """
        level = Level(level)
        if parent_id is None:
            if level.parent is not None:
                raise NotFound(
                    f"Listing {level.value} units requires a {level.parent.value} parent",
                    {"level": level.value, "parent_id": None},
                )
        else:
            await self._require_unit(str(parent_id), level.parent)

        rows = await self.store.select(
            self.collection,
            {"level": level.value, "parent_id": None if parent_id is None else str(parent_id)},
        )
        units = [AdministrativeUnit.model_validate(r) for r in rows]
        return sorted(units, key=lambda u: u.name.lower())

    async def resolve_id(self, name: str, level: Level, parent_id: str | None) -> str:
        """
        Resolve a unit name to its id within `parent_id`'s children.

        Raises AmbiguousOrMissing unless exactly one unit matches.
        """
        level = Level(level)
        wanted = (name or "").strip()
        rows = await self.store.select(
            self.collection,
            {"level": level.value, "parent_id": None if parent_id is None else str(parent_id)},
        )
        matches = [r for r in rows if str(r.get("name", "")).strip() == wanted]

        if len(matches) != 1:
            logger.info(
                f"resolve_id({wanted!r}, {level.value}, parent={parent_id}) "
                f"matched {len(matches)} units"
            )
            raise AmbiguousOrMissing(level, wanted, len(matches))

        return str(matches[0]["id"])

    async def get_unit(self, unit_id: str) -> AdministrativeUnit | None:
        """Fetch a single unit by id, or None."""
        rows = await self.store.select(self.collection, {"id": str(unit_id)})
        return AdministrativeUnit.model_validate(rows[0]) if rows else None

    async def _require_unit(self, unit_id: str, level: Level | None) -> AdministrativeUnit:
        unit = await self.get_unit(unit_id)
        if unit is None or level is None or unit.level != level:
            raise NotFound(
                f"No {level.value if level else 'parent'} unit with id {unit_id}",
                {"parent_id": unit_id, "expected_level": level.value if level else None},
            )
        return unit
