"""
Cascading location pickers.

Each level's options depend on the id selected one level up, so lookups are
causally ordered: a level can only be loaded once its parent is selected.
Selecting (or clearing) a level drops both the selections and the option
lists of every deeper level, so a stale list is never left selectable.

Lookups are async. If the parent selection changes while a lookup is in
flight, its result belongs to a scope that no longer exists and is dropped.
"""

import logging

from .errors import AmbiguousOrMissing, InvalidTransition
from .locations import AdministrativeUnit, Level, LocationDirectory

logger = logging.getLogger(__name__)


class LocationCascade:
    """Option lists and selections for the four picker levels."""

    def __init__(self, directory: LocationDirectory):
        self.directory = directory
        self.options: dict[Level, list[AdministrativeUnit]] = {}
        self.selected: dict[Level, AdministrativeUnit] = {}

    def _scope(self, level: Level) -> tuple[str, ...]:
        """Ids selected above `level`; identifies which list a lookup is for."""
        return tuple(
            self.selected[lv].id if lv in self.selected else ""
            for lv in Level
            if lv.depth < level.depth
        )

    def parent_id(self, level: Level) -> str | None:
        parent = level.parent
        if parent is None:
            return None
        if parent not in self.selected:
            raise InvalidTransition(
                f"Select a {parent.value} before loading {level.value} options",
                {"level": level.value, "missing": parent.value},
            )
        return self.selected[parent].id

    async def load_options(self, level: Level) -> list[AdministrativeUnit] | None:
        """
        Fetch the options for `level` under the current parent selection.

        Returns the applied list, or None when the result went stale while
        the lookup was in flight.
        """
        level = Level(level)
        parent_id = self.parent_id(level)
        scope = self._scope(level)

        units = await self.directory.list_children(parent_id, level)

        if self._scope(level) != scope:
            logger.debug(f"Discarding stale {level.value} options for parent {parent_id}")
            return None

        self.options[level] = units
        return units

    def find_option(self, level: Level, choice: AdministrativeUnit | str) -> AdministrativeUnit:
        """
        Match a unit or a unit name against the loaded options of `level`.

        Raises InvalidTransition if the unit does not belong under the current
        parent, AmbiguousOrMissing if a name is not among the options.
        """
        level = Level(level)
        parent_id = self.parent_id(level)

        if isinstance(choice, AdministrativeUnit):
            if choice.level != level or choice.parent_id != parent_id:
                raise InvalidTransition(
                    f"{choice.name!r} is not a {level.value} under the selected parent",
                    {"level": level.value, "unit_id": choice.id},
                )
            return choice

        wanted = choice.strip()
        matches = [u for u in self.options.get(level, []) if u.name == wanted]
        if len(matches) != 1:
            raise AmbiguousOrMissing(level, wanted, len(matches))
        return matches[0]

    def select(self, level: Level, unit: AdministrativeUnit) -> None:
        """Select `unit` at `level` and drop everything below it."""
        level = Level(level)
        self.selected[level] = unit
        self._drop_below(level)

    def clear(self, level: Level = Level.REGION) -> None:
        """Clear the selection at `level` and everything below it."""
        level = Level(level)
        self.selected.pop(level, None)
        self._drop_below(level)

    def reset(self) -> None:
        """Forget every selection; only the root list stays valid."""
        self.clear(Level.REGION)

    def _drop_below(self, level: Level) -> None:
        for deeper in level.deeper():
            self.selected.pop(deeper, None)
            self.options.pop(deeper, None)
