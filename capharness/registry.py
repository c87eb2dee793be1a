"""Ordered registry of test units."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Iterator

from .errors import DuplicateUnitError
from .features import Feature
from .models import TestUnit
from .tags import parse_tags

logger = logging.getLogger(__name__)


class TestRegistry:
    """Test units in declaration order, filtered by feature availability.

    Units whose required features are missing are kept aside in ``omitted``
    and never offered to the engine, so they are not reported as skipped.
    """
    __test__ = False

    def __init__(self, features: Iterable[Feature] = ()) -> None:
        self._features = frozenset(features)
        self._units: list[TestUnit] = []
        self._omitted: list[TestUnit] = []
        self._names: set[str] = set()

    @property
    def features(self) -> frozenset[Feature]:
        return self._features

    @property
    def units(self) -> tuple[TestUnit, ...]:
        return tuple(self._units)

    @property
    def omitted(self) -> tuple[TestUnit, ...]:
        return tuple(self._omitted)

    def add(self, unit: TestUnit) -> None:
        if unit.name in self._names:
            raise DuplicateUnitError(f"Test unit already registered: {unit.name}")
        self._names.add(unit.name)
        if unit.is_available(self._features):
            self._units.append(unit)
        else:
            missing = sorted(f.value for f in unit.requires - self._features)
            logger.debug("Omitting %s: missing feature(s) %s", unit.name, missing)
            self._omitted.append(unit)

    def register(
        self,
        name: str,
        tags: Any,
        action: Callable[[], Any],
        requires: Iterable[Feature] = (),
    ) -> TestUnit:
        """Declare a unit.  ``tags`` is a ``"a;b"`` string or an iterable of tags."""
        unit = TestUnit(name=name, tags=parse_tags(tags), action=action, requires=frozenset(requires))
        self.add(unit)
        return unit

    def extend(self, units: Iterable[TestUnit]) -> None:
        for unit in units:
            self.add(unit)

    def __iter__(self) -> Iterator[TestUnit]:
        return iter(tuple(self._units))

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, name: object) -> bool:
        return any(u.name == name for u in self._units)
