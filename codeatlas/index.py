"""Read-only lookup from export names to their declarations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .models import ExportDecl


@dataclass(frozen=True)
class ExportLocation:
    module_id: str
    path: str
    export: ExportDecl

    @property
    def name(self) -> str:
        return self.export.name

    @property
    def line(self) -> int:
        return self.export.span.start_line


def _location_order(location: ExportLocation) -> Tuple[str, str, str, int]:
    return (location.module_id, location.name, location.path, location.line)


class ExportIndex:
    """(module id, export name) -> declaration, plus name -> all locations.

    When a module declares the same name more than once (overloads, merged
    index files) the first declaration by path and line answers keyed
    lookups; every declaration is still listed by :meth:`locations`.
    """

    def __init__(self, locations: Iterable[ExportLocation] = ()) -> None:
        ordered = sorted(locations, key=_location_order)
        keyed: Dict[Tuple[str, str], ExportLocation] = {}
        by_name: Dict[str, List[ExportLocation]] = {}
        by_module: Dict[str, List[ExportLocation]] = {}
        for location in ordered:
            key = (location.module_id, location.name)
            if key not in keyed:
                keyed[key] = location
                by_module.setdefault(location.module_id, []).append(location)
            by_name.setdefault(location.name, []).append(location)

        self._keyed = keyed
        self._by_name = {name: tuple(items) for name, items in by_name.items()}
        self._by_module = {module: tuple(items) for module, items in by_module.items()}

    def get(self, module_id: str, name: str) -> Optional[ExportDecl]:
        location = self._keyed.get((module_id, name))
        return location.export if location is not None else None

    def location(self, module_id: str, name: str) -> Optional[ExportLocation]:
        return self._keyed.get((module_id, name))

    def locations(self, name: str) -> Tuple[ExportLocation, ...]:
        return self._by_name.get(name, ())

    def modules_exporting(self, name: str) -> List[str]:
        return sorted({location.module_id for location in self.locations(name)})

    def exports_of(self, module_id: str) -> Tuple[ExportLocation, ...]:
        return self._by_module.get(module_id, ())

    def names(self) -> List[str]:
        return sorted(self._by_name)

    def __len__(self) -> int:
        return len(self._keyed)

    def __contains__(self, key: object) -> bool:
        return key in self._keyed

    def __iter__(self) -> Iterator[ExportLocation]:
        return iter(self._keyed[key] for key in sorted(self._keyed))


__all__ = ["ExportIndex", "ExportLocation"]
