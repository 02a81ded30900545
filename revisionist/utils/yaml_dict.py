# Recidiviz - a data platform for criminal justice reform
# Copyright (C) 2019 Recidiviz, Inc.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# =============================================================================
"""Functionality for working with objects parsed from YAML."""
from typing import Any, Dict, FrozenSet, Optional, Type, TypeVar

import yaml

T = TypeVar("T")


class YAMLDict:
    """Wraps a mapping loaded from a YAML file. Known fields are popped out with
    type checks, and whatever remains once parsing is done is unexpected input.
    """

    def __init__(self, raw_yaml: Dict[str, Any], source: str = "<yaml>"):
        self.raw_yaml = raw_yaml
        self.source = source

    @classmethod
    def from_path(cls, yaml_path: str) -> "YAMLDict":
        with open(yaml_path, encoding="utf-8") as yaml_file:
            loaded = yaml.safe_load(yaml_file)
        if not isinstance(loaded, dict):
            raise ValueError(
                f"Expected a top-level mapping in [{yaml_path}], found "
                f"[{type(loaded).__name__}]."
            )
        return cls(loaded, source=yaml_path)

    def _check_type(self, field: str, value: Any, value_type: Type[T]) -> T:
        if not isinstance(value, value_type):
            raise ValueError(
                f"Field [{field}] in [{self.source}] must be of type "
                f"[{value_type.__name__}], found [{type(value).__name__}]."
            )
        return value

    def pop_optional(self, field: str, value_type: Type[T]) -> Optional[T]:
        """Pops |field|, returning None when it is absent or null."""
        value = self.raw_yaml.pop(field, None)
        if value is None:
            return None
        return self._check_type(field, value, value_type)

    def pop_frozenset_optional(
        self, field: str, item_type: Type[T]
    ) -> Optional[FrozenSet[T]]:
        """Pops the list at |field| as a frozenset, returning None when it is absent
        or null. Every item must be an |item_type|."""
        items = self.pop_optional(field, list)
        if items is None:
            return None
        return frozenset(self._check_type(field, item, item_type) for item in items)

    def check_empty(self) -> None:
        """Raises if any field was never popped."""
        if self.raw_yaml:
            raise ValueError(
                f"Unexpected fields in [{self.source}]: {sorted(self.raw_yaml)}"
            )
