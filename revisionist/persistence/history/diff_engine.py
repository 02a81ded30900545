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
"""Computes the sparse difference between two attribute mappings."""
from typing import AbstractSet, Any, Dict, Mapping

_CONTAINER_TYPES = (dict, list, set)


def _values_differ(previous: Any, current: Any) -> bool:
    # Containers are compared by identity only; nested values are never
    # compared.
    if isinstance(previous, _CONTAINER_TYPES) or isinstance(current, _CONTAINER_TYPES):
        return previous is not current
    return previous != current


def get_difference(
    previous: Mapping[str, Any],
    current: Mapping[str, Any],
    excluded: AbstractSet[str] = frozenset(),
) -> Dict[str, Any]:
    """Returns the attributes of |current| whose value differs from |previous|,
    each mapped to its *previous* value. Attributes in |excluded| are skipped.

    Iteration is driven by the keys of |current|: an attribute missing from
    |previous| is reported with a previous value of None, while an attribute
    only present in |previous| is not reported at all. A reported None is stored as
    a JSON null in the revision diff.

    get_difference({'a': 1, 'b': 2}, {'a': 1, 'b': 3}) == {'b': 2}
    get_difference({'a': 1, 'b': 2}, {'a': 1, 'b': 2}) == {}
    """
    return {
        key: previous.get(key)
        for key, value in current.items()
        if key not in excluded and _values_differ(previous.get(key), value)
    }
