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
"""Contains helper aliases and functions for various attrs validators that can be passed to the `validator=` arg of
any attr field. For example:

@attr.s
class MyClass:
  count: Optional[int] = attr.ib(validator=is_opt(int))
  is_valid: bool = attr.ib(validator=is_bool)
"""
from typing import Any, Callable, Type

import attr


def is_opt(cls_type: Type) -> Callable:
    """Returns an attrs validator that checks if the value is an instance of |cls_type|
    or None."""
    return attr.validators.optional(attr.validators.instance_of(cls_type))


def is_non_empty_str(_instance: Any, _attribute: attr.Attribute, value: str) -> None:
    if not isinstance(value, str):
        raise ValueError(f"Expected value type str, found {type(value)}.")
    if not value:
        raise ValueError("String value should not be empty.")


def is_opt_identifier(_instance: Any, attribute: attr.Attribute, value: Any) -> None:
    """Checks that |value| is None or a string usable as a Python attribute name."""
    if value is None:
        return
    if not isinstance(value, str) or not value.isidentifier():
        raise ValueError(
            f"Expected [{attribute.name}] to be a valid identifier, found [{value}]."
        )


class IsFrozenSetOfValidator:
    """Validator that checks that a field is a frozenset whose items all have the
    expected type."""

    def __init__(self, item_expected_type: Type) -> None:
        self._item_expected_type = item_expected_type

    def __call__(self, instance: Any, attribute: attr.Attribute, value: Any) -> None:
        if not isinstance(value, frozenset):
            raise ValueError(
                f"Found value for frozenset type field [{attribute.name}] on class "
                f"[{type(instance)}] which has non-frozenset type [{type(value)}]."
            )
        for item in value:
            if not isinstance(item, self._item_expected_type):
                raise ValueError(
                    f"Found item in frozenset type field [{attribute.name}] on class "
                    f"[{type(instance)}] which is not the expected type "
                    f"[{self._item_expected_type}]: {type(item)}"
                )


def is_frozenset_of(item_expected_type: Type) -> IsFrozenSetOfValidator:
    return IsFrozenSetOfValidator(item_expected_type)


# Int field validators
is_int = attr.validators.instance_of(int)
is_opt_int = is_opt(int)

# Bool field validators
is_bool = attr.validators.instance_of(bool)

# Dict field validators
is_dict = attr.validators.instance_of(dict)
