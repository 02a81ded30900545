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
"""The fixed set of lifecycle events a host persistence layer dispatches to the
revision history machinery, and the payloads delivered with each."""
import enum
from typing import Any, Callable, Dict, List, Optional, Type, Union

import attr

from revisionist.common import attr_validators


@enum.unique
class LifecycleEvent(enum.Enum):
    PRE_UPDATE = "PRE_UPDATE"
    PRE_DESTROY = "PRE_DESTROY"
    PRE_BULK_UPDATE = "PRE_BULK_UPDATE"
    PRE_BULK_DESTROY = "PRE_BULK_DESTROY"

    @property
    def is_bulk(self) -> bool:
        return self in (LifecycleEvent.PRE_BULK_UPDATE, LifecycleEvent.PRE_BULK_DESTROY)


@attr.s(frozen=True)
class InstanceMutation:
    """A single instance about to be updated or deleted."""

    instance: Any = attr.ib()

    # Loaded column attribute values before the mutation
    prior_state: Dict[str, Any] = attr.ib(validator=attr_validators.is_dict)

    # Loaded column attribute values the mutation will write
    current_state: Dict[str, Any] = attr.ib(validator=attr_validators.is_dict)

    # Host transaction handle the mutation runs in
    transaction: Any = attr.ib()


@attr.s(frozen=True)
class BulkMutation:
    """A predicate-driven update or delete about to be executed."""

    entity_type: Type = attr.ib()

    # Host predicate selecting the affected rows, or None for all rows
    predicate: Optional[Any] = attr.ib()

    # Attribute names the statement declares it writes. Empty for deletes.
    updated_field_names: List[str] = attr.ib(factory=list)

    # Whether the host will run the statement as per-row operations that fire
    # PRE_UPDATE / PRE_DESTROY on their own
    individual_hooks: bool = attr.ib(default=False, validator=attr_validators.is_bool)

    transaction: Any = attr.ib(default=None)


Mutation = Union[InstanceMutation, BulkMutation]
MutationHandler = Callable[[Mutation], Any]
