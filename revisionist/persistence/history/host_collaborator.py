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
"""Interface a persistence layer implements to host revision history."""
import abc
from typing import Any, Dict, Iterable, List, Optional, Type

from revisionist.persistence.history.lifecycle_event import (
    LifecycleEvent,
    MutationHandler,
)
from revisionist.persistence.history.schema_deriver import (
    HistorySchema,
    TrackedTypeSchema,
)

# Navigation attributes declared by relate() on the tracked and history types
REVISIONS_ATTRIBUTE = "revisions"
MODEL_ATTRIBUTE = "model"


class HostCollaborator(abc.ABC):
    """The persistence framework tracked entity types live in. It describes and
    defines entity types, dispatches LifecycleEvents to registered handlers, and
    reads and writes rows within the transaction handles it hands out with each
    event."""

    @abc.abstractmethod
    def tracked_types(self) -> List[Type]:
        """Returns every entity type of the host that may be tracked, excluding
        history types it defined itself."""

    @abc.abstractmethod
    def describe_type(self, entity_type: Type) -> TrackedTypeSchema:
        """Returns the schema of |entity_type|. Raises ConfigurationError if it
        has no single identity attribute."""

    @abc.abstractmethod
    def check_definable(
        self,
        tracked_type: Type,
        history_schema: HistorySchema,
        tracked_attribute_names: Iterable[str],
    ) -> None:
        """Raises ConfigurationError if |history_schema| cannot be defined, or if
        any of |tracked_attribute_names| is already taken on |tracked_type|. Has
        no side effects."""

    @abc.abstractmethod
    def define_type(self, history_schema: HistorySchema) -> Type:
        """Registers a new entity type for |history_schema| and returns it."""

    @abc.abstractmethod
    def relate(
        self, tracked_type: Type, history_type: Type, tracked_schema: TrackedTypeSchema
    ) -> None:
        """Declares navigation between a tracked type and its history type. No
        database constraint is created."""

    @abc.abstractmethod
    def add_hook(
        self, entity_type: Type, event: LifecycleEvent, handler: MutationHandler
    ) -> None:
        """Registers |handler| to run on |event| for |entity_type|. Handlers run
        before the mutation is applied, in the mutation's transaction, and an
        exception raised by a handler aborts the mutation."""

    @abc.abstractmethod
    def insert(self, transaction: Any, history_type: Type, row: Dict[str, Any]) -> Any:
        """Inserts one row keyed by attribute name and returns its generated id."""

    @abc.abstractmethod
    def insert_many(
        self, transaction: Any, history_type: Type, rows: List[Dict[str, Any]]
    ) -> None:
        """Inserts |rows| keyed by attribute name in a single batch."""

    @abc.abstractmethod
    def find_rows(
        self,
        transaction: Any,
        entity_type: Type,
        predicate: Optional[Any],
        field_names: List[str],
    ) -> List[Dict[str, Any]]:
        """Returns the |field_names| values of every row of |entity_type| matching
        |predicate| (all rows if None), keyed by attribute name."""
