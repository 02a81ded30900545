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
"""Binds tracked entity types to revision history.

bind() derives and registers the history type of one tracked type and wires its
lifecycle events:

    tracked type    PRE_UPDATE, PRE_DESTROY            -> RevisionRecorder
                    PRE_BULK_UPDATE, PRE_BULK_DESTROY  -> BulkRevisionRecorder
    history type    all lifecycle events               -> ReadOnlyGuard

bind_all() binds every type of a host, skipping the ones that fail.
"""
import enum
import logging
from typing import Any, Dict, List, Optional, Type

from revisionist.persistence.errors import ConfigurationError
from revisionist.persistence.history.author_context import AuthorContext
from revisionist.persistence.history.bulk_revision_recorder import (
    BulkRevisionRecorder,
)
from revisionist.persistence.history.history_options import HistoryOptions
from revisionist.persistence.history.host_collaborator import (
    REVISIONS_ATTRIBUTE,
    HostCollaborator,
)
from revisionist.persistence.history.lifecycle_event import LifecycleEvent
from revisionist.persistence.history.read_only_guard import ReadOnlyGuard
from revisionist.persistence.history.revision_recorder import RevisionRecorder
from revisionist.persistence.history.schema_deriver import (
    HistorySchema,
    TrackedTypeSchema,
    derive_history_schema,
)

# Attribute added to a tracked type when author tracking is enabled
AUTHOR_SETTER_ATTRIBUTE = "set_revising_author"


@enum.unique
class BindingState(enum.Enum):
    UNREGISTERED = "UNREGISTERED"
    SCHEMA_DERIVED = "SCHEMA_DERIVED"
    REGISTERED = "REGISTERED"
    HOOKS_ATTACHED = "HOOKS_ATTACHED"


class TrackingCoordinator:
    """Owns the history binding of a single tracked type."""

    def __init__(
        self,
        tracked_type: Type,
        host: HostCollaborator,
        options: Optional[HistoryOptions] = None,
    ):
        self.tracked_type = tracked_type
        self.host = host
        self.options = options or HistoryOptions()
        self.state = BindingState.UNREGISTERED

        self.tracked_schema: Optional[TrackedTypeSchema] = None
        self.history_schema: Optional[HistorySchema] = None
        self.revision_recorder: Optional[RevisionRecorder] = None
        self.bulk_revision_recorder: Optional[BulkRevisionRecorder] = None
        self._history_type: Optional[Type] = None

    @property
    def history_type(self) -> Type:
        if self._history_type is None:
            raise ValueError(
                f"No history type registered for [{self.tracked_type.__name__}]"
            )
        return self._history_type

    def bind(self) -> Type:
        """Derives, registers and wires the history type, returning it.

        Everything that can be rejected (identity resolution, name collisions) is
        checked before the first change to the host, so a ConfigurationError
        leaves nothing registered.
        """
        if self.state is not BindingState.UNREGISTERED:
            raise ConfigurationError(
                f"[{self.tracked_type.__name__}] is already bound for revision "
                f"history",
                self.tracked_type.__name__,
            )

        tracked_schema = self.host.describe_type(self.tracked_type)
        history_schema = derive_history_schema(tracked_schema, self.options)
        self.host.check_definable(
            self.tracked_type, history_schema, self._added_tracked_attributes()
        )
        self.tracked_schema = tracked_schema
        self.history_schema = history_schema
        self.state = BindingState.SCHEMA_DERIVED

        self._history_type = self.host.define_type(history_schema)
        if self.options.relate_revisions:
            self.host.relate(self.tracked_type, self._history_type, tracked_schema)
        if self.options.tracks_author:
            setattr(
                self.tracked_type,
                AUTHOR_SETTER_ATTRIBUTE,
                staticmethod(self.set_revising_author),
            )
        self.state = BindingState.REGISTERED

        self._attach_hooks()
        self.state = BindingState.HOOKS_ATTACHED

        logging.info(
            "Bound revision history [%s] for [%s]",
            history_schema.type_name,
            tracked_schema.type_name,
        )
        return self._history_type

    def set_revising_author(self, author_id: Any) -> None:
        """Attributes the next revision of the tracked type to |author_id|."""
        if not self.options.tracks_author:
            raise ConfigurationError(
                f"Author tracking is not enabled for [{self.tracked_type.__name__}]",
                self.tracked_type.__name__,
            )
        AuthorContext.set_author(self.tracked_type.__name__, author_id)

    def _added_tracked_attributes(self) -> List[str]:
        added = []
        if self.options.relate_revisions:
            added.append(REVISIONS_ATTRIBUTE)
        if self.options.tracks_author:
            added.append(AUTHOR_SETTER_ATTRIBUTE)
        return added

    def _attach_hooks(self) -> None:
        if self.tracked_schema is None or self.history_schema is None:
            raise ValueError("Cannot attach hooks before the schema is derived")

        self.revision_recorder = RevisionRecorder(
            self.host, self.history_type, self.tracked_schema, self.options
        )
        self.bulk_revision_recorder = BulkRevisionRecorder(
            self.host, self.history_type, self.tracked_schema, self.options
        )

        for event in (LifecycleEvent.PRE_UPDATE, LifecycleEvent.PRE_DESTROY):
            self.host.add_hook(self.tracked_type, event, self.revision_recorder.record)
        for event in (LifecycleEvent.PRE_BULK_UPDATE, LifecycleEvent.PRE_BULK_DESTROY):
            self.host.add_hook(
                self.tracked_type, event, self.bulk_revision_recorder.record_bulk
            )

        guard = ReadOnlyGuard(self.history_schema.type_name)
        for event in LifecycleEvent:
            self.host.add_hook(self.history_type, event, guard)


def bind(
    tracked_type: Type,
    host: HostCollaborator,
    options: Optional[HistoryOptions] = None,
) -> Type:
    """Tracks revisions of |tracked_type| and returns its history type."""
    return TrackingCoordinator(tracked_type, host, options).bind()


def bind_all(
    host: HostCollaborator, options: Optional[HistoryOptions] = None
) -> Dict[str, Type]:
    """Tracks revisions of every type of |host|, each bound independently with
    the same |options|. A type that cannot be bound is logged and skipped.

    Returns a dictionary of history type name to history type for every type
    that was bound.
    """
    history_types: Dict[str, Type] = {}
    for tracked_type in host.tracked_types():
        try:
            history_type = bind(tracked_type, host, options)
        except ConfigurationError as e:
            logging.warning(
                "Skipping revision history for [%s]: %s", tracked_type.__name__, e
            )
            continue
        history_types[history_type.__name__] = history_type

    logging.info("Bound revision history for %s type(s)", len(history_types))
    return history_types
