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
"""Records revisions for a predicate-driven (bulk) update or delete of a tracked
type.

Bulk statements do not hand over per-row prior state, so the affected rows are
re-read with the statement's predicate before it executes. For every affected
row the revision holds the pre-mutation value of each field the statement
declares it updates. Unlike the single-row path this does not check whether the
value actually changes: a declared field is recorded even when the new value
equals the old one.
"""
import logging
from typing import Any, Dict, List, Optional, Type

from revisionist.common.date import current_epoch_seconds
from revisionist.common.serialization import serialize_diff
from revisionist.persistence.history.author_context import AuthorContext
from revisionist.persistence.history.history_options import HistoryOptions
from revisionist.persistence.history.host_collaborator import HostCollaborator
from revisionist.persistence.history.lifecycle_event import BulkMutation
from revisionist.persistence.history.revision import Revision
from revisionist.persistence.history.schema_deriver import (
    CREATED_AT_FIELD,
    DIFF_FIELD,
    MODEL_ID_FIELD,
    TrackedTypeSchema,
)


class BulkRevisionRecorder:
    """Writes one history row per row affected by a bulk mutation, in a single
    batch on the mutation's transaction."""

    def __init__(
        self,
        host: HostCollaborator,
        history_type: Type,
        tracked_schema: TrackedTypeSchema,
        options: HistoryOptions,
    ):
        self.host = host
        self.history_type = history_type
        self.tracked_schema = tracked_schema
        self.options = options

    def recorded_field_names(self, updated_field_names: List[str]) -> List[str]:
        """Returns the declared updated fields that belong in a bulk revision, in
        declaration order and without duplicates."""
        recorded: List[str] = []
        for name in updated_field_names:
            if (
                name in self.options.excluded_attributes
                or name == self.tracked_schema.identity_attribute
                or name in recorded
            ):
                continue
            recorded.append(name)
        return recorded

    def record_bulk(self, mutation: BulkMutation) -> Optional[List[Revision]]:
        """Returns the recorded revisions, an empty list if no rows match, or None
        if the host runs the mutation with individual hooks. In that case every
        row is recorded by the single-row path and recording here would write
        each revision twice."""
        if mutation.individual_hooks:
            logging.debug(
                "Skipping bulk revisions of [%s]: mutation runs individual hooks",
                self.tracked_schema.type_name,
            )
            return None

        identity_attribute = self.tracked_schema.identity_attribute
        field_names = self.recorded_field_names(mutation.updated_field_names)

        rows = self.host.find_rows(
            mutation.transaction,
            mutation.entity_type,
            mutation.predicate,
            [identity_attribute, *field_names],
        )

        # One author covers the whole batch
        author_id = self._peek_author()
        created_at = current_epoch_seconds()

        revisions: List[Revision] = []
        history_rows: List[Dict[str, Any]] = []
        for row in rows:
            diff = {name: row[name] for name in field_names}
            history_row: Dict[str, Any] = {
                MODEL_ID_FIELD: row[identity_attribute],
                DIFF_FIELD: serialize_diff(diff),
                CREATED_AT_FIELD: created_at,
            }
            if self.options.author_field_name is not None:
                history_row[self.options.author_field_name] = author_id
            history_rows.append(history_row)
            revisions.append(
                Revision(
                    id=None,
                    model_id=row[identity_attribute],
                    diff=diff,
                    created_at=created_at,
                    author_id=author_id,
                )
            )

        if history_rows:
            self.host.insert_many(
                mutation.transaction, self.history_type, history_rows
            )

        if self.options.tracks_author:
            AuthorContext.clear_author(self.tracked_schema.type_name)

        logging.debug(
            "Recorded [%s] bulk revisions of [%s] covering %s",
            len(revisions),
            self.tracked_schema.type_name,
            field_names,
        )
        return revisions

    def _peek_author(self) -> Optional[Any]:
        if not self.options.tracks_author:
            return None
        return AuthorContext.peek_author(self.tracked_schema.type_name)
