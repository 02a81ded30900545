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
"""Records the revision for a single mutated instance of a tracked type."""
import logging
from typing import Any, Dict, Optional, Type

from revisionist.common.date import current_epoch_seconds
from revisionist.common.serialization import serialize_diff
from revisionist.persistence.history.author_context import AuthorContext
from revisionist.persistence.history.diff_engine import get_difference
from revisionist.persistence.history.history_options import HistoryOptions
from revisionist.persistence.history.host_collaborator import HostCollaborator
from revisionist.persistence.history.lifecycle_event import InstanceMutation
from revisionist.persistence.history.revision import Revision
from revisionist.persistence.history.schema_deriver import (
    CREATED_AT_FIELD,
    DIFF_FIELD,
    MODEL_ID_FIELD,
    TrackedTypeSchema,
)


class RevisionRecorder:
    """Writes one history row per updated or deleted tracked instance.

    The row is written through the host on the transaction of the mutation, so
    it commits or rolls back together with it. Errors raised while writing are
    not caught: a mutation whose revision cannot be recorded must fail.
    """

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

    def record(self, mutation: InstanceMutation) -> Revision:
        identity_attribute = self.tracked_schema.identity_attribute

        diff = get_difference(
            mutation.prior_state,
            mutation.current_state,
            self.options.excluded_attributes,
        )
        # The diff never carries an identity value that could be mistaken for
        # the history row's own id.
        diff.pop(identity_attribute, None)

        model_id = mutation.current_state.get(
            identity_attribute, mutation.prior_state.get(identity_attribute)
        )
        author_id = self._take_author()
        created_at = current_epoch_seconds()

        row: Dict[str, Any] = {
            MODEL_ID_FIELD: model_id,
            DIFF_FIELD: serialize_diff(diff),
            CREATED_AT_FIELD: created_at,
        }
        if self.options.author_field_name is not None:
            row[self.options.author_field_name] = author_id

        history_id = self.host.insert(mutation.transaction, self.history_type, row)

        logging.debug(
            "Recorded revision [%s] of [%s] [%s] changing %s",
            history_id,
            self.tracked_schema.type_name,
            model_id,
            sorted(diff.keys()),
        )
        return Revision(
            id=history_id,
            model_id=model_id,
            diff=diff,
            created_at=created_at,
            author_id=author_id,
        )

    def _take_author(self) -> Optional[Any]:
        if not self.options.tracks_author:
            return None
        return AuthorContext.take_author(self.tracked_schema.type_name)
