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
"""The value returned for each revision recorded against a tracked entity."""
import datetime
from typing import Any, Dict, Optional

import attr

from revisionist.common import attr_validators
from revisionist.common.date import epoch_seconds_to_datetime
from revisionist.common.serialization import serialize_diff


@attr.s(frozen=True)
class Revision:
    """One recorded mutation of one tracked instance."""

    # Primary key of the history row. None when the row was written as part of a
    # batch insert, which does not report generated keys.
    id: Optional[int] = attr.ib(validator=attr_validators.is_opt_int)

    # Identity value of the mutated tracked instance
    model_id: Any = attr.ib()

    # Pre-mutation values of the recorded attributes
    diff: Dict[str, Any] = attr.ib(validator=attr_validators.is_dict)

    # Seconds since the epoch, UTC
    created_at: int = attr.ib(validator=attr_validators.is_int)

    author_id: Optional[Any] = attr.ib(default=None)

    @property
    def serialized_diff(self) -> str:
        return serialize_diff(self.diff)

    @property
    def created_at_datetime(self) -> datetime.datetime:
        return epoch_seconds_to_datetime(self.created_at)
