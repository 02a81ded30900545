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
"""Enforces the read-only nature of history records."""
from typing import NoReturn

from revisionist.persistence.errors import ImmutabilityViolation
from revisionist.persistence.history.lifecycle_event import Mutation


class ReadOnlyGuard:
    """Lifecycle hook that rejects every update or delete of a history type.

    History rows are only ever protected as far as the host dispatches its
    lifecycle events; writes issued outside the host are not seen here.
    """

    def __init__(self, history_type_name: str):
        self.history_type_name = history_type_name

    def __call__(self, _mutation: Mutation) -> NoReturn:
        raise ImmutabilityViolation(self.history_type_name)
