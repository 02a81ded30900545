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
"""Contains errors for the persistence directory."""
from typing import Optional


class PersistenceError(Exception):
    """Raised when an error with the persistence layer is encountered."""


class RevisionPersistenceError(PersistenceError):
    """Raised when a revision row could not be written. Propagates out of the
    triggering mutation so that the mutation fails along with it."""

    def __init__(self, msg: str, history_type_name: str):
        self.history_type_name = history_type_name
        super().__init__(msg)


class ConfigurationError(Exception):
    """Raised when an entity type cannot be bound for revision tracking, e.g. it
    has no single identity attribute or its history type name is taken."""

    def __init__(self, msg: str, type_name: Optional[str] = None):
        self.type_name = type_name
        super().__init__(msg)


class ImmutabilityViolation(Exception):
    """Raised on any attempt to update or delete a history record."""

    def __init__(self, history_type_name: str):
        self.history_type_name = history_type_name
        super().__init__(
            f"[{history_type_name}] is a read-only history table. Its records "
            f"cannot be updated or deleted."
        )
