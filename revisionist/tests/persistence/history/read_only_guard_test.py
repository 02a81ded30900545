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
"""Tests for read_only_guard.py"""
from unittest import TestCase, mock

from revisionist.persistence.errors import ImmutabilityViolation
from revisionist.persistence.history.lifecycle_event import (
    BulkMutation,
    InstanceMutation,
)
from revisionist.persistence.history.read_only_guard import ReadOnlyGuard


class TestReadOnlyGuard(TestCase):
    """Tests for ReadOnlyGuard."""

    def test_rejects_instance_mutation(self) -> None:
        guard = ReadOnlyGuard("BookHistory")
        mutation = InstanceMutation(
            instance=mock.Mock(),
            prior_state={"diff": "{}"},
            current_state={"diff": '{"title": "Dune"}'},
            transaction=mock.Mock(),
        )

        with self.assertRaises(ImmutabilityViolation) as e:
            guard(mutation)
        self.assertEqual("BookHistory", e.exception.history_type_name)
        self.assertIn("[BookHistory] is a read-only history table", str(e.exception))

    def test_rejects_bulk_mutation(self) -> None:
        guard = ReadOnlyGuard("BookHistory")

        # Rejected even when the host will replay it per instance
        for individual_hooks in (False, True):
            with self.assertRaises(ImmutabilityViolation):
                guard(
                    BulkMutation(
                        entity_type=mock.Mock(),
                        predicate=None,
                        individual_hooks=individual_hooks,
                    )
                )
