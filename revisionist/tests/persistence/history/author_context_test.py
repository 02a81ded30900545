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
"""Tests for author_context.py"""
import contextvars
import threading
from typing import List, Optional
from unittest import TestCase

from revisionist.persistence.history.author_context import AuthorContext


class TestAuthorContext(TestCase):
    """Tests for AuthorContext."""

    def tearDown(self) -> None:
        AuthorContext.clear_author("Book")
        AuthorContext.clear_author("Shelf")

    def test_take_author_consumes_value(self) -> None:
        AuthorContext.set_author("Book", 7)

        self.assertEqual(7, AuthorContext.take_author("Book"))
        self.assertIsNone(AuthorContext.take_author("Book"))

    def test_take_author_unset(self) -> None:
        self.assertIsNone(AuthorContext.take_author("Book"))

    def test_set_author_overwrites(self) -> None:
        AuthorContext.set_author("Book", 7)
        AuthorContext.set_author("Book", 8)

        self.assertEqual(8, AuthorContext.take_author("Book"))

    def test_types_are_independent(self) -> None:
        AuthorContext.set_author("Book", 7)
        AuthorContext.set_author("Shelf", "librarian")

        self.assertEqual(7, AuthorContext.take_author("Book"))
        self.assertEqual("librarian", AuthorContext.peek_author("Shelf"))

    def test_peek_and_clear(self) -> None:
        AuthorContext.set_author("Book", 7)

        self.assertEqual(7, AuthorContext.peek_author("Book"))
        self.assertEqual(7, AuthorContext.peek_author("Book"))

        AuthorContext.clear_author("Book")
        self.assertIsNone(AuthorContext.peek_author("Book"))

        # Clearing an unset author is a no-op
        AuthorContext.clear_author("Book")
        self.assertIsNone(AuthorContext.peek_author("Book"))

    def test_copied_context_does_not_leak_back(self) -> None:
        AuthorContext.set_author("Book", 7)

        def consume_and_replace() -> Optional[int]:
            author_id = AuthorContext.take_author("Book")
            AuthorContext.set_author("Shelf", 9)
            return author_id

        self.assertEqual(7, contextvars.copy_context().run(consume_and_replace))

        self.assertEqual(7, AuthorContext.peek_author("Book"))
        self.assertIsNone(AuthorContext.peek_author("Shelf"))

    def test_threads_do_not_see_each_others_authors(self) -> None:
        AuthorContext.set_author("Book", 7)
        seen: List[Optional[int]] = []

        def set_and_take() -> None:
            seen.append(AuthorContext.take_author("Book"))
            AuthorContext.set_author("Book", 8)

        thread = threading.Thread(target=set_and_take)
        thread.start()
        thread.join()

        self.assertEqual([None], seen)
        self.assertEqual(7, AuthorContext.take_author("Book"))
