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
"""Holds the author to attribute the next revision of each tracked type to.

The register is a single slot per tracked type name, not a queue. Callers set
an author right before a mutation and the recorder consumes it. The slots live
in a ContextVar, so each thread or asyncio task sees its own pending authors and
concurrent requests do not consume each other's values. Mutations interleaved
within one context still share a slot.
"""
import contextvars
from typing import Any, Mapping, Optional

_pending_authors: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar(
    "pending_revision_authors", default={}
)


class AuthorContext:
    """Per-context register of pending revision authors, keyed by tracked type
    name."""

    @classmethod
    def set_author(cls, type_name: str, author_id: Any) -> None:
        """Stores |author_id| for |type_name|, overwriting any pending value."""
        # The stored mapping is never mutated in place; contexts copied from this
        # one keep their own view.
        _pending_authors.set({**_pending_authors.get(), type_name: author_id})

    @classmethod
    def peek_author(cls, type_name: str) -> Optional[Any]:
        return _pending_authors.get().get(type_name)

    @classmethod
    def clear_author(cls, type_name: str) -> None:
        pending = _pending_authors.get()
        if type_name in pending:
            _pending_authors.set(
                {name: author for name, author in pending.items() if name != type_name}
            )

    @classmethod
    def take_author(cls, type_name: str) -> Optional[Any]:
        """Returns the pending author for |type_name|, or None if unset, and clears
        it."""
        author_id = cls.peek_author(type_name)
        cls.clear_author(type_name)
        return author_id
