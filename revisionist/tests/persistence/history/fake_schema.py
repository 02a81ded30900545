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
"""A small library schema used to exercise revision history end to end.

Each call to build_fake_schema() declares brand new classes on a brand new
declarative base, so bindings made by one test never leak into another.
"""
from typing import Any, Type

import attr
from sqlalchemy import JSON, Column, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase


@attr.s(frozen=True)
class FakeSchema:
    base: Any = attr.ib()
    shelf: Type = attr.ib()
    book: Type = attr.ib()
    # Has a composite primary key, so it can never be tracked
    book_tag: Type = attr.ib()


def build_fake_schema() -> FakeSchema:
    class FakeBase(DeclarativeBase):
        pass

    class Shelf(FakeBase):
        __tablename__ = "shelf"

        id = Column(Integer, primary_key=True)
        name = Column(String(100), nullable=False, unique=True)
        location = Column(String(100))

    class Book(FakeBase):
        __tablename__ = "book"

        book_id = Column(
            Integer, primary_key=True, autoincrement=True, comment="Book identifier"
        )
        title = Column(String(200), nullable=False)
        year = Column(Integer)
        isbn = Column("c_isbn", String(13), unique=True, index=True)
        shelf_id = Column(Integer, ForeignKey("shelf.id"))
        tags = Column(JSON)
        updated_at = Column(Integer, default=0)

    class BookTag(FakeBase):
        __tablename__ = "book_tag"

        book_id = Column(Integer, ForeignKey("book.book_id"), primary_key=True)
        tag = Column(String(50), primary_key=True)

    return FakeSchema(base=FakeBase, shelf=Shelf, book=Book, book_tag=BookTag)
