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
"""
Class for generating SQLAlchemy Session objects for a declarative schema.
"""
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy.orm import Session, sessionmaker

from revisionist.persistence.database.sqlalchemy_engine_manager import (
    SQLAlchemyEngineManager,
)


class SessionFactory:
    """Creates SQLAlchemy sessions for the given schema base"""

    @classmethod
    def for_schema_base(
        cls, schema_base: Any, session_maker: Optional[sessionmaker] = None
    ) -> Session:
        """Returns a new session bound to the cached engine of |schema_base|.

        Pass the sessionmaker a history binding listens on as |session_maker| so
        that bulk statements issued through the session are observed.
        """
        engine = SQLAlchemyEngineManager.get_engine_for_schema_base(schema_base)
        if engine is None:
            raise ValueError(f"No engine set for schema [{schema_base}]")

        if session_maker is None:
            return Session(bind=engine)
        return session_maker(bind=engine)

    @classmethod
    @contextmanager
    def using_schema_base(
        cls,
        schema_base: Any,
        *,
        session_maker: Optional[sessionmaker] = None,
        autocommit: bool = True,
    ) -> Iterator[Session]:
        """Yields a session and commits it on exit when |autocommit| is set. Any
        error raised in the block or on commit rolls the session back."""
        session = cls.for_schema_base(schema_base, session_maker=session_maker)
        try:
            yield session
            if autocommit:
                session.commit()
        except Exception as e:
            session.rollback()
            raise e
        finally:
            session.close()
