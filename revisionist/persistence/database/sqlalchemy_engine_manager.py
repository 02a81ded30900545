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
"""A class to manage the SQLAlchemy Engines used with each declarative schema."""
import logging
from typing import Any, Dict, Optional

import sqlalchemy
from sqlalchemy.engine import Engine
from sqlalchemy.sql.schema import MetaData


class SQLAlchemyEngineManager:
    """Caches one SQLAlchemy Engine per schema, keyed by the schema's MetaData."""

    _engine_for_schema: Dict[MetaData, Engine] = {}

    @classmethod
    def init_engine_for_db_instance(
        cls,
        db_url: str,
        schema_base: Any,
        create_tables: bool = True,
        **dialect_specific_kwargs: Any,
    ) -> Engine:
        """Initializes a sqlalchemy Engine object for the given database / schema
        and caches it for future use. When |create_tables| is set, all tables of
        the schema (including any history tables bound so far) are created."""
        metadata = schema_base.metadata
        if metadata in cls._engine_for_schema:
            raise ValueError(f"Already initialized database for schema [{schema_base}]")

        try:
            engine = sqlalchemy.create_engine(db_url, **dialect_specific_kwargs)
        except BaseException as e:
            logging.error(
                "Unable to create engine for [%s]: %s",
                schema_base,
                str(e),
            )
            raise e

        if create_tables:
            metadata.create_all(engine)

        cls._engine_for_schema[metadata] = engine
        return engine

    @classmethod
    def get_engine_for_schema_base(cls, schema_base: Any) -> Optional[Engine]:
        return cls._engine_for_schema.get(schema_base.metadata, None)

    @classmethod
    def teardown_engines(cls) -> None:
        for engine in cls._engine_for_schema.values():
            engine.dispose()
        cls._engine_for_schema.clear()
