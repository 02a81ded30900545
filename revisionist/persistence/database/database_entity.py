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
"""Helpers to expose the column properties and column state of mapped database
entities. Tracked entity classes are owned by the host application, so these are
plain functions over a mapped class or instance rather than a mixin."""
from functools import lru_cache
from typing import Any, Dict, List, Tuple, Type

from sqlalchemy import Column
from sqlalchemy.inspection import inspect
from sqlalchemy.orm import Mapper
from sqlalchemy.orm.properties import ColumnProperty

ColumnDefinition = Dict[str, Any]


def get_mapper(entity_cls: Type) -> Mapper:
    return inspect(entity_cls)


@lru_cache(maxsize=None)
def get_primary_key_property_name(entity_cls: Type) -> str:
    """Returns string name of the primary key column property of the entity.

    NOTE: This name is the *attribute* name on the ORM object, which is not
    guaranteed to be the same as the *column* name in the table.
    """
    mapper = get_mapper(entity_cls)
    if len(mapper.primary_key) != 1:
        raise ValueError(
            f"Expected exactly one primary key column on [{entity_cls.__name__}], "
            f"found [{len(mapper.primary_key)}]."
        )
    return mapper.get_property_by_column(mapper.primary_key[0]).key


@lru_cache(maxsize=None)
def get_column_property_names(entity_cls: Type) -> Tuple[str, ...]:
    """Returns the names of all properties of the entity that correspond to a
    single column in the table, in mapper order.
    """
    return tuple(
        prop.key
        for prop in get_mapper(entity_cls).column_attrs
        if isinstance(prop, ColumnProperty) and len(prop.columns) == 1
    )


@lru_cache(maxsize=None)
def get_property_names_by_column_key(entity_cls: Type) -> Dict[str, str]:
    """Returns a dictionary of table column key to ORM attribute name."""
    return {
        column.key: prop.key
        for prop in get_mapper(entity_cls).column_attrs
        for column in prop.columns
    }


def get_column(entity_cls: Type, property_name: str) -> Column:
    return get_mapper(entity_cls).get_property(property_name).columns[0]


def _default_arg(default: Any) -> Any:
    # ColumnDefault / DefaultClause objects are bound to their parent column and
    # cannot be reused, so only the underlying value or callable is exposed.
    return None if default is None else getattr(default, "arg", None)


def get_column_definition(column: Column) -> ColumnDefinition:
    """Returns a fresh mapping describing |column| using the keyword names that
    the Column constructor accepts."""
    return {
        "name": column.name,
        "type": column.type,
        "nullable": column.nullable,
        "unique": column.unique,
        "primary_key": column.primary_key,
        "autoincrement": column.autoincrement,
        "default": _default_arg(column.default),
        "server_default": _default_arg(column.server_default),
        "onupdate": _default_arg(column.onupdate),
        "server_onupdate": _default_arg(column.server_onupdate),
        "index": column.index,
        "foreign_keys": sorted(fk.target_fullname for fk in column.foreign_keys),
        "comment": column.comment,
    }


def get_column_definitions(entity_cls: Type) -> Dict[str, ColumnDefinition]:
    """Returns a dictionary of ORM attribute name to column definition for every
    column property of |entity_cls|."""
    return {
        name: get_column_definition(get_column(entity_cls, name))
        for name in get_column_property_names(entity_cls)
    }


def get_column_states(entity: Any) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Returns (prior, current) dictionaries of the loaded column attributes of
    |entity|. Prior values are read from attribute history, so no SQL is
    emitted; an attribute that was never loaded is left out of both.

    Primary key attributes of a persistent entity are always included: when
    they were expired, for example by a commit, they are read from the
    identity key of the entity instead.
    """
    state = inspect(entity)
    prior: Dict[str, Any] = {}
    current: Dict[str, Any] = {}
    for name in get_column_property_names(type(entity)):
        if name not in state.dict:
            continue
        current[name] = state.dict[name]
        history = state.attrs[name].history
        prior[name] = history.deleted[0] if history.deleted else current[name]

    if state.identity is not None:
        mapper = state.mapper
        for column, value in zip(mapper.primary_key, state.identity):
            name = mapper.get_property_by_column(column).key
            if name not in current:
                prior[name] = value
                current[name] = value
    return prior, current


def has_column_changes(entity: Any) -> bool:
    """Returns True if any column attribute of |entity| has a pending net change."""
    state = inspect(entity)
    return any(
        state.attrs[name].history.has_changes()
        for name in get_column_property_names(type(entity))
    )


def to_column_keyed_row(entity_cls: Type, row: Dict[str, Any]) -> Dict[str, Any]:
    """Re-keys |row| from ORM attribute names to table column keys, the form
    Core insert() statements expect."""
    return {get_column(entity_cls, name).key: value for name, value in row.items()}


def to_column_keyed_rows(
    entity_cls: Type, rows: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    return [to_column_keyed_row(entity_cls, row) for row in rows]
