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
"""Derives the schema of the history (shadow) type for a tracked entity type.

The history type does not copy the tracked type's business attributes. Each
history row stores only the sparse diff of one mutation along with the
bookkeeping fields below:

    id          surrogate primary key
    model_id    identity value of the mutated tracked row (column fk_model_id)
    diff        JSON encoded pre-mutation values (column t_diff)
    created_at  UTC epoch seconds (column i_created_at)

plus the author field when author tracking is enabled.
"""
from typing import AbstractSet, Dict

import attr
from sqlalchemy import Integer, Text

from revisionist.common import attr_validators
from revisionist.persistence.database.database_entity import ColumnDefinition
from revisionist.persistence.errors import ConfigurationError
from revisionist.persistence.history.history_options import HistoryOptions

HISTORY_ID_FIELD = "id"
MODEL_ID_FIELD = "model_id"
DIFF_FIELD = "diff"
CREATED_AT_FIELD = "created_at"

MODEL_ID_COLUMN = "fk_model_id"
DIFF_COLUMN = "t_diff"
CREATED_AT_COLUMN = "i_created_at"

# Properties a derived column definition can never lose
_REQUIRED_PROPERTIES = frozenset({"name", "type"})


@attr.s(frozen=True)
class TrackedTypeSchema:
    """The parts of a tracked entity type's definition history derivation reads."""

    type_name: str = attr.ib(validator=attr_validators.is_non_empty_str)
    table_name: str = attr.ib(validator=attr_validators.is_non_empty_str)

    # Attribute name of the single identity (primary key) column
    identity_attribute: str = attr.ib(validator=attr_validators.is_non_empty_str)

    # Attribute name to column definition
    attributes: Dict[str, ColumnDefinition] = attr.ib(validator=attr_validators.is_dict)


@attr.s(frozen=True)
class HistorySchema:
    type_name: str = attr.ib(validator=attr_validators.is_non_empty_str)
    table_name: str = attr.ib(validator=attr_validators.is_non_empty_str)
    tracked_type_name: str = attr.ib(validator=attr_validators.is_non_empty_str)

    # Attribute name to column definition, bookkeeping fields first
    fields: Dict[str, ColumnDefinition] = attr.ib(validator=attr_validators.is_dict)


def strip_attribute_properties(
    definition: ColumnDefinition, stripped_properties: AbstractSet[str]
) -> ColumnDefinition:
    """Returns a copy of |definition| without any of |stripped_properties|. The
    column name and type always survive."""
    stripped = set(stripped_properties) - _REQUIRED_PROPERTIES
    return {
        prop: value for prop, value in definition.items() if prop not in stripped
    }


def derive_history_schema(
    tracked: TrackedTypeSchema, options: HistoryOptions
) -> HistorySchema:
    """Builds the history schema for |tracked| according to |options|."""
    identity_definition = tracked.attributes.get(tracked.identity_attribute)
    if identity_definition is None:
        raise ConfigurationError(
            f"Identity attribute [{tracked.identity_attribute}] is not a column of "
            f"[{tracked.type_name}].",
            tracked.type_name,
        )

    model_id_definition = strip_attribute_properties(
        identity_definition, options.excluded_attribute_properties
    )
    model_id_definition.update(name=MODEL_ID_COLUMN, nullable=True)

    fields: Dict[str, ColumnDefinition] = {
        HISTORY_ID_FIELD: {
            "name": HISTORY_ID_FIELD,
            "type": Integer,
            "primary_key": True,
            "autoincrement": True,
            "unique": True,
        },
        MODEL_ID_FIELD: model_id_definition,
        DIFF_FIELD: {"name": DIFF_COLUMN, "type": Text, "nullable": True},
        CREATED_AT_FIELD: {
            "name": CREATED_AT_COLUMN,
            "type": Integer,
            "nullable": False,
        },
    }

    if options.author_field_name is not None:
        fields[options.author_field_name] = {
            "name": options.author_field_name,
            "type": options.author_type,
            "nullable": True,
        }

    return HistorySchema(
        type_name=f"{tracked.type_name}{options.model_suffix}",
        table_name=f"{tracked.table_name}{options.table_suffix}",
        tracked_type_name=tracked.type_name,
        fields=fields,
    )
