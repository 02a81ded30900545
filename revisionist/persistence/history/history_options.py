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
"""Options that control how a tracked entity type is bound for revision history."""
from typing import Any, FrozenSet, Optional, Type, Union

import attr
import sqlalchemy.types
from sqlalchemy import Integer
from sqlalchemy.types import TypeEngine

from revisionist.common import attr_validators
from revisionist.utils.yaml_dict import YAMLDict

# Column definition properties that describe constraints or value hooks of the
# tracked table. None of them may be carried onto a history column.
DEFAULT_EXCLUDED_ATTRIBUTE_PROPERTIES = frozenset(
    {
        "unique",
        "primary_key",
        "foreign_keys",
        "default",
        "server_default",
        "onupdate",
        "server_onupdate",
        "autoincrement",
        "index",
        "comment",
    }
)

# Attribute names and column names taken by the history bookkeeping fields
RESERVED_FIELD_NAMES = frozenset(
    {"id", "model_id", "diff", "created_at", "fk_model_id", "t_diff", "i_created_at"}
)

AuthorType = Union[Type[TypeEngine], TypeEngine]


def resolve_sqlalchemy_type(value: Any) -> AuthorType:
    """Converts a SQLAlchemy type name such as 'Integer' or 'String' into the type
    class. Type classes and type instances are passed through."""
    if isinstance(value, TypeEngine):
        return value
    if isinstance(value, str):
        resolved = getattr(sqlalchemy.types, value, None)
        if resolved is None:
            raise ValueError(f"Unknown SQLAlchemy type name [{value}].")
        value = resolved
    if not (isinstance(value, type) and issubclass(value, TypeEngine)):
        raise ValueError(f"Expected a SQLAlchemy column type, found [{value}].")
    return value


@attr.s(frozen=True)
class HistoryOptions:
    """Per-binding configuration of a tracked entity type's history."""

    # Attribute (and column) name that stores the author of each revision, or
    # None to disable author tracking
    author_field_name: Optional[str] = attr.ib(
        default=None, validator=attr_validators.is_opt_identifier
    )

    # Column type of the author field
    author_type: AuthorType = attr.ib(
        default=Integer, converter=resolve_sqlalchemy_type
    )

    # Appended to the tracked class name to name the history class
    model_suffix: str = attr.ib(
        default="History", validator=attr_validators.is_non_empty_str
    )

    # Appended to the tracked table name to name the history table
    table_suffix: str = attr.ib(
        default="_history", validator=attr_validators.is_non_empty_str
    )

    # Attributes that are never recorded in a diff, whether or not they changed
    excluded_attributes: FrozenSet[str] = attr.ib(
        factory=frozenset,
        converter=frozenset,
        validator=attr_validators.is_frozenset_of(str),
    )

    # Column definition properties stripped when deriving history columns
    excluded_attribute_properties: FrozenSet[str] = attr.ib(
        default=DEFAULT_EXCLUDED_ATTRIBUTE_PROPERTIES,
        converter=frozenset,
        validator=attr_validators.is_frozenset_of(str),
    )

    # Whether to declare view-only `revisions` / `model` relationships between
    # the tracked and history types
    relate_revisions: bool = attr.ib(default=True, validator=attr_validators.is_bool)

    def __attrs_post_init__(self) -> None:
        if self.author_field_name in RESERVED_FIELD_NAMES:
            raise ValueError(
                f"Author field name [{self.author_field_name}] collides with a "
                f"history bookkeeping field."
            )

    @property
    def tracks_author(self) -> bool:
        return self.author_field_name is not None

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "HistoryOptions":
        """Builds options from a YAML mapping, e.g.:

            author_field_name: author_id
            author_type: Integer
            excluded_attributes:
              - updated_at

        Keys that are not options are rejected.
        """
        yaml_dict = YAMLDict.from_path(yaml_path)
        option_values = {
            "author_field_name": yaml_dict.pop_optional("author_field_name", str),
            "author_type": yaml_dict.pop_optional("author_type", str),
            "model_suffix": yaml_dict.pop_optional("model_suffix", str),
            "table_suffix": yaml_dict.pop_optional("table_suffix", str),
            "excluded_attributes": yaml_dict.pop_frozenset_optional(
                "excluded_attributes", str
            ),
            "excluded_attribute_properties": yaml_dict.pop_frozenset_optional(
                "excluded_attribute_properties", str
            ),
            "relate_revisions": yaml_dict.pop_optional("relate_revisions", bool),
        }
        yaml_dict.check_empty()
        return cls(
            **{
                name: value
                for name, value in option_values.items()
                if value is not None
            }
        )
