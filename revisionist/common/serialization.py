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
"""Helper functions to serialize and deserialize revision diffs.

A diff is a flat mapping of attribute name to the value the attribute held
before a mutation. Column values are unstructured into JSON-compatible
primitives with cattr and then encoded as a JSON object with sorted keys.
"""
import datetime
import decimal
import json
import uuid
from typing import Any, Dict, Optional

import cattr


def datetime_to_serializable(dt: datetime.datetime) -> str:
    return dt.isoformat()


def _build_diff_converter() -> cattr.Converter:
    converter = cattr.Converter()
    converter.register_unstructure_hook(datetime.datetime, datetime_to_serializable)
    converter.register_unstructure_hook(datetime.date, lambda d: d.isoformat())
    converter.register_unstructure_hook(datetime.time, lambda t: t.isoformat())
    converter.register_unstructure_hook(decimal.Decimal, str)
    converter.register_unstructure_hook(uuid.UUID, str)
    converter.register_unstructure_hook(bytes, lambda b: b.hex())
    return converter


_DIFF_CONVERTER = _build_diff_converter()


def serialize_diff(diff: Dict[str, Any]) -> str:
    """Encodes |diff| as JSON text. An empty diff encodes as '{}'."""
    return json.dumps(_DIFF_CONVERTER.unstructure(diff), sort_keys=True)


def deserialize_diff(serialized: Optional[str]) -> Dict[str, Any]:
    """Decodes a diff written by |serialize_diff|. Values come back as their
    JSON-compatible representation, e.g. datetimes as ISO strings."""
    if not serialized:
        return {}
    decoded = json.loads(serialized)
    if not isinstance(decoded, dict):
        raise ValueError(f"Expected serialized diff to be an object: [{serialized}]")
    return decoded
