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
"""Common date and time helpers. All history timestamps are whole seconds since
the epoch, normalized to UTC."""
import datetime

import pytz


def current_datetime_utc() -> datetime.datetime:
    return datetime.datetime.now(tz=pytz.UTC)


def current_epoch_seconds() -> int:
    """Returns the current UTC time truncated to whole seconds since the epoch."""
    return int(current_datetime_utc().timestamp())


def epoch_seconds_to_datetime(seconds: int) -> datetime.datetime:
    return datetime.datetime.fromtimestamp(seconds, tz=pytz.UTC)
