"""Enumerations shared by the core and the web API."""

import enum


class AttendanceStatus(str, enum.Enum):
    # "yes" is the only status recorded today: remove deletes the row.
    yes = "yes"


class TimeRange(str, enum.Enum):
    future = "future"
    past = "past"
    all = "all"


class RsvpAction(str, enum.Enum):
    add = "add"
    remove = "remove"
