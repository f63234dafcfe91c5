"""Basal schedule enums."""

from enum import StrEnum, auto


class ProfileOrigin(StrEnum):
    """Where a basal profile came from.

    ``generated``: produced by an algorithm (e.g. a circadian template).
    ``user_modified``: authored or edited by the user. This is the default.
    ``imported``: loaded from an external source such as a pump export.
    """

    generated = auto()
    user_modified = auto()
    imported = auto()
