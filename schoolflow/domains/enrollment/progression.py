# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Destination class options for bulk class assignment.

A cohort coming out of a class can be placed either in the next level
(promoted students) or in the same level (repeaters), always within the
same education system. This is only used to build the list of options
an operator may pick from; the record store decides whether a given
student may actually join the chosen class.
"""

from collections.abc import Iterable

from schoolflow.models.common import RecordId, SchoolClass

LEVEL_PROGRESSION: dict[str, str | None] = {
    # Anglophone secondary
    "form_1": "form_2",
    "form_2": "form_3",
    "form_3": "form_4",
    "form_4": "form_5",
    "form_5": "lower_sixth",
    "lower_sixth": "upper_sixth",
    "upper_sixth": None,
    # Francophone secondary
    "sixieme": "cinquieme",
    "cinquieme": "quatrieme",
    "quatrieme": "troisieme",
    "troisieme": "seconde",
    "seconde": "premiere",
    "premiere": "terminale",
    "terminale": None,
}


def next_level(level: str) -> str | None:
    """Return the level following ``level``, or None at the end of a cycle."""
    return LEVEL_PROGRESSION.get(level)


def destination_classes(
    previous_class_id: RecordId,
    all_classes: Iterable[SchoolClass],
) -> list[SchoolClass]:
    """List the active classes a cohort from ``previous_class_id`` may move into.

    Args:
        previous_class_id: Class the students are coming from.
        all_classes: The school's class directory.

    Returns:
        Same-system classes at the same or next level, sorted by name.
        Empty when the previous class is unknown or lacks level data.
    """
    classes = list(all_classes)
    previous = next((c for c in classes if c.id == previous_class_id), None)
    if previous is None or not previous.level or previous.education_system is None:
        return []

    allowed_levels = {previous.level}
    following = next_level(previous.level)
    if following:
        allowed_levels.add(following)

    candidates = [
        c
        for c in classes
        if c.is_active
        and c.education_system is not None
        and c.education_system.id == previous.education_system.id
        and c.level in allowed_levels
    ]
    return sorted(candidates, key=lambda c: c.full_name or "")
