"""Grouping of gives (skill endorsements) for profile display."""

from typing import Dict, Iterable, List

from frames_directory.models import Give, GiveGroup


def group_and_sort_gives(gives: Iterable[Give]) -> List[GiveGroup]:
    """
    Group gives by skill, most endorsed skill first.

    Gives without a skill are grouped under "". Groups with the same count
    are ordered by skill name.
    """
    grouped: Dict[str, List[Give]] = {}
    for give in gives:
        grouped.setdefault(give.skill or "", []).append(give)

    groups = [
        GiveGroup(count=len(items), gives=items, skill=skill)
        for skill, items in grouped.items()
    ]
    groups.sort(key=lambda group: (-group.count, group.skill))
    return groups
