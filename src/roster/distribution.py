"""Assignment of participants to expanded schedule windows."""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .directory import Absence, Group, Team
from .schemas import (
    DistributionOrder,
    GenerationConfiguration,
    GroupGenerationConfiguration,
    GroupMemberPreview,
    GroupPreview,
    ResponsibilityInfo,
    TeamAssignmentPreview,
    TeamGenerationConfiguration,
    TeamPreview,
)


NO_AVAILABLE_MEMBERS = "No available members for this schedule"


def select_group_indices(
    total: int,
    per_schedule: int,
    order: DistributionOrder,
    index: int,
    rng: random.Random | None = None,
) -> list[int]:
    """Return the positions of the groups serving the ``index``-th window.

    ``sequential`` slides a window of ``per_schedule`` groups one step per
    instance. ``balanced`` cuts the list into ``ceil(total / per_schedule)``
    fixed windows and cycles through them. ``random`` reshuffles the full list
    for every instance. The result may repeat positions when
    ``per_schedule > total``.
    """
    if total <= 0:
        return []

    if order == "random":
        positions = list(range(total))
        (rng or random).shuffle(positions)
        return positions[:per_schedule]

    if order == "balanced" and per_schedule > 1:
        windows = math.ceil(total / per_schedule)
        start = ((index % windows) * per_schedule) % total
    else:
        start = index % total
    return [(start + offset) % total for offset in range(per_schedule)]


@dataclass
class InstanceAssignment:
    """Participants and diagnostics for a single window."""

    groups: list[GroupPreview] | None = None
    team: TeamPreview | None = None
    assignments: list[TeamAssignmentPreview] | None = None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _covered_days(start: datetime, end: datetime) -> tuple[date, date]:
    last = end - timedelta(microseconds=1)
    return start.date(), max(start.date(), last.date())


class ParticipantDistributor:
    """Chooses who serves each window for one generation request.

    Groups, absences and the team are resolved by the caller once and handed
    in; the distributor itself never touches storage.
    """

    def __init__(
        self,
        configuration: GenerationConfiguration,
        *,
        groups: Sequence[Group] = (),
        missing_group_ids: Sequence[str] = (),
        absences: Sequence[Absence] = (),
        team: Team | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._configuration = configuration
        self._groups = list(groups)
        self._missing_group_ids = list(missing_group_ids)
        self._absences = list(absences)
        self._team = team
        self._rng = rng or random.Random()

    def distribute(self, index: int, start: datetime, end: datetime) -> InstanceAssignment:
        configuration = self._configuration
        if isinstance(configuration, GroupGenerationConfiguration):
            return self._distribute_groups(configuration, index, start, end)
        if isinstance(configuration, TeamGenerationConfiguration):
            return self._distribute_team(configuration, start, end)
        return self._distribute_people()

    # Groups -----------------------------------------------------------------

    def _distribute_groups(
        self,
        configuration: GroupGenerationConfiguration,
        index: int,
        start: datetime,
        end: datetime,
    ) -> InstanceAssignment:
        group_config = configuration.group_config
        result = InstanceAssignment(groups=[])
        for group_id in self._missing_group_ids:
            result.errors.append(f"Group {group_id} not found in this scheduled area")

        if not self._groups:
            result.errors.append("No groups available for this schedule")
            return result

        per_schedule = group_config.groups_per_schedule
        positions = select_group_indices(
            len(self._groups),
            per_schedule,
            group_config.distribution_order,
            index,
            self._rng,
        )
        if per_schedule > len(self._groups):
            result.warnings.append(
                f"groupsPerSchedule ({per_schedule}) exceeds the {len(self._groups)} "
                "available groups; each group is used once"
            )
        unique_positions = list(dict.fromkeys(positions))

        excluded = set(group_config.excluded_person_ids)
        absent = (
            self._absent_people(start, end) if group_config.consider_absences else set()
        )
        for position in unique_positions:
            group = self._groups[position]
            members: list[GroupMemberPreview] = []
            for member in group.members:
                if member.person.id in excluded:
                    continue
                if member.person.id in absent:
                    result.warnings.append(
                        f"{member.person.full_name} is absent and was removed from "
                        f"group {group.name}"
                    )
                    continue
                members.append(
                    GroupMemberPreview(
                        person_id=member.person.id,
                        person_name=member.person.full_name,
                        person_photo_url=member.person.photo_url,
                        responsibilities=[
                            ResponsibilityInfo(
                                id=responsibility.id,
                                name=responsibility.name,
                                image_url=responsibility.image_url,
                            )
                            for responsibility in member.responsibilities
                        ],
                    )
                )
            if not members:
                result.warnings.append(f"Group {group.name} has no available members")
            result.groups.append(GroupPreview(id=group.id, name=group.name, members=members))
        if not any(group.members for group in result.groups):
            result.errors.append(NO_AVAILABLE_MEMBERS)
        return result

    def _absent_people(self, start: datetime, end: datetime) -> set[str]:
        first, last = _covered_days(start, end)
        return {
            absence.person_id
            for absence in self._absences
            if absence.overlaps(first, last)
        }

    # Teams ------------------------------------------------------------------

    def _distribute_team(
        self,
        configuration: TeamGenerationConfiguration,
        start: datetime,
        end: datetime,
    ) -> InstanceAssignment:
        team = self._team
        if team is None:
            return InstanceAssignment(
                errors=[
                    f"Team {configuration.team_config.team_id} not found in this "
                    "scheduled area"
                ]
            )
        return InstanceAssignment(
            team=TeamPreview(id=team.id, name=team.name),
            assignments=self._match_team_roles(configuration, start, end),
        )

    def _match_team_roles(
        self,
        configuration: TeamGenerationConfiguration,
        start: datetime,
        end: datetime,
    ) -> list[TeamAssignmentPreview]:
        """Extension point for role-aware team assignment.

        Matching people to team roles (honouring ``requireResponsibilities`` and
        ``repeatPersonsWhenInsufficient``) is not implemented; the team is
        attached with no assignments and no diagnostics.
        """
        return []

    # People -----------------------------------------------------------------

    def _distribute_people(self) -> InstanceAssignment:
        """Individual generation is an extension point and assigns nobody."""
        return InstanceAssignment()


__all__ = ["InstanceAssignment", "ParticipantDistributor", "select_group_indices"]
