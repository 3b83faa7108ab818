"""Flag registry: the closed set of known flags, grouped into feature groups.

Built once from the declared feature groups. check() is the startup
completeness check: every group a phase unlocks must be declared, every
dependency must be a known flag, and dependencies must not form a cycle.
"""

from __future__ import annotations

from collections.abc import Iterable

from rollout.models import FeatureGroup, RolloutPhase


class FlagRegistry:
    def __init__(self, groups: Iterable[FeatureGroup] = ()) -> None:
        self._groups: dict[str, FeatureGroup] = {}
        self._flag_group: dict[str, str] = {}
        self._duplicates: list[str] = []
        for group in groups:
            self._groups[group.name] = group
            for flag in group.flags:
                owner = self._flag_group.setdefault(flag, group.name)
                if owner != group.name:
                    self._duplicates.append(f"Flag {flag} declared in both {owner} and {group.name}")

    def __contains__(self, flag: str) -> bool:
        return flag in self._flag_group

    def __len__(self) -> int:
        return len(self._flag_group)

    @property
    def flags(self) -> list[str]:
        return list(self._flag_group)

    def group(self, name: str) -> FeatureGroup | None:
        return self._groups.get(name)

    def group_for(self, flag: str) -> FeatureGroup | None:
        name = self._flag_group.get(flag)
        return self._groups.get(name) if name else None

    def dependencies_for(self, flag: str) -> list[str]:
        group = self.group_for(flag)
        if group is None:
            return []
        return [dep for dep in group.dependencies if dep not in group.flags]

    def flags_for_groups(self, group_names: Iterable[str]) -> list[str]:
        flags: list[str] = []
        for name in group_names:
            group = self._groups.get(name)
            if group:
                flags.extend(group.flags)
        return flags

    def check(self, phases: Iterable[RolloutPhase] = ()) -> list[str]:
        errors = list(self._duplicates)
        for phase in phases:
            for name in phase.feature_groups:
                if name not in self._groups:
                    errors.append(f"Phase {phase.id} references undeclared feature group: {name}")
        for group in self._groups.values():
            for dep in group.dependencies:
                if dep not in self._flag_group:
                    errors.append(f"Feature group {group.name} depends on unknown flag: {dep}")
        errors.extend(self._cycles())
        return errors

    def _cycles(self) -> list[str]:
        errors: list[str] = []
        done: set[str] = set()

        def visit(flag: str, path: list[str]) -> None:
            if flag in path:
                cycle = path[path.index(flag):] + [flag]
                errors.append(f"Dependency cycle: {' -> '.join(cycle)}")
                return
            if flag in done:
                return
            for dep in self.dependencies_for(flag):
                if dep in self._flag_group:
                    visit(dep, path + [flag])
            done.add(flag)

        for flag in self._flag_group:
            visit(flag, [])
        return errors
