"""
Task dependency validation utilities.

Validates task dependencies within a scheduling request and produces a
dependency-respecting order.
"""

import heapq
from typing import Any, Callable, Iterable, Mapping

from planner.core.exceptions import CyclicDependencyError


class DependencyValidator:
    """Validator for task dependencies among a fixed set of tasks."""

    def __init__(self, dependencies: Mapping[str, Iterable[str]]):
        """
        Initialize validator with the dependency map.

        Args:
            dependencies: task id -> ids of the tasks it depends on
        """
        self.task_ids = list(dependencies.keys())
        known = set(self.task_ids)
        self.missing: dict[str, list[str]] = {}
        self.dependencies: dict[str, list[str]] = {}
        for task_id, dep_ids in dependencies.items():
            dep_list = sorted(set(dep_ids))
            self.dependencies[task_id] = [dep_id for dep_id in dep_list if dep_id in known]
            missing = [dep_id for dep_id in dep_list if dep_id not in known]
            if missing:
                self.missing[task_id] = missing

        self.dependents: dict[str, list[str]] = {task_id: [] for task_id in self.task_ids}
        for task_id, dep_ids in self.dependencies.items():
            for dep_id in dep_ids:
                self.dependents[dep_id].append(task_id)

    def topological_order(self, sort_key: Callable[[str], Any]) -> list[str]:
        """
        Order tasks so every task comes after all of its dependencies.

        Kahn's algorithm; among tasks whose dependencies are all released, the
        one with the smallest ``sort_key`` goes first.

        Args:
            sort_key: Ordering key for ready tasks (must be totally ordered)

        Returns:
            list[str]: Task ids in dependency-respecting order

        Raises:
            CyclicDependencyError: If the dependency graph has a cycle
        """
        indegree = {task_id: len(deps) for task_id, deps in self.dependencies.items()}
        ready = [(sort_key(task_id), task_id) for task_id, count in indegree.items() if count == 0]
        heapq.heapify(ready)

        ordered: list[str] = []
        while ready:
            _, task_id = heapq.heappop(ready)
            ordered.append(task_id)
            self._release_dependents(task_id, indegree, ready, sort_key)

        if len(ordered) != len(self.task_ids):
            stuck = [task_id for task_id in self.task_ids if indegree[task_id] > 0]
            raise CyclicDependencyError(self._cycle_members(stuck))
        return ordered

    def _release_dependents(
        self,
        task_id: str,
        indegree: dict[str, int],
        ready: list,
        sort_key: Callable[[str], Any],
    ) -> None:
        for dependent_id in self.dependents.get(task_id, []):
            indegree[dependent_id] -= 1
            if indegree[dependent_id] == 0:
                heapq.heappush(ready, (sort_key(dependent_id), dependent_id))

    def _cycle_members(self, stuck: list[str]) -> list[str]:
        """
        Narrow the tasks Kahn could not release down to the ones on a cycle.

        Tasks that merely depend on a cycle are peeled off from the end: a
        stuck task that no other stuck task depends on cannot be on a cycle.
        """
        remaining = set(stuck)
        changed = True
        while changed:
            changed = False
            for task_id in sorted(remaining):
                if not any(dep in remaining for dep in self.dependents.get(task_id, [])):
                    remaining.discard(task_id)
                    changed = True
        return sorted(remaining) if remaining else sorted(stuck)
