"""Task-graph repair and topological ordering."""

import heapq
import logging

from core.errors import CyclicDependencyError

logger = logging.getLogger(__name__)


def repair_graph(tasks):
    """Drop dependencies that point outside the plan or at the task itself.

    Mutates the tasks in place and returns the list of (path, dropped_dep) pairs.
    Duplicate dependency entries are collapsed, first occurrence wins.
    """
    known = {t.path for t in tasks}
    dropped = []
    for task in tasks:
        kept = []
        for dep in task.dependencies:
            if dep == task.path or dep not in known:
                dropped.append((task.path, dep))
                continue
            if dep not in kept:
                kept.append(dep)
        task.dependencies = kept

    for path, dep in dropped:
        if dep == path:
            logger.warning("Dropped self-dependency on %s", path)
        else:
            logger.warning("Dropped dangling dependency %s -> %s", path, dep)
    return dropped


def order(tasks):
    """Kahn's algorithm, ready set ordered by (priority, original index).

    Raises CyclicDependencyError listing the unresolved paths, in original
    order, when the graph has a cycle. Dependencies on unknown paths are
    ignored here; run repair_graph() first to drop them for good.
    """
    index = {t.path: i for i, t in enumerate(tasks)}
    in_degree = {t.path: 0 for t in tasks}
    dependents = {t.path: [] for t in tasks}

    for task in tasks:
        for dep in set(task.dependencies):
            if dep not in index or dep == task.path:
                continue
            in_degree[task.path] += 1
            dependents[dep].append(task.path)

    ready = [(t.priority, i, t.path) for i, t in enumerate(tasks) if in_degree[t.path] == 0]
    heapq.heapify(ready)

    by_path = {t.path: t for t in tasks}
    result = []
    while ready:
        _, _, path = heapq.heappop(ready)
        result.append(path)
        for child in dependents[path]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                heapq.heappush(ready, (by_path[child].priority, index[child], child))

    if len(result) != len(tasks):
        placed = set(result)
        raise CyclicDependencyError([t.path for t in tasks if t.path not in placed])
    return result


def is_topological(sequence, tasks) -> bool:
    """True if every task's in-plan dependencies appear before it in sequence."""
    position = {path: i for i, path in enumerate(sequence)}
    if set(position) != {t.path for t in tasks} or len(position) != len(sequence):
        return False
    for task in tasks:
        for dep in task.dependencies:
            if dep in position and position[dep] > position[task.path]:
                return False
    return True
