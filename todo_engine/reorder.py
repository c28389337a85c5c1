"""
TODO ENGINE - Reorder Algorithm
===============================
Reconciles a drag-and-drop permutation of the *visible* tasks with the
full collection.

    visible (filtered) view      [C, A]      <- user drags C above A
    full collection              [A, B, C]   (B hidden by the filter)
    result                       [C, A, B]

The dragged ids are placed first, in the given sequence. Every task the
input did not place keeps its previous relative order and follows the
reordered block, so tasks hidden by the filter are never reshuffled or lost.
"""

import logging
from typing import Dict, Iterable, List, Set

from .schema import Task

logger = logging.getLogger("todo_engine.reorder")


def reorder_tasks(tasks: Iterable[Task], new_order: Iterable[str]) -> List[Task]:
    """
    Return the collection in its new total order, with `order` renumbered
    0..n-1 on the task objects.

    Unknown ids are ignored; a repeated id counts at its first occurrence.
    Resubmitting the placed tasks in their current relative order changes
    nothing, so hidden tasks stay interleaved where they were.
    """
    tasks = list(tasks)
    by_id: Dict[str, Task] = {task.id: task for task in tasks}

    placed: List[Task] = []
    seen: Set[str] = set()
    for task_id in new_order:
        task = by_id.get(task_id)
        if task is None:
            logger.debug(f"Reorder ignored unknown id {task_id}")
            continue
        if task_id in seen:
            continue
        seen.add(task_id)
        placed.append(task)

    current = sorted(tasks, key=lambda t: t.order)
    if [t.id for t in placed] == [t.id for t in current if t.id in seen]:
        # Already in the requested relative order: nothing moves
        result = current
    else:
        result = placed + [t for t in current if t.id not in seen]
    for index, task in enumerate(result):
        task.order = index
    return result
