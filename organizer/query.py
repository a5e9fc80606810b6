"""Filter predicates and orderings over a user's tasks.

Every dimension of :class:`TaskFilter` is optional and the present ones are ANDed.
Most dimensions compile to SQL; tag overlap is checked on the loaded rows so it
behaves the same on every database backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Sequence

from sqlalchemy import case, func, or_
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col

from organizer.models import Task, TaskPriority, TaskStatus


class TaskSort(str, Enum):
    ORDER = "order"
    DUE_DATE = "due_date"
    PRIORITY = "priority"
    CREATED_AT = "created_at"


# Lexical order of the stored priority names, not their urgency.
PRIORITY_SORT_RANK = {
    TaskPriority.HIGH: 0,
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.URGENT: 3,
}

HIGH_PRIORITIES = (TaskPriority.HIGH, TaskPriority.URGENT)

MAX_UPCOMING_DAYS = 3650


def parse_tags(raw: Optional[str]) -> Optional[list[str]]:
    """``"a, b,,c"`` -> ``["a", "b", "c"]``; blank input means no tag filter."""
    if raw is None:
        return None
    tags = [t.strip() for t in raw.split(",") if t.strip()]
    return tags or None


def tags_overlap(task_tags: Optional[Iterable[str]], wanted: Iterable[str]) -> bool:
    return not set(task_tags or ()).isdisjoint(wanted)


@dataclass(frozen=True)
class TaskFilter:
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    project_id: Optional[int] = None
    search: Optional[str] = None
    tags: Optional[Sequence[str]] = None
    due_date_from: Optional[datetime] = None
    due_date_to: Optional[datetime] = None
    has_due_date: Optional[bool] = None

    def clauses(self, user_id: int) -> list[ColumnElement[bool]]:
        where: list[ColumnElement[bool]] = [col(Task.user_id) == user_id]

        if self.status is not None:
            where.append(col(Task.status) == self.status)

        if self.priority is not None:
            where.append(col(Task.priority) == self.priority)

        if self.project_id is not None:
            where.append(col(Task.project_id) == self.project_id)

        if self.search is not None:
            term = self.search.lower()
            where.append(
                or_(
                    func.lower(col(Task.title)).contains(term, autoescape=True),
                    func.lower(col(Task.description)).contains(term, autoescape=True),
                )
            )

        if self.due_date_from is not None:
            where.append(col(Task.due_date) >= self.due_date_from)

        if self.due_date_to is not None:
            where.append(col(Task.due_date) <= self.due_date_to)

        if self.has_due_date is True:
            where.append(col(Task.due_date).is_not(None))
        elif self.has_due_date is False:
            where.append(col(Task.due_date).is_(None))

        return where

    def matches_tags(self, task: Task) -> bool:
        if not self.tags:
            return True
        return tags_overlap(task.tags, self.tags)

    def apply_tags(self, tasks: Iterable[Task]) -> list[Task]:
        return [t for t in tasks if self.matches_tags(t)]


def priority_rank() -> ColumnElement[int]:
    return case(
        *((col(Task.priority) == p, rank) for p, rank in PRIORITY_SORT_RANK.items()),
        else_=len(PRIORITY_SORT_RANK),
    )


def order_by(sort: TaskSort = TaskSort.ORDER) -> list[ColumnElement]:
    """ORDER BY terms for ``sort``; ``id`` is always the last tie-break."""
    newest_first = col(Task.created_at).desc()

    if sort is TaskSort.DUE_DATE:
        # NULL due dates sort before any date.
        terms = [col(Task.due_date).is_(None).desc(), col(Task.due_date).asc(), newest_first]
    elif sort is TaskSort.PRIORITY:
        terms = [priority_rank().asc(), newest_first]
    elif sort is TaskSort.CREATED_AT:
        terms = [newest_first]
    else:
        terms = [col(Task.order).asc(), newest_first]

    return [*terms, col(Task.id).asc()]


def overdue_clauses(user_id: int, now: datetime) -> list[ColumnElement[bool]]:
    return [
        col(Task.user_id) == user_id,
        col(Task.due_date) < now,
        col(Task.status) != TaskStatus.COMPLETED,
    ]


def upcoming_clauses(user_id: int, now: datetime, days: int) -> list[ColumnElement[bool]]:
    return [
        col(Task.user_id) == user_id,
        col(Task.due_date) >= now,
        col(Task.due_date) <= now + timedelta(days=days),
        col(Task.status) != TaskStatus.COMPLETED,
    ]


def is_overdue(task: Task, now: datetime) -> bool:
    return task.due_date is not None and task.due_date < now and task.status != TaskStatus.COMPLETED
