"""
TodoStore: liste de tâches en mémoire côté client.

Chaque mutation est appliquée tout de suite à la liste locale, puis la
persistance part en tâche de fond (fire-and-forget): le résultat n'est jamais
réinjecté dans l'état local et un échec est seulement loggé.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, asdict, replace
from typing import Callable, List, Optional
from uuid import uuid4

from todoapp.client.backends import TodoBackend

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "medium", "high")
FILTERS = ("all", "active", "completed")

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="todo-sync")


def _background(job: Callable[[], None]) -> None:
    _executor.submit(job)


def now_ms() -> int:
    return int(time.time() * 1000)


def validate_title(title: str) -> str:
    """À appeler avant add()/rename(): le store ne valide pas les titres"""
    if title is None or not title.strip():
        raise ValueError("Title must not be empty")
    return title.strip()


@dataclass(frozen=True)
class TodoItem:
    id: str
    title: str
    completed: bool = False
    priority: str = "medium"
    due_date: Optional[str] = None  # YYYY-MM-DD
    notes: Optional[str] = None
    created_at: int = 0
    position: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_record(cls, record: dict, index: int = 0, now: Optional[int] = None) -> "TodoItem":
        # anciens enregistrements: champs manquants ou invalides
        priority = record.get("priority")
        created_at = record.get("created_at")
        return cls(
            id=str(record.get("id") or uuid4().hex),
            title=record.get("title") or "",
            completed=bool(record.get("completed")),
            priority=priority if priority in PRIORITIES else "medium",
            due_date=record.get("due_date") if isinstance(record.get("due_date"), str) else None,
            notes=record.get("notes") if isinstance(record.get("notes"), str) else None,
            created_at=created_at if isinstance(created_at, int) else (now or now_ms()) - index,
            position=record.get("position") if isinstance(record.get("position"), int) else index,
        )


class TodoStore:
    def __init__(self, backend: TodoBackend, dispatch: Optional[Callable[[Callable[[], None]], None]] = None):
        self.backend = backend
        self._dispatch = dispatch or _background
        self._todos: List[TodoItem] = []
        self._lock = threading.RLock()
        self._hydrate_lock = threading.Lock()
        self._listeners: List[Callable[[List[TodoItem]], None]] = []
        self.hydrated = False

    # -- lecture --

    @property
    def todos(self) -> List[TodoItem]:
        with self._lock:
            return list(self._todos)

    def snapshot(self) -> List[dict]:
        return [t.to_dict() for t in self.todos]

    def get(self, todo_id: str) -> Optional[TodoItem]:
        return next((t for t in self.todos if t.id == todo_id), None)

    def visible(self, filter_by: str = "all") -> List[TodoItem]:
        if filter_by not in FILTERS:
            raise ValueError(f"Unknown filter: {filter_by}")
        todos = self.todos
        if filter_by == "active":
            return [t for t in todos if not t.completed]
        if filter_by == "completed":
            return [t for t in todos if t.completed]
        return todos

    @property
    def remaining_count(self) -> int:
        return sum(1 for t in self.todos if not t.completed)

    def subscribe(self, listener: Callable[[List[TodoItem]], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # -- plomberie --

    def _commit(self, todos: List[TodoItem]) -> None:
        with self._lock:
            self._todos = todos
        for listener in list(self._listeners):
            listener(self.todos)

    def _persist(self, action: str, *args) -> None:
        method = getattr(self.backend, action)

        def job():
            try:
                method(*args)
            except Exception as e:
                # pas de rollback: la liste locale fait foi jusqu'au prochain hydrate
                logger.warning(f"Background {action} failed: {e}")

        self._dispatch(job)

    def _update(self, todo_id: str, **changes) -> None:
        with self._lock:
            if not any(t.id == todo_id for t in self._todos):
                return
            next_todos = [replace(t, **changes) if t.id == todo_id else t for t in self._todos]
            self._commit(next_todos)
        self._persist("update", todo_id, changes)

    # -- opérations --

    def hydrate(self) -> None:
        """Charge la liste une seule fois par session; en cas d'échec, liste vide"""
        with self._hydrate_lock:
            if self.hydrated:
                return
            try:
                records = self.backend.load()
                now = now_ms()
                todos = [TodoItem.from_record(r, i, now) for i, r in enumerate(records)]
                todos.sort(key=lambda t: (t.position, -t.created_at))
            except Exception as e:
                logger.warning(f"Hydration failed, starting with an empty list: {e}")
                todos = []
            with self._lock:
                # garde les tâches ajoutées pendant le chargement
                loaded = {t.id for t in todos}
                added = [t for t in self._todos if t.id not in loaded]
                self.hydrated = True
                self._commit(added + todos)

    def add(self, title: str, priority: str = "medium", due_date: Optional[str] = None) -> TodoItem:
        with self._lock:
            position = min((t.position for t in self._todos), default=1) - 1
            item = TodoItem(
                id=uuid4().hex,
                title=title,
                priority=priority,
                due_date=due_date,
                created_at=now_ms(),
                position=position,
            )
            self._commit([item] + self._todos)
        self._persist("create", item.to_dict())
        return item

    def toggle(self, todo_id: str) -> None:
        with self._lock:
            item = self.get(todo_id)
            if item is not None:
                self._update(todo_id, completed=not item.completed)

    def set_priority(self, todo_id: str, priority: str) -> None:
        if priority not in PRIORITIES:
            raise ValueError(f"Unknown priority: {priority}")
        self._update(todo_id, priority=priority)

    def set_due_date(self, todo_id: str, due_date: Optional[str]) -> None:
        self._update(todo_id, due_date=due_date)

    def rename(self, todo_id: str, title: str) -> None:
        self._update(todo_id, title=title)

    def set_notes(self, todo_id: str, notes: Optional[str]) -> None:
        self._update(todo_id, notes=notes)

    def remove(self, todo_id: str) -> None:
        with self._lock:
            if not any(t.id == todo_id for t in self._todos):
                return
            self._commit([t for t in self._todos if t.id != todo_id])
        self._persist("delete", todo_id)

    def clear_completed(self) -> None:
        with self._lock:
            self._commit([t for t in self._todos if not t.completed])
        self._persist("delete_completed")

    def reorder(self, todo_id: str, direction: str) -> None:
        if direction not in ("up", "down"):
            raise ValueError(f"Unknown direction: {direction}")

        with self._lock:
            idx = next((i for i, t in enumerate(self._todos) if t.id == todo_id), -1)
            if idx == -1:
                return
            swap_with = idx - 1 if direction == "up" else idx + 1
            if swap_with < 0 or swap_with >= len(self._todos):
                return

            moved, other = self._todos[idx], self._todos[swap_with]
            next_todos = list(self._todos)
            # les deux tâches échangent aussi leur position persistée
            next_todos[idx] = replace(other, position=moved.position)
            next_todos[swap_with] = replace(moved, position=other.position)
            self._commit(next_todos)

        self._persist("update", moved.id, {"position": other.position})
        self._persist("update", other.id, {"position": moved.position})

    def toggle_all(self, completed: bool) -> None:
        with self._lock:
            self._commit([replace(t, completed=completed) for t in self._todos])
        self._persist("set_all_completed", completed)
