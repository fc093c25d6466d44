"""
Backends de persistance du TodoStore.

Le store ne dépend que du Protocol TodoBackend:
- ApiTodoBackend: l'API REST /todos (variante canonique)
- LocalTodoBackend: la liste complète dans le LocalStorage (variante hors-ligne)
"""

import logging
import threading
from datetime import datetime, timezone
from typing import List, Optional, Protocol

import requests

from todoapp.client.local_storage import LocalStorage, TODOS_KEY

logger = logging.getLogger(__name__)


class TodoApiError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class TodoBackend(Protocol):
    def load(self) -> List[dict]: ...

    def create(self, item: dict) -> None: ...

    def update(self, todo_id: str, changes: dict) -> None: ...

    def delete(self, todo_id: str) -> None: ...

    def delete_completed(self) -> None: ...

    def set_all_completed(self, completed: bool) -> None: ...


def _to_millis(value) -> Optional[int]:
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        # le serveur renvoie de l'UTC naïf
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    return None


class ApiTodoBackend:
    # champs envoyés à POST /todos (created_at est attribué par le serveur)
    CREATE_FIELDS = ("id", "title", "notes", "completed", "priority", "due_date", "position")

    def __init__(self, base_url: str, token: Optional[str] = None, session=None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs):
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            headers=headers,
            timeout=self.timeout,
            **kwargs
        )
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise TodoApiError(response.status_code, str(detail))
        return response

    def load(self) -> List[dict]:
        records = self._request("GET", "/todos").json()
        for record in records:
            record["created_at"] = _to_millis(record.get("created_at"))
        return records

    def create(self, item: dict) -> None:
        body = {key: item.get(key) for key in self.CREATE_FIELDS}
        self._request("POST", "/todos", json=body)

    def update(self, todo_id: str, changes: dict) -> None:
        self._request("PATCH", f"/todos/{todo_id}", json=changes)

    def delete(self, todo_id: str) -> None:
        self._request("DELETE", f"/todos/{todo_id}")

    def delete_completed(self) -> None:
        self._request("DELETE", "/todos", params={"completed": "true"})

    def set_all_completed(self, completed: bool) -> None:
        self._request("PATCH", "/todos", json={"completed": completed})


class LocalTodoBackend:
    def __init__(self, storage: LocalStorage, key: str = TODOS_KEY):
        self.storage = storage
        self.key = key
        self._lock = threading.Lock()

    def _items(self) -> List[dict]:
        items = self.storage.get(self.key, [])
        return items if isinstance(items, list) else []

    def load(self) -> List[dict]:
        with self._lock:
            return self._items()

    def create(self, item: dict) -> None:
        with self._lock:
            self.storage.set(self.key, [dict(item)] + self._items())

    def update(self, todo_id: str, changes: dict) -> None:
        with self._lock:
            items = [dict(t, **changes) if t.get("id") == todo_id else t for t in self._items()]
            self.storage.set(self.key, items)

    def delete(self, todo_id: str) -> None:
        with self._lock:
            self.storage.set(self.key, [t for t in self._items() if t.get("id") != todo_id])

    def delete_completed(self) -> None:
        with self._lock:
            self.storage.set(self.key, [t for t in self._items() if not t.get("completed")])

    def set_all_completed(self, completed: bool) -> None:
        with self._lock:
            self.storage.set(self.key, [dict(t, completed=completed) for t in self._items()])
