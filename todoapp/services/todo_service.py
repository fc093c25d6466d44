"""Todo service: requêtes limitées au propriétaire"""

from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Optional
from fastapi import HTTPException, status

from todoapp.models.todo import Todo

# colonnes qui ne peuvent pas être remises à NULL par un update partiel
NON_NULLABLE_FIELDS = {"title", "completed", "priority", "position"}


def list_todos(db: Session, user_id: int, completed: Optional[bool] = None) -> List[Todo]:
    query = db.query(Todo).filter(Todo.user_id == user_id)
    if completed is not None:
        query = query.filter(Todo.completed == completed)
    return query.order_by(Todo.position.asc(), Todo.created_at.desc()).all()


def next_position(db: Session, user_id: int) -> int:
    """Position d'une tâche ajoutée en tête de liste"""
    lowest = db.query(func.min(Todo.position)).filter(Todo.user_id == user_id).scalar()
    return 0 if lowest is None else lowest - 1


def get_owned_todo(db: Session, user_id: int, todo_id: str) -> Todo:
    """404 si la tâche n'existe pas, 401 si elle appartient à quelqu'un d'autre"""
    todo = db.query(Todo).filter(Todo.id == todo_id).first()

    if not todo:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")

    if todo.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authorized")

    return todo


def apply_changes(todo: Todo, changes: dict) -> Todo:
    for field, value in changes.items():
        if value is None and field in NON_NULLABLE_FIELDS:
            continue
        setattr(todo, field, value)
    return todo


def delete_completed(db: Session, user_id: int) -> int:
    deleted = db.query(Todo).filter(
        Todo.user_id == user_id,
        Todo.completed == True
    ).delete(synchronize_session=False)
    db.commit()
    return deleted


def set_all_completed(db: Session, user_id: int, completed: bool) -> List[Todo]:
    db.query(Todo).filter(Todo.user_id == user_id).update(
        {Todo.completed: completed}, synchronize_session=False
    )
    db.commit()
    return list_todos(db, user_id)
