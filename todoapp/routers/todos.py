from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from todoapp.core.database import get_db
from todoapp.core.deps import get_current_user
from todoapp.models.user import User
from todoapp.models.todo import Todo
from todoapp.schemas.todo import TodoCreate, TodoUpdate, TodoBulkUpdate, TodoResponse
from todoapp.schemas.user import MessageResponse
from todoapp.services.todo_service import (
    list_todos,
    next_position,
    get_owned_todo,
    apply_changes,
    delete_completed,
    set_all_completed,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/todos", tags=["todos"])


@router.get("", response_model=List[TodoResponse])
def get_todos(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    completed: Optional[bool] = Query(None)
):
    return list_todos(db, current_user.id, completed)


@router.post("", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
def create_todo(
    todo_data: TodoCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if todo_data.id and db.query(Todo).filter(Todo.id == todo_data.id).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Todo id already exists")

    position = todo_data.position
    if position is None:
        position = next_position(db, current_user.id)

    new_todo = Todo(
        user_id=current_user.id,
        title=todo_data.title,
        # l'ancien contrat envoyait {title, description}
        notes=todo_data.notes if todo_data.notes is not None else todo_data.description,
        completed=todo_data.completed,
        priority=todo_data.priority,
        due_date=todo_data.due_date,
        position=position,
    )
    if todo_data.id:
        new_todo.id = todo_data.id

    db.add(new_todo)
    db.commit()
    db.refresh(new_todo)
    return new_todo


@router.patch("", response_model=List[TodoResponse])
def update_all_todos(
    data: TodoBulkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return set_all_completed(db, current_user.id, data.completed)


@router.delete("")
def clear_todos(
    completed: bool = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    # on ne supprime en masse que les tâches terminées
    if not completed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only completed todos can be bulk deleted")

    deleted = delete_completed(db, current_user.id)
    logger.info(f"user {current_user.id} cleared {deleted} completed todos")
    return {"deleted": deleted}


@router.get("/{todo_id}", response_model=TodoResponse)
def get_todo(
    todo_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_owned_todo(db, current_user.id, todo_id)


@router.put("/{todo_id}", response_model=TodoResponse)
@router.patch("/{todo_id}", response_model=TodoResponse)
def update_todo(
    todo_id: str,
    todo_data: TodoUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    todo = get_owned_todo(db, current_user.id, todo_id)

    apply_changes(todo, todo_data.model_dump(exclude_unset=True))

    db.commit()
    db.refresh(todo)
    return todo


@router.delete("/{todo_id}", response_model=MessageResponse)
def delete_todo(
    todo_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    todo = get_owned_todo(db, current_user.id, todo_id)

    db.delete(todo)
    db.commit()
    return {"message": "Todo removed"}
