import math

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session

from ..database import get_db
from ..models import User
from ..schemas.task import (
    BulkActionRequest,
    BulkEnvelope,
    MessageEnvelope,
    Pagination,
    StatsEnvelope,
    TaskChangeEnvelope,
    TaskCreate,
    TaskEnvelope,
    TaskListEnvelope,
    TaskQuery,
    TaskUpdate,
)
from ..services import tasks as task_service
from ..services.bulk import apply_bulk, parse_bulk_action
from ..services.stats import summarize
from ..services.task_query import list_tasks
from .auth import get_current_user

router = APIRouter()


def get_task_query(request: Request) -> TaskQuery:
    return TaskQuery.from_params(request.query_params)


@router.get("", response_model=TaskListEnvelope)
def get_tasks(
    query: TaskQuery = Depends(get_task_query),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the user's tasks with filtering, sorting and pagination."""
    items, total = list_tasks(db, current_user.id, query)
    total_pages = math.ceil(total / query.limit)

    return {
        "success": True,
        "data": items,
        "pagination": Pagination(
            current=query.page,
            total=total_pages,
            hasNext=query.page < total_pages,
            hasPrev=query.page > 1,
            totalTodos=total,
        ),
    }


# Static paths are declared before /{task_id} so they are not captured as ids.

@router.get("/stats/summary", response_model=StatsEnvelope)
def get_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Total, completed, pending and overdue counts for the user."""
    return {"success": True, "data": summarize(db, current_user.id)}


@router.patch("/bulk", response_model=BulkEnvelope)
def bulk_update(
    payload: BulkActionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Complete all, delete completed or delete all of the user's tasks."""
    action = parse_bulk_action(payload.action)
    affected = apply_bulk(db, current_user.id, action)
    return {
        "success": True,
        "message": f"Bulk {action.value} completed successfully",
        "modifiedCount": affected,
    }


@router.get("/{task_id}", response_model=TaskEnvelope)
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": task_service.get_task(db, current_user.id, task_id)}


@router.post("", response_model=TaskChangeEnvelope, status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db_task = task_service.create_task(db, current_user.id, task)
    return {"success": True, "message": "Todo created successfully", "data": db_task}


@router.put("/{task_id}", response_model=TaskChangeEnvelope)
def update_task(
    task_id: str,
    task_update: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update any subset of fields; ``deadline: null`` clears the deadline."""
    db_task = task_service.update_task(db, current_user.id, task_id, task_update)
    return {"success": True, "message": "Todo updated successfully", "data": db_task}


@router.delete("/{task_id}", response_model=MessageEnvelope)
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task_service.delete_task(db, current_user.id, task_id)
    return {"success": True, "message": "Todo deleted successfully"}
