# vitrine/modules/tasks/routers.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from .models import TASK_PRIORITIES, TASK_STATUSES, TaskCreate, TaskInDB, TaskUpdate
from .services import TaskService, get_task_service

tasks_router = APIRouter()


@tasks_router.get("", response_model=List[TaskInDB], summary="List tasks (newest first)", tags=["Tasks"])
async def list_tasks_endpoint(
    status_filter: Optional[TASK_STATUSES] = Query(None, alias="status"),
    priority: Optional[TASK_PRIORITIES] = Query(None),
    assigned_to: Optional[str] = Query(None),
    deal_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: TaskService = Depends(get_task_service),
):
    filters = {"status": status_filter, "priority": priority, "assigned_to": assigned_to, "deal_id": deal_id}
    return await service.repo.list_tasks(filters, skip=skip, limit=limit)


@tasks_router.post("", response_model=TaskInDB, status_code=status.HTTP_201_CREATED, summary="Create a task", tags=["Tasks"])
async def create_task_endpoint(task_in: TaskCreate, service: TaskService = Depends(get_task_service)):
    return await service.create_task(task_in)


@tasks_router.get("/{task_id}", response_model=TaskInDB, summary="Get a task", tags=["Tasks"])
async def get_task_endpoint(task_id: str = Path(...), service: TaskService = Depends(get_task_service)):
    return await service.get_task(task_id)


@tasks_router.patch("/{task_id}", response_model=TaskInDB, summary="Update a task", tags=["Tasks"])
async def update_task_endpoint(task_in: TaskUpdate, task_id: str = Path(...), service: TaskService = Depends(get_task_service)):
    return await service.update_task(task_id, task_in)


@tasks_router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a task", tags=["Tasks"])
async def delete_task_endpoint(task_id: str = Path(...), service: TaskService = Depends(get_task_service)):
    await service.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
