# vitrine/modules/tasks/services.py

from datetime import datetime
from typing import Optional

from fastapi import Depends
from loguru import logger

from vitrine.core.errors import NotFoundError
from .models import TaskCreate, TaskInDB, TaskUpdate
from .repository import TaskRepository, get_task_repository


class TaskService:
    def __init__(self, repo: TaskRepository):
        self.repo = repo

    async def create_task(self, task_in: TaskCreate) -> TaskInDB:
        data = task_in.model_dump()
        data["completed_at"] = datetime.utcnow() if task_in.status == "completed" else None
        task = await self.repo.create(data)
        logger.info(f"Task '{task.title}' created (ID: {task.id}).")
        return task

    async def get_task(self, task_id: str) -> TaskInDB:
        task = await self.repo.get_by_id(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def update_task(self, task_id: str, task_in: TaskUpdate, now: Optional[datetime] = None) -> TaskInDB:
        current = await self.get_task(task_id)
        update_data = task_in.model_dump(exclude_unset=True)

        new_status = update_data.get("status")
        if new_status and new_status != current.status:
            # completed_at acompanha a entrada/saída do status 'completed'
            if new_status == "completed":
                update_data["completed_at"] = now or datetime.utcnow()
            elif current.status == "completed":
                update_data["completed_at"] = None

        updated = await self.repo.update(task_id, update_data)
        if updated is None:
            raise NotFoundError("Task not found")
        return updated

    async def delete_task(self, task_id: str) -> None:
        if not await self.repo.delete(task_id):
            raise NotFoundError("Task not found")


def get_task_service(repo: TaskRepository = Depends(get_task_repository)) -> TaskService:
    return TaskService(repo)
