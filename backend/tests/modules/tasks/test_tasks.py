# tests/modules/tasks/test_tasks.py
from datetime import datetime

import pytest
from fastapi import status

from vitrine.modules.tasks.models import TaskCreate, TaskUpdate
from vitrine.modules.tasks.repository import TaskRepository
from vitrine.modules.tasks.services import TaskService

pytestmark = pytest.mark.asyncio


async def test_completed_at_follows_status(db_client):
    service = TaskService(TaskRepository(db_client))
    task = await service.create_task(TaskCreate(title="Ligar para fornecedor"))
    assert task.completed_at is None

    done_at = datetime(2024, 6, 1, 10, 30)
    done = await service.update_task(task.id, TaskUpdate(status="completed"), now=done_at)
    assert done.completed_at == done_at

    # título muda, completed_at fica
    renamed = await service.update_task(task.id, TaskUpdate(title="Ligar de novo"))
    assert renamed.completed_at == done_at

    reopened = await service.update_task(task.id, TaskUpdate(status="in_progress"))
    assert reopened.completed_at is None


async def test_created_completed_task_has_completed_at(db_client):
    service = TaskService(TaskRepository(db_client))
    task = await service.create_task(TaskCreate(title="Já feito", status="completed"))
    assert task.completed_at is not None


async def test_task_crud_endpoints(test_client):
    created = await test_client.post(
        "/api/v1/tasks",
        json={"title": "Repor vitrine", "priority": "high", "assigned_to": "ana", "due_date": "2024-07-01T12:00:00-03:00"},
    )
    assert created.status_code == status.HTTP_201_CREATED
    task = created.json()
    assert task["status"] == "pending"
    assert task["due_date"].startswith("2024-07-01T15:00:00")

    await test_client.post("/api/v1/tasks", json={"title": "Conferir caixa", "assigned_to": "bia"})

    mine = await test_client.get("/api/v1/tasks", params={"assigned_to": "ana"})
    assert [t["id"] for t in mine.json()] == [task["id"]]
    high = await test_client.get("/api/v1/tasks", params={"priority": "high"})
    assert len(high.json()) == 1
    assert len((await test_client.get("/api/v1/tasks")).json()) == 2

    patched = await test_client.patch(f"/api/v1/tasks/{task['id']}", json={"status": "completed"})
    assert patched.json()["completed_at"] is not None
    assert len((await test_client.get("/api/v1/tasks", params={"status": "completed"})).json()) == 1

    deleted = await test_client.delete(f"/api/v1/tasks/{task['id']}")
    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    missing = await test_client.get(f"/api/v1/tasks/{task['id']}")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Task not found", "code": "not_found"}
    assert (await test_client.delete(f"/api/v1/tasks/{task['id']}")).status_code == 404


async def test_invalid_status_rejected(test_client):
    response = await test_client.post("/api/v1/tasks", json={"title": "x", "status": "whatever"})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


async def test_patch_with_null_required_field_is_rejected(test_client):
    created = await test_client.post("/api/v1/tasks", json={"title": "Etiquetar peças", "tags": ["estoque"]})
    task_id = created.json()["id"]

    response = await test_client.patch(f"/api/v1/tasks/{task_id}", json={"title": None, "status": None})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    # o registro continua legível e intacto
    stored = await test_client.get(f"/api/v1/tasks/{task_id}")
    assert stored.status_code == 200
    assert (stored.json()["title"], stored.json()["status"]) == ("Etiquetar peças", "pending")
    assert len((await test_client.get("/api/v1/tasks")).json()) == 1


async def test_patch_can_clear_optional_fields(test_client):
    created = await test_client.post("/api/v1/tasks", json={"title": "Ligar", "assigned_to": "ana", "description": "x"})
    task_id = created.json()["id"]

    response = await test_client.patch(f"/api/v1/tasks/{task_id}", json={"assigned_to": None, "description": None})
    assert response.status_code == 200
    assert response.json()["assigned_to"] is None
    assert response.json()["description"] is None
