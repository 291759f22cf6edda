# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from data_models.clients import Client
from data_models.data_access import DataAccess
from data_models.tasks import (
    MIN_ASSIGNEE_QUERY_LENGTH,
    Task,
    TaskAssignee,
    TaskPriority,
    TaskStatus,
    new_client_task,
)

logger = logging.getLogger(__name__)


class TaskCreateRequest(BaseModel):
    client_id: str
    client_name: str
    title: str
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[date] = None
    assignees: list[TaskAssignee] = Field(default_factory=list)


class TaskStatusRequest(BaseModel):
    task: Task
    status: TaskStatus


def tasks_routes(data_access: DataAccess):
    router = APIRouter()
    task_accessor = data_access.task_accessor

    @router.get("/api/tasks")
    async def get_tasks(filter_type: Optional[str] = None):
        tasks = await task_accessor.fetch_tasks(filter_type)
        return {"tasks": [task.to_wire() for task in tasks]}

    @router.post("/api/tasks", status_code=201)
    async def create_task(request: TaskCreateRequest):
        client = Client(client_id=request.client_id, name=request.client_name)
        task = new_client_task(
            client,
            request.title,
            description=request.description,
            priority=request.priority,
            due_date=request.due_date,
            assignees=request.assignees,
        )
        await task_accessor.create_task(task)
        return task.to_wire()

    @router.put("/api/tasks/{task_id}")
    async def update_task(task_id: str, task: Task):
        await task_accessor.update_task(task, task_id)
        return task.to_wire()

    @router.put("/api/tasks/{task_id}/status")
    async def update_task_status(task_id: str, request: TaskStatusRequest):
        if request.task.id != task_id:
            raise ValueError(f"Task id {request.task.id} does not match {task_id}.")
        updated = await task_accessor.update_task_status(request.task, request.status)
        logger.info(f"Task {task_id} moved to {request.status.value}")
        return updated.to_wire()

    @router.delete("/api/tasks/{task_id}", status_code=204)
    async def delete_task(task_id: str):
        await task_accessor.delete_task(task_id)
        return Response(status_code=204)

    @router.get("/api/tasks/client/{client_id}")
    async def get_client_tasks(client_id: str):
        tasks = await task_accessor.fetch_client_tasks(client_id)
        return {"tasks": [task.to_wire() for task in tasks]}

    @router.get("/api/tasks/client/{client_id}/{day}/recommendations")
    async def get_task_recommendations(client_id: str, day: date):
        return {"recommendations": await task_accessor.fetch_ai_task_recommendations(client_id, day)}

    @router.get("/api/assignees")
    async def search_assignees(query: str = ""):
        if len(query) < MIN_ASSIGNEE_QUERY_LENGTH:
            return {"assignees": []}
        return {"assignees": await task_accessor.search_assignees(query)}

    return router
