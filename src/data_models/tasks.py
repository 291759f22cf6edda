# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
import uuid
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from crm_api.client import CrmApiClient
from crm_api.config import AI_TASKS_PATH, ASSIGNEES_PATH, CLIENT_TASKS_PATH, TASK_PATH, TASKS_PATH
from data_models.clients import Client
from data_models.timestamps import format_timestamp, format_wire_date, parse_wire_date, try_parse_timestamp, utc_now

logger = logging.getLogger(__name__)

CLIENT_ASSIGNEE_TYPE = "client"
AI_TASK_TITLE = "AI Suggested Task"
DEFAULT_DUE_IN = timedelta(days=7)
DEFAULT_CREATED_BY = "Current User"
# Assignee search needs at least this many characters
MIN_ASSIGNEE_QUERY_LENGTH = 2


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class TaskAssignee(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str  # employee|client
    client_id: Optional[str] = None
    employee_id: Optional[str] = None


def _assignee_field(assignee: Any, name: str) -> Any:
    if isinstance(assignee, dict):
        return assignee.get(name)
    return getattr(assignee, name, None)


class Task(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: date
    client_id: str
    created_by: str
    assignees: list[TaskAssignee]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    visible_to: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _client_id_from_assignees(cls, data: Any) -> Any:
        """The owning client is the first assignee of type client."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for assignee in data.get("assignees") or []:
            if _assignee_field(assignee, "type") == CLIENT_ASSIGNEE_TYPE:
                data["client_id"] = _assignee_field(assignee, "client_id") or _assignee_field(assignee, "id")
                return data
        raise ValueError("No client ID found in assignees")

    @field_validator("due_date", mode="before")
    @classmethod
    def _parse_due_date(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            return parse_wire_date(value)
        return value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_optional_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str):
            return try_parse_timestamp(value)
        return value

    @field_serializer("due_date")
    def _serialize_due_date(self, value: date) -> str:
        return format_wire_date(value)

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value) if value else None

    @property
    def client_name(self) -> str:
        for assignee in self.assignees:
            if assignee.type == CLIENT_ASSIGNEE_TYPE:
                return assignee.name
        return "Unknown Client"

    def with_status(self, status: TaskStatus) -> "Task":
        return self.model_copy(update={"status": status})

    def to_wire(self) -> dict:
        """JSON body as the CRM service expects it. Unset optional fields are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AITaskRecommendation(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = AI_TASK_TITLE
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime = Field(default_factory=lambda: utc_now() + DEFAULT_DUE_IN)
    is_accepted: bool = False


class TasksPayload(BaseModel):
    tasks: list[Task]


class TaskTextsPayload(BaseModel):
    tasks: list[str]


class AssigneesPayload(BaseModel):
    assignees: list[TaskAssignee]


def new_client_task(
    client: Client,
    title: str,
    description: str = "",
    priority: TaskPriority = TaskPriority.MEDIUM,
    due_date: Optional[date] = None,
    assignees: Iterable[TaskAssignee] = (),
    created_by: str = DEFAULT_CREATED_BY,
) -> Task:
    """
    Builds a pending task for a client.

    The client is always the first assignee. Further assignees are kept once per id.
    """
    if not title:
        raise ValueError("Task title is required.")

    client_assignee = TaskAssignee(
        id=client.client_id,
        name=client.full_name,
        type=CLIENT_ASSIGNEE_TYPE,
        client_id=client.client_id,
    )
    all_assignees = [client_assignee]
    for assignee in assignees:
        if all(existing.id != assignee.id for existing in all_assignees):
            all_assignees.append(assignee)

    return Task(
        id=str(uuid.uuid4()),
        title=title,
        description=description,
        status=TaskStatus.PENDING,
        priority=priority,
        due_date=due_date or (utc_now() + DEFAULT_DUE_IN).date(),
        client_id=client.client_id,
        created_by=created_by,
        assignees=all_assignees,
    )


class TaskAccessor:
    """Accessor for tasks, assignees and AI task suggestions in the CRM service."""

    def __init__(self, crm_client: CrmApiClient):
        self.crm_client = crm_client

    async def create_task(self, task: Task) -> None:
        logger.info(f"Creating task {task.id} for client {task.client_id}")
        response = await self.crm_client.send("POST", TASKS_PATH, json=task.to_wire())
        response.raise_for_status()

    async def fetch_tasks(self, filter_type: Optional[str] = None) -> list[Task]:
        payload = await self.crm_client.get_json(TASKS_PATH, TasksPayload, params={"filter_type": filter_type})
        logger.info(f"Fetched {len(payload.tasks)} tasks")
        return payload.tasks

    async def update_task(self, task: Task, task_id: str) -> None:
        path = CrmApiClient.build_path(TASK_PATH, task_id=task_id)
        response = await self.crm_client.send("PUT", path, json=task.to_wire())
        response.raise_for_status()

    async def update_task_status(self, task: Task, status: TaskStatus) -> Task:
        updated = task.with_status(status)
        await self.update_task(updated, task.id)
        return updated

    async def delete_task(self, task_id: str) -> None:
        path = CrmApiClient.build_path(TASK_PATH, task_id=task_id)
        response = await self.crm_client.send("DELETE", path)
        response.raise_for_status()

    async def fetch_client_tasks(self, client_id: str) -> list[Task]:
        path = CrmApiClient.build_path(CLIENT_TASKS_PATH, client_id=client_id)
        payload = await self.crm_client.get_json(path, TasksPayload)
        logger.info(f"Fetched {len(payload.tasks)} tasks for client {client_id}")
        return payload.tasks

    async def fetch_ai_task_recommendations(self, client_id: str, day: date) -> list[AITaskRecommendation]:
        """
        Get the tasks suggested by AI analysis of a client's day.

        A 404 means the service has no suggestion endpoint deployed and yields no suggestions.
        """
        path = CrmApiClient.build_path(AI_TASKS_PATH, client_id=client_id, date=format_wire_date(day))
        response = await self.crm_client.send("GET", path)
        if response.status == 404:
            logger.info(f"Task recommendations not available for {client_id}")
            return []
        response.raise_for_status()
        payload = self.crm_client.decode(response, TaskTextsPayload)
        return [AITaskRecommendation(description=text) for text in payload.tasks]

    async def search_assignees(self, query: str) -> list[TaskAssignee]:
        payload = await self.crm_client.get_json(ASSIGNEES_PATH, AssigneesPayload, params={"query": query})
        logger.info(f"Found {len(payload.assignees)} assignees")
        return payload.assignees
