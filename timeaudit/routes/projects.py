# TimeAudit - Project Routes
# Project and task management

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from timeaudit.dependencies import get_current_user, get_workspace, require_admin
from timeaudit.schemas import Task, User
from timeaudit.services.time_entry import is_task_accessible
from timeaudit.services.workspace import (
    AddTask,
    DeleteTask,
    NotFoundError,
    UpdateTask,
    Workspace,
)


router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectForm(BaseModel):
    name: str
    client_name: str
    color: Optional[str] = None


class TaskForm(BaseModel):
    name: str
    assigned_user_ids: list[str] = []


@router.get("")
async def list_projects(
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    return [p.to_local() for p in workspace.state.projects]


@router.post("", status_code=201)
async def create_project(
    form: ProjectForm,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        project = workspace.add_project(form.name, form.client_name, form.color)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return project.to_local()


@router.put("/{project_id}")
async def update_project(
    project_id: str,
    form: ProjectForm,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        project = workspace.update_project(project_id, form.name, form.client_name, form.color)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return project.to_local()


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    """Delete a project together with all of its tasks."""
    try:
        cascade = workspace.delete_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deleted": project_id, "deletedTaskIds": [action.id for action in cascade]}


# Tasks

@router.get("/{project_id}/tasks")
async def list_tasks(
    project_id: str,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """
    Tasks of one project.

    Admins see every task; everyone else only the tasks open to them.
    """
    try:
        workspace.get_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    tasks = [t for t in workspace.state.tasks if t.project_id == project_id]
    if not user.is_admin:
        tasks = [t for t in tasks if is_task_accessible(t, user.id)]
    return [t.to_local() for t in tasks]


@router.post("/{project_id}/tasks", status_code=201)
async def create_task(
    project_id: str,
    form: TaskForm,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        task = workspace.apply_task_action(AddTask(name=form.name, project_id=project_id))
        if form.assigned_user_ids:
            task = workspace.apply_task_action(
                UpdateTask(task=task.model_copy(update={"assigned_user_ids": tuple(form.assigned_user_ids)}))
            )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return task.to_local()


@router.put("/{project_id}/tasks/{task_id}")
async def update_task(
    project_id: str,
    task_id: str,
    form: TaskForm,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    if not form.name.strip():
        raise HTTPException(status_code=400, detail="Task name is required")

    task = Task(
        id=task_id,
        name=form.name.strip(),
        project_id=project_id,
        assigned_user_ids=tuple(form.assigned_user_ids),
    )
    try:
        workspace.apply_task_action(UpdateTask(task=task))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return task.to_local()


@router.delete("/{project_id}/tasks/{task_id}")
async def delete_task(
    project_id: str,
    task_id: str,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        workspace.apply_task_action(DeleteTask(id=task_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deleted": task_id}
