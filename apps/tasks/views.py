"""
Views for tasks app.

Includes:
- Task list with filtering, sorting and limit/offset pagination
- Completed tasks list
- Task CRUD operations
- Status changes
- Notes and checklist items
"""

from django.core.exceptions import PermissionDenied
from django.shortcuts import get_object_or_404

from apps.core.http import api_error, api_response, api_view, form_error_response, json_body, paginate
from .filters import TaskFilter, apply_sorting
from .forms import ChecklistItemForm, NoteForm, TaskForm, TaskStatusForm
from .models import ChecklistItem, Task
from .permissions import can_view_task, get_visible_tasks
from .serializers import serialize_checklist_item, serialize_note, serialize_task
from .services import (
    add_checklist_item, add_note, change_status, create_task, delete_checklist_item,
    delete_task, update_checklist_item, update_task,
)


def _get_task(request, pk):
    task = get_object_or_404(
        Task.objects.select_related('assigned_to', 'created_by'), pk=pk,
    )
    if not can_view_task(request.user, task):
        raise PermissionDenied('You do not have access to this task.')
    return task


# =============================================================================
# Task List / Create
# =============================================================================

@api_view(['GET', 'POST'])
def task_collection_view(request):
    """
    GET: visible tasks, filtered by TaskFilter and sorted by
    ``sort_by``/``sort_order``. POST: create a task.
    """
    if request.method == 'POST':
        form = TaskForm(json_body(request))
        if not form.is_valid():
            return form_error_response(form)
        task = create_task(created_by=request.user, **form.cleaned_data)
        return api_response(serialize_task(task), status=201, message='Task created successfully.')

    filterset = TaskFilter(request.GET, queryset=get_visible_tasks(request.user), request=request)
    if not filterset.is_valid():
        return api_error('Validation error', 'Invalid filter parameters.', 400,
                         details=filterset.errors.get_json_data())

    queryset = apply_sorting(
        filterset.qs,
        request.GET.get('sort_by', 'created_at'),
        request.GET.get('sort_order', 'desc'),
    )
    tasks, page = paginate(request, queryset)
    return api_response([serialize_task(t) for t in tasks], **page)


@api_view(['GET'])
def task_completed_view(request):
    """Completed visible tasks, most recently completed first."""
    queryset = get_visible_tasks(request.user).filter(
        status=Task.Status.COMPLETED,
    ).order_by('-completed_at', '-id')
    tasks, page = paginate(request, queryset)
    return api_response([serialize_task(t) for t in tasks], **page)


# =============================================================================
# Task Detail / Update / Delete
# =============================================================================

@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
def task_detail_view(request, pk):
    task = _get_task(request, pk)

    if request.method == 'GET':
        return api_response(serialize_task(task))

    if request.method == 'DELETE':
        delete_task(task, request.user)
        return api_response(message='Task deleted successfully.')

    form = TaskForm(json_body(request), partial=True)
    if not form.is_valid():
        return form_error_response(form)
    task = update_task(task, request.user, **form.cleaned_data)
    return api_response(serialize_task(task), message='Task updated successfully.')


@api_view(['PATCH', 'POST'])
def task_status_view(request, pk):
    """Change status, optionally with a progress percentage."""
    task = _get_task(request, pk)

    form = TaskStatusForm(json_body(request))
    if not form.is_valid():
        return form_error_response(form)

    task = change_status(
        task,
        request.user,
        form.cleaned_data['status'],
        progress=form.cleaned_data.get('progress_percentage'),
    )
    return api_response(serialize_task(task), message='Task status updated successfully.')


# =============================================================================
# Notes
# =============================================================================

@api_view(['GET', 'POST'])
def task_notes_view(request, pk):
    task = _get_task(request, pk)

    if request.method == 'GET':
        notes = task.notes.select_related('user')
        return api_response([serialize_note(n) for n in notes])

    form = NoteForm(json_body(request))
    if not form.is_valid():
        return form_error_response(form)
    note = add_note(task, request.user, form.cleaned_data['content'])
    return api_response(serialize_note(note), status=201, message='Note added successfully.')


# =============================================================================
# Checklist
# =============================================================================

@api_view(['GET', 'POST'])
def task_checklist_view(request, pk):
    task = _get_task(request, pk)

    if request.method == 'GET':
        items = task.checklist_items.select_related('completed_by')
        return api_response([serialize_checklist_item(i) for i in items])

    form = ChecklistItemForm(json_body(request))
    if not form.is_valid():
        return form_error_response(form)
    item = add_checklist_item(
        task, request.user, form.cleaned_data['title'], form.cleaned_data.get('position'),
    )
    return api_response(serialize_checklist_item(item), status=201,
                        message='Checklist item added successfully.')


@api_view(['PUT', 'PATCH', 'DELETE'])
def checklist_item_view(request, pk, item_pk):
    task = _get_task(request, pk)
    item = get_object_or_404(ChecklistItem, pk=item_pk, task=task)

    if request.method == 'DELETE':
        delete_checklist_item(item, request.user)
        return api_response(message='Checklist item deleted successfully.')

    payload = json_body(request)
    form = ChecklistItemForm(payload, partial=True)
    if not form.is_valid():
        return form_error_response(form)
    item = update_checklist_item(
        item,
        request.user,
        title=form.cleaned_data.get('title'),
        is_completed=form.cleaned_data.get('is_completed') if 'is_completed' in payload else None,
        position=form.cleaned_data.get('position'),
    )
    return api_response(serialize_checklist_item(item), message='Checklist item updated successfully.')
