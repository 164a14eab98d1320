"""
Views for todos app.

Every user manages their own to-do list. Admins may read anyone's list
(``?user_id=``) but only owners change their items.
"""

import logging

from django.core.exceptions import BadRequest, PermissionDenied
from django.shortcuts import get_object_or_404

from apps.core.http import api_response, api_view, form_error_response, json_body, paginate
from .forms import TodoForm
from .models import Todo

logger = logging.getLogger(__name__)


def serialize_todo(todo):
    return {
        'id': todo.pk,
        'user_id': todo.user_id,
        'title': todo.title,
        'description': todo.description,
        'due_date': todo.due_date,
        'priority': todo.priority,
        'is_completed': todo.is_completed,
        'completed_at': todo.completed_at,
        'created_at': todo.created_at,
        'updated_at': todo.updated_at,
    }


def _get_todo(request, pk, for_update=False):
    todo = get_object_or_404(Todo, pk=pk)
    if todo.user_id == request.user.pk:
        return todo
    if request.user.is_admin() and not for_update:
        return todo
    raise PermissionDenied('You do not have permission to access this to-do.')


@api_view(['GET', 'POST'])
def todo_collection_view(request):
    if request.method == 'POST':
        form = TodoForm(json_body(request))
        if not form.is_valid():
            return form_error_response(form)
        data = form.cleaned_data
        todo = Todo(
            user=request.user,
            title=data['title'],
            description=data.get('description', ''),
            due_date=data.get('due_date'),
            priority=data.get('priority') or Todo.Priority.MEDIUM,
        )
        if data.get('is_completed'):
            todo.set_completed(True)
        todo.save()
        return api_response(serialize_todo(todo), status=201, message='To-do created successfully.')

    queryset = Todo.objects.filter(user=request.user)
    user_id = request.GET.get('user_id')
    if request.user.is_admin() and user_id:
        if user_id == 'all':
            queryset = Todo.objects.all()
        elif user_id.isdigit():
            queryset = Todo.objects.filter(user_id=int(user_id))
        else:
            raise BadRequest('"user_id" must be an integer or "all".')

    is_completed = request.GET.get('is_completed')
    if is_completed in ('true', 'false'):
        queryset = queryset.filter(is_completed=is_completed == 'true')

    todos, page = paginate(request, queryset)
    return api_response([serialize_todo(t) for t in todos], **page)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
def todo_detail_view(request, pk):
    if request.method == 'GET':
        return api_response(serialize_todo(_get_todo(request, pk)))

    todo = _get_todo(request, pk, for_update=True)

    if request.method == 'DELETE':
        todo.delete()
        return api_response(message='To-do deleted successfully.')

    form = TodoForm(json_body(request), partial=True)
    if not form.is_valid():
        return form_error_response(form)

    data = form.cleaned_data
    for field in ('title', 'description', 'due_date'):
        if field in data:
            setattr(todo, field, data[field])
    if data.get('priority'):
        todo.priority = data['priority']
    if 'is_completed' in data and data['is_completed'] != todo.is_completed:
        todo.set_completed(data['is_completed'])
    todo.save()

    logger.debug('To-do %s updated by %s', todo.pk, request.user.email)
    return api_response(serialize_todo(todo), message='To-do updated successfully.')
