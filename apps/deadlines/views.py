"""
Views for deadlines app.

Includes:
- Deadline list (filterable by date range and completion) and create
- Deadline detail, update, delete
- CSV import (all-or-nothing) and CSV export
"""

from django.core.exceptions import BadRequest, PermissionDenied
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone

from apps.accounts.services import user_summary
from apps.core.http import api_error, api_response, api_view, form_error_response, json_body, paginate
from .filters import DeadlineFilter
from .forms import DeadlineForm
from .models import Deadline
from .services import (
    create_deadline, delete_deadline, export_deadlines_csv, get_visible_deadlines,
    import_deadlines_csv, update_deadline,
)


def serialize_deadline(deadline):
    return {
        'id': deadline.pk,
        'title': deadline.title,
        'description': deadline.description,
        'deadline_date': deadline.deadline_date,
        'reminder_date': deadline.reminder_date,
        'priority': deadline.priority,
        'category': deadline.category,
        'is_completed': deadline.is_completed,
        'completed_at': deadline.completed_at,
        'created_by': user_summary(deadline.created_by),
        'created_at': deadline.created_at,
        'updated_at': deadline.updated_at,
    }


def _get_deadline(request, pk):
    deadline = get_object_or_404(Deadline.objects.select_related('created_by'), pk=pk)
    if not (request.user.is_admin() or deadline.created_by_id == request.user.pk):
        raise PermissionDenied('You do not have access to this deadline.')
    return deadline


def _csv_text(request):
    """CSV from an uploaded ``file``, a JSON ``{"csv": ...}`` body or a raw text body."""
    upload = request.FILES.get('file')
    if upload is not None:
        raw = upload.read()
    elif request.content_type == 'application/json':
        text = json_body(request).get('csv')
        if not isinstance(text, str):
            raise BadRequest('"csv" must be a string.')
        return text
    else:
        raw = request.body

    try:
        return raw.decode('utf-8-sig')
    except UnicodeDecodeError as exc:
        raise BadRequest('CSV file must be UTF-8 encoded.') from exc


@api_view(['GET', 'POST'])
def deadline_collection_view(request):
    if request.method == 'POST':
        form = DeadlineForm(json_body(request))
        if not form.is_valid():
            return form_error_response(form)
        deadline = create_deadline(request.user, **form.cleaned_data)
        return api_response(serialize_deadline(deadline), status=201, message='Deadline created successfully.')

    filterset = DeadlineFilter(request.GET, queryset=get_visible_deadlines(request.user))
    if not filterset.is_valid():
        return api_error('Validation error', 'Invalid filter parameters.', 400,
                         details=filterset.errors.get_json_data())

    deadlines, page = paginate(request, filterset.qs.order_by('deadline_date', 'id'))
    return api_response([serialize_deadline(d) for d in deadlines], **page)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
def deadline_detail_view(request, pk):
    deadline = _get_deadline(request, pk)

    if request.method == 'GET':
        return api_response(serialize_deadline(deadline))

    if request.method == 'DELETE':
        delete_deadline(deadline, request.user)
        return api_response(message='Deadline deleted successfully.')

    form = DeadlineForm(json_body(request), partial=True)
    if not form.is_valid():
        return form_error_response(form)
    deadline = update_deadline(deadline, request.user, **form.cleaned_data)
    return api_response(serialize_deadline(deadline), message='Deadline updated successfully.')


@api_view(['POST'])
def deadline_import_view(request):
    """
    Import deadlines from CSV.

    Columns: deadline_date, reminder_date, title, description, priority,
    category. If any row is invalid nothing is saved and the response
    lists every bad row by line number.
    """
    created, errors = import_deadlines_csv(_csv_text(request), request.user)
    if errors:
        return api_error(
            'Validation error',
            f'{len(errors)} row(s) are invalid; nothing was imported.',
            400,
            details=errors,
        )
    return api_response(
        [serialize_deadline(d) for d in created],
        status=201,
        message=f'{len(created)} deadline(s) imported successfully.',
    )


@api_view(['GET'])
def deadline_export_view(request):
    deadlines = get_visible_deadlines(request.user).order_by('deadline_date', 'id')
    response = HttpResponse(export_deadlines_csv(deadlines), content_type='text/csv; charset=utf-8')
    filename = f'deadlines-{timezone.localdate():%Y-%m-%d}.csv'
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
