# core/http.py
"""Small request/response helpers shared by the JSON views."""

import json

from django.http import JsonResponse


def request_data(request):
    """Return the submitted fields from a JSON body or a form post."""
    content_type = request.META.get('CONTENT_TYPE', '')
    if content_type.startswith('application/json'):
        try:
            data = json.loads(request.body or b'{}')
        except (json.JSONDecodeError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}
    return request.POST.dict()


def error_response(message, status=400, **extra):
    payload = {'success': False, 'error': message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def form_errors(form):
    return {field: [str(e) for e in errors] for field, errors in form.errors.items()}
