import json

from django.http import JsonResponse


class BadRequest(ValueError):
    pass


def parse_json_body(request):
    """The decoded JSON object of a request body. Raises BadRequest."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequest("Invalid JSON body")
    if not isinstance(data, dict):
        raise BadRequest("Expected a JSON object")
    return data


def error_response(message, status=400):
    return JsonResponse({'success': False, 'error': message}, status=status)


def method_not_allowed():
    return error_response('Method not allowed', status=405)


def answer_owner(request):
    """
    (owner, remote) for the answer repository: the Firebase uid when signed
    in, otherwise the session key (cache only).
    """
    uid = request.session.get('uid')
    if uid:
        return uid, True
    if not request.session.session_key:
        request.session.save()
    return f'anon_{request.session.session_key}', False
