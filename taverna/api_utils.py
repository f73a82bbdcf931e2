"""Small helpers shared by every route module: the success envelope,
body validation and query-string parsing."""

from flask import jsonify, request
from markupsafe import escape
from pydantic import ValidationError as PydanticValidationError

from taverna.errors import ValidationError


def api_success(data=None, status=200):
    """Wrap data in the standard envelope: {"success": true, "data": ...}"""
    return jsonify({'success': True, 'data': data}), status


def created(data):
    return api_success(data, 201)


def validate_body(schema):
    """Parse the JSON body of the current request with a pydantic schema.

    Returns the validated model. Raises ValidationError with a
    {dotted.path: [messages]} map when anything is wrong.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        errors = {}
        for err in e.errors():
            path = '.'.join(str(part) for part in err['loc']) or '_body'
            errors.setdefault(path, []).append(err['msg'])
        raise ValidationError('Invalid data', errors)


def int_arg(name, default=None, minimum=None, maximum=None):
    """Read an integer query parameter, clamped to [minimum, maximum].

    A value that isn't a number is a 400, not a silent fallback.
    """
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f'{name} must be an integer')
    if minimum is not None:
        value = max(value, minimum)
    if maximum is not None:
        value = min(value, maximum)
    return value


def page_args(default_limit=20, max_limit=100):
    """Return (page, limit, offset) for the admin list endpoints."""
    page = int_arg('page', 1, minimum=1)
    limit = int_arg('limit', default_limit, minimum=1, maximum=max_limit)
    return page, limit, (page - 1) * limit


def pagination(page, limit, total):
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': (total + limit - 1) // limit,
    }


def sanitize(text):
    """HTML-escape user text before it is stored (chat content)."""
    return str(escape(text))


# Escape character for LIKE patterns built by like_pattern()
LIKE_ESCAPE = '\\'


def like_pattern(text):
    """Build a '%text%' pattern that matches text literally.

    % and _ typed by a user are escaped so a search for "100%" only finds
    rows that really contain "100%". Pass escape=LIKE_ESCAPE to ilike().
    """
    for char in (LIKE_ESCAPE, '%', '_'):
        text = text.replace(char, LIKE_ESCAPE + char)
    return f'%{text}%'
