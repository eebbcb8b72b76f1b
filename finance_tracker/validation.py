"""Declarative request validation.

A schema maps field names to :class:`Rule` objects::

    @validate(body={'name': Rule('string', required=True, min=1)})
    def create_category(): ...

Validation runs before the view; the first failing rule raises
:class:`~finance_tracker.errors.ValidationError`.
"""

import math
from datetime import date, datetime
from functools import wraps

from flask import request

from .errors import ValidationError


def _is_number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and (math.isnan(value) or math.isinf(value)))


TYPE_CHECKS = {
    'string': lambda v: isinstance(v, str),
    'number': _is_number,
    'integer': lambda v: isinstance(v, int) and not isinstance(v, bool),
    'boolean': lambda v: isinstance(v, bool),
    'object': lambda v: isinstance(v, dict),
    'list': lambda v: isinstance(v, list),
}


class Rule:
    def __init__(self, type, required=False, min=None, max=None, choices=None, check=None, message=None):
        if type not in TYPE_CHECKS:
            raise ValueError(f'Unknown rule type: {type}')
        self.type = type
        self.required = required
        self.min = min
        self.max = max
        self.choices = choices
        self.check = check
        self.message = message


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def validate_fields(source, rules, segment='body'):
    for key, rule in rules.items():
        value = source.get(key) if source is not None else None
        if value is None:
            if rule.required:
                raise ValidationError(f'{segment}.{key} is required')
            continue
        if not TYPE_CHECKS[rule.type](value):
            raise ValidationError(rule.message or f'{segment}.{key} must be a {rule.type}')
        if rule.type == 'string':
            if rule.min is not None and len(value.strip()) < rule.min:
                raise ValidationError(f'{segment}.{key} must be at least {rule.min} characters')
            if rule.max is not None and len(value) > rule.max:
                raise ValidationError(f'{segment}.{key} must be at most {rule.max} characters')
        if rule.type in ('number', 'integer'):
            if rule.min is not None and value < rule.min:
                raise ValidationError(f'{segment}.{key} must be >= {rule.min}')
            if rule.max is not None and value > rule.max:
                raise ValidationError(f'{segment}.{key} must be <= {rule.max}')
        if rule.choices is not None and value not in rule.choices:
            raise ValidationError(f'{segment}.{key} must be one of {", ".join(map(str, rule.choices))}')
        if rule.check is not None and not rule.check(value):
            raise ValidationError(rule.message or f'{segment}.{key} is invalid')


def validate(body=None, query=None):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if body is not None:
                validate_fields(json_body(), body, 'body')
            if query is not None:
                validate_fields(request.args, query, 'query')
            return view(*args, **kwargs)
        return wrapper
    return decorator


def parse_date(value, field='date') -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'{field} must be a date in YYYY-MM-DD format') from None
