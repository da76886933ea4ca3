"""
Request body helpers for the JSON API
"""
from flask import request


def get_json_object():
    """Parsed JSON body when it is an object, otherwise an empty dict"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {}
    return data


def get_string(data, key):
    """Stripped string value of key, or '' when missing or not a string"""
    value = data.get(key)
    if not isinstance(value, str):
        return ''
    return value.strip()
