"""
Input validation for tool arguments.

Each tool declares a JSON-schema style ``input_schema``; arguments are
checked once at the tool boundary so missing or mistyped values surface as
``ToolInputError`` instead of failing deep inside a resolver.
"""

from typing import Any, Dict, List, Mapping, Optional

from .errors import ToolInputError


_JSON_TYPES = {
    'string': (str,),
    'integer': (int,),
    'number': (int, float),
    'boolean': (bool,),
    'array': (list, tuple),
    'object': (dict,),
}


def is_missing(value: Any) -> bool:
    """None, blank strings and empty lists count as missing"""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False


def matches_type(value: Any, json_type: Optional[str]) -> bool:
    """
    Check a value against a JSON-schema type name.

    Booleans are not accepted as integers or numbers.
    """
    if not json_type or json_type not in _JSON_TYPES:
        return True
    if json_type in ('integer', 'number') and isinstance(value, bool):
        return False
    return isinstance(value, _JSON_TYPES[json_type])


def validate_tool_arguments(schema: Mapping[str, Any], args: Any) -> Dict[str, Any]:
    """
    Validate tool arguments against an input schema.

    Args:
        schema: {"type": "object", "properties": {...}, "required": [...]}
        args: Arguments supplied by the caller (None is treated as {})

    Returns:
        Arguments as a new dict

    Raises:
        ToolInputError: If arguments are not an object, a required field is
            missing, or a value has the wrong type
    """
    if args is None:
        args = {}
    if not isinstance(args, Mapping):
        raise ToolInputError("arguments", "Tool arguments must be an object")

    properties = schema.get('properties') or {}
    required: List[str] = list(schema.get('required') or [])

    missing = [name for name in required if is_missing(args.get(name))]
    if missing:
        raise ToolInputError(
            missing[0],
            f"Missing required parameter{'s' if len(missing) > 1 else ''}: {', '.join(missing)}"
        )

    for name, value in args.items():
        prop = properties.get(name)
        if prop is None or value is None:
            continue

        json_type = prop.get('type')
        if not matches_type(value, json_type):
            raise ToolInputError(
                name,
                f"Invalid parameter '{name}': expected {json_type}, got {type(value).__name__}"
            )

        if json_type == 'array':
            item_type = (prop.get('items') or {}).get('type')
            for index, item in enumerate(value):
                if not matches_type(item, item_type):
                    raise ToolInputError(
                        name,
                        f"Invalid parameter '{name}[{index}]': expected {item_type}, "
                        f"got {type(item).__name__}"
                    )

        if json_type in ('integer', 'number'):
            minimum = prop.get('minimum')
            maximum = prop.get('maximum')
            if minimum is not None and value < minimum:
                raise ToolInputError(name, f"Invalid parameter '{name}': must be >= {minimum}")
            if maximum is not None and value > maximum:
                raise ToolInputError(name, f"Invalid parameter '{name}': must be <= {maximum}")

        allowed = prop.get('enum')
        if allowed and value not in allowed:
            raise ToolInputError(
                name,
                f"Invalid parameter '{name}': '{value}'. Allowed values: {', '.join(map(str, allowed))}"
            )

    return dict(args)
