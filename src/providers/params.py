"""Generation parameter normalization shared by the providers.

Callers may send SDK-style camelCase options (``maxTokens``, ``topP``) or
REST-style snake_case ones (``max_tokens``, ``top_p``). Everything is
normalized to snake_case before a provider maps it to its wire shape.
"""

import re

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Aliases that don't follow the plain camelCase -> snake_case rule
_ALIASES = {
    "stop_sequences": "stop",
}


def to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def normalize_params(params: dict | None) -> dict:
    """Return a new dict with snake_case keys. Explicit snake_case wins on conflict."""
    normalized = {}
    for key, value in (params or {}).items():
        snake = to_snake(key)
        snake = _ALIASES.get(snake, snake)
        if snake in normalized and key != snake:
            continue
        normalized[snake] = value
    return normalized
