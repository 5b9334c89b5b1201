from fastapi import Path
from fastapi.exceptions import RequestValidationError


def valid_name(name: str = Path(..., description="Country name, matched case-insensitively")):
    """Trimmed country name path parameter; blank names fail validation."""
    name = name.strip()
    if not name:
        raise RequestValidationError(
            [{"loc": ("path", "name"), "msg": "is required", "type": "value_error"}]
        )
    return name
