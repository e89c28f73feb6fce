"""
Request body helpers shared by the routers.
"""

from typing import Any, Type, Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, TypeAdapter, ValidationError

from api.negotiation import read_body


async def read_payload(request: Request) -> Any:
    """Read a required request body; 400 when it is missing or undecodable."""
    try:
        data = await read_body(request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if data is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A request body is required")
    return data


def validate_payload(model: Union[Type[BaseModel], TypeAdapter], data: Any):
    """Validate decoded body data; validation failures become a 422 response."""
    try:
        if isinstance(model, TypeAdapter):
            return model.validate_python(data)
        return model.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False), body=data)
