# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""Success envelope and the camelCase base model shared by every schema."""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """snake_case in Python, camelCase on the wire; both accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def success_response(message: str, data: Optional[Any] = None, status_code: int = 200) -> JSONResponse:
    """``{success: true, message, data?}``"""
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = jsonable_encoder(data, by_alias=True)
    return JSONResponse(status_code=status_code, content=body)
