from typing import Literal

from pydantic import BaseModel, Field


class SentOut(BaseModel):
    message: Literal["Email sent successfully"] = "Email sent successfully"
    id: str = Field(..., description="Correlation id of the request")


class FieldErrorOut(BaseModel):
    type: str = "field"
    msg: str
    path: str
    location: str = "body"


class ErrorOut(BaseModel):
    message: str
    errors: list[FieldErrorOut] | None = None
