"""Pydantic models for tool-call results."""
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallResult(BaseModel):
    """
    The only payload shape ever returned for a tool invocation.
    Always holds exactly one text item.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: List[TextContent] = Field(min_length=1)
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolCallResult":
        return cls(content=[TextContent(text=text)], is_error=is_error)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
