"""
The ToolResult envelope.

Every dispatch, successful or not, yields exactly one ToolResult with at least
one content item and an explicit error flag.
"""

import json
import base64
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Union

from mcp import types

ContentItem = Union[types.TextContent, types.ImageContent, types.EmbeddedResource]


@dataclass
class ToolResult:
    content: List[ContentItem] = field(default_factory=list)
    is_error: bool = False

    def __post_init__(self):
        if not self.content:
            raise ValueError("ToolResult requires at least one content item")
        self.is_error = bool(self.is_error)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def text(cls, *lines: str, is_error: bool = False) -> "ToolResult":
        return cls([types.TextContent(type="text", text=line) for line in lines], is_error=is_error)

    @classmethod
    def failure(cls, message: str, *extra: str) -> "ToolResult":
        """Error result: a human-readable message plus optional detail items."""
        return cls.text(message, *extra, is_error=True)

    @classmethod
    def image(cls, caption: str, data: bytes, mime_type: str = "image/png") -> "ToolResult":
        return cls([
            types.TextContent(type="text", text=caption),
            types.ImageContent(type="image", data=base64.b64encode(data).decode("ascii"), mimeType=mime_type),
        ])

    @classmethod
    def json_resource(cls, uri: str, payload: Any) -> "ToolResult":
        resource = types.TextResourceContents(
            uri=uri,
            mimeType="application/json",
            text=json.dumps(payload, ensure_ascii=False, default=str),
        )
        return cls([types.EmbeddedResource(type="resource", resource=resource)])

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def texts(self) -> List[str]:
        return [item.text for item in self.content if isinstance(item, types.TextContent)]

    def to_call_tool_result(self) -> types.CallToolResult:
        return types.CallToolResult(content=list(self.content), isError=self.is_error)


def operation_log_item(lines: Iterable[str]) -> str:
    return "Operation logs:\n" + "\n".join(lines)


__all__ = ["ToolResult", "ContentItem", "operation_log_item"]
