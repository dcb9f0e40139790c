"""
Content model carried by events: a role plus an ordered list of parts.
"""

import base64
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FunctionCall:
    """A function (tool) call requested by a model."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class FunctionResponse:
    """The result of executing a function call."""

    name: str
    response: Any = None
    id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class Part:
    """One piece of content. Exactly one payload field is expected to be set."""

    text: str | None = None
    reasoning: str | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None
    inline_data: bytes | None = None
    mime_type: str | None = None

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_reasoning(cls, reasoning: str) -> "Part":
        return cls(reasoning=reasoning)

    @classmethod
    def from_function_call(cls, function_call: FunctionCall) -> "Part":
        return cls(function_call=function_call)

    @classmethod
    def from_function_response(cls, function_response: FunctionResponse) -> "Part":
        return cls(function_response=function_response)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "Part":
        return cls(inline_data=data, mime_type=mime_type)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dict, omitting unset fields."""
        data: dict[str, Any] = {}
        if self.text is not None:
            data["text"] = self.text
        if self.reasoning is not None:
            data["reasoning"] = self.reasoning
        if self.function_call is not None:
            data["function_call"] = {
                "name": self.function_call.name,
                "args": self.function_call.args,
                "id": self.function_call.id,
            }
        if self.function_response is not None:
            data["function_response"] = {
                "name": self.function_response.name,
                "response": self.function_response.response,
                "id": self.function_response.id,
                "error": self.function_response.error,
            }
        if self.inline_data is not None:
            data["inline_data"] = base64.b64encode(self.inline_data).decode("ascii")
        if self.mime_type is not None:
            data["mime_type"] = self.mime_type
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Part":
        function_call = None
        if data.get("function_call"):
            fc = data["function_call"]
            function_call = FunctionCall(name=fc["name"], args=fc.get("args") or {}, id=fc.get("id"))

        function_response = None
        if data.get("function_response"):
            fr = data["function_response"]
            function_response = FunctionResponse(
                name=fr["name"],
                response=fr.get("response"),
                id=fr.get("id"),
                error=fr.get("error"),
            )

        inline_data = None
        if data.get("inline_data") is not None:
            inline_data = base64.b64decode(data["inline_data"])

        return cls(
            text=data.get("text"),
            reasoning=data.get("reasoning"),
            function_call=function_call,
            function_response=function_response,
            inline_data=inline_data,
            mime_type=data.get("mime_type"),
        )


@dataclass(frozen=True)
class Content:
    """A role (user, model, tool) and its ordered parts."""

    parts: tuple[Part, ...] = ()
    role: str | None = None

    def __post_init__(self):
        # Accept lists from callers but store an immutable tuple.
        if not isinstance(self.parts, tuple):
            object.__setattr__(self, "parts", tuple(self.parts))

    @classmethod
    def from_text(cls, text: str, role: str | None = None) -> "Content":
        return cls(parts=(Part.from_text(text),), role=role)

    @classmethod
    def from_function_call(cls, function_call: FunctionCall, role: str | None = None) -> "Content":
        return cls(parts=(Part.from_function_call(function_call),), role=role)

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(p.text for p in self.parts if p.text)

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "parts": [p.to_dict() for p in self.parts]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Content":
        return cls(
            parts=tuple(Part.from_dict(p) for p in data.get("parts", [])),
            role=data.get("role"),
        )
