from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")


class BaseSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def to_dict(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


class CaseDraft(BaseSchema):
    """User-authored case text; ``id`` is host-side only and never sent to the sandbox."""

    id: str
    args: str = ""
    expected: str = ""


class Case(BaseSchema):
    name: str
    args: list[Any] = Field(default_factory=list)
    expected: Any = None


class RunRequest(BaseSchema):
    code: str
    cases: list[Case] = Field(default_factory=list)


class TestResult(BaseSchema):
    __test__: ClassVar[bool] = False

    name: str
    passed: bool = Field(alias="pass")
    error: str | None = None
    expected: str | None = None
    actual: str | None = None

    def to_dict(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RunSuccess(BaseSchema):
    ok: Literal[True] = True
    results: list[TestResult]
    logs: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": True,
            "results": [result.to_dict() for result in self.results],
            "logs": list(self.logs),
        }


class RunFailure(BaseSchema):
    ok: Literal[False] = False
    error: str
    logs: list[str] = Field(default_factory=list)


RunResponse = Union[RunSuccess, RunFailure]

_RESPONSE_ADAPTER: TypeAdapter[RunResponse] = TypeAdapter(RunResponse)


def parse_response(data: Mapping[str, object]) -> RunResponse:
    """Validate a wire response into RunSuccess or RunFailure."""
    return _RESPONSE_ADAPTER.validate_python(dict(data))
