"""Typed views of the JSON argument objects the model sends with each tool call."""

from __future__ import annotations

from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ArgumentError

PROTOCOL_FLAGS = {"tcp": "-t", "udp": "-u", "raw": "-w", "unix": "-x"}


class _ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class PsArgs(_ToolArgs):
    user: str = ""
    name: str = ""
    pid: str = ""
    options: list[str] = Field(default_factory=list)

    @field_validator("pid", mode="before")
    @classmethod
    def _pid_as_text(cls, v):
        if isinstance(v, bool):
            raise ValueError("pid must be a number or a string")
        return "" if v is None else str(v)

    @field_validator("pid", mode="after")
    @classmethod
    def _pid_is_numeric(cls, v: str) -> str:
        if v and not v.isdigit():
            raise ValueError("pid must be a non-negative integer")
        return v


class FindArgs(_ToolArgs):
    path: str = "."
    name: str = Field(min_length=1)
    type: Literal["f", "d"] | None = None
    maxdepth: int = Field(default=0, ge=0)

    @field_validator("path", mode="after")
    @classmethod
    def _default_path(cls, v: str) -> str:
        return v or "."


class GrepArgs(_ToolArgs):
    pattern: str = Field(min_length=1)
    file: str = Field(min_length=1)
    recursive: bool = False
    ignore_case: bool = False
    count_only: bool = False

    @property
    def files(self) -> list[str]:
        return self.file.split()


class WgetArgs(_ToolArgs):
    url: str = Field(min_length=1)
    output_file: str = ""


class SsArgs(_ToolArgs):
    options: list[str] = Field(default_factory=list)
    port: int = Field(default=0, ge=0, le=65535)
    protocol: str = ""

    @field_validator("protocol", mode="after")
    @classmethod
    def _known_protocol(cls, v: str) -> str:
        v = v.lower()
        if v and v not in PROTOCOL_FLAGS:
            raise ValueError(f"protocol must be one of {sorted(PROTOCOL_FLAGS)}")
        return v


class LsofArgs(_ToolArgs):
    path: str = ""
    port: int = Field(default=0, ge=0, le=65535)
    user: str = ""
    options: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _needs_a_filter(self) -> LsofArgs:
        if not (self.port or self.path or self.user or self.options):
            raise ValueError("at least one of 'port', 'path', 'user', or 'options' must be provided")
        return self


ArgsT = TypeVar("ArgsT", bound=_ToolArgs)


def decode_args(tool: str, model: type[ArgsT], raw: str | None) -> ArgsT:
    """Decode and validate the raw JSON payload; blank payloads read as {}."""
    if raw is None or not raw.strip():
        raw = "{}"
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise ArgumentError(tool, _describe(e)) from e


def _describe(err: ValidationError) -> str:
    parts = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ()))
        msg = item.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)
