from pydantic import BaseModel, Field, field_validator
from typing import Literal

from adocview.pipeline.models import OutputType


class ServiceConfig(BaseModel):
    base_url: str = "http://localhost:8005"
    timeout: float = Field(default=30.0, gt=0)


class WatcherConfig(BaseModel):
    url: str = "http://localhost:8006"
    reconnect_delay: float = Field(default=5.0, ge=0)
    extensions: list[str] = [".adoc", ".asciidoc"]
    debounce_seconds: float = Field(default=2.0, ge=0)

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("extensions cannot be empty")
        return [e if e.startswith(".") else f".{e}" for e in v]


class QueueConfig(BaseModel):
    output_type: OutputType = OutputType.xml
    timeout: float | None = Field(default=120.0, gt=0)
    settle_delay: float = Field(default=0.1, ge=0)
    prune_completed: bool = False
    write_outputs: bool = True

    @field_validator("output_type", mode="before")
    @classmethod
    def parse_output_type(cls, v: object) -> object:
        if isinstance(v, str):
            return OutputType.parse(v)
        return v


class StylesheetConfig(BaseModel):
    path: str | None = None


class AdocviewConfig(BaseModel):
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    stylesheet: StylesheetConfig = Field(default_factory=StylesheetConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
