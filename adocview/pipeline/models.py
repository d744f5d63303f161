"""Pydantic models shared by the conversion pipeline."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath

from pydantic import BaseModel, ConfigDict, Field


class OutputType(str, Enum):
    """Target representation selected for a conversion."""

    xml = "xml"
    html5 = "html5"
    xhtml = "xhtml"
    xhtml5 = "xhtml5"
    md2adoc = "md2adoc"

    @classmethod
    def parse(cls, value: str | OutputType) -> OutputType:
        """Parse user input, accepting ``html`` as an alias of ``html5``."""
        if isinstance(value, OutputType):
            return value
        key = value.strip().lower()
        if key == "html":
            return cls.html5
        try:
            return cls(key)
        except ValueError:
            supported = ", ".join(t.value for t in cls)
            raise ValueError(
                f"Invalid output type: {value!r}. Supported: {supported}"
            ) from None

    @property
    def runs_transform(self) -> bool:
        """Only XML output is post-processed through the stylesheet locally."""
        return self is OutputType.xml

    @property
    def xslt_eligible(self) -> bool:
        """Whether a stylesheet is loaded and shown for this output type."""
        return self in (OutputType.xml, OutputType.xhtml, OutputType.xhtml5)

    @property
    def replaces_source(self) -> bool:
        return self is OutputType.md2adoc

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_EXTENSIONS: dict[OutputType, str] = {
    OutputType.xml: ".xml",
    OutputType.html5: ".html",
    OutputType.xhtml: ".xhtml",
    OutputType.xhtml5: ".xhtml",
    OutputType.md2adoc: ".adoc",
}


class Slot(str, Enum):
    """Artifact slots held by the stage result store."""

    source = "source"
    xml = "xml"
    stylesheet = "stylesheet"
    final = "final"


class SourceDocument(BaseModel):
    """Lightweight-markup input. Replaced wholesale, never patched."""

    model_config = ConfigDict(frozen=True)

    content: str
    path: str | None = None

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()

    def replaced_by(self, content: str, suffix: str | None = None) -> SourceDocument:
        """Return a new document with the given content, optionally renaming the path."""
        path = self.path
        if path is not None and suffix is not None:
            path = str(PurePath(path).with_suffix(suffix))
        return SourceDocument(content=content, path=path)


class Stylesheet(BaseModel):
    """XSLT text plus where it came from. Lives independently of the source."""

    model_config = ConfigDict(frozen=True)

    content: str
    path: str | None = None


class ConversionArtifact(BaseModel):
    """Result of one successful conversion request.

    ``content`` is the service output (XML, HTML, or AsciiDoc for md2adoc).
    ``rendered`` holds the stylesheet output when an XML conversion was
    transformed locally. ``stale`` is set when the result arrived after the
    selection moved on and was therefore not applied to the store.
    """

    model_config = ConfigDict(frozen=True)

    output_type: OutputType
    content: str
    version: int = Field(ge=1)
    rendered: str | None = None
    stale: bool = False


class FailureStage(str, Enum):
    input = "input"
    convert = "convert"
    transform = "transform"


class FailureKind(str, Enum):
    empty_input = "empty_input"
    service = "service"
    transform = "transform"


class ConversionFailure(BaseModel):
    """A typed failure returned by the pipeline instead of an artifact.

    For transform failures ``artifact`` carries the XML artifact that was
    produced and retained before the stylesheet stage failed.
    """

    model_config = ConfigDict(frozen=True)

    stage: FailureStage
    kind: FailureKind
    detail: str
    output_type: OutputType
    cause: str | None = None
    artifact: ConversionArtifact | None = None

    @property
    def partial(self) -> bool:
        return self.artifact is not None


ConversionOutcome = ConversionArtifact | ConversionFailure
