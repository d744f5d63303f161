"""PipelineController: decides which stages run for an output type."""

from __future__ import annotations

import logging

from adocview.exceptions import (
    DocumentNotFound,
    EmptyInputError,
    ServiceFailure,
    TransformFailure,
)
from adocview.files import FileStore
from adocview.pipeline.models import (
    ConversionArtifact,
    ConversionFailure,
    ConversionOutcome,
    FailureKind,
    FailureStage,
    OutputType,
    Slot,
    SourceDocument,
    Stylesheet,
)
from adocview.pipeline.store import StageResultStore
from adocview.pipeline.transform import TransformStage
from adocview.pipeline.views import ViewState, view_state
from adocview.service.base import ConversionService

logger = logging.getLogger(__name__)


class PipelineController:
    """One conversion session: a store plus the collaborators that fill it.

    Each instance owns its StageResultStore, so independent sessions (the
    interactive flow and the watch queue) never share slots or versions.
    Requests are never cancelled; a result that arrives after the selection
    moved on is returned flagged ``stale`` and is not applied to the store.
    """

    def __init__(
        self,
        service: ConversionService,
        store: StageResultStore | None = None,
        transform: TransformStage | None = None,
        files: FileStore | None = None,
        stylesheet_path: str | None = None,
    ) -> None:
        self._service = service
        self._store = store if store is not None else StageResultStore()
        self._transform = transform if transform is not None else TransformStage()
        self._files = files
        self._stylesheet_path = stylesheet_path

    @property
    def store(self) -> StageResultStore:
        return self._store

    @property
    def view(self) -> ViewState:
        return view_state(self._store.output_type)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_source(self, content: str, path: str | None = None) -> SourceDocument:
        source = SourceDocument(content=content, path=path)
        self._store.set(Slot.source, source)
        return source

    async def load_source(self, path: str) -> SourceDocument:
        """Read a source document through the file store. Raises DocumentNotFound."""
        if self._files is None:
            raise DocumentNotFound(path, "no file store configured")
        content = await self._files.read(path)
        return self.set_source(content, path)

    async def load_stylesheet(self, path: str | None = None) -> Stylesheet:
        """Load a stylesheet from ``path``, the configured path, or the service default.

        Replaces any loaded stylesheet and re-renders the current XML when
        there is one.
        """
        path = path or self._stylesheet_path
        if path is not None:
            if self._files is None:
                raise DocumentNotFound(path, "no file store configured")
            content = await self._files.read(path)
        else:
            content = await self._service.fetch_stylesheet()
        stylesheet = Stylesheet(content=content, path=path)
        self._store.set(Slot.stylesheet, stylesheet)
        logger.info("Loaded stylesheet %s", path or "(service default)")

        if self._store.is_valid(Slot.xml):
            try:
                self.retransform()
            except TransformFailure as e:
                logger.warning("Stylesheet does not apply to current XML: %s", e)
        return stylesheet

    async def activate(self, output_type: OutputType) -> ViewState:
        """Select an output type, lazily loading a stylesheet when it is eligible.

        Selecting the already-active type is a no-op apart from the lazy load.
        A stylesheet that cannot be loaded is logged, not raised: it is
        optional for every output type.
        """
        self._store.select(output_type)
        if output_type.xslt_eligible and self._store.stylesheet is None:
            try:
                await self.load_stylesheet()
            except (DocumentNotFound, ServiceFailure) as e:
                logger.warning("Failed to load stylesheet: %s", e)
        return self.view

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    async def convert_current(self) -> ConversionOutcome:
        """Convert the stored source with the currently selected output type."""
        source = self._store.source or SourceDocument(content="")
        return await self.convert(source, self._store.output_type)

    async def convert(
        self,
        source: SourceDocument,
        output_type: OutputType | None = None,
        stylesheet: Stylesheet | None = None,
    ) -> ConversionOutcome:
        """Run ``source`` through the stages required by ``output_type``.

        Converting selects ``output_type``. Returns an artifact tagged with
        that type and a fresh version, or a ConversionFailure. Service and
        input failures leave the store untouched.
        """
        output_type = output_type or self._store.output_type
        if source.is_blank:
            error = EmptyInputError()
            logger.info("Skipping conversion: %s", error)
            return ConversionFailure(
                stage=FailureStage.input,
                kind=FailureKind.empty_input,
                detail=str(error),
                output_type=output_type,
            )

        self._store.select(output_type)
        if stylesheet is not None:
            self._store.set(Slot.stylesheet, stylesheet)
        version = self._store.begin_request()
        logger.debug("Converting %s as %s (v%d)", source.path or "<text>", output_type.value, version)

        try:
            text = await self._service.convert(source.content, output_type)
        except ServiceFailure as e:
            logger.warning("Conversion failed for %s: %s", source.path or "<text>", e)
            return ConversionFailure(
                stage=FailureStage.convert,
                kind=FailureKind.service,
                detail=str(e),
                output_type=output_type,
            )

        if output_type.runs_transform:
            return self._finish_xml(text, version)

        artifact = ConversionArtifact(output_type=output_type, content=text, version=version)
        if output_type.replaces_source:
            values = {Slot.source: source.replaced_by(text, suffix=output_type.extension)}
        else:
            values = {Slot.final: text}
        applied = self._store.commit(output_type, version, values)
        return artifact if applied else artifact.model_copy(update={"stale": True})

    def _finish_xml(self, xml: str, version: int) -> ConversionOutcome:
        if not self._store.is_current(OutputType.xml, version):
            logger.debug("Dropping stale xml result v%d before transform", version)
            return ConversionArtifact(
                output_type=OutputType.xml, content=xml, version=version, stale=True
            )

        stylesheet = self._store.stylesheet
        if stylesheet is None or not stylesheet.content:
            artifact = ConversionArtifact(output_type=OutputType.xml, content=xml, version=version)
            applied = self._store.commit(OutputType.xml, version, {Slot.xml: xml, Slot.final: None})
            return artifact if applied else artifact.model_copy(update={"stale": True})

        try:
            rendered = self._transform.transform(xml, stylesheet.content)
        except TransformFailure as e:
            artifact = ConversionArtifact(output_type=OutputType.xml, content=xml, version=version)
            applied = self._store.commit(OutputType.xml, version, {Slot.xml: xml, Slot.final: None})
            if not applied:
                artifact = artifact.model_copy(update={"stale": True})
            logger.warning("XSLT transformation error: %s", e)
            return ConversionFailure(
                stage=FailureStage.transform,
                kind=FailureKind.transform,
                detail=e.message,
                cause=e.cause,
                output_type=OutputType.xml,
                artifact=artifact,
            )

        artifact = ConversionArtifact(
            output_type=OutputType.xml, content=xml, version=version, rendered=rendered
        )
        applied = self._store.commit(OutputType.xml, version, {Slot.xml: xml, Slot.final: rendered})
        return artifact if applied else artifact.model_copy(update={"stale": True})

    def retransform(self) -> str | None:
        """Re-render the stored XML with the stored stylesheet.

        Returns None when there is nothing to render. On TransformFailure
        the rendered slot is cleared and the error propagates; the XML slot
        is kept.
        """
        if not (self._store.is_valid(Slot.xml) and self._store.has(Slot.stylesheet)):
            return None
        try:
            rendered = self._transform.transform(self._store.xml, self._store.stylesheet.content)
        except TransformFailure:
            self._store.clear(Slot.final)
            raise
        self._store.set(Slot.final, rendered, OutputType.xml)
        return rendered
