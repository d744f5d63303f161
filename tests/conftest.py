"""Shared test fixtures for adocview."""

from __future__ import annotations

import asyncio

import pytest

from adocview.config.models import AdocviewConfig
from adocview.exceptions import ServiceFailure
from adocview.pipeline import OutputType, PipelineController, StageResultStore
from adocview.service.base import ConversionService, ValidationResult


SAMPLE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<article><title>Title</title><para>Hello</para></article>"""

SAMPLE_XSLT = """<?xml version="1.0" encoding="UTF-8"?>
<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:output method="html"/>
  <xsl:template match="/">
    <html><body><h1><xsl:value-of select="/article/title"/></h1></body></html>
  </xsl:template>
</xsl:stylesheet>"""


class FakeService(ConversionService):
    """In-memory conversion service.

    ``outputs`` maps output types to returned text; ``failures`` maps them
    to a ServiceFailure to raise; ``gates`` holds an asyncio.Event per type
    that a convert call waits on before returning.
    """

    def __init__(self) -> None:
        self.outputs: dict[OutputType, str] = {
            OutputType.xml: SAMPLE_XML,
            OutputType.html5: "<html><body><h1>Title</h1></body></html>",
            OutputType.xhtml: "<html xmlns='http://www.w3.org/1999/xhtml'/>",
            OutputType.xhtml5: "<html xmlns='http://www.w3.org/1999/xhtml'><body/></html>",
            OutputType.md2adoc: "= Title\n\nHello\n",
        }
        self.failures: dict[OutputType, ServiceFailure] = {}
        self.gates: dict[OutputType, asyncio.Event] = {}
        self.calls: list[tuple[str, OutputType]] = []
        self.stylesheet = SAMPLE_XSLT
        self.in_flight = 0
        self.max_in_flight = 0

    async def convert(self, content: str, output_type: OutputType) -> str:
        self.calls.append((content, output_type))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            gate = self.gates.get(output_type)
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
            if output_type in self.failures:
                raise self.failures[output_type]
            return self.outputs[output_type]
        finally:
            self.in_flight -= 1

    async def validate(self, content: str) -> ValidationResult:
        return ValidationResult(valid=bool(content.strip()))

    async def fetch_stylesheet(self) -> str:
        return self.stylesheet


@pytest.fixture
def sample_config():
    return AdocviewConfig()


@pytest.fixture
def fake_service():
    return FakeService()


@pytest.fixture
def store():
    return StageResultStore()


@pytest.fixture
def controller(fake_service, store):
    return PipelineController(fake_service, store=store)


@pytest.fixture
def sample_xml():
    return SAMPLE_XML


@pytest.fixture
def sample_xslt():
    return SAMPLE_XSLT
