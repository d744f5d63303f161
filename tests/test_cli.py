"""Tests for the adocview CLI via typer's CliRunner."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from adocview.cli import app
from adocview.exceptions import ServiceFailure
from adocview.pipeline import OutputType
from adocview.service.base import ValidationResult
from adocview.watch import DaemonReply

from conftest import SAMPLE_XML, SAMPLE_XSLT

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run every command from an empty directory with logging setup stubbed."""
    monkeypatch.chdir(tmp_path)
    with patch("adocview.config.loader.Path.home", return_value=tmp_path / "home"), patch(
        "adocview.cli.configure_logging"
    ):
        yield


@pytest.fixture
def service(fake_service):
    with patch("adocview.cli.HttpConversionService", return_value=fake_service):
        yield fake_service


@pytest.fixture
def doc(tmp_path: Path) -> Path:
    path = tmp_path / "guide.adoc"
    path.write_text("= Title\n\nHello")
    return path


# ── convert ──────────────────────────────────────────────────────────


class TestConvert:
    def test_prints_html(self, service, doc):
        result = runner.invoke(app, ["convert", str(doc)])
        assert result.exit_code == 0, result.output
        assert "<h1>Title</h1>" in result.output
        assert service.calls == [("= Title\n\nHello", OutputType.html5)]

    def test_html_alias(self, service, doc):
        result = runner.invoke(app, ["convert", str(doc), "-t", "html"])
        assert result.exit_code == 0
        assert service.calls[0][1] is OutputType.html5

    def test_writes_output(self, service, doc, tmp_path):
        result = runner.invoke(app, ["convert", str(doc), "-t", "xhtml5", "-o", "out.xhtml"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "out.xhtml").read_text() == service.outputs[OutputType.xhtml5]

    def test_xml_with_stylesheet(self, service, doc, tmp_path):
        style = tmp_path / "style.xsl"
        style.write_text(SAMPLE_XSLT)
        result = runner.invoke(
            app, ["convert", str(doc), "-t", "xml", "--stylesheet", str(style), "-o", "out.xml"]
        )
        assert result.exit_code == 0, result.output
        assert (tmp_path / "out.xml").read_text() == SAMPLE_XML
        assert "<h1>Title</h1>" in (tmp_path / "out.html").read_text()

    def test_rendered_output_does_not_overwrite_xml(self, service, doc, tmp_path):
        style = tmp_path / "style.xsl"
        style.write_text(SAMPLE_XSLT)
        result = runner.invoke(
            app, ["convert", str(doc), "-t", "xml", "--stylesheet", str(style), "-o", "out.html"]
        )
        assert result.exit_code == 0, result.output
        assert (tmp_path / "out.html").read_text() == SAMPLE_XML
        assert "<h1>Title</h1>" in (tmp_path / "out.rendered.html").read_text()

    def test_invalid_type(self, service, doc):
        result = runner.invoke(app, ["convert", str(doc), "-t", "pdf"])
        assert result.exit_code == 1
        assert "Invalid output type" in result.output

    def test_missing_file(self, service, tmp_path):
        result = runner.invoke(app, ["convert", "missing.adoc"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_empty_file(self, service, tmp_path):
        (tmp_path / "empty.adoc").write_text("\n")
        result = runner.invoke(app, ["convert", "empty.adoc"])
        assert result.exit_code == 1
        assert "No source content" in result.output
        assert service.calls == []

    def test_service_failure(self, service, doc):
        service.failures[OutputType.html5] = ServiceFailure("convert", "bad block", 500)
        result = runner.invoke(app, ["convert", str(doc)])
        assert result.exit_code == 1
        assert "Convert failed" in result.output


# ── validate / transform ─────────────────────────────────────────────


class TestValidate:
    def test_valid(self, service, doc):
        result = runner.invoke(app, ["validate", str(doc)])
        assert result.exit_code == 0
        assert "Valid" in result.output

    def test_invalid(self, service, doc):
        service.validate = AsyncMock(return_value=ValidationResult(valid=False, error="bad"))
        result = runner.invoke(app, ["validate", str(doc)])
        assert result.exit_code == 1
        assert "Invalid" in result.output

    def test_unreachable(self, service, doc):
        service.validate = AsyncMock(side_effect=ServiceFailure("validate", "refused"))
        result = runner.invoke(app, ["validate", str(doc)])
        assert result.exit_code == 1
        assert "refused" in result.output


class TestTransform:
    def test_writes_result(self, tmp_path):
        (tmp_path / "doc.xml").write_text(SAMPLE_XML)
        (tmp_path / "style.xsl").write_text(SAMPLE_XSLT)
        result = runner.invoke(app, ["transform", "doc.xml", "style.xsl", "-o", "doc.html"])
        assert result.exit_code == 0, result.output
        assert "<h1>Title</h1>" in (tmp_path / "doc.html").read_text()

    def test_bad_stylesheet(self, tmp_path):
        (tmp_path / "doc.xml").write_text(SAMPLE_XML)
        (tmp_path / "style.xsl").write_text("<broken")
        result = runner.invoke(app, ["transform", "doc.xml", "style.xsl"])
        assert result.exit_code == 1
        assert "xslt-parse" in result.output


# ── watch ────────────────────────────────────────────────────────────


class TestWatchListenOnce:
    def test_converts_existing_files(self, service, tmp_path):
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "a.adoc").write_text("= A")
        (docs / "b.adoc").write_text("= B")

        result = runner.invoke(app, ["watch", "listen", "--local", "docs", "--once"])

        assert result.exit_code == 0, result.output
        assert (docs / "a.xml").read_text() == SAMPLE_XML
        assert (docs / "b.xml").exists()
        assert [c[0] for c in service.calls] == ["= A", "= B"]

    def test_failures_exit_nonzero(self, service, tmp_path):
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "a.adoc").write_text("= A")
        service.failures[OutputType.xml] = ServiceFailure("convert", "down")

        result = runner.invoke(app, ["watch", "listen", "--local", "docs", "--once"])

        assert result.exit_code == 1
        assert not (docs / "a.xml").exists()

    def test_no_documents(self, service, tmp_path):
        (tmp_path / "docs").mkdir()
        result = runner.invoke(app, ["watch", "listen", "--local", "docs", "--once"])
        assert result.exit_code == 0
        assert "No documents" in result.output

    def test_once_requires_local(self, service):
        result = runner.invoke(app, ["watch", "listen", "--once"])
        assert result.exit_code == 1

    def test_missing_directory(self, service):
        result = runner.invoke(app, ["watch", "listen", "--local", "nope", "--once"])
        assert result.exit_code == 1


class TestWatchControl:
    @pytest.fixture
    def control(self):
        control = MagicMock()
        with patch("adocview.cli.WatcherControl", return_value=control):
            yield control

    def test_start(self, control):
        control.start = AsyncMock(return_value=DaemonReply(status="started"))
        result = runner.invoke(app, ["watch", "start"])
        assert result.exit_code == 0
        assert "started" in result.output

    def test_status_shows_config(self, control):
        control.status = AsyncMock(
            return_value=DaemonReply(status="Running", config={"WatchDir": "/docs"})
        )
        result = runner.invoke(app, ["watch", "status"])
        assert result.exit_code == 0
        assert "Running" in result.output
        assert "WatchDir" in result.output

    def test_unreachable(self, control):
        control.stop = AsyncMock(side_effect=ServiceFailure("watcher stop", "refused"))
        result = runner.invoke(app, ["watch", "stop"])
        assert result.exit_code == 1


# ── config ───────────────────────────────────────────────────────────


class TestConfigCommands:
    def test_init_and_show(self, tmp_path):
        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == 0
        assert (tmp_path / "adocview.yaml").exists()

        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "localhost:8005" in result.output

    def test_init_refuses_overwrite(self, tmp_path):
        (tmp_path / "adocview.yaml").write_text("log_level: debug\n")
        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == 1
        assert (tmp_path / "adocview.yaml").read_text() == "log_level: debug\n"

    def test_init_force(self, tmp_path):
        (tmp_path / "adocview.yaml").write_text("log_level: debug\n")
        result = runner.invoke(app, ["config", "init", "--force"])
        assert result.exit_code == 0
        assert "service:" in (tmp_path / "adocview.yaml").read_text()

    def test_invalid_config_file(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("queue:\n  output_type: pdf\n")
        result = runner.invoke(app, ["--config", "bad.yaml", "config", "show"])
        assert result.exit_code == 1
        assert "Invalid config" in result.output
