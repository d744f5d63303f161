"""XSLT transform of intermediate XML using lxml."""

from __future__ import annotations

import logging

from lxml import etree

from adocview.exceptions import TransformFailure

logger = logging.getLogger(__name__)


def _parse(text: str, cause: str) -> etree._Element:
    # Encode first so documents carrying an XML declaration with an
    # encoding attribute are accepted.
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(text.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as e:
        raise TransformFailure(cause, str(e)) from e


class TransformStage:
    """Applies a stylesheet to an XML document.

    Stateless apart from a one-entry cache of the last compiled stylesheet,
    so repeated transforms against the same stylesheet text skip
    recompilation. Failures are deterministic and never retried.
    """

    def __init__(self) -> None:
        self._compiled_source: str | None = None
        self._compiled: etree.XSLT | None = None

    def _compile(self, stylesheet: str) -> etree.XSLT:
        if self._compiled is not None and self._compiled_source == stylesheet:
            return self._compiled
        doc = _parse(stylesheet, "xslt-parse")
        try:
            compiled = etree.XSLT(doc)
        except etree.XSLTParseError as e:
            raise TransformFailure("xslt-parse", str(e)) from e
        self._compiled_source = stylesheet
        self._compiled = compiled
        return compiled

    def transform(self, xml: str, stylesheet: str) -> str:
        """Return the transform result as text. An empty result is valid.

        Raises TransformFailure with cause ``xml-parse``, ``xslt-parse`` or
        ``xslt-apply``.
        """
        doc = _parse(xml, "xml-parse")
        xslt = self._compile(stylesheet)
        try:
            result = xslt(doc)
        except etree.XSLTApplyError as e:
            raise TransformFailure("xslt-apply", str(e)) from e
        text = str(result)
        logger.debug("Transform produced %d chars", len(text))
        return text
