"""StageResultStore: current artifact per slot plus the active output type."""

from __future__ import annotations

import logging
from typing import Any

from adocview.pipeline.models import OutputType, Slot, SourceDocument, Stylesheet

logger = logging.getLogger(__name__)

# Slots a successful conversion of each output type writes to. Anything
# outside this set is cleared when such a conversion is committed.
_SLOTS_WRITTEN: dict[OutputType, frozenset[Slot]] = {
    OutputType.xml: frozenset({Slot.xml, Slot.final}),
    OutputType.html5: frozenset({Slot.final}),
    OutputType.xhtml: frozenset({Slot.final}),
    OutputType.xhtml5: frozenset({Slot.final}),
    OutputType.md2adoc: frozenset({Slot.source}),
}

_CONVERSION_SLOTS = frozenset({Slot.xml, Slot.final})


class StageResultStore:
    """Holds one value per artifact slot, the active output type, and versions.

    Setting a slot replaces it wholesale. Switching output type never
    clears anything: consumers ask :meth:`is_valid` instead of relying on
    emptiness, and physical clearing happens on the next successful
    conversion via :meth:`commit`.
    """

    def __init__(self, output_type: OutputType = OutputType.html5) -> None:
        self._output_type = output_type
        self._values: dict[Slot, Any] = {}
        self._versions: dict[Slot, int] = {slot: 0 for slot in Slot}
        self._produced_for: dict[Slot, OutputType] = {}
        self._requests = 0
        self._last_committed = 0

    # -- selection -------------------------------------------------------------

    @property
    def output_type(self) -> OutputType:
        return self._output_type

    def select(self, output_type: OutputType) -> bool:
        """Make ``output_type`` the active selection. Returns True if it changed."""
        if output_type is self._output_type:
            return False
        logger.debug("Output type %s -> %s", self._output_type.value, output_type.value)
        self._output_type = output_type
        return True

    # -- plain slot access -----------------------------------------------------

    def get(self, slot: Slot) -> Any:
        return self._values.get(slot)

    def has(self, slot: Slot) -> bool:
        value = self._values.get(slot)
        if value is None:
            return False
        if isinstance(value, (SourceDocument, Stylesheet)):
            return bool(value.content)
        return bool(value)

    def version(self, slot: Slot) -> int:
        return self._versions[slot]

    def set(self, slot: Slot, value: Any, output_type: OutputType | None = None) -> int:
        """Replace a slot's value, bump its version, and return the new version."""
        self._values[slot] = value
        self._versions[slot] += 1
        if output_type is not None:
            self._produced_for[slot] = output_type
        else:
            self._produced_for.pop(slot, None)
        return self._versions[slot]

    def clear(self, slot: Slot) -> None:
        self._values.pop(slot, None)
        self._produced_for.pop(slot, None)

    @property
    def source(self) -> SourceDocument | None:
        return self._values.get(Slot.source)

    @property
    def stylesheet(self) -> Stylesheet | None:
        return self._values.get(Slot.stylesheet)

    @property
    def xml(self) -> str | None:
        return self._values.get(Slot.xml)

    @property
    def final(self) -> str | None:
        return self._values.get(Slot.final)

    # -- request versioning ----------------------------------------------------

    def begin_request(self) -> int:
        """Reserve a monotonically increasing version for a conversion request."""
        self._requests += 1
        return self._requests

    @property
    def latest_request(self) -> int:
        return self._requests

    @property
    def last_committed(self) -> int:
        return self._last_committed

    def is_current(self, output_type: OutputType, version: int) -> bool:
        """Whether a result requested as ``(output_type, version)`` may be applied.

        A result is stale when the selection has moved to another output
        type, or when a newer request has already been committed.
        """
        if output_type is not self._output_type:
            return False
        return version > self._last_committed

    def commit(
        self,
        output_type: OutputType,
        version: int,
        values: dict[Slot, Any],
    ) -> bool:
        """Apply a finished conversion if it is still current.

        Slots the output type does not produce (among xml/final) are
        cleared at this point. Returns False and leaves the store untouched
        when the result is stale.
        """
        if not self.is_current(output_type, version):
            logger.debug(
                "Dropping stale %s result v%d (selected: %s)",
                output_type.value,
                version,
                self._output_type.value,
            )
            return False

        written = _SLOTS_WRITTEN[output_type]
        for slot in _CONVERSION_SLOTS - written:
            self.clear(slot)
        for slot, value in values.items():
            if value is None:
                self.clear(slot)
            else:
                self.set(slot, value, output_type)
        self._last_committed = version
        return True

    # -- validity --------------------------------------------------------------

    def is_valid(self, slot: Slot) -> bool:
        """Whether a slot's content may be trusted for the current selection."""
        if not self.has(slot):
            return False
        active = self._output_type
        if slot is Slot.source:
            return True
        if slot is Slot.stylesheet:
            return active.xslt_eligible
        if slot is Slot.xml:
            return active is OutputType.xml and self._produced_for.get(slot) is OutputType.xml
        # final
        return (
            active is not OutputType.md2adoc
            and self._produced_for.get(slot) is active
        )

    def snapshot(self) -> dict[str, Any]:
        """Current slots with their validity, for presentation."""
        return {
            slot.value: {
                "value": self._values.get(slot),
                "version": self._versions[slot],
                "valid": self.is_valid(slot),
            }
            for slot in Slot
        }
