"""Which artifacts are relevant for a given output type."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from adocview.pipeline.models import OutputType, Slot


class ViewState(BaseModel):
    """Panels presentation should show for one output type."""

    model_config = ConfigDict(frozen=True)

    output_type: OutputType
    show_source: bool = True
    show_xml: bool = False
    show_stylesheet: bool = False
    show_final: bool = False
    final_label: str | None = None

    @property
    def visible_slots(self) -> list[Slot]:
        flags = [
            (Slot.source, self.show_source),
            (Slot.xml, self.show_xml),
            (Slot.stylesheet, self.show_stylesheet),
            (Slot.final, self.show_final),
        ]
        return [slot for slot, shown in flags if shown]


_FINAL_LABELS: dict[OutputType, str] = {
    OutputType.xml: "HTML (XSLT)",
    OutputType.html5: "HTML5",
    OutputType.xhtml: "XHTML",
    OutputType.xhtml5: "XHTML5",
}


def view_state(output_type: OutputType) -> ViewState:
    """Derive the visible panels for ``output_type``.

    md2adoc output replaces the source, so only the source panel is shown.
    """
    if output_type.replaces_source:
        return ViewState(output_type=output_type)
    return ViewState(
        output_type=output_type,
        show_xml=output_type is OutputType.xml,
        show_stylesheet=output_type.xslt_eligible,
        show_final=True,
        final_label=_FINAL_LABELS[output_type],
    )
