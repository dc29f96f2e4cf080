"""
Human-readable summary panel for extracted metadata.

The panel is injected into the live page before serialization, so the
returned HTML documents its own metadata: a field table, the description
and a JSON dump of the same fields.
"""
import html
import json
from typing import Dict

SUMMARY_PANEL_ID = "page-renderer-summary"
SUMMARY_JSON_ID = "page-renderer-metadata"

FIELD_LABELS = (
    ("title", "Title"),
    ("channel", "Channel"),
    ("published", "Published"),
    ("viewCount", "Views"),
    ("duration", "Duration"),
    ("keywords", "Keywords"),
)


def metadata_json(metadata: Dict[str, str]) -> str:
    # "</" would close the surrounding <script> element early.
    return json.dumps(metadata, ensure_ascii=False, indent=2).replace("</", "<\\/")


def build_summary_panel(metadata: Dict[str, str]) -> str:
    """Returns the panel's outer HTML for `metadata`."""
    rows = "".join(
        f"<tr><th>{label}</th><td>{html.escape(metadata.get(field) or '')}</td></tr>"
        for field, label in FIELD_LABELS
    )
    description = html.escape(metadata.get("description") or "").replace("\n", "<br>")
    return (
        f'<section id="{SUMMARY_PANEL_ID}" data-page-renderer-summary="true">'
        f"<h2>Extracted video metadata</h2>"
        f"<table>{rows}</table>"
        f'<div class="page-renderer-description">{description}</div>'
        f'<script type="application/json" id="{SUMMARY_JSON_ID}">{metadata_json(metadata)}</script>'
        f"</section>"
    )
