"""Export utilities: render a stored Result as JSON or plain text.

Keep the API simple: `export_bytes` accepts a Result and returns
(bytes, filename, content_type). PDF is not rendered.
"""
from __future__ import annotations
import html
import json
import re
from typing import Any, Dict, Tuple

from bridge.db_models_documents import Result
from bridge.enums import ExportFormat
from bridge.errors import ExportNotImplementedError

_TAG_RE = re.compile(r"<[^>]*>")
_BLANK_RUN_RE = re.compile(r"\n[ \t]*(?:\n[ \t]*)+")


def result_to_dict(result: Result) -> Dict[str, Any]:
    """Structured export body; `summary` is returned exactly as persisted."""
    return {
        "translation": result.translation_html,
        "summary": result.summary,
        "metadata": {
            "detected_language": result.detected_language,
            "target_language": result.target_language,
            "domain": result.domain.value if result.domain else None,
            "confidence": result.confidence,
        },
    }


def strip_markup(markup: str) -> str:
    """Replace tags with line breaks, unescape entities and collapse blank runs."""
    text = html.unescape(_TAG_RE.sub("\n", markup or ""))
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return "\n".join(line.strip() for line in text.strip().splitlines())


def result_to_text(result: Result) -> str:
    summary = result.summary or {}
    parts = [
        "TRANSLATION",
        "===========",
        strip_markup(result.translation_html),
        "",
        "SUMMARY",
        "=======",
        f"Purpose: {summary.get('purpose', '')}",
        "",
        "Actions:",
    ]
    parts.extend(f"{i}. {action}" for i, action in enumerate(summary.get("actions") or [], start=1))

    if summary.get("due_dates"):
        parts.extend(["", "Due Dates:"])
        parts.extend(summary["due_dates"])
    if summary.get("costs"):
        parts.extend(["", "Costs:"])
        parts.extend(summary["costs"])

    return "\n".join(parts).strip() + "\n"


def export_bytes(result: Result, fmt: ExportFormat) -> Tuple[bytes, str, str]:
    """Return (bytes, filename, content_type) for the requested format.

    Raises:
        ExportNotImplementedError: for PDF
    """
    base_name = f"translation-{result.document_id}"
    if fmt is ExportFormat.JSON:
        body = json.dumps(result_to_dict(result), ensure_ascii=False, indent=2)
        return body.encode("utf-8"), f"{base_name}.json", "application/json"
    if fmt is ExportFormat.TXT:
        return result_to_text(result).encode("utf-8"), f"{base_name}.txt", "text/plain; charset=utf-8"
    if fmt is ExportFormat.PDF:
        raise ExportNotImplementedError("PDF export not yet implemented", details={"format": fmt.value})
    raise ValueError(f"Unsupported export format: {fmt}")
