from __future__ import annotations

from typing import Any, Dict, List, Optional

from rich.markup import escape

from .services.models import StatusSnapshot


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return "  --"
    return f"{max(0.0, min(100.0, value)):>3.0f}%"


def format_progress_line(snapshot: StatusSnapshot) -> str:
    """One line of rich markup describing a polled status."""
    progress = snapshot.progress
    percent = format_percent(progress.percent if progress else None)
    message = (progress.message if progress else None) or ""
    style = {"complete": "green", "failed": "red"}.get(snapshot.status, "cyan")
    line = f"[{style}]{snapshot.status:<10}[/{style}] {percent}"
    if message:
        line += f"  {escape(message)}"
    return line


def _accessibility_block(result: Dict[str, Any]) -> Dict[str, Any]:
    # Snapshot results nest the engine payload; WCAG job results are flat.
    block = result.get("accessibility")
    return block if isinstance(block, dict) else result


def summarize_result(result: Any) -> List[str]:
    """Short plain-text lines describing a finished scan."""
    if not isinstance(result, dict):
        return [f"Scan finished with a {type(result).__name__} result."]

    block = _accessibility_block(result)
    lines: List[str] = []

    issues = block.get("issues")
    if isinstance(issues, list):
        lines.append(f"Issues found: {len(issues)}")
        impacts: Dict[str, int] = {}
        for issue in issues:
            if isinstance(issue, dict):
                key = str(issue.get("impact") or "unknown").lower()
                impacts[key] = impacts.get(key, 0) + 1
        for key in ("critical", "serious", "moderate", "minor", "unknown"):
            if impacts.get(key):
                lines.append(f"  {key}: {impacts[key]}")

    score = block.get("score")
    if score is None and isinstance(result.get("summary"), dict):
        score = result["summary"].get("accessibilityScore")
    if score is not None:
        lines.append(f"Accessibility score: {score}")

    pages = block.get("pages")
    if isinstance(pages, list) and len(pages) > 1:
        lines.append(f"Pages scanned: {len(pages)}")

    return lines or ["Scan finished."]
