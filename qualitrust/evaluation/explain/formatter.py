from __future__ import annotations

from typing import Iterable, List


def _clean_step(s: str) -> str:
    # steps are already newline/tab free via BreakdownBuilder; extra safety for stored text
    return str(s).replace("\r", "").replace("\n", " ").replace("\t", " ").strip()


def format_steps_bullets(steps: Iterable[str], bullet: str = "•") -> List[str]:
    """Printable view: one bullet per line item."""
    items = [_clean_step(s) for s in steps if str(s).strip()]
    return [f"{bullet} {s}" for s in items]


def format_notices_header(title: str, notices: list[dict], bullet: str = "•") -> str:
    """Title + bullet list, for warnings on top of the printed report."""
    if not notices:
        return ""
    lines = [title]
    for n in notices:
        msg = _clean_step(n.get("message") or "")
        code = _clean_step(n.get("code") or "")
        if code and msg:
            lines.append(f"{bullet} [{code}] {msg}")
        elif msg:
            lines.append(f"{bullet} {msg}")
        elif code:
            lines.append(f"{bullet} [{code}]")
    return "\n".join(lines)
