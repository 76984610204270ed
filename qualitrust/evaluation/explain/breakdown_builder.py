from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterator, List, Optional


# -----------------------------
# Public contract (API)
# -----------------------------


class BreakdownKind(str, Enum):
    DISCOUNT = "DISCOUNT"
    CHECK = "CHECK"


class CheckStatus(str, Enum):
    CAPPED = "CAPPED"


_CODE_RE = re.compile(r"^[A-Z][A-Z0-9_]{2,63}$")  # e.g. GENERAL_COMPLIANCE, SCHEDULE_DELAY


def _validate_code(code: str) -> str:
    if not isinstance(code, str):
        raise TypeError("breakdown code must be str")
    code = code.strip()
    if not _CODE_RE.match(code):
        raise ValueError(
            f"invalid breakdown code '{code}'. Expected UPPER_SNAKE (3-64 chars), e.g. SCHEDULE_DELAY"
        )
    return code


def _validate_message(message: str) -> str:
    if not isinstance(message, str):
        raise TypeError("breakdown message must be str")
    msg = message.strip()
    if not msg:
        raise ValueError("breakdown message must be non-empty")
    # render-safe for UI / printed report
    if "\n" in msg or "\r" in msg or "\t" in msg:
        raise ValueError("breakdown message may not contain newlines or tabs")
    if len(msg) > 240:
        raise ValueError("breakdown message too long (max 240 chars)")
    return msg


@dataclass(frozen=True)
class BreakdownEntry:
    seq: int
    kind: BreakdownKind
    code: str
    message: str
    pct: Optional[Decimal] = None
    status: Optional[CheckStatus] = None


@dataclass
class Breakdown:
    """
    Line items of one category's discount. Rules write into this object,
    consumers read rendered strings (iteration yields strings).
    """

    _entries: List[BreakdownEntry] = field(default_factory=list)
    _seq: int = 0

    @property
    def entries(self) -> List[BreakdownEntry]:
        return list(self._entries)

    def as_strings(self) -> List[str]:
        return BreakdownBuilder().build(self)

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_strings())

    def __len__(self) -> int:
        return len(self._entries)

    def codes(self) -> List[str]:
        return [e.code for e in self._entries]

    # --- Write API (rules call these) ---

    def add_discount(self, code: str, message: str, pct: Decimal) -> None:
        self._append(kind=BreakdownKind.DISCOUNT, code=code, message=message, pct=pct, status=None)

    def add_check(self, code: str, message: str, status: str | CheckStatus) -> None:
        self._append(kind=BreakdownKind.CHECK, code=code, message=message, pct=None, status=CheckStatus(status))

    def _append(
        self,
        *,
        kind: BreakdownKind,
        code: str,
        message: str,
        pct: Optional[Decimal],
        status: Optional[CheckStatus],
    ) -> None:
        c = _validate_code(code)
        m = _validate_message(message)
        if kind == BreakdownKind.CHECK and status is None:
            raise ValueError("CHECK entry requires status")
        if kind == BreakdownKind.DISCOUNT and pct is None:
            raise ValueError("DISCOUNT entry requires pct")

        self._seq += 1
        self._entries.append(
            BreakdownEntry(seq=self._seq, kind=kind, code=c, message=m, pct=pct, status=status)
        )


# -----------------------------
# Render / Output builder
# -----------------------------


class BreakdownBuilder:
    """Breakdown -> list[str] in insertion order."""

    def build(self, breakdown: Breakdown) -> List[str]:
        if not isinstance(breakdown, Breakdown):
            raise TypeError("BreakdownBuilder.build expects a Breakdown instance")

        entries = sorted(breakdown.entries, key=lambda e: e.seq)
        return [self._render(e) for e in entries]

    def _render(self, e: BreakdownEntry) -> str:
        if e.kind == BreakdownKind.DISCOUNT:
            assert e.pct is not None
            return f"{e.message}: -{_pct_text(e.pct)}%"

        assert e.kind == BreakdownKind.CHECK and e.status is not None
        return f"{e.status.value}: {e.message}"


def _pct_text(pct: Decimal) -> str:
    # 2.0 -> "2", 0.40 -> "0.4"
    text = format(pct.normalize(), "f")
    return text
