"""
Checklist markup parser.

Turns launch playbook markup into ordered phases and tagged checklist items.

Markup:
    # PHASE 1: SETUP          level-1 heading opens a phase (prefix optional)
    ## 1.1 Accounts           level-2 heading sets the section (number optional)
    - [ ] Register domain [CRITICAL] [DUE:LAUNCH-30] [DAILY]

Parsing is two pure steps: ``scan_lines`` emits one immutable event per
meaningful line, and ``parse_document`` folds those events with a reducer.
Nothing here touches the database.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from functools import reduce
from typing import Iterable, Iterator, Union

from launch_engine.core.exceptions import InvalidDocumentError

_PHASE_RE = re.compile(r"^#\s+(?:PHASE\s*\d*:?\s*)?(.+)$", re.IGNORECASE)
_SECTION_RE = re.compile(r"^##\s+(?:\d+\.\d+\s+)?(.+)$")
_ITEM_RE = re.compile(r"^-\s*\[\s*\]\s*(.+)$")
_TOKEN_RE = re.compile(r"\[([^\]]+)\]")
_TOKEN_STRIP_RE = re.compile(r"\s*\[[^\]]+\]")
_DUE_RE = re.compile(r"^DUE:LAUNCH([+-]\d+)$", re.IGNORECASE)

_RECURRENCE_TOKENS = {"DAILY": "daily", "WEEKLY": "weekly"}


# ── Line events ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PhaseHeader:
    name: str
    line_no: int


@dataclass(frozen=True)
class SectionHeader:
    name: str
    line_no: int


@dataclass(frozen=True)
class ItemLine:
    text: str
    tags: tuple[str, ...]
    due_offset: int | None
    recurrence: str | None
    line_no: int


LineEvent = Union[PhaseHeader, SectionHeader, ItemLine]


# ── Parse results ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ParsedItem:
    """A checklist item as written in one document."""

    phase: str
    section: str | None
    item_text: str
    sort_order: int
    tags: tuple[str, ...] = ()
    due_offset: int | None = None
    recurrence: str | None = None

    def to_dict(self) -> dict:
        return {
            "phase": self.phase,
            "section": self.section,
            "item_text": self.item_text,
            "sort_order": self.sort_order,
            "tags": list(self.tags),
            "due_offset": self.due_offset,
            "recurrence": self.recurrence,
        }


@dataclass(frozen=True)
class ParsedDocument:
    phases: tuple[str, ...]
    items: tuple[ParsedItem, ...]

    def to_dict(self) -> dict:
        return {
            "phases": list(self.phases),
            "items": [i.to_dict() for i in self.items],
        }


@dataclass(frozen=True)
class _ParseState:
    phases: tuple[str, ...] = ()
    items: tuple[ParsedItem, ...] = ()
    phase: str | None = None
    section: str | None = None


# ── Scanner ──────────────────────────────────────────────────────────────────


def split_tokens(raw: str) -> tuple[str, tuple[str, ...], int | None, str | None]:
    """Pull bracketed tokens out of item text.

    Returns (clean_text, generic_tags, due_offset, recurrence). Unknown tokens
    are kept as upper-cased generic tags; a repeated DUE or recurrence token
    overrides the earlier one.
    """
    tags: list[str] = []
    due_offset = None
    recurrence = None
    for match in _TOKEN_RE.finditer(raw):
        token = match.group(1)
        due = _DUE_RE.match(token)
        if due:
            due_offset = int(due.group(1))
            continue
        upper = token.upper()
        if upper in _RECURRENCE_TOKENS:
            recurrence = _RECURRENCE_TOKENS[upper]
            continue
        if upper not in tags:
            tags.append(upper)
    text = _TOKEN_STRIP_RE.sub("", raw).strip()
    return text, tuple(tags), due_offset, recurrence


def scan_lines(content: str) -> Iterator[LineEvent]:
    """Yield a typed event for every phase, section or open-item line."""
    for line_no, line in enumerate(content.splitlines(), start=1):
        if not line.startswith("##"):
            phase = _PHASE_RE.match(line)
            if phase:
                name = phase.group(1).strip()
                if name:
                    yield PhaseHeader(name, line_no)
                continue

        section = _SECTION_RE.match(line)
        if section:
            name = section.group(1).strip()
            if name:
                yield SectionHeader(name, line_no)
            continue

        item = _ITEM_RE.match(line)
        if item:
            text, tags, due_offset, recurrence = split_tokens(item.group(1).strip())
            yield ItemLine(text, tags, due_offset, recurrence, line_no)


# ── Reducer ──────────────────────────────────────────────────────────────────


def _reduce(state: _ParseState, event: LineEvent) -> _ParseState:
    if isinstance(event, PhaseHeader):
        phases = state.phases if event.name in state.phases else state.phases + (event.name,)
        return replace(state, phases=phases, phase=event.name, section=None)

    if isinstance(event, SectionHeader):
        return replace(state, section=event.name)

    # Items before the first phase header have nowhere to live.
    if state.phase is None:
        return state

    item = ParsedItem(
        phase=state.phase,
        section=state.section,
        item_text=event.text,
        sort_order=len(state.items),
        tags=event.tags,
        due_offset=event.due_offset,
        recurrence=event.recurrence,
    )
    return replace(state, items=state.items + (item,))


def fold_events(events: Iterable[LineEvent]) -> ParsedDocument:
    state = reduce(_reduce, events, _ParseState())
    return ParsedDocument(phases=state.phases, items=state.items)


def parse_document(content: str) -> ParsedDocument:
    """Parse checklist markup.

    Raises:
        InvalidDocumentError: if the markup contains no phase headings.
    """
    parsed = fold_events(scan_lines(content or ""))
    if not parsed.phases:
        raise InvalidDocumentError()
    return parsed


# ── Rendering ────────────────────────────────────────────────────────────────


def _render_item(item: ParsedItem) -> str:
    # Tokens go first: a stray "[" in the text must not swallow a later token.
    parts = [f"[{tag}]" for tag in item.tags]
    if item.due_offset is not None:
        parts.append(f"[DUE:LAUNCH{item.due_offset:+d}]")
    if item.recurrence:
        parts.append(f"[{item.recurrence.upper()}]")
    if item.item_text:
        parts.append(item.item_text)
    return "- [ ] " + " ".join(parts)


def render_markup(phases: Iterable[str], items: Iterable[ParsedItem]) -> str:
    """Serialise phases and items back into checklist markup.

    Headings always carry their ``PHASE n:`` / ``n.n`` prefixes so names that
    themselves look like prefixes survive a re-parse. Phases without items are
    still emitted, in order, so the phase list round-trips too.
    """
    phases = list(phases)
    phase_no = {name: i + 1 for i, name in enumerate(phases)}
    lines: list[str] = []
    emitted: set[str] = set()
    current_phase = None
    current_section = None
    section_no = 0

    def open_phase(name):
        nonlocal current_phase, current_section, section_no
        lines.append(f"# PHASE {phase_no[name]}: {name}")
        emitted.add(name)
        current_phase, current_section, section_no = name, None, 0

    for item in sorted(items, key=lambda i: i.sort_order):
        if item.phase not in phase_no:
            phase_no[item.phase] = len(phase_no) + 1
            phases.append(item.phase)
        # Emit item-less phases that come earlier in first-seen order.
        for name in phases[: phases.index(item.phase)]:
            if name not in emitted:
                open_phase(name)
        if item.phase != current_phase or (item.section is None and current_section is not None):
            open_phase(item.phase)
        if item.section is not None and item.section != current_section:
            section_no += 1
            lines.append(f"## {phase_no[item.phase]}.{section_no} {item.section}")
            current_section = item.section
        lines.append(_render_item(item))

    for name in phases:
        if name not in emitted:
            open_phase(name)

    return "\n".join(lines) + "\n"
