# -*- coding: utf-8 -*-
"""iCalendar codec: VJOURNAL components <-> :class:`Entry` objects.

The grammar itself is handled by the ``icalendar`` library; this module
only maps the journal field set onto components and back. Parsing is
tolerant: a document that cannot be read yields a single ParseError, and
a VJOURNAL that cannot be converted is skipped with a ParseError.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional, Sequence
import base64
import binascii
import logging
from urllib.parse import unquote_to_bytes

from icalendar import Calendar, Journal as VJournal
from icalendar.cal import Component

from .errors import ParseError
from .models import Attachment, Entry, generate_uid, split_categories, utc_now

logger = logging.getLogger(__name__)

PRODID = "-//icsjournal//icsjournal//EN"
DEFAULT_MIME = "application/octet-stream"


@dataclass
class ParseResult:
    """Entries, preserved foreign components and errors of one document."""

    entries: List[Entry] = field(default_factory=list)
    others: List[Component] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def parse(text: str) -> List[Entry]:
    """Parse calendar *text* into entries (loose mode)."""
    return parse_calendar(text).entries


def serialize(entries: Sequence[Entry], others: Iterable[Component] = ()) -> str:
    """Serialize *entries* (plus any preserved components) to calendar text."""
    cal = Calendar()
    cal.add("PRODID", PRODID)
    cal.add("VERSION", "2.0")
    for entry in entries:
        cal.add_component(to_component(entry))
    for comp in others:
        cal.add_component(comp)
    return cal.to_ical().decode("utf-8")


def parse_calendar(text: str, strict: bool = False, source: Optional[str] = None) -> ParseResult:
    """Parse *text*, collecting errors instead of raising."""
    result = ParseResult()
    if not text or not text.strip():
        return result
    try:
        components = Calendar.from_ical(text, multiple=True)
    except (ValueError, IndexError, KeyError) as exc:
        result.errors.append(ParseError(f"unreadable calendar data: {exc}", source))
        return result

    for comp in _top_level(components):
        if comp.name != "VJOURNAL":
            result.others.append(comp)
            continue
        problems = [ParseError(_describe(err), source) for err in getattr(comp, "errors", None) or []]
        if strict and problems:
            result.errors.extend(problems)
            continue
        try:
            entry = from_component(comp, problems, source)
        except (ValueError, TypeError, AttributeError) as exc:
            result.errors.append(ParseError(f"skipped VJOURNAL: {exc}", source))
            continue
        if strict and entry.start is None:
            result.errors.append(ParseError(f"VJOURNAL {entry.uid} has no DTSTART", source))
            continue
        result.errors.extend(problems)
        result.entries.append(entry)
    return result


# ---------------------------------------------------------------------
# Component <-> Entry
# ---------------------------------------------------------------------

def to_component(entry: Entry) -> VJournal:
    comp = VJournal()
    comp.add("UID", entry.uid)
    comp.add("DTSTAMP", _storable(entry.last_modified or entry.created or utc_now()))
    if entry.start is not None:
        comp.add("DTSTART", _storable(entry.start))
    if entry.summary:
        comp.add("SUMMARY", entry.summary)
    if entry.description:
        comp.add("DESCRIPTION", entry.description)
    cats = entry.category_list()
    if cats:
        comp.add("CATEGORIES", cats)
    comp.add("SEQUENCE", entry.sequence)
    if entry.created is not None:
        comp.add("CREATED", _storable(entry.created))
    if entry.last_modified is not None:
        comp.add("LAST-MODIFIED", _storable(entry.last_modified))
    for att in entry.attachments:
        payload = base64.b64encode(att.data).decode("ascii")
        comp.add(
            "ATTACH",
            f"data:{att.mime_type};base64,{payload}",
            parameters={"FMTTYPE": att.mime_type, "X-FILENAME": att.filename},
        )
    return comp


def from_component(comp: Component, problems: List[ParseError], source: Optional[str] = None) -> Entry:
    uid = _text(comp.get("UID"))
    if not uid:
        uid = generate_uid()
        logger.debug("VJOURNAL without UID in %s; assigned %s", source, uid)
    attachments = []
    for value in _values(comp.get("ATTACH")):
        try:
            attachments.append(_attachment(value))
        except ValueError as exc:
            problems.append(ParseError(f"dropped attachment of {uid}: {exc}", source))
    return Entry(
        uid=uid,
        start=_datetime(comp.get("DTSTART")),
        summary=_text(comp.get("SUMMARY")),
        description=_text(comp.get("DESCRIPTION")),
        categories=_categories(comp.get("CATEGORIES")),
        sequence=_int(comp.get("SEQUENCE")),
        last_modified=_datetime(comp.get("LAST-MODIFIED")),
        created=_datetime(comp.get("CREATED")),
        attachments=attachments,
    )


# ---------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------

def _top_level(components: Iterable[Component]) -> Iterable[Component]:
    for comp in components:
        if comp.name == "VCALENDAR":
            yield from comp.subcomponents
        else:
            yield comp


def _describe(err) -> str:
    if isinstance(err, tuple) and len(err) == 2:
        return f"bad {err[0]} property: {err[1]}"
    return str(err)


def _values(value) -> list:
    if value is None:
        return []
    return list(value) if isinstance(value, list) else [value]


def _first(value):
    values = _values(value)
    return values[0] if values else None


def _text(value) -> str:
    value = _first(value)
    return "" if value is None else str(value)


def _int(value) -> int:
    value = _first(value)
    return 0 if value is None else int(value)


def _storable(dt: datetime) -> datetime:
    """Fixed-offset times become UTC; only named zones can be written with a TZID."""
    tz = dt.tzinfo
    if tz is None or getattr(tz, "key", None) or getattr(tz, "zone", None):
        return dt
    return dt.astimezone(timezone.utc)


def _datetime(value) -> Optional[datetime]:
    value = _first(value)
    if value is None:
        return None
    dt = getattr(value, "dt", value)
    if isinstance(dt, datetime):
        return dt
    if isinstance(dt, date):
        return datetime.combine(dt, time())
    raise ValueError(f"unsupported date value {value!r}")


def _categories(value) -> str:
    names: List[str] = []
    for item in _values(value):
        cats = getattr(item, "cats", None)
        if cats is None:
            names.extend(split_categories(str(item)))
        else:
            names.extend(str(c).strip() for c in cats if str(c).strip())
    return ", ".join(names)


def _attachment(value) -> Attachment:
    params = getattr(value, "params", {}) or {}
    filename = str(params.get("X-FILENAME") or params.get("FILENAME") or "")
    mime = str(params.get("FMTTYPE") or DEFAULT_MIME)
    raw = getattr(value, "obj", value)
    if isinstance(raw, bytes):
        return Attachment(filename=filename, mime_type=mime, data=raw)
    text = str(raw)
    try:
        if text.startswith("data:"):
            header, _, payload = text[5:].partition(",")
            parts = header.split(";")
            if parts[0]:
                mime = parts[0]
            if "base64" in parts[1:]:
                data = base64.b64decode(payload, validate=True)
            else:
                data = unquote_to_bytes(payload)
        elif str(params.get("ENCODING", "")).upper() == "BASE64":
            data = base64.b64decode(text, validate=True)
        else:
            raise ValueError(f"external attachment {text!r} is not supported")
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 payload: {exc}") from exc
    return Attachment(filename=filename, mime_type=mime, data=data)
