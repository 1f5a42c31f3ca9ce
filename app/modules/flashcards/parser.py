"""Turn provider replies into question/answer items.

Replies are expected as JSON but models drift, so code fences, bare lists and
``Q:``/``A:`` free text are accepted as well. Items that do not yield both a
question and an answer are dropped and counted.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from app.modules.flashcards.models import ParsedItem, ParsedReply
from app.modules.flashcards.models.flashcards import QUESTION_KEYS

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
# Full tags may carry a number ("Question 1:"). Bare Q/A need a colon so
# answer text such as "A. Lincoln" is not read as a tag.
_QA_RE = re.compile(
    r"^\s*(?:\d+[.)]\s*)?(?:\*\*)?"
    r"(?:(?P<word>question|answer)\s*\d*|(?P<letter>q|a)\s*\d*(?=\s*(?:\*\*)?\s*:))"
    r"(?:\*\*)?\s*[:.)-]\s*(?P<text>.*)$",
    re.IGNORECASE,
)

_LIST_KEYS = ("flashcards", "cards", "items", "questions")


def _confidence(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        c = float(value)
    except (TypeError, ValueError):
        return None
    if c != c:  # NaN
        return None
    # Some models answer on a 0-100 scale
    if 1.0 < c <= 100.0:
        c = c / 100.0
    if c < 0.0 or c > 1.0:
        return None
    return c


def _load_json(text: str) -> Any:
    candidates = [m.group(1) for m in _FENCE_RE.finditer(text)]
    candidates.append(text)
    for cand in candidates:
        cand = cand.strip()
        if not cand:
            continue
        try:
            return json.loads(cand)
        except json.JSONDecodeError:
            pass
        # Leading/trailing chatter around a JSON object or list
        for open_, close in (("{", "}"), ("[", "]")):
            start, end = cand.find(open_), cand.rfind(close)
            if start != -1 and end > start:
                try:
                    return json.loads(cand[start : end + 1])
                except json.JSONDecodeError:
                    continue
    return None


def _from_json(data: Any) -> ParsedReply | None:
    confidence = None
    raw_items: Any = None
    if isinstance(data, list):
        raw_items = data
    elif isinstance(data, dict):
        confidence = _confidence(data.get("confidence"))
        for k in _LIST_KEYS:
            if isinstance(data.get(k), list):
                raw_items = data[k]
                break
        if raw_items is None and any(k in data for k in QUESTION_KEYS):
            raw_items = [data]
    if raw_items is None:
        return None

    items: list[ParsedItem] = []
    dropped = 0
    for raw in raw_items:
        try:
            items.append(ParsedItem.model_validate(raw))
        except ValidationError:
            dropped += 1
    return ParsedReply(items=items, confidence=confidence, dropped=dropped)


def _from_text(text: str) -> ParsedReply:
    items: list[ParsedItem] = []
    dropped = 0
    question: list[str] | None = None
    answer: list[str] | None = None
    current: list[str] | None = None

    def flush() -> None:
        nonlocal question, answer, dropped
        if question is None and answer is None:
            return
        q = " ".join(question or []).strip()
        a = " ".join(answer or []).strip()
        if q and a:
            items.append(ParsedItem(question=q, answer=a))
        else:
            dropped += 1
        question, answer = None, None

    for line in text.splitlines():
        m = _QA_RE.match(line)
        if m:
            tag = (m.group("word") or m.group("letter")).lower()
            body = m.group("text").strip().strip("*").strip()
            if tag.startswith("q"):
                flush()
                question = [body] if body else []
                current = question
            else:
                if answer is not None:
                    # Second answer for the same question: start a new pair
                    flush()
                    question = []
                answer = [body] if body else []
                current = answer
        elif line.strip() and current is not None:
            current.append(line.strip())
        elif not line.strip():
            current = None
    flush()
    return ParsedReply(items=items, dropped=dropped)


def parse_reply(text: str) -> ParsedReply:
    """Parse a provider reply. Never raises on malformed content."""
    if not text or not text.strip():
        return ParsedReply()
    data = _load_json(text)
    if data is not None:
        parsed = _from_json(data)
        if parsed is not None:
            return parsed
    return _from_text(text)
