"""Turn a free-form oracle reply into an ordered list of subtask strings.

Three shapes are recognised, tried in order:

1. a JSON array of strings,
2. a JSON object with a field holding an array of strings,
3. plain text with ``-`` / ``*`` bulleted lines (at most ``MAX_BULLETS``). The
   marker must be followed by whitespace, so ``**bold**`` headings are skipped.

Each decoder returns ``None`` when the reply is not its shape.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, List, Optional

from .errors import GenerationError

MAX_BULLETS = 5

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)
_BULLET_RE = re.compile(r"^[-*](?:\s+|$)")


def _load_json(raw: str) -> Any:
    s = raw.strip()
    m = _FENCE_RE.match(s)
    if m:
        s = m.group(1).strip()
    try:
        return json.loads(s)
    except ValueError:
        return None


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        return None
    items = [x.strip() for x in value if x.strip()]
    return items or None


def decode_sequence(raw: str) -> Optional[List[str]]:
    return _string_list(_load_json(raw))


def decode_field(raw: str, preferred: str = "subtasks") -> Optional[List[str]]:
    value = _load_json(raw)
    if not isinstance(value, dict):
        return None
    found = _string_list(value.get(preferred))
    if found:
        return found
    for v in value.values():
        found = _string_list(v)
        if found:
            return found
    return None


def scan_bullets(raw: str, limit: int = MAX_BULLETS) -> Optional[List[str]]:
    out = []
    for line in raw.splitlines():
        line = line.strip()
        m = _BULLET_RE.match(line)
        if not m:
            continue
        item = line[m.end():].strip()
        if item:
            out.append(item)
    return out[:limit] or None


DECODERS: List[Callable[[str], Optional[List[str]]]] = [decode_sequence, decode_field, scan_bullets]


def parse_subtasks(raw: str) -> List[str]:
    for decode in DECODERS:
        result = decode(raw or "")
        if result:
            return result
    raise GenerationError("AI failed to generate subtasks.")
