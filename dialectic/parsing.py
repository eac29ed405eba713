"""Pull a JSON object out of free-form model output."""

import re

_OPENING_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\s*```$")


def extract_json_object(text: str) -> str | None:
    """Return the first balanced {...} block in text, ignoring markdown fences.

    Braces inside string values are counted too. An unbalanced one yields a
    block json.loads rejects, and callers fall back.
    """
    cleaned = _CLOSING_FENCE.sub("", _OPENING_FENCE.sub("", text.strip())).strip()

    depth = 0
    start = -1
    for i, ch in enumerate(cleaned):
        if ch == "{":
            if start == -1:
                start = i
            depth += 1
        elif ch == "}" and start != -1:
            depth -= 1
            if depth == 0:
                return cleaned[start:i + 1]
    return None
