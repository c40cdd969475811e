import json
import re
import unicodedata
from typing import Any, Dict, List, Optional


def normalize_text(text: str) -> str:
    """Purpose: Normalize free-form text for stable matching across the engine.
    Inputs/Outputs: Input is a raw string; output is a lowercase string with
        diacritics removed and whitespace collapsed.
    Side Effects / State: None; pure function.
    Dependencies: Uses unicodedata and regex; called by matcher and intent classifier.
    Failure Modes: Returns an empty string when input is falsy.
    If Removed: Matching degrades on accented or oddly spaced queries ("Légo  Technic").
    Testing Notes: Validate accents are stripped and whitespace runs collapse to one space.
    """
    # Lowercase, strip combining marks, then collapse whitespace.
    if not text:
        return ""
    lowered = text.lower()
    decomposed = unicodedata.normalize("NFD", lowered)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return re.sub(r"\s+", " ", stripped).strip()


def tokenize(text: str) -> List[str]:
    """Split normalized text into whitespace tokens."""
    normalized = normalize_text(text)
    return normalized.split() if normalized else []


def load_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Purpose: Decode the first JSON object embedded in a tool-call argument string.
    Inputs/Outputs: Input is raw text; output is the decoded dict or None.
    Side Effects / State: None; pure function.
    Dependencies: Uses json.JSONDecoder.raw_decode; called by the tool dispatcher.
    Failure Modes: Returns None when no "{" is present, the object is malformed, or the
        decoded value is not an object.
    If Removed: Arguments wrapped in prose ("args: {...} thanks") cannot be dispatched.
    Testing Notes: Leading prose, trailing prose, arrays, and a truncated object.
    """
    # Decode from the first brace; anything after the object is ignored.
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None
    try:
        data, _ = json.JSONDecoder().raw_decode(text, start)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
