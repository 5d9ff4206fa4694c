# backend/carefind/services/text.py
from __future__ import annotations
import re, unicodedata
from typing import List, Optional

MIN_TOKEN_LENGTH = 2
_COMBINING = re.compile("[\u0300-\u036f]")
_WS = re.compile(r"\s+")


def normalize(s: Optional[str]) -> str:
    """Lower-case, strip Vietnamese diacritics (đ -> d) and collapse whitespace."""
    if not s:
        return ""
    t = unicodedata.normalize("NFD", s.lower())
    t = _COMBINING.sub("", t).replace("đ", "d")
    return _WS.sub(" ", t).strip()


def tokenize(s: Optional[str]) -> List[str]:
    # order and duplicates are kept: the scorer counts every occurrence
    return [w for w in normalize(s).split(" ") if len(w) >= MIN_TOKEN_LENGTH]
