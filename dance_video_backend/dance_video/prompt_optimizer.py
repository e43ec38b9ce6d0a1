"""Shrinks synthesized prompts to fit a provider's length budget.

The transform is lossy and order-sensitive: filler words go first, then
repeated clauses, then trailing clauses. The leading clause carries the
subject description and is never dropped.
"""
import logging
import re
from typing import List

logger = logging.getLogger(__name__)

CLAUSE_SEPARATOR = ", "

FILLER_TERMS = [
    "very", "really", "extremely", "highly", "incredibly", "super", "truly",
    "absolutely", "amazingly", "stunningly", "beautifully", "perfectly",
    "exceptionally", "remarkably", "ultra", "hyper",
    "high quality", "best quality", "top quality", "masterpiece",
    "award winning", "award-winning", "breathtaking", "stunning",
    "gorgeous", "beautiful", "amazing", "incredible", "impressive",
    "professional quality", "ultra detailed", "highly detailed",
]

# Longest phrases first so "highly detailed" wins over "highly"
_FILLER_RE = re.compile(
    r"(?<![\w-])(?:"
    + "|".join(
        r"\s+".join(re.escape(word) for word in term.split())
        for term in sorted(FILLER_TERMS, key=len, reverse=True)
    )
    + r")(?![\w-])(?:\s*,)?",
    re.IGNORECASE,
)


def normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _strip_fillers(text: str) -> str:
    # Removing one term can bring two others together, so run to a fixpoint
    while True:
        stripped = _FILLER_RE.sub("", text)
        if stripped == text:
            return text
        text = stripped


def _tidy(text: str) -> str:
    text = normalize(text)
    text = re.sub(r"\s+,", ",", text)
    text = re.sub(r",(?:\s*,)+", ",", text)
    return text.strip(" ,")


def _dedupe_clauses(text: str) -> List[str]:
    seen = set()
    clauses = []
    for clause in text.split(CLAUSE_SEPARATOR):
        clause = clause.strip(" ,")
        if not clause:
            continue
        key = clause.lower()
        if key in seen:
            continue
        seen.add(key)
        clauses.append(clause)
    return clauses


def _truncate(text: str, max_length: int) -> str:
    if max_length <= 0:
        return ""
    if max_length <= 3:
        return text[:max_length].strip()
    slice_length = max_length - 3
    truncated = text[:slice_length]
    last_space = truncated.rfind(" ")
    safe = truncated[:last_space] if last_space > 0 and last_space > slice_length - 40 else truncated
    return f"{safe.rstrip(' ,')}..."


def optimize_prompt(prompt: str, max_length: int) -> str:
    """Return ``prompt`` reduced to at most ``max_length`` characters.

    Prompts already within budget are only whitespace-normalized. Applying the
    function to its own output returns the output unchanged.
    """
    normalized = normalize(prompt)
    if len(normalized) <= max_length:
        return normalized

    clauses = _dedupe_clauses(_tidy(_strip_fillers(normalized)))
    if not clauses:
        return ""

    result = clauses[0]
    if len(result) > max_length:
        logger.warning(f"Leading prompt clause is {len(result)} chars, cutting to {max_length}")
        return _truncate(result, max_length)

    kept = 1
    for clause in clauses[1:]:
        candidate = f"{result}{CLAUSE_SEPARATOR}{clause}"
        if len(candidate) > max_length:
            break
        result = candidate
        kept += 1

    if kept < len(clauses):
        logger.info(f"Prompt optimized from {len(normalized)} to {len(result)} chars, dropped {len(clauses) - kept} clauses")
    return result
