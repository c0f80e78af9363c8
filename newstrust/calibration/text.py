"""Text helpers used to prepare article text and spot claim patterns."""

import html
import re
import unicodedata
from typing import Iterable

_ANCHOR_RE = re.compile(
    r"<a\b[^>]*href\s*=\s*['\"]([^'\"]+)['\"][^>]*>(.*?)</a>",
    re.IGNORECASE | re.DOTALL,
)
_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,;:!?])")
_READ_MORE_RE = re.compile(r"\bleer\b", re.IGNORECASE)
_LINK_RE = re.compile(r"<a\s+[^>]*href\s*=", re.IGNORECASE)

# Patterns match accent-stripped, lower-cased text
_STRONG_CLAIM_RE = re.compile(
    r"(?<!\w)(siempre|nunca|todo esta|demuestra|100%|sin duda|definitivo|definitiva"
    r"|urgente|escandalo|bomba|inminente)(?!\w)"
)
_HIGH_RISK_CLAIM_RE = re.compile(
    r"(?<!\w)(cura|tratamiento definitivo|fraude electoral|colapso bancario|quiebra"
    r"|ataque terrorista|amenaza inminente|murio|murieron|fallecio|fallecieron"
    r"|guerra|violencia)(?!\w)"
)
_ATTRIBUTION_RE = re.compile(
    r"(?<!\w)(segun|according to|de acuerdo con|afirmo|informo|reporto|ministerio"
    r"|universidad|instituto|documento|informe)(?!\w)|https?://\S+|www\.\S+"
)
_EXTREMIST_RE = re.compile(
    r"(?<!\w)(deshumaniza\w*|plaga|extermin\w*|aniquil\w*|eliminar|matar|violento"
    r"|enemigo interno|limpieza|subhuman|vermin|kill|destroy|crush|siempre|nunca"
    r"|sin excepcion)(?!\w)"
)
_INSUFFICIENT_RE = re.compile(
    r"(?<!\w)(insuficiente|insuficientes|sin evidencia|sin pruebas|no verificable"
    r"|falta evidencia|no se puede verificar|no hay evidencia suficiente"
    r"|evidencia insuficiente|insufficient evidence|cannot be verified)(?!\w)"
)


def fold(text: str) -> str:
    """Lower-case and strip diacritics."""
    decomposed = unicodedata.normalize("NFD", text or "")
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn").lower()


def collapse_whitespace(text: str) -> str:
    return " ".join((text or "").split())


def prepare_content_for_analysis(content: str) -> str:
    """Flatten HTML into plain text, keeping link targets next to their anchor text."""
    if not content:
        return ""

    def _anchor(match: re.Match) -> str:
        href, anchor_text = match.group(1), match.group(2)
        anchor_text = collapse_whitespace(_TAG_RE.sub(" ", html.unescape(anchor_text)))
        return f"{anchor_text} ({href})" if anchor_text else href

    text = _ANCHOR_RE.sub(_anchor, content)
    text = html.unescape(_TAG_RE.sub(" ", text))
    text = collapse_whitespace(text)
    return _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text).strip()


def detect_rss_snippet(content: str) -> bool:
    """Feed snippets end in a 'leer más' link instead of carrying the article."""
    if not content:
        return False
    return bool(_READ_MORE_RE.search(content)) and bool(_LINK_RE.search(content))


def has_strong_claim(texts: Iterable[str]) -> bool:
    return any(_STRONG_CLAIM_RE.search(fold(t)) for t in texts if t)


def has_attribution(text: str) -> bool:
    return bool(_ATTRIBUTION_RE.search(fold(text)))


def has_extremist_language(texts: Iterable[str]) -> bool:
    return any(_EXTREMIST_RE.search(fold(t)) for t in texts if t)


def states_insufficient_evidence(text: str) -> bool:
    return bool(_INSUFFICIENT_RE.search(fold(text)))


def has_high_risk_claim(texts: Iterable[str]) -> bool:
    """Claims about health, deaths, violence or financial collapse."""
    return any(_HIGH_RISK_CLAIM_RE.search(fold(t)) for t in texts if t)
