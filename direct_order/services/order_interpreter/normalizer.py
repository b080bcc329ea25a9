"""Normalização e segmentação do texto livre do cliente."""

from __future__ import annotations

import re
import unicodedata
from typing import Callable, List, Optional

from direct_order.services.order_interpreter.quantity import UNIT_SUFFIXES, parse_number

# Separadores fixos entre itens; o ponto só separa se não for decimal ("1.5")
_SEGMENT_DELIMITERS_RE = re.compile(r"[,;+\n]|\.(?!\d)")

# Conjunções que só separam itens quando a próxima palavra abre um novo item
CONJUNCTIONS = frozenset({"e", "mais", "tambem"})

_NON_WORD_RE = re.compile(r"[^a-z0-9\s]")
# Abreviações de WhatsApp: "c/ bacon", "s/cebola"
_SLASH_SHORTHANDS = (
    (re.compile(r"\bc/"), "com "),
    (re.compile(r"\bs/"), "sem "),
)
_DIGITS_LETTERS_RE = re.compile(r"^(\d+)([a-z]+)$")
_LETTERS_DIGITS_RE = re.compile(r"^([a-z]+)(\d+)$")


def strip_accents(text: str) -> str:
    normalized = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def normalize_text(text: Optional[str]) -> str:
    """Minúsculas, sem acentos, sem pontuação e com espaços colapsados."""
    if not text:
        return ""
    clean = strip_accents(str(text)).lower()
    clean = clean.replace("-", " ")
    for pattern, replacement in _SLASH_SHORTHANDS:
        clean = pattern.sub(replacement, clean)
    clean = _NON_WORD_RE.sub(" ", clean)
    return " ".join(clean.split())


def _split_fused(word: str) -> List[str]:
    # "3brutus" -> ["3", "brutus"], mas "2l" e "600ml" continuam inteiros
    match = _DIGITS_LETTERS_RE.match(word)
    if match and match.group(2) not in UNIT_SUFFIXES:
        return [match.group(1), match.group(2)]
    match = _LETTERS_DIGITS_RE.match(word)
    if match:
        return [match.group(1), match.group(2)]
    return [word]


def tokenize(text: Optional[str]) -> List[str]:
    """Quebra o texto em tokens normalizados."""
    tokens: List[str] = []
    for word in normalize_text(text).split():
        tokens.extend(_split_fused(word))
    return tokens


def normalize_phrase(text: Optional[str]) -> str:
    """Forma canônica de uma frase do léxico (mesma usada nas janelas de busca)."""
    return " ".join(tokenize(text))


def _opens_item(word: str, starts_item: Optional[Callable[[str], bool]]) -> bool:
    if parse_number(word) is not None:
        return True
    return bool(starts_item and starts_item(word))


def split_segments(
    text: Optional[str], starts_item: Optional[Callable[[str], bool]] = None
) -> List[str]:
    """
    Divide a mensagem em segmentos (um candidato a item por segmento).

    Vírgula, ponto-e-vírgula, "+", quebra de linha e ponto sempre separam.
    "e" / "mais" / "tambem" só separam quando a palavra seguinte abre um item
    novo: um número ("uma media e uma pequena") ou, se `starts_item` for
    informado, o início de um produto do cardápio ("marmita mais coca").
    "arroz e feijao" continua sendo um segmento só.
    """
    if not text or not text.strip():
        return []

    lowered = strip_accents(str(text)).lower()
    segments: List[str] = []

    for chunk in _SEGMENT_DELIMITERS_RE.split(lowered):
        words = tokenize(chunk)
        current: List[str] = []
        for index, word in enumerate(words):
            is_boundary = (
                word in CONJUNCTIONS
                and index + 1 < len(words)
                and _opens_item(words[index + 1], starts_item)
            )
            if is_boundary:
                if current:
                    segments.append(" ".join(current))
                    current = []
                continue
            current.append(word)
        if current:
            segments.append(" ".join(current))

    return segments
