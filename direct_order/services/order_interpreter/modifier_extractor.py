"""Extração de modificadores (com / sem / ponto da carne) e matcher de adicionais."""

from __future__ import annotations

import logging
import re
from typing import AbstractSet, Callable, Iterable, List, Optional, Sequence, Set, Tuple

from rapidfuzz import fuzz, process

from direct_order.services.order_interpreter.lexicon import BUILTIN_IGNORED_WORDS
from direct_order.services.order_interpreter.menu_matcher import singularize
from direct_order.services.order_interpreter.models import Addon, Modifiers
from direct_order.services.order_interpreter.normalizer import tokenize
from direct_order.services.order_interpreter.quantity import parse_number
from direct_order.utils.fingerprints import gerar_fingerprint

logger = logging.getLogger(__name__)

# Configurações
ADDON_FUZZY_THRESHOLD = 80
ADDON_FUZZY_MIN_LENGTH = 4
MAX_ADDON_WINDOW = 3
MIN_FREE_TEXT_LENGTH = 3

REMOVAL_TRIGGERS = frozenset({"sem", "tira", "tirar", "remover", "menos"})
ADDITION_TRIGGERS = frozenset({"com", "mais", "adicional", "extra", "bastante"})
CHAIN_WORD = "e"
ARTICLES = frozenset({"o", "a", "os", "as", "um", "uma"})

MAL_PASSADO = "mal passado"
AO_PONTO = "ao ponto"
BEM_PASSADO = "bem passado"
_PASSADO = ("passado", "passada")


def _clean_additional_name(name: str) -> str:
    """Limpa o nome do adicional removendo prefixos."""
    patterns = [
        r"^adicionais?\s*[-–]?\s*",
        r"^acr[ée]scimos?\s*[-–]?\s*",
        r"^extras?\s*[-–]?\s*",
    ]
    result = name
    for pattern in patterns:
        result = re.sub(pattern, "", result, flags=re.IGNORECASE)
    return result.strip()


class AdditionalMatcher:
    """Matcher de adicionais pagos do cardápio."""

    def __init__(self, addons: Iterable[Addon]):
        self.addons = list(addons)
        self._clean_names: List[str] = []
        self._fingerprints: List[str] = []
        self._tokens: List[Set[str]] = []
        for addon in self.addons:
            clean = _clean_additional_name(addon.name) or addon.name
            self._clean_names.append(clean)
            self._fingerprints.append(gerar_fingerprint(clean))
            self._tokens.append({singularize(t) for t in tokenize(clean)})

    def _exact_match(self, phrase: str) -> Optional[Addon]:
        fingerprint = gerar_fingerprint(phrase, is_adicional=True)
        if not fingerprint:
            return None
        for addon, addon_fp in zip(self.addons, self._fingerprints):
            if addon_fp == fingerprint:
                return addon
        return None

    def _contained_match(self, tokens: Sequence[str]) -> Optional[Addon]:
        """Todas as palavras do cliente aparecem no nome ("bacon" -> "Bacon em Tiras")."""
        wanted = {singularize(t) for t in tokens}
        if sum(len(t) for t in wanted) < MIN_FREE_TEXT_LENGTH:
            return None
        candidates = [
            (len(addon.name), index, addon)
            for index, (addon, addon_tokens) in enumerate(zip(self.addons, self._tokens))
            if wanted <= addon_tokens
        ]
        if not candidates:
            return None
        candidates.sort(key=lambda c: (c[0], c[1]))
        return candidates[0][2]

    def _fuzzy_match(self, phrase: str) -> Optional[Addon]:
        if len(phrase) < ADDON_FUZZY_MIN_LENGTH or not self._clean_names:
            return None
        result = process.extractOne(
            phrase,
            self._clean_names,
            scorer=fuzz.token_sort_ratio,
            processor=lambda s: " ".join(tokenize(s)),
            score_cutoff=ADDON_FUZZY_THRESHOLD,
        )
        if not result:
            return None
        _, score, index = result
        logger.debug(f"Adicional fuzzy '{phrase}' -> '{self.addons[index].name}' (score {score:.1f})")
        return self.addons[index]

    def match(self, tokens: Sequence[str]) -> Optional[Addon]:
        """
        Encontra o adicional descrito pelos tokens.

        Camadas: fingerprint exato, palavras contidas no nome, fuzzy.
        """
        if not tokens or not self.addons:
            return None
        phrase = " ".join(tokens)
        return (
            self._exact_match(phrase)
            or self._contained_match(tokens)
            or self._fuzzy_match(phrase)
        )


def _preparation_at(tokens: Sequence[str], index: int) -> Tuple[Optional[str], int]:
    """Ponto da carne que começa no índice: (preparo, quantidade de tokens)."""
    word = tokens[index]
    nxt = tokens[index + 1] if index + 1 < len(tokens) else ""

    if word in ("malpassado", "malpassada"):
        return MAL_PASSADO, 1
    if word == "mal":
        return MAL_PASSADO, 2 if nxt in _PASSADO else 1
    if word == "ao" and nxt == "ponto":
        return AO_PONTO, 2
    if word in ("bempassado", "bempassada"):
        return BEM_PASSADO, 1
    if word == "bem" and nxt in _PASSADO:
        return BEM_PASSADO, 2
    return None, 0


def is_trigger(word: str) -> bool:
    return word in REMOVAL_TRIGGERS or word in ADDITION_TRIGGERS


def _argument_start(tokens: Sequence[str], index: int, claimed: AbstractSet[int]) -> Optional[int]:
    """Primeiro token útil depois do gatilho, pulando artigos ("sem a cebola")."""
    while index < len(tokens) and tokens[index] in ARTICLES and index not in claimed:
        index += 1
    if index >= len(tokens) or index in claimed or is_trigger(tokens[index]):
        return None
    return index


class _ModifierScanner:
    """Percorre os tokens de um segmento marcando os que viraram modificador."""

    def __init__(
        self,
        tokens: Sequence[str],
        claimed: Set[int],
        addon_matcher: Optional[AdditionalMatcher],
        ignored_words: AbstractSet[str],
        starts_product: Optional[Callable[[str], bool]],
    ):
        self.tokens = tokens
        self.claimed = claimed
        self.addon_matcher = addon_matcher
        self.ignored_words = ignored_words
        self.starts_product = starts_product
        self.result = Modifiers()

    def _claim(self, start: int, end: int) -> None:
        self.claimed.update(range(start, end + 1))

    def _is_free_word(self, index: int) -> bool:
        word = self.tokens[index]
        if index in self.claimed or is_trigger(word):
            return False
        if word in self.ignored_words or parse_number(word) is not None:
            return False
        if self.starts_product and self.starts_product(word):
            return False
        return len(word) >= MIN_FREE_TEXT_LENGTH

    def _match_addon(self, index: int) -> Tuple[Optional[Addon], int]:
        if self.addon_matcher is None:
            return None, 0
        for width in range(MAX_ADDON_WINDOW, 0, -1):
            end = index + width
            if end > len(self.tokens):
                continue
            if any(i in self.claimed for i in range(index, end)):
                continue
            window = self.tokens[index:end]
            if window[-1] == CHAIN_WORD or window[-1] in self.ignored_words:
                continue
            addon = self.addon_matcher.match(window)
            if addon is not None:
                return addon, width
        return None, 0

    def _take_addition(self, index: int) -> Optional[int]:
        """Consome um argumento de adição; retorna o índice seguinte ou None."""
        addon, width = self._match_addon(index)
        if addon is not None:
            self.result.found_addons.append(addon)
            self._claim(index, index + width - 1)
            return index + width
        if self._is_free_word(index):
            self.result.additions.append(self.tokens[index])
            self._claim(index, index)
            return index + 1
        return None

    def _take_removal(self, index: int) -> Optional[int]:
        word = self.tokens[index]
        if index in self.claimed or word in self.ignored_words or parse_number(word) is not None:
            return None
        self.result.removals.append(word)
        self._claim(index, index)
        return index + 1

    def _chain(self, index: int, take: Callable[[int], Optional[int]]) -> int:
        # "com bacon e cheddar": o "e" continua o mesmo gatilho
        while (
            index + 1 < len(self.tokens)
            and self.tokens[index] == CHAIN_WORD
            and index not in self.claimed
        ):
            after = take(index + 1)
            if after is None:
                break
            self._claim(index, index)
            index = after
        return index

    def scan(self) -> Modifiers:
        index = 0
        while index < len(self.tokens):
            if index in self.claimed:
                index += 1
                continue

            preparation, width = _preparation_at(self.tokens, index)
            if preparation and not any(i in self.claimed for i in range(index, index + width)):
                self.result.preparation = preparation
                self._claim(index, index + width - 1)
                index += width
                continue

            word = self.tokens[index]
            if word not in REMOVAL_TRIGGERS and word not in ADDITION_TRIGGERS:
                index += 1
                continue

            start = _argument_start(self.tokens, index + 1, self.claimed)
            if start is None:
                index += 1
                continue

            if word in REMOVAL_TRIGGERS:
                after = self._take_removal(start)
                take = self._take_removal
            else:
                after = self._take_addition(start)
                take = self._take_addition
                if after is None and self.starts_product and self.starts_product(self.tokens[start]):
                    # "marmita com coca": o gatilho só liga dois itens
                    self._claim(index, index)

            if after is None:
                index += 1
                continue

            self._claim(index, start - 1)
            index = self._chain(after, take)

        return self.result


def extract_modifiers(
    tokens: Sequence[str],
    claimed: Optional[Set[int]] = None,
    addons: Iterable[Addon] = (),
    ignored_words: AbstractSet[str] = BUILTIN_IGNORED_WORDS,
    starts_product: Optional[Callable[[str], bool]] = None,
) -> Modifiers:
    """
    Extrai adições, remoções, ponto da carne e adicionais pagos de um segmento.

    Args:
        tokens: Tokens normalizados do segmento
        claimed: Conjunto de índices já usados; é atualizado com os consumidos aqui
        addons: Adicionais pagos do cardápio
        ignored_words: Palavras que não viram observação livre
        starts_product: Predicado que diz se uma palavra abre um produto

    Returns:
        Modifiers
    """
    if claimed is None:
        claimed = set()
    addon_list = list(addons)
    matcher = AdditionalMatcher(addon_list) if addon_list else None
    return _ModifierScanner(tokens, claimed, matcher, ignored_words, starts_product).scan()


def format_notes(modifiers: Modifiers) -> str:
    """Observação do item: "com catupiry, sem cebola, mal passado"."""
    parts: List[str] = []
    if modifiers.additions:
        parts.append("com " + ", ".join(modifiers.additions))
    if modifiers.removals:
        parts.append("sem " + ", ".join(modifiers.removals))
    if modifiers.preparation:
        parts.append(modifiers.preparation)
    return ", ".join(parts)
