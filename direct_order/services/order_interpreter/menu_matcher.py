"""Matcher de produtos usando fuzzy matching por token."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from rapidfuzz import fuzz

from direct_order.services.order_interpreter.lexicon import BUILTIN_IGNORED_WORDS
from direct_order.services.order_interpreter.models import Product
from direct_order.services.order_interpreter.normalizer import tokenize
from direct_order.services.order_interpreter.quantity import (
    canonical_size_tokens,
    is_size_token,
    parse_number,
)

logger = logging.getLogger(__name__)

# Configurações de threshold
FUZZY_THRESHOLD = 75  # Mínimo para considerar match válido
MIN_COVERAGE = 0.75  # Fração dos caracteres do texto que precisa ser explicada
EXACT_MATCH_SCORE = 100
SINGULAR_MATCH_SCORE = 98
PREFIX_MATCH_SCORE = 90
SIZE_CODE_MATCH_SCORE = 80

PREFIX_MIN_LENGTH = 4
PREFIX_MIN_COVERAGE = 0.70
FUZZY_MIN_LENGTH = 4
MIN_SINGLE_TOKEN_LENGTH = 4

# Códigos de tamanho de uma letra (Marmita P / M / G)
SIZE_CODES = frozenset("pmg")
_VOWELS = frozenset("aeiou")


def singularize(word: str) -> str:
    """Singular aproximado em português (marmitas -> marmita, paes -> pao)."""
    if len(word) <= 3 or not word.endswith("s"):
        return word
    if word.endswith(("oes", "aes")):
        return word[:-3] + "ao"
    if word.endswith("eis"):
        return word[:-3] + "el"
    if word.endswith("ns"):
        return word[:-2] + "m"
    if word.endswith(("res", "zes")):
        return word[:-2]
    if word.endswith("ss"):
        return word
    return word[:-1]


def size_code_shorthand(token: str) -> Optional[str]:
    """
    Reconhece abreviações de tamanho digitadas com repetição: "ppap" -> "p".

    O token precisa começar por p/m/g, conter só essa letra e vogais e repetir
    a letra pelo menos duas vezes.
    """
    if len(token) < 2 or token[0] not in SIZE_CODES:
        return None
    code = token[0]
    if token.count(code) < 2:
        return None
    if all(ch == code or ch in _VOWELS for ch in token):
        return code
    return None


def token_similarity(token: str, product_token: str) -> float:
    """Qualidade (0-100) com que um token do cliente explica um token do produto."""
    if token == product_token:
        return EXACT_MATCH_SCORE

    singular = singularize(token)
    if singular == product_token or singular == singularize(product_token):
        return SINGULAR_MATCH_SCORE

    # Números e medidas só casam exatamente
    if token.isdigit() or product_token.isdigit():
        return 0
    if is_size_token(token) or is_size_token(product_token):
        return 0

    if len(product_token) == 1:
        if size_code_shorthand(token) == product_token:
            return SIZE_CODE_MATCH_SCORE
        return 0

    if (
        len(token) >= PREFIX_MIN_LENGTH
        and product_token.startswith(token)
        and len(token) / len(product_token) >= PREFIX_MIN_COVERAGE
    ):
        return PREFIX_MATCH_SCORE

    if len(token) >= FUZZY_MIN_LENGTH:
        score = max(fuzz.ratio(token, product_token), fuzz.ratio(singular, product_token))
        if score >= FUZZY_THRESHOLD:
            return score

    return 0


@dataclass
class _CatalogEntry:
    product: Product
    tokens: List[str]
    index: int


@dataclass
class ResolvedProduct:
    """Produto encontrado por um dos resolvers."""

    product: Product
    matched_keyword: str
    resolver: str


class MenuMatcher:
    """Matcher de janelas de tokens contra o cardápio."""

    def __init__(
        self,
        products: Iterable[Product],
        ignored_words: AbstractSet[str] = BUILTIN_IGNORED_WORDS,
    ):
        """
        Args:
            products: Produtos do cardápio (indisponíveis são descartados)
            ignored_words: Palavras que nunca explicam um produto sozinhas
        """
        self.ignored_words = ignored_words
        self._entries: List[_CatalogEntry] = []
        for index, product in enumerate(products):
            if not product.available:
                continue
            tokens = canonical_size_tokens(tokenize(product.name))
            if tokens:
                self._entries.append(_CatalogEntry(product=product, tokens=tokens, index=index))

    def _score_window(
        self, candidate: Sequence[str], product_tokens: Sequence[str]
    ) -> Optional[float]:
        """
        Score ponderado por caracteres ou None se a janela não casa.

        Todo token do cliente que não é palavra ignorada precisa ser explicado
        por um token distinto do produto.
        """
        used: Set[int] = set()
        total_chars = sum(len(t) for t in candidate)
        explained_chars = 0
        weighted = 0.0
        has_content = False

        for token in candidate:
            best_index = None
            best_score = 0.0
            for j, product_token in enumerate(product_tokens):
                if j in used:
                    continue
                score = token_similarity(token, product_token)
                if score > best_score:
                    best_index, best_score = j, score

            if best_index is None:
                if token in self.ignored_words:
                    continue
                return None

            used.add(best_index)
            weighted += best_score * len(token)
            explained_chars += len(token)
            if token not in self.ignored_words:
                has_content = True

        if not has_content or not total_chars:
            return None
        if explained_chars / total_chars < MIN_COVERAGE:
            return None

        score = weighted / total_chars
        if score < FUZZY_THRESHOLD:
            return None
        return score

    @staticmethod
    def _exact_prefix(candidate: Sequence[str], product_tokens: Sequence[str]) -> int:
        count = 0
        for token, product_token in zip(candidate, product_tokens):
            if token != product_token and singularize(token) != singularize(product_token):
                break
            count += 1
        return count

    def match(self, tokens: Sequence[str]) -> Optional[Product]:
        """
        Encontra o produto que melhor explica a janela de tokens.

        Args:
            tokens: Janela de tokens normalizados (1 a 4 palavras)

        Returns:
            Product ou None
        """
        if not tokens or not self._entries:
            return None

        # Janelas que começam/terminam em palavra ignorada ou começam com quantidade
        if tokens[0] in self.ignored_words or tokens[-1] in self.ignored_words:
            return None
        if parse_number(tokens[0]) is not None:
            return None

        candidate = canonical_size_tokens(tokens)

        if len(candidate) == 1 and len(candidate[0]) < MIN_SINGLE_TOKEN_LENGTH:
            full_name = [e for e in self._entries if e.tokens == candidate]
            return full_name[0].product if full_name else None

        best: Optional[Tuple[Tuple[float, int, int, int], _CatalogEntry]] = None
        for entry in self._entries:
            score = self._score_window(candidate, entry.tokens)
            if score is None:
                continue
            key = (
                score,
                self._exact_prefix(candidate, entry.tokens),
                -len(entry.product.name),
                -entry.index,
            )
            if best is None or key > best[0]:
                best = (key, entry)

        if best is None:
            return None

        logger.debug(
            f"Janela '{' '.join(tokens)}' -> '{best[1].product.name}' (score {best[0][0]:.1f})",
            extra={"product_id": best[1].product.id},
        )
        return best[1].product

    def starts_product(self, word: str) -> bool:
        """True se a palavra pode abrir o nome de um produto."""
        if word in self.ignored_words or parse_number(word) is not None:
            return False
        singular = singularize(word)
        for entry in self._entries:
            first = entry.tokens[0]
            if first == word or singularize(first) == singular:
                return True
        return self.match([word]) is not None


def find_product_fuzzy(
    candidate_tokens: Sequence[str],
    catalog: Iterable[Product],
    ignored_words: AbstractSet[str] = BUILTIN_IGNORED_WORDS,
) -> Optional[Product]:
    """Atalho para casar uma única janela contra um catálogo."""
    return MenuMatcher(catalog, ignored_words).match(list(candidate_tokens))


class PhraseTableResolver:
    """Resolve janelas por igualdade exata contra uma tabela frase -> produto."""

    name = "phrase"

    def __init__(self, table: Mapping[str, str], products: Iterable[Product]):
        self.table = table
        self._by_id = {str(p.id): p for p in products if p.available}

    def try_resolve(self, tokens: Sequence[str]) -> Optional[ResolvedProduct]:
        if not self.table:
            return None
        phrase = " ".join(tokens)
        product_id = self.table.get(phrase)
        if product_id is None:
            return None
        product = self._by_id.get(str(product_id))
        if product is None:
            logger.debug(f"'{phrase}' aponta para produto ausente/indisponível {product_id}")
            return None
        return ResolvedProduct(product=product, matched_keyword=phrase, resolver=self.name)


class SynonymResolver(PhraseTableResolver):
    name = "synonym"


class KeywordMappingResolver(PhraseTableResolver):
    name = "mapping"


class FuzzyResolver:
    name = "fuzzy"

    def __init__(self, matcher: MenuMatcher):
        self.matcher = matcher

    def try_resolve(self, tokens: Sequence[str]) -> Optional[ResolvedProduct]:
        # Só palavras ignoradas: apenas sinônimos/mapeamentos podem casar
        if all(t in self.matcher.ignored_words for t in tokens):
            return None
        product = self.matcher.match(tokens)
        if product is None:
            return None
        return ResolvedProduct(product=product, matched_keyword=product.name, resolver=self.name)


class ResolverChain:
    """Executa os resolvers em ordem; o primeiro que resolver vence."""

    def __init__(self, resolvers: Sequence):
        self.resolvers = list(resolvers)

    def try_resolve(self, tokens: Sequence[str]) -> Optional[ResolvedProduct]:
        for resolver in self.resolvers:
            resolved = resolver.try_resolve(tokens)
            if resolved is not None:
                return resolved
        return None
