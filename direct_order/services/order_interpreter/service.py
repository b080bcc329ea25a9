"""Serviço principal de interpretação de pedidos."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from direct_order.services.order_interpreter.intents import (
    INTENT_WORDS,
    detect_intents,
    fallback_intent,
)
from direct_order.services.order_interpreter.lexicon import Lexicon
from direct_order.services.order_interpreter.menu_matcher import (
    FuzzyResolver,
    KeywordMappingResolver,
    MenuMatcher,
    ResolvedProduct,
    ResolverChain,
    SynonymResolver,
)
from direct_order.services.order_interpreter.models import (
    ITEM_ADDON,
    ITEM_PRODUCT,
    Action,
    Addon,
    MatchResult,
    Menu,
)
from direct_order.services.order_interpreter.modifier_extractor import (
    extract_modifiers,
    format_notes,
    is_trigger,
)
from direct_order.services.order_interpreter.normalizer import split_segments, tokenize
from direct_order.services.order_interpreter.quantity import (
    extract_quantity,
    parse_number,
    quantity_before,
)

logger = logging.getLogger(__name__)

# Maior janela de palavras testada contra o cardápio
MAX_PHRASE_TOKENS = 4

# Sobras que viram observação livre do último item ("bem caprichado")
MIN_NOTE_WORD_LENGTH = 3
NOTE_INTENSIFIERS = frozenset({"bem", "muito", "pouco"})


class _SegmentAnalyzer:
    """Casa produtos e adicionais dentro de um segmento."""

    def __init__(self, menu: Menu, lexicon: Lexicon):
        self.addons: List[Addon] = list(menu.addons)
        self.lexicon = lexicon
        products = [p for p in menu.products if p.available]
        self.matcher = MenuMatcher(products, lexicon.ignored_words)
        self.chain = ResolverChain([
            SynonymResolver(lexicon.synonyms, products),
            KeywordMappingResolver(lexicon.keyword_mappings, products),
            FuzzyResolver(self.matcher),
        ])
        self._phrase_starts = lexicon.phrase_starts()

    def starts_item(self, word: str) -> bool:
        if word in self.lexicon.ignored_words:
            return False
        return word in self._phrase_starts or self.matcher.starts_product(word)

    def _resolve_at(
        self, tokens: Sequence[str], start: int, claimed: Set[int]
    ) -> Optional[Tuple[ResolvedProduct, int]]:
        """
        Maior janela livre começando em `start` que algum resolver reconhece.

        Janelas com palavras ignoradas também vão para os resolvers: sinônimos
        e mapeamentos do tenant podem usá-las ("da casa"), e o fuzzy
        as recusa sozinho.
        """
        for length in range(min(MAX_PHRASE_TOKENS, len(tokens) - start), 0, -1):
            indices = range(start, start + length)
            if any(i in claimed for i in indices):
                continue
            window = list(tokens[start:start + length])
            resolved = self.chain.try_resolve(window)
            if resolved is not None:
                return resolved, length
        return None

    def _quantity_for(
        self,
        tokens: Sequence[str],
        start: int,
        length: int,
        claimed: Set[int],
        resolved: ResolvedProduct,
    ) -> int:
        before = quantity_before(tokens, start, claimed)
        if before is not None:
            quantity, used = before
            claimed.update(used)
            return quantity
        if length == 1:
            return 1
        # Frases do léxico podem trazer o número ("2 pequenas"); números do
        # próprio nome do produto ("Combo 2") não são quantidade
        name_tokens = set(tokenize(resolved.product.name))
        window = [t for t in tokens[start:start + length] if t not in name_tokens]
        return extract_quantity(window) or 1

    def _reserve_trigger_phrases(self, tokens: Sequence[str]) -> Set[int]:
        """
        Índices de produtos cujo nome contém um gatilho ("frango com catupiry").

        O gatilho precisa estar no meio da janela; "x bacon com cheddar" não
        reserva nada porque "com cheddar" não faz parte de nenhum nome.
        """
        reserved: Set[int] = set()
        for index, word in enumerate(tokens):
            if not is_trigger(word) or index == 0 or index in reserved:
                continue
            found = False
            for start in range(max(0, index - MAX_PHRASE_TOKENS + 2), index):
                for end in range(min(len(tokens), start + MAX_PHRASE_TOKENS), index + 1, -1):
                    if self.chain.try_resolve(list(tokens[start:end])) is not None:
                        reserved.update(range(start, end))
                        found = True
                        break
                if found:
                    break
        return reserved

    def _leftover_note(self, tokens: Sequence[str], claimed: Set[int]) -> str:
        """Palavras não consumidas do segmento, sem números, gatilhos e intenções."""
        ignored = self.lexicon.ignored_words
        words = [
            token
            for index, token in enumerate(tokens)
            if index not in claimed
            and token not in INTENT_WORDS
            and not is_trigger(token)
            and parse_number(token) is None
        ]
        while words and words[0] in ignored and words[0] not in NOTE_INTENSIFIERS:
            words.pop(0)
        while words and words[-1] in ignored:
            words.pop()
        if not any(w not in ignored and len(w) >= MIN_NOTE_WORD_LENGTH for w in words):
            return ""
        return " ".join(words)

    def analyze(self, segment: str) -> List[MatchResult]:
        tokens = tokenize(segment)
        reserved = self._reserve_trigger_phrases(tokens)
        # Reservados ficam fora dos modificadores e voltam para a busca de produtos
        claimed: Set[int] = set(reserved)

        modifiers = extract_modifiers(
            tokens,
            claimed,
            addons=self.addons,
            ignored_words=self.lexicon.ignored_words,
            starts_product=self.starts_item,
        )
        claimed -= reserved
        notes = format_notes(modifiers)

        results: List[MatchResult] = [
            MatchResult(product=addon, quantity=1, notes="", matched_keyword=addon.name, type=ITEM_ADDON)
            for addon in modifiers.found_addons
        ]

        index = 0
        while index < len(tokens):
            if index in claimed:
                index += 1
                continue

            hit = self._resolve_at(tokens, index, claimed)
            if hit is None:
                index += 1
                continue

            resolved, length = hit
            quantity = self._quantity_for(tokens, index, length, claimed, resolved)
            claimed.update(range(index, index + length))
            results.append(
                MatchResult(
                    product=resolved.product,
                    quantity=quantity,
                    notes=notes,
                    matched_keyword=resolved.matched_keyword,
                    type=ITEM_PRODUCT,
                )
            )
            logger.debug(
                f"Segmento '{segment}': {quantity}x {resolved.product.name} via {resolved.resolver}",
                extra={
                    "segment": segment,
                    "product_id": resolved.product.id,
                    "matched_keyword": resolved.matched_keyword,
                    "quantity": quantity,
                },
            )
            index += length

        products = [r for r in results if r.type == ITEM_PRODUCT]
        leftover = self._leftover_note(tokens, claimed) if products else ""
        if leftover:
            last = products[-1]
            last.notes = f"{last.notes}, {leftover}" if last.notes else leftover

        return results


def find_all_products(
    message: str, menu: Optional[Menu], lexicon: Optional[Lexicon] = None
) -> List[MatchResult]:
    """
    Todos os produtos e adicionais reconhecidos na mensagem, em ordem.

    Um erro em um segmento é registrado e os demais segmentos continuam.
    """
    if not message or not message.strip():
        return []

    analyzer = _SegmentAnalyzer(menu or Menu(), lexicon or Lexicon.empty())
    results: List[MatchResult] = []
    for segment in split_segments(message, starts_item=analyzer.starts_item):
        try:
            results.extend(analyzer.analyze(segment))
        except Exception:
            logger.exception(f"Erro ao analisar segmento '{segment}'", extra={"segment": segment})
    return results


def analyze_message(
    message: str, menu: Optional[Menu], lexicon: Optional[Lexicon] = None
) -> List[Action]:
    """
    Converte uma mensagem do cliente em ações.

    Intenções fixas vêm primeiro, depois um ADD_PRODUCT por item reconhecido.
    Se nada for reconhecido, tenta saudação / cardápio.
    """
    actions: List[Action] = []
    if not message or not message.strip():
        return actions

    try:
        for intent in detect_intents(tokenize(message)):
            actions.append(Action(type=intent))

        for match in find_all_products(message, menu, lexicon):
            actions.append(Action.from_match(match))

        if not actions:
            intent = fallback_intent(message)
            if intent:
                actions.append(Action(type=intent))
    except Exception:
        logger.exception("Erro ao interpretar mensagem")

    return actions


class OrderInterpreterService:
    """
    Serviço principal para interpretação de pedidos.

    Orquestra o fluxo completo:
    1. Léxico do tenant (sinônimos, mapeamentos, palavras ignoradas)
    2. Intenções fixas (cardápio, pix, entrega...)
    3. Segmentação e busca de produtos/adicionais
    4. Fallback de saudação
    """

    def __init__(self, lexicon_service=None):
        """
        Inicializa o serviço.

        Args:
            lexicon_service: LexiconService (opcional); sem ele só o léxico embutido é usado
        """
        self.lexicon_service = lexicon_service

    def load_lexicon(self, tenant_id: Optional[str]) -> Lexicon:
        if self.lexicon_service is None or not tenant_id:
            return Lexicon.empty()
        try:
            return self.lexicon_service.load(tenant_id)
        except Exception as e:
            logger.warning(f"Falha ao carregar léxico do tenant {tenant_id}: {e}", extra={"tenant_id": tenant_id})
            return Lexicon.empty()

    def analyze_message(
        self,
        message: str,
        menu: Optional[Menu],
        cart: Optional[List[Dict[str, Any]]] = None,
        tenant_id: Optional[str] = None,
    ) -> List[Action]:
        """
        Interpreta a mensagem do cliente.

        Args:
            message: Texto livre do cliente
            menu: Cardápio do tenant
            cart: Carrinho atual; apenas repassado pelo consumidor, não é lido nem alterado
            tenant_id: Tenant dono do léxico

        Returns:
            List[Action]: Ações na ordem em que devem ser aplicadas
        """
        logger.info(f"Interpretando mensagem: {(message or '')[:100]}", extra={"tenant_id": tenant_id})
        lexicon = self.load_lexicon(tenant_id)
        actions = analyze_message(message, menu, lexicon)
        logger.info(
            f"{len(actions)} ação(ões) reconhecida(s): {[a.type for a in actions]}",
            extra={"tenant_id": tenant_id},
        )
        return actions

    def find_all_products(
        self, message: str, menu: Optional[Menu], tenant_id: Optional[str] = None
    ) -> List[MatchResult]:
        return find_all_products(message, menu, self.load_lexicon(tenant_id))

    def analyze_message_to_dict(
        self,
        message: str,
        menu: Optional[Menu],
        tenant_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Interpreta a mensagem e retorna como dicionário.

        Conveniente para serializar em JSON (scripts de diagnóstico).
        """
        actions = self.analyze_message(message, menu, tenant_id=tenant_id)
        return {"message": message, "actions": [a.to_dict() for a in actions]}


def make_starts_item(menu: Menu, lexicon: Optional[Lexicon] = None) -> Callable[[str], bool]:
    """Predicado de início de item para `split_segments` fora do fluxo principal."""
    return _SegmentAnalyzer(menu, lexicon or Lexicon.empty()).starts_item
