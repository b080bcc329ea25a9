"""Testes para o Order Interpreter Service."""

import pytest

from direct_order.services.order_interpreter import service as service_module
from direct_order.services.order_interpreter.lexicon import Lexicon
from direct_order.services.order_interpreter.models import (
    ADD_PRODUCT,
    DELIVERY,
    GREETING,
    ITEM_ADDON,
    ITEM_PRODUCT,
    PICKUP,
    RESET,
    SHOW_MENU,
    SHOW_PIX,
    Menu,
)
from direct_order.services.order_interpreter.service import (
    OrderInterpreterService,
    analyze_message,
    find_all_products,
)
from direct_order.utils.fingerprints import calcular_total_pedido

CATALOGO_MARMITARIA = [
    {"id": "1", "name": "Marmita Pequena", "price": 15.0, "category": "Marmitas"},
    {"id": "2", "name": "Marmita Média", "price": 18.0, "category": "Marmitas"},
    {"id": "3", "name": "Marmita Grande", "price": 22.0, "category": "Marmitas"},
    {"id": "4", "name": "Coca Cola 2 Litros", "price": 12.0, "category": "Bebidas"},
    {"id": "5", "name": "Coca Cola Lata", "price": 6.0, "category": "Bebidas"},
    {"id": "6", "name": "Coca 2L", "price": 12.0, "category": "Bebidas"},
    {"id": "7", "name": "Guaraná Antarctica 2L", "price": 10.0, "category": "Bebidas"},
    {"id": "8", "name": "X-Burguer", "price": 20.0, "category": "Lanches"},
    {"id": "9", "name": "X-Bacon", "price": 24.0, "category": "Lanches"},
    {"id": "10", "name": "Água Mineral", "price": 4.0, "category": "Bebidas"},
]

CATALOGO_TAMANHOS = [
    {"id": "p", "name": "Marmita P", "price": 14.0},
    {"id": "pq", "name": "Marmita Pequena", "price": 15.0},
    {"id": "pz", "name": "Pizza", "price": 40.0},
]


def _products(actions):
    return [a for a in actions if a.type == ADD_PRODUCT and a.item_type == ITEM_PRODUCT]


def _names(actions):
    return [(a.product.name, a.quantity) for a in _products(actions)]


class TestAnalyzeMessage:
    """Testes para analyze_message com cardápio de marmitaria."""

    def setup_method(self):
        self.menu = Menu.from_dicts(CATALOGO_MARMITARIA)

    def _analyze(self, message, lexicon=None):
        return analyze_message(message, self.menu, lexicon)

    def test_two_products_joined_by_mais(self):
        """Testa dois produtos ligados por 'mais'."""
        found = _products(self._analyze("marmita media mais coca"))
        assert len(found) == 2
        assert found[0].product.name == "Marmita Média"
        assert found[1].product.name.startswith("Coca")

    def test_plus_separator(self):
        """Testa separador '+'."""
        assert _names(self._analyze("pequena + grande")) == [("Marmita Pequena", 1), ("Marmita Grande", 1)]

    def test_quantities_with_conjunction(self):
        """Testa quantidades separadas por 'e'."""
        actions = self._analyze("quero pedir 3 grandes e 2 cocas")
        found = _products(actions)
        assert [(a.product.name, a.quantity) for a in found][0] == ("Marmita Grande", 3)
        assert found[1].product.name.startswith("Coca")
        assert found[1].quantity == 2
        assert actions[0].type == RESET

    def test_greeting_then_order(self):
        """Testa saudação seguida de pedido."""
        actions = self._analyze("bom dia, quero 2 marmitas medias")
        assert _names(actions) == [("Marmita Média", 2)]
        assert all(a.type != GREETING for a in actions)

    def test_coca_lata(self):
        """Testa bebida com tamanho lata."""
        assert _names(self._analyze("coca lata")) == [("Coca Cola Lata", 1)]

    def test_size_is_not_quantity(self):
        """Testa que '2l' é tamanho, não quantidade."""
        found = _products(self._analyze("coca 2l"))
        assert len(found) == 1
        assert found[0].quantity == 1
        assert found[0].product.name.startswith("Coca")

    def test_quantity_and_size(self):
        """Testa quantidade e tamanho no mesmo item."""
        assert _names(self._analyze("2 cocas 2l")) == [("Coca 2L", 2)]

    def test_numeric_quantity(self):
        """Testa quantidade numérica."""
        assert _names(self._analyze("2 pequena")) == [("Marmita Pequena", 2)]

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("duas pequenas", [("Marmita Pequena", 2)]),
            ("tres medias", [("Marmita Média", 3)]),
            ("2 pequenas, 1 grande", [("Marmita Pequena", 2), ("Marmita Grande", 1)]),
            ("uma media e uma pequena", [("Marmita Média", 1), ("Marmita Pequena", 1)]),
        ],
    )
    def test_number_words_and_order(self, message, expected):
        """Testa números por extenso e ordem dos itens."""
        assert _names(self._analyze(message)) == expected

    def test_partial_word(self):
        """Testa palavra incompleta."""
        found = _products(self._analyze("marmit"))
        assert len(found) == 1
        assert "Marmita" in found[0].product.name

    def test_x_products(self):
        """Testa lanches com prefixo x."""
        assert _names(self._analyze("x-bacon")) == [("X-Bacon", 1)]
        assert _names(self._analyze("x burguer e x bacon")) == [("X-Burguer", 1), ("X-Bacon", 1)]

    def test_notes_from_modifiers(self):
        """Testa observação montada a partir dos modificadores."""
        found = _products(self._analyze("x bacon com cheddar sem cebola mal passado"))
        assert len(found) == 1
        assert found[0].notes == "com cheddar, sem cebola, mal passado"

    def test_notes_are_shared_within_segment(self):
        """Testa observação compartilhada no segmento."""
        found = _products(self._analyze("x bacon x burguer sem cebola"))
        assert [a.product.name for a in found] == ["X-Bacon", "X-Burguer"]
        assert all(a.notes == "sem cebola" for a in found)

    def test_notes_do_not_leak_between_segments(self):
        """Testa que a observação não passa para outro segmento."""
        found = _products(self._analyze("x burguer, x bacon sem cebola"))
        assert found[0].notes == ""
        assert found[1].notes == "sem cebola"

    @pytest.mark.parametrize(
        "message",
        ["bom dia", "boa tarde", "oi", "olá", "obrigado", "valeu", "quero pedir", "por favor"],
    )
    def test_filler_never_matches_products(self, message):
        """Testa que cortesias nunca viram produto."""
        assert _products(self._analyze(message)) == []

    def test_greeting_fallback(self):
        """Testa fallback de saudação."""
        actions = self._analyze("oi")
        assert [a.type for a in actions] == [GREETING]
        assert [a.type for a in self._analyze("Boa noite!")] == [GREETING]

    def test_menu_intent(self):
        """Testa pedido de cardápio."""
        assert [a.type for a in self._analyze("cardapio")] == [SHOW_MENU]
        assert [a.type for a in self._analyze("quero ver o cardápio")] == [SHOW_MENU]

    def test_other_intents(self):
        """Testa pix e retirada."""
        assert [a.type for a in self._analyze("manda o pix")] == [SHOW_PIX]
        assert [a.type for a in self._analyze("vou buscar")] == [PICKUP]

    def test_intents_come_before_products(self):
        """Testa intenções antes dos produtos."""
        actions = self._analyze("cardapio e 2 pequenas")
        assert actions[0].type == SHOW_MENU
        assert _names(actions) == [("Marmita Pequena", 2)]

    def test_empty_message(self):
        """Testa mensagem vazia."""
        assert self._analyze("") == []
        assert self._analyze("   ") == []

    def test_no_menu(self):
        """Testa análise sem cardápio."""
        assert analyze_message("2 pequenas", None) == []

    def test_deterministic(self):
        """Testa que a mesma mensagem sempre dá as mesmas ações."""
        message = "bom dia, 2 pequenas, 1 grande e uma coca lata sem gelo"
        first = [a.to_dict() for a in self._analyze(message)]
        second = [a.to_dict() for a in self._analyze(message)]
        assert first == second

    def test_unavailable_product_is_not_matched(self):
        """Testa produto indisponível."""
        menu = Menu.from_dicts([
            {"id": "1", "name": "Pizza Calabresa", "price": 40.0, "available": False},
            {"id": "2", "name": "Pizza Mussarela", "price": 38.0},
        ])
        assert ("Pizza Calabresa", 1) not in _names(analyze_message("pizza calabresa", menu))
        assert _names(analyze_message("pizza mussarela", menu)) == [("Pizza Mussarela", 1)]

    def test_multiplier_x(self):
        """Testa multiplicador 'x' entre número e produto."""
        menu = Menu.from_dicts([{"id": "1", "name": "Galinha Caipira", "price": 30.0}])
        assert _names(analyze_message("2 x galinha", menu)) == [("Galinha Caipira", 2)]


class TestFalsePositives:
    """Testes para palavras que não podem virar produto."""

    def setup_method(self):
        self.menu = Menu.from_dicts(CATALOGO_TAMANHOS)

    @pytest.mark.parametrize("message", ["maaa", "penela", "asdasd", "pimenta"])
    def test_noise_words(self, message):
        """Testa palavras sem sentido."""
        assert _products(analyze_message(message, self.menu)) == []

    def test_size_code_shorthand(self):
        """Testa 'bom ppap' virando Marmita P."""
        actions = analyze_message("bom ppap", self.menu)
        assert len(actions) == 1
        assert actions[0].product.name == "Marmita P"
        assert "bom" not in actions[0].notes


class TestAddons:
    """Testes para adicionais pagos."""

    def setup_method(self):
        self.menu = Menu.from_dicts(
            [{"id": "b1", "name": "Brutus Burger", "price": 28.0}],
            [{"id": "a1", "name": "Bacon", "price": 5.0}],
        )

    def test_addon_action_and_total(self):
        """Testa adicional como ação própria e total do pedido."""
        actions = analyze_message("1 brutus burger com bacon", self.menu)
        addons = [a for a in actions if a.item_type == ITEM_ADDON]
        products = _products(actions)
        assert [a.product.name for a in addons] == ["Bacon"]
        assert addons[0].quantity == 1
        assert [(a.product.name, a.quantity) for a in products] == [("Brutus Burger", 1)]
        assert calcular_total_pedido(actions) == 33.0

    def test_fused_quantity(self):
        """Testa quantidade colada no nome ('3brutus')."""
        actions = analyze_message("3brutus", self.menu)
        assert _names(actions) == [("Brutus Burger", 3)]


class TestLexicon:
    """Testes para sinônimos, mapeamentos e palavras ignoradas do tenant."""

    def setup_method(self):
        self.menu = Menu.from_dicts(CATALOGO_MARMITARIA)

    def test_synonym(self):
        """Testa sinônimo do tenant."""
        lexicon = Lexicon.build(synonyms={"Refri": "6"})
        actions = analyze_message("2 refri", self.menu, lexicon)
        assert _names(actions) == [("Coca 2L", 2)]
        assert _products(actions)[0].matched_keyword == "refri"

    def test_keyword_mapping(self):
        """Testa mapeamento de palavra-chave do tenant."""
        lexicon = Lexicon.build(keyword_mappings={"pf": "1"})
        assert _names(analyze_message("dois pf", self.menu, lexicon)) == [("Marmita Pequena", 2)]

    def test_synonym_wins_over_mapping(self):
        """Testa prioridade do sinônimo sobre o mapeamento."""
        lexicon = Lexicon.build(synonyms={"pf": "3"}, keyword_mappings={"pf": "1"})
        assert _names(analyze_message("pf", self.menu, lexicon)) == [("Marmita Grande", 1)]

    def test_tenant_ignored_word(self):
        """Testa palavra ignorada só para o tenant."""
        lexicon = Lexicon.build(ignored_words=["Água"])
        assert _products(analyze_message("agua", self.menu, lexicon)) == []
        assert _names(analyze_message("agua", self.menu)) == [("Água Mineral", 1)]

    def test_synonym_to_unavailable_product(self):
        """Testa sinônimo apontando para produto indisponível."""
        menu = Menu.from_dicts([{"id": "1", "name": "Feijoada", "price": 30.0, "available": False}])
        lexicon = Lexicon.build(synonyms={"feijuca": "1"})
        assert _products(analyze_message("feijuca", menu, lexicon)) == []

    def test_mapping_starting_with_ignored_word(self):
        """Testa mapeamento que começa com palavra ignorada ('da casa')."""
        lexicon = Lexicon.build(keyword_mappings={"da casa": "1"})
        actions = analyze_message("2 da casa", self.menu, lexicon)
        assert _names(actions) == [("Marmita Pequena", 2)]
        assert _products(actions)[0].matched_keyword == "da casa"

    def test_ignored_word_can_still_be_mapped(self):
        """Testa palavra ignorada do tenant que também tem mapeamento."""
        lexicon = Lexicon.build(ignored_words=["combo"], keyword_mappings={"combo": "3"})
        assert _names(analyze_message("1 combo", self.menu, lexicon)) == [("Marmita Grande", 1)]

    def test_quantity_inside_mapped_phrase(self):
        """Testa quantidade dentro da frase mapeada."""
        lexicon = Lexicon.build(keyword_mappings={"pequena x 2": "1"})
        assert _names(analyze_message("pequena x 2", self.menu, lexicon)) == [("Marmita Pequena", 2)]

    def test_number_in_product_name_is_not_quantity(self):
        """Testa número que faz parte do nome do produto."""
        menu = Menu.from_dicts([{"id": "c2", "name": "Combo 2", "price": 30.0}])
        assert _names(analyze_message("combo 2", menu)) == [("Combo 2", 1)]
        assert _names(analyze_message("3 combo 2", menu)) == [("Combo 2", 3)]


class TestFailureHandling:
    """Testes para falhas durante a análise."""

    def setup_method(self):
        self.menu = Menu.from_dicts(CATALOGO_MARMITARIA)

    def test_segment_error_keeps_other_segments(self, monkeypatch):
        """Testa erro em um segmento sem perder os outros."""
        original = service_module.extract_modifiers

        def flaky(tokens, *args, **kwargs):
            if "grande" in tokens:
                raise RuntimeError("boom")
            return original(tokens, *args, **kwargs)

        monkeypatch.setattr(service_module, "extract_modifiers", flaky)
        found = find_all_products("2 pequenas, grande, coca lata", self.menu)
        assert [m.product.name for m in found] == ["Marmita Pequena", "Coca Cola Lata"]

    def test_never_raises(self, monkeypatch):
        """Testa que a análise nunca propaga exceção."""
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(service_module, "split_segments", broken)
        actions = analyze_message("cardapio e 2 pequenas", self.menu)
        assert [a.type for a in actions] == [SHOW_MENU]


class FakeLexiconService:
    def __init__(self, lexicon=None, error=None):
        self.lexicon = lexicon
        self.error = error
        self.calls = []

    def load(self, tenant_id):
        self.calls.append(tenant_id)
        if self.error:
            raise self.error
        return self.lexicon


class TestOrderInterpreterService:
    """Testes para o OrderInterpreterService."""

    def setup_method(self):
        self.menu = Menu.from_dicts(CATALOGO_MARMITARIA)

    def test_without_lexicon_service(self):
        """Testa serviço sem léxico do banco."""
        service = OrderInterpreterService()
        assert _names(service.analyze_message("2 pequenas", self.menu)) == [("Marmita Pequena", 2)]

    def test_uses_tenant_lexicon(self):
        """Testa serviço carregando o léxico do tenant."""
        fake = FakeLexiconService(Lexicon.build(keyword_mappings={"pf": "1"}))
        service = OrderInterpreterService(lexicon_service=fake)
        actions = service.analyze_message("pf", self.menu, tenant_id="t1")
        assert _names(actions) == [("Marmita Pequena", 1)]
        assert fake.calls == ["t1"]

    def test_lexicon_failure_degrades_to_builtin(self):
        """Testa falha do léxico caindo no embutido."""
        service = OrderInterpreterService(lexicon_service=FakeLexiconService(error=RuntimeError("db down")))
        actions = service.analyze_message("2 pequenas", self.menu, tenant_id="t1")
        assert _names(actions) == [("Marmita Pequena", 2)]

    def test_find_all_products(self):
        """Testa find_all_products do serviço."""
        service = OrderInterpreterService()
        found = service.find_all_products("2 pequenas, 1 grande", self.menu)
        assert [(m.product.name, m.quantity, m.type) for m in found] == [
            ("Marmita Pequena", 2, ITEM_PRODUCT),
            ("Marmita Grande", 1, ITEM_PRODUCT),
        ]

    def test_to_dict(self):
        """Testa saída em dicionário."""
        result = OrderInterpreterService().analyze_message_to_dict("cardapio e 1 coca lata", self.menu)
        assert result["actions"][0] == {"type": SHOW_MENU}
        assert result["actions"][1]["product"]["name"] == "Coca Cola Lata"
        assert result["actions"][1]["quantity"] == 1


class TestMenuFromDicts:
    """Testes para Menu.from_dicts."""

    def test_skips_malformed_rows(self):
        """Testa linhas inválidas do cardápio."""
        menu = Menu.from_dicts(
            [{"name": "", "price": 1}, {"nome": "Pizza", "preco": "R$ 30,00"}, {"name": "Sem preço"}],
            [{"name": "Bacon", "price": "5"}, {"price": 2}],
        )
        assert [(p.name, p.price) for p in menu.products] == [("Pizza", 30.0)]
        assert [(a.name, a.price) for a in menu.addons] == [("Bacon", 5.0)]


class TestProductNamesWithTriggers:
    """Testes para produtos cujo nome contém 'com' ou 'sem'."""

    def setup_method(self):
        self.menu = Menu.from_dicts([
            {"id": "f1", "name": "Frango com Catupiry", "price": 32.0},
            {"id": "p1", "name": "Pão com Ovo", "price": 8.0},
            {"id": "x1", "name": "X-Salada", "price": 18.0},
        ])

    def test_frango_com_catupiry(self):
        """Testa nome com 'com' casando como um produto só."""
        actions = analyze_message("1 frango com catupiry", self.menu)
        assert _names(actions) == [("Frango com Catupiry", 1)]
        assert _products(actions)[0].notes == ""

    def test_pao_com_ovo(self):
        """Testa nome curto com 'com' e quantidade antes."""
        assert _names(analyze_message("2 pao com ovo", self.menu)) == [("Pão com Ovo", 2)]

    def test_modifiers_after_name_with_trigger(self):
        """Testa modificador depois de um nome que já contém 'com'."""
        found = _products(analyze_message("frango com catupiry sem cebola", self.menu))
        assert [(a.product.name, a.notes) for a in found] == [("Frango com Catupiry", "sem cebola")]

    def test_trigger_outside_name_is_still_modifier(self):
        """Testa 'com' que não faz parte de nenhum nome."""
        found = _products(analyze_message("x salada com bacon", self.menu))
        assert [(a.product.name, a.notes) for a in found] == [("X-Salada", "com bacon")]


class TestSlashShorthands:
    """Testes para as abreviações 'c/' e 's/'."""

    def setup_method(self):
        self.menu = Menu.from_dicts([{"id": "x1", "name": "X-Salada", "price": 18.0}])

    def test_sem_shorthand(self):
        """Testa 's/' como 'sem' e não como confirmação."""
        actions = analyze_message("x salada s/ tomate", self.menu)
        assert [a.type for a in actions] == [ADD_PRODUCT]
        assert actions[0].notes == "sem tomate"

    def test_com_shorthand(self):
        """Testa 'c/' como 'com' e não como remoção de item."""
        actions = analyze_message("x salada c/ bacon", self.menu)
        assert [a.type for a in actions] == [ADD_PRODUCT]
        assert actions[0].notes == "com bacon"

    def test_shorthand_without_space(self):
        """Testa abreviação colada na palavra ('s/cebola')."""
        actions = analyze_message("2 x salada s/cebola", self.menu)
        assert [(a.product.name, a.quantity, a.notes) for a in actions] == [("X-Salada", 2, "sem cebola")]


class TestLeftoverNotes:
    """Testes para palavras que sobram e viram observação do item."""

    def setup_method(self):
        self.menu = Menu.from_dicts([
            {"id": "x1", "name": "X-Salada", "price": 18.0},
            {"id": "x2", "name": "X-Bacon", "price": 24.0},
            {"id": "m1", "name": "Marmita Pequena", "price": 15.0},
        ])

    def test_leftover_words_become_note(self):
        """Testa 'bem caprichado' como observação."""
        found = _products(analyze_message("x salada bem caprichado", self.menu))
        assert [(a.product.name, a.notes) for a in found] == [("X-Salada", "bem caprichado")]

    def test_leftover_joins_modifier_notes(self):
        """Testa sobra somada às observações dos modificadores."""
        found = _products(analyze_message("x salada sem tomate bem caprichado", self.menu))
        assert found[0].notes == "sem tomate, bem caprichado"

    def test_leftover_goes_to_last_product(self):
        """Testa sobra anexada só ao último produto do segmento."""
        found = _products(analyze_message("x salada x bacon caprichado", self.menu))
        assert [(a.product.name, a.notes) for a in found] == [("X-Salada", ""), ("X-Bacon", "caprichado")]

    def test_filler_and_intent_words_are_not_notes(self):
        """Testa que cortesias e palavras de intenção não viram observação."""
        actions = analyze_message("2 pequenas pra entrega por favor", self.menu)
        assert DELIVERY in [a.type for a in actions]
        assert [(a.product.name, a.quantity, a.notes) for a in _products(actions)] == [
            ("Marmita Pequena", 2, "")
        ]
