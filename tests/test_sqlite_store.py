from datetime import timedelta

from sca_core.models import Card, SpendingCategory, Transaction
from storage import SCHEMA_VERSION, SQLiteStore

from conftest import FIXED_NOW


def _store(tmp_path):
    return SQLiteStore(str(tmp_path / "cardwise.sqlite"))


def test_schema_created(tmp_path):
    with _store(tmp_path) as store:
        assert store.schema_version() == SCHEMA_VERSION
        assert store.get_stats() == {"cards": 0, "transactions": 0}
        # idempotent
        assert store.ensure_schema() == {"schema_version": SCHEMA_VERSION}


def test_card_round_trip(tmp_path):
    card = Card(
        name="Live Fresh",
        issuer="DBS",
        product_id="dbs-live-fresh",
        raw_names=["DBS Live Fresh Visa"],
        first_seen=FIXED_NOW,
        last_used=FIXED_NOW,
        match_confidence=1.0,
    )
    with _store(tmp_path) as store:
        store.add_card(card)
        loaded = store.get_card(card.id)
    assert loaded == card


def test_save_card_updates_in_place(tmp_path):
    card = Card(name="Cash Back", issuer="Citi", product_id="citi-cash-back",
                raw_names=["Citi Cash Back"], first_seen=FIXED_NOW, last_used=FIXED_NOW)
    with _store(tmp_path) as store:
        store.add_card(card)
        card.raw_names.append("Citibank Cash Back")
        card.transaction_count = 2
        card.last_used = FIXED_NOW + timedelta(hours=1)
        store.save_card(card)
        cards = store.all_cards()
    assert len(cards) == 1
    assert cards[0].raw_names == ["Citi Cash Back", "Citibank Cash Back"]
    assert cards[0].transaction_count == 2
    assert cards[0].last_used == FIXED_NOW + timedelta(hours=1)


def test_save_unknown_card_inserts(tmp_path):
    card = Card(name="Mystery", issuer="Unknown")
    with _store(tmp_path) as store:
        store.save_card(card)
        assert store.get_card(card.id) is not None


def test_cards_keep_insertion_order_and_active_filter(tmp_path):
    first = Card(name="A", issuer="X")
    second = Card(name="B", issuer="X")
    with _store(tmp_path) as store:
        store.add_card(first)
        store.add_card(second)
        assert [c.id for c in store.all_cards()] == [first.id, second.id]
        assert store.set_card_active(first.id, False)
        assert [c.id for c in store.active_cards()] == [second.id]
        assert not store.set_card_active("missing", True)


def test_transaction_round_trip(tmp_path):
    card = Card(name="Live Fresh", issuer="DBS", first_seen=FIXED_NOW, last_used=FIXED_NOW)
    txn = Transaction(
        merchant_name="Din Tai Fung",
        amount=45.8,
        currency="SGD",
        card_name="DBS Live Fresh Visa",
        card_id=card.id,
        category=SpendingCategory.DINING,
        optimal_card_id=None,
        actual_reward=0.1374,
        optimal_reward=2.748,
        rewards_delta=2.6106,
        optimal_card_name="Citi Cash Back",
        timestamp=FIXED_NOW,
        is_optimal=False,
    )
    with _store(tmp_path) as store:
        store.add_card(card)
        store.add_transaction(txn)
        assert store.transactions() == [txn]
        assert store.transactions(limit=0) == []
        assert store.get_stats() == {"cards": 1, "transactions": 1}
