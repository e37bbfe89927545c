import random

import pytest

from klondike import (
    Board,
    Card,
    deal,
    new_deck,
    remove_from,
    append_to,
    check_deck_integrity,
    tableau_id,
    foundation_id,
)


def test_new_deck_has_each_card_once():
    deck = new_deck()
    assert len(deck) == 52
    assert len({c.id for c in deck}) == 52
    assert all(not c.face_up for c in deck)


def test_deal_layout():
    board = deal(random.Random(1))
    for i in range(7):
        pile = board.piles[tableau_id(i)]
        assert len(pile.cards) == i + 1
        assert pile.cards[-1].face_up
        assert all(not c.face_up for c in pile.cards[:-1])
    t6 = board.piles["tableau-6"]
    assert len(t6.cards) == 7
    assert len(board.stock.cards) == 24
    assert all(not c.face_up for c in board.stock.cards)
    assert board.waste.cards == []
    for i in range(4):
        assert board.piles[foundation_id(i)].cards == []
    check_deck_integrity(board)


def test_deal_is_reproducible_with_seed():
    a = deal(random.Random(42))
    b = deal(random.Random(42))
    assert [c.id for c in a.all_cards()] == [c.id for c in b.all_cards()]


def test_remove_from_returns_run_and_append_to_pushes_it():
    board = Board()
    t0 = board.piles["tableau-0"]
    t1 = board.piles["tableau-1"]
    cards = [Card("clubs", "9"), Card("hearts", "8", True), Card("spades", "7", True)]
    append_to(t0, cards)
    run = remove_from(t0, 1)
    assert [c.id for c in run] == ["hearts-8", "spades-7"]
    assert [c.id for c in t0.cards] == ["clubs-9"]
    append_to(t1, run)
    assert [c.id for c in t1.cards] == ["hearts-8", "spades-7"]


def test_integrity_detects_duplicates():
    board = deal(random.Random(3))
    board.waste.cards.append(Card("hearts", "A", True))
    with pytest.raises(AssertionError):
        check_deck_integrity(board)


def test_unknown_pile_raises_not_found():
    from klondike import NotFoundError

    with pytest.raises(NotFoundError):
        Board().pile("tableau-9")


def test_card_suit_and_rank_are_read_only():
    card = Card("hearts", "5")
    with pytest.raises(AttributeError):
        card.suit = "spades"
    with pytest.raises(AttributeError):
        card.rank = "K"
    card.face_up = True
    assert card.id == "hearts-5"
    assert card.face_up
