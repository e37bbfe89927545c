from klondike import Board, Card, SUITS, RANKS, compute_score, board_score, is_won, foundation_id


def test_score_formula():
    assert compute_score(0, 0, 0) == 1000
    assert compute_score(4, 30_500, 12) == 40 + 970 - 12
    assert compute_score(52, 2_000_000, 100) == 520 - 100


def test_score_never_negative():
    assert compute_score(0, 5_000_000, 300) == 0


def test_is_won_iff_all_cards_on_foundations():
    board = Board()
    assert not is_won(board)
    for i, suit in enumerate(SUITS):
        board.piles[foundation_id(i)].cards = [Card(suit, r, True) for r in RANKS]
    assert board.foundation_count() == 52
    assert is_won(board)
    board.piles["foundation-0"].cards.pop()
    assert not is_won(board)
    assert board_score(board, 0, 0) == 510 + 1000
