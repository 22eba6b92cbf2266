from service_modules.loyalty import (
    is_protein_item, apply_purchase_punches, apply_cancellation_punches, loyalty_card_status
)


def test_protein_items_are_detected_case_insensitively():
    assert is_protein_item("Chocolate PROTEIN SHAKE")
    assert is_protein_item("Protein Pudding - Vanilla")
    assert not is_protein_item("Protein Bar")
    assert not is_protein_item("Towel")
    assert not is_protein_item(None)


def test_purchase_without_completing_a_card():
    assert apply_purchase_punches(3, 4) == (7, 0)


def test_purchase_completing_a_card_awards_two_tokens():
    assert apply_purchase_punches(8, 3) == (1, 2)


def test_purchase_completing_two_cards():
    assert apply_purchase_punches(9, 12) == (1, 4)


def test_cancellation_deducts_punches():
    assert apply_cancellation_punches(5, 2) == (3, 2, 0)


def test_cancellation_with_no_punches_changes_nothing():
    assert apply_cancellation_punches(0, 2) == (0, 0, 0)


def test_cancelling_items_that_completed_a_card_is_penalized():
    punches, awarded = apply_purchase_punches(8, 5)
    assert (punches, awarded) == (3, 2)
    assert apply_cancellation_punches(punches, 5) == (0, 3, 2)


def test_cancellation_that_stays_on_the_card_is_not_penalized():
    assert apply_cancellation_punches(3, 3) == (0, 3, 0)


def test_cancellation_crossing_a_card_boundary_is_penalized():
    assert apply_cancellation_punches(10, 1) == (9, 1, 2)


def test_loyalty_card_status():
    status = loyalty_card_status(13)
    assert status["progress"] == 30
    assert status["punches_until_reward"] == 7
    assert status["cards_completed"] == 1
