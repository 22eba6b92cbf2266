"""
Loyalty card arithmetic.

Every protein shake or pudding bought punches the card once. A full card
(10 punches) is worth 2 free shake tokens and the card starts over.
Cancelling an order takes the punches back; if the cancelled items are what
completed a rewarded card, the reward is clawed back.
"""
from typing import Tuple

PUNCHES_PER_CARD = 10
REWARD_SHAKE_TOKENS = 2
PROTEIN_KEYWORDS = ("protein shake", "protein pudding")


def is_protein_item(name: str) -> bool:
    lowered = (name or "").lower()
    return any(keyword in lowered for keyword in PROTEIN_KEYWORDS)


def apply_purchase_punches(punches: int, protein_qty: int) -> Tuple[int, int]:
    """Return (remaining punches on the card, shake tokens awarded)."""
    punches = punches or 0
    new_punches = punches + protein_qty
    cards = new_punches // PUNCHES_PER_CARD - punches // PUNCHES_PER_CARD
    return new_punches % PUNCHES_PER_CARD, cards * REWARD_SHAKE_TOKENS


def apply_cancellation_punches(punches: int, protein_count: int) -> Tuple[int, int, int]:
    """
    Return (new punches, punches deducted, shake token penalty).

    Cards reset after a reward, so taking back more punches than the card
    holds means the cancelled items completed a card that was already paid out.
    """
    punches = punches or 0
    if punches <= 0 or protein_count <= 0:
        return punches, 0, 0

    remaining = punches - protein_count
    new_punches = max(0, remaining)
    deducted = punches - new_punches
    penalty = 0
    if punches // PUNCHES_PER_CARD > remaining // PUNCHES_PER_CARD:
        penalty = REWARD_SHAKE_TOKENS
    return new_punches, deducted, penalty


def loyalty_card_status(punches: int) -> dict:
    punches = punches or 0
    on_card = punches % PUNCHES_PER_CARD
    return {
        "punches": punches,
        "progress": on_card * 100 / PUNCHES_PER_CARD,
        "punches_until_reward": PUNCHES_PER_CARD - on_card,
        "cards_completed": punches // PUNCHES_PER_CARD,
    }
