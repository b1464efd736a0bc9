"""Courtroom debate against the neurotech CEO.

Three claims are presented in order, each with exactly one weakness.  Playing
the matching evidence card costs the CEO heavily; a mismatched card barely
scratches them and costs the player credibility.  After the third card the
final standings decide the verdict.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
import logging
from typing import Dict, List, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)

COUNTER_DAMAGE = 40
COUNTER_HEAL = 10
MISS_DAMAGE = 5
MISS_HEAL = -20
MAX_CREDIBILITY = 100
WIN_KNOWLEDGE_POINTS = 500


@dataclass(frozen=True)
class Claim:
    id: int
    text: str
    weakness: str


@dataclass(frozen=True)
class EvidenceCard:
    id: str
    title: str
    description: str


CLAIMS: Tuple[Claim, ...] = (
    Claim(
        0,
        "Ladies and gentlemen of the jury, our technology simply helps organisms 'win'. In the food "
        "competition test, the controlled subjects were more successful. We are optimizing nature!",
        "mkultra",
    ),
    Claim(
        1,
        "Critics call this invasive, but look! No wires! The device weighs less than 2 grams. It's "
        "practically invisible compared to the barbarism of optical fibers.",
        "viral_vector",
    ),
    Claim(
        2,
        "And safety? These upconversion nanoparticles are harmless. They do their job and... well, "
        "they are biocompatible. There is absolutely no long-term risk.",
        "clearance",
    ),
)

CARDS: Mapping[str, EvidenceCard] = {
    "mkultra": EvidenceCard(
        "mkultra",
        "MKUltra Precedent",
        "Historical evidence of unethical behavioral control. Cites loss of free will.",
    ),
    "viral_vector": EvidenceCard(
        "viral_vector",
        "Viral Vector Risk",
        "Requires AAV injection. Genetic modification is permanent and invasive.",
    ),
    "clearance": EvidenceCard(
        "clearance",
        "Clearance Unknown",
        'Cites Li et al., 2025: "UCNP clearance mechanism is not fully understood."',
    ),
}


class DebateOutcome(str, Enum):
    WIN = "win"
    LOSS = "loss"


@dataclass(frozen=True)
class DebateState:
    claim_index: int = 0
    ceo_credibility: float = 100.0
    player_credibility: float = 100.0
    history: Tuple[str, ...] = field(default_factory=tuple)
    outcome: Optional[DebateOutcome] = None

    @property
    def current_claim(self) -> Optional[Claim]:
        if self.outcome is not None or self.claim_index >= len(CLAIMS):
            return None
        return CLAIMS[self.claim_index]

    def as_dict(self) -> Dict[str, object]:
        claim = self.current_claim
        return {
            "claim_index": self.claim_index,
            "claim": claim.text if claim else None,
            "ceo_credibility": self.ceo_credibility,
            "player_credibility": self.player_credibility,
            "history": list(self.history),
            "outcome": self.outcome.value if self.outcome else None,
        }


@dataclass(frozen=True)
class CardEffect:
    damage: float
    self_heal: float
    log: str
    effective: bool


def card_effect(claim: Claim, card_id: str) -> CardEffect:
    """Score ``card_id`` against ``claim``; raises ``KeyError`` for unknown cards."""

    card = CARDS[card_id]
    if card_id == claim.weakness:
        return CardEffect(
            damage=COUNTER_DAMAGE,
            self_heal=COUNTER_HEAL,
            log=f"OBJECTION! {card.title} completely refutes the claim.",
            effective=True,
        )
    return CardEffect(
        damage=MISS_DAMAGE,
        self_heal=MISS_HEAL,
        log=f"WEAK ARGUMENT. The card {card.title} is irrelevant here.",
        effective=False,
    )


def apply_effect(state: DebateState, effect: CardEffect) -> DebateState:
    return replace(
        state,
        ceo_credibility=max(0.0, state.ceo_credibility - effect.damage),
        player_credibility=min(float(MAX_CREDIBILITY), state.player_credibility + effect.self_heal),
        history=state.history + (effect.log,),
    )


def verdict(state: DebateState) -> DebateOutcome:
    if state.ceo_credibility <= 0 or state.ceo_credibility < state.player_credibility:
        return DebateOutcome.WIN
    return DebateOutcome.LOSS


def advance(state: DebateState) -> DebateState:
    """Move to the next claim, or close the debate after the last one."""

    if state.claim_index < len(CLAIMS) - 1:
        return replace(state, claim_index=state.claim_index + 1)
    outcome = verdict(state)
    LOGGER.info(
        "Debate closed: %s (ceo=%.0f player=%.0f)",
        outcome.value,
        state.ceo_credibility,
        state.player_credibility,
    )
    return replace(state, outcome=outcome)


def play_card(state: DebateState, card_id: str) -> Tuple[DebateState, CardEffect]:
    """Apply a card to the current claim and advance.

    The verdict after the third claim reads the standings *after* the card
    just played.
    """

    claim = state.current_claim
    if claim is None:
        raise ValueError("The debate is over")
    effect = card_effect(claim, card_id)
    return advance(apply_effect(state, effect)), effect


def list_cards() -> List[EvidenceCard]:
    return list(CARDS.values())


__all__ = [
    "CARDS",
    "CLAIMS",
    "CardEffect",
    "Claim",
    "DebateOutcome",
    "DebateState",
    "EvidenceCard",
    "WIN_KNOWLEDGE_POINTS",
    "advance",
    "apply_effect",
    "card_effect",
    "list_cards",
    "play_card",
    "verdict",
]
