from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, timedelta

from .config import (
    CPU_OFFER_CHANCE,
    CPU_OFFER_LIFETIME_DAYS,
    CPU_OFFER_VALUE_RANGE,
    DEFAULT_NEGOTIATION_POLICY,
    TRANSFER_WINDOW_MONTHS,
    NegotiationPolicy,
)
from .development import transfer_wage
from .models import Club, GameState, NewsItem, Player, TransferOffer, TransferRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OfferOutcome:
    success: bool
    message: str
    fee: int = 0
    via_release_clause: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "message": self.message,
            "fee": self.fee,
            "via_release_clause": self.via_release_clause,
        }


def is_transfer_window_open(on: date) -> bool:
    return on.month in TRANSFER_WINDOW_MONTHS


def _band(value: float, bands: tuple[tuple[float, float], ...], floor: float) -> float:
    for threshold, result in bands:
        if value >= threshold:
            return result
    return floor


def offer_ratio(player: Player, amount: int) -> float:
    return amount / max(1, player.market_value)


def club_acceptance_chance(
    player: Player,
    amount: int,
    buyer: Club,
    seller: Club,
    policy: NegotiationPolicy = DEFAULT_NEGOTIATION_POLICY,
) -> float:
    """Probability that the selling club agrees to a negotiated (non-clause) fee."""
    ratio = offer_ratio(player, amount)
    if player.transfer_status == "LISTED":
        chance = _band(ratio, policy.listed_bands, policy.listed_floor)
    elif player.transfer_status == "UNTOUCHABLE":
        chance = _band(ratio, policy.untouchable_bands, policy.untouchable_floor)
    else:
        chance = _band(ratio, policy.default_bands, policy.default_floor)

    if player.skill >= policy.elite_skill:
        chance *= policy.elite_skill_factor
    elif player.skill >= policy.star_skill:
        chance *= policy.star_skill_factor
    if player.age <= policy.prospect_max_age and player.potential >= policy.prospect_min_potential:
        chance *= policy.prospect_factor

    reputation_diff = buyer.reputation - seller.reputation
    if reputation_diff > policy.reputation_gap:
        chance *= policy.stronger_buyer_factor
    elif reputation_diff < -policy.reputation_gap:
        chance *= policy.weaker_buyer_factor
    return max(0.0, min(1.0, chance))


def _is_young_talent_at_big_club(player: Player, seller: Club, policy: NegotiationPolicy) -> bool:
    return (
        player.age <= policy.talent_max_age
        and player.potential >= policy.talent_min_potential
        and seller.reputation >= policy.big_club_reputation
    )


def player_interest(
    player: Player,
    amount: int,
    buyer: Club,
    seller: Club,
    policy: NegotiationPolicy = DEFAULT_NEGOTIATION_POLICY,
) -> int:
    """Willingness (0-100) of the player to move to ``buyer``."""
    score = policy.base_interest
    reputation_diff = buyer.reputation - seller.reputation
    score += int(_band(reputation_diff, policy.reputation_interest_bands, policy.reputation_interest_floor))

    if _is_young_talent_at_big_club(player, seller, policy):
        score += policy.talent_interest_delta
    if player.skill >= policy.star_skill:
        score += policy.star_interest_delta
        if offer_ratio(player, amount) >= policy.star_premium_ratio:
            score += policy.star_premium_delta
    if player.age >= policy.veteran_age:
        score += policy.veteran_interest_delta
    if player.transfer_status == "LISTED":
        score += policy.listed_interest_delta
    elif player.transfer_status == "LOAN_LISTED":
        score += policy.loan_listed_interest_delta
    return max(policy.min_interest, min(policy.max_interest, score))


def interest_rejection_reason(
    player: Player,
    buyer: Club,
    seller: Club,
    policy: NegotiationPolicy = DEFAULT_NEGOTIATION_POLICY,
) -> str:
    reputation_diff = buyer.reputation - seller.reputation
    if reputation_diff < policy.step_back_gap and player.skill >= policy.star_skill:
        return f"{player.name} doesn't want a step back in his career."
    if _is_young_talent_at_big_club(player, seller, policy):
        return f"{player.name} prefers to keep developing at {seller.name}."
    if reputation_diff < policy.unconvinced_gap:
        return f"{player.name} is not convinced by the sporting project."
    return f"{player.name} is not interested in joining {buyer.name}."


class TransferMarket:
    """Bids by the user's club, sales to CPU clubs and incoming CPU offers."""

    def __init__(
        self,
        state: GameState,
        rng: random.Random,
        policy: NegotiationPolicy = DEFAULT_NEGOTIATION_POLICY,
    ) -> None:
        self.state = state
        self._rng = rng
        self.policy = policy

    @property
    def user_club(self) -> Club:
        return self.state.clubs[self.state.user_club_id]

    def make_offer(self, player_id: str, amount: int) -> OfferOutcome:
        state = self.state
        if not is_transfer_window_open(state.current_date):
            return OfferOutcome(False, "The transfer window is closed.")
        player = state.players.get(player_id)
        if player is None:
            return OfferOutcome(False, "Player not found.")
        if player.club_id == state.user_club_id:
            return OfferOutcome(False, f"{player.name} already plays for your club.")
        seller = None if player.is_free_agent else state.clubs.get(player.club_id)
        if seller is None:
            return OfferOutcome(False, "Selling club not found.")
        buyer = self.user_club
        if amount <= 0:
            return OfferOutcome(False, "Offer amount must be positive.")
        if buyer.budget < amount:
            return OfferOutcome(False, "Insufficient budget for this offer.")

        clause_paid = player.release_clause is not None and amount >= player.release_clause
        if player.transfer_status == "UNTOUCHABLE" and player.release_clause is None:
            return OfferOutcome(False, f"{seller.name} will not sell {player.name}: untouchable without a release clause.")

        if not clause_paid:
            chance = club_acceptance_chance(player, amount, buyer, seller, self.policy)
            if self._rng.random() >= chance:
                if offer_ratio(player, amount) < self.policy.low_offer_ratio:
                    return OfferOutcome(False, f"{seller.name} rejected the offer. Too low.")
                return OfferOutcome(False, f"{seller.name} rejected the offer.")

        interest = player_interest(player, amount, buyer, seller, self.policy)
        if self._rng.random() * 100 >= interest:
            return OfferOutcome(False, interest_rejection_reason(player, buyer, seller, self.policy))

        self._complete_purchase(player, seller, buyer, amount, clause_paid)
        if clause_paid:
            message = f"{player.name} signs for {buyer.name} after the release clause was paid."
        else:
            message = f"{player.name} signs for {buyer.name} for {amount:,}."
        return OfferOutcome(True, message, fee=amount, via_release_clause=clause_paid)

    def _complete_purchase(self, player: Player, seller: Club, buyer: Club, fee: int, clause_paid: bool) -> None:
        on = self.state.current_date
        player.club_id = buyer.club_id
        player.transfer_status = "AVAILABLE"
        player.wage = transfer_wage(player)
        buyer.budget -= fee
        seller.budget += fee
        self.state.transfer_history.append(
            TransferRecord(
                player_id=player.player_id,
                player_name=player.name,
                from_club_id=seller.club_id,
                to_club_id=buyer.club_id,
                fee=fee,
                transfer_date=on,
                via_release_clause=clause_paid,
            )
        )
        if clause_paid:
            body = f"{buyer.name} triggered the {fee:,} release clause to sign {player.name} from {seller.name}."
        else:
            body = f"{buyer.name} agreed a {fee:,} fee with {seller.name} for {player.name}."
        self.state.news.append(
            NewsItem(
                kind="TRANSFER",
                headline=f"{player.name} joins {buyer.name}",
                body=body,
                news_date=on,
                club_id=buyer.club_id,
            )
        )
        logger.info("Transfer: %s %s -> %s for %d", player.name, seller.club_id, buyer.club_id, fee)

    def sell_player(self, player_id: str, buyer_club_id: str, amount: int) -> bool:
        """Move a user-owned player to ``buyer_club_id`` at ``amount``. No negotiation."""
        state = self.state
        player = state.players.get(player_id)
        buyer = state.clubs.get(buyer_club_id)
        if player is None or buyer is None or amount < 0:
            return False
        if player.club_id != state.user_club_id or buyer_club_id == state.user_club_id:
            return False

        seller = self.user_club
        player.club_id = buyer.club_id
        player.transfer_status = "AVAILABLE"
        seller.budget += amount
        buyer.budget = max(0, buyer.budget - amount)
        state.transfer_history.append(
            TransferRecord(
                player_id=player.player_id,
                player_name=player.name,
                from_club_id=seller.club_id,
                to_club_id=buyer.club_id,
                fee=amount,
                transfer_date=state.current_date,
            )
        )
        state.news.append(
            NewsItem(
                kind="TRANSFER",
                headline=f"{player.name} leaves for {buyer.name}",
                body=f"{seller.name} sold {player.name} to {buyer.name} for {amount:,}.",
                news_date=state.current_date,
                club_id=seller.club_id,
            )
        )
        logger.info("Sale: %s %s -> %s for %d", player.name, seller.club_id, buyer.club_id, amount)
        return True

    def pending_offers(self, on: date | None = None) -> list[TransferOffer]:
        day = on or self.state.current_date
        return [o for o in self.state.offers if o.is_live(day)]

    def respond_to_offer(self, offer_id: str, accept: bool) -> OfferOutcome:
        state = self.state
        offer = next((o for o in state.offers if o.offer_id == offer_id), None)
        if offer is None:
            return OfferOutcome(False, "Offer not found.")
        if not offer.is_live(state.current_date):
            return OfferOutcome(False, "This offer is no longer available.")

        if not accept:
            offer.resolve("REJECTED")
            return OfferOutcome(True, "Offer rejected.")

        if not self.sell_player(offer.player_id, offer.from_club_id, offer.amount):
            offer.resolve("REJECTED")
            return OfferOutcome(False, "The sale could not be completed.")
        offer.resolve("ACCEPTED")
        # Any other bid for the same player is void once he has left.
        for other in state.offers:
            if other is not offer and other.player_id == offer.player_id and other.status == "PENDING":
                other.resolve("REJECTED")
        buyer = state.clubs[offer.from_club_id]
        player = state.players[offer.player_id]
        return OfferOutcome(True, f"{player.name} sold to {buyer.name} for {offer.amount:,}.", fee=offer.amount)

    def generate_cpu_offers(self, on: date | None = None) -> list[TransferOffer]:
        """Roll for CPU bids on the user's listed players. Only inside a window."""
        state = self.state
        day = on or state.current_date
        if not is_transfer_window_open(day):
            return []

        already_bid = {o.player_id for o in state.offers if o.is_live(day)}
        listed = sorted(
            (
                p
                for p in state.squad(state.user_club_id)
                if p.transfer_status in ("LISTED", "LOAN_LISTED") and p.player_id not in already_bid
            ),
            key=lambda p: p.player_id,
        )
        created: list[TransferOffer] = []
        low, high = CPU_OFFER_VALUE_RANGE
        for player in listed:
            if self._rng.random() >= CPU_OFFER_CHANCE:
                continue
            amount = int(round(max(1, player.market_value) * self._rng.uniform(low, high) / 1000)) * 1000
            bidders = sorted(
                (c for c in state.clubs.values() if c.club_id != state.user_club_id and c.budget >= amount),
                key=lambda c: c.club_id,
            )
            if not bidders:
                continue
            bidder = self._rng.choice(bidders)
            offer = TransferOffer(
                player_id=player.player_id,
                from_club_id=bidder.club_id,
                amount=amount,
                created=day,
                expires=day + timedelta(days=CPU_OFFER_LIFETIME_DAYS),
            )
            state.offers.append(offer)
            state.news.append(
                NewsItem(
                    kind="OFFER",
                    headline=f"{bidder.name} bid for {player.name}",
                    body=f"{bidder.name} offered {amount:,} for {player.name}. The offer expires on {offer.expires.isoformat()}.",
                    news_date=day,
                    club_id=state.user_club_id,
                )
            )
            created.append(offer)
        return created
