"""
Ledger aggregation over games and their participants.

Games are plain store rows (dicts) with a ``participants`` list attached. All
sums stay ``Decimal``; callers format with ``app.core.money`` at the edge.

Guests have no identity of their own: they are keyed by their lower-cased
name, so two different guests called "Bob" in different games are merged into
one standing. That is a known limitation of the data model.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from app.core.exceptions import ValidationFailedError
from app.core.money import ZERO, calculate_net, is_valid_money, sum_decimals, to_decimal

CASH = "CASH"
TOURNAMENT = "TOURNAMENT"

MIN_PARTICIPANTS = 2


@dataclass
class Tally:
    key: str
    name: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    games_played: int = 0
    total_spent: Decimal = ZERO
    total_won: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.total_won - self.total_spent

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def add(self, spent: Any, won: Any) -> None:
        self.games_played += 1
        self.total_spent += to_decimal(spent)
        self.total_won += to_decimal(won)


@dataclass
class LedgerSummary:
    total_games: int = 0
    cash_games: int = 0
    tournaments: int = 0
    total_spent: Decimal = ZERO
    total_won: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.total_won - self.total_spent


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def participant_key(participant: Dict[str, Any]) -> str:
    """Aggregation key: ``user:<id>`` for members, ``guest:<lower-cased name>`` for guests"""
    user_id = _text(participant.get("user_id"))
    if user_id:
        return f"user:{user_id}"
    return f"guest:{_text(participant.get('guest_name')).lower()}"


def game_totals(participants: Iterable[Dict[str, Any]]) -> Tuple[Decimal, Decimal]:
    participants = list(participants)
    return (
        sum_decimals(p["spent"] for p in participants),
        sum_decimals(p["won"] for p in participants),
    )


def summarize(games: Iterable[Dict[str, Any]]) -> LedgerSummary:
    """Game counts per type and aggregate spent/won across every participant"""
    summary = LedgerSummary()
    for game in games:
        summary.total_games += 1
        if game["game_type"] == CASH:
            summary.cash_games += 1
        elif game["game_type"] == TOURNAMENT:
            summary.tournaments += 1
        spent, won = game_totals(game.get("participants") or [])
        summary.total_spent += spent
        summary.total_won += won
    return summary


def player_standings(
    games: Iterable[Dict[str, Any]],
    profiles: Optional[Dict[str, Dict[str, Any]]] = None,
) -> List[Tally]:
    """Per-player totals across ``games``, highest net first.

    Members and guests share one list. Ties keep first-seen order.
    """
    profiles = profiles or {}
    tallies: Dict[str, Tally] = {}
    for game in games:
        for participant in game.get("participants") or []:
            key = participant_key(participant)
            tally = tallies.get(key)
            if tally is None:
                user_id = _text(participant.get("user_id")) or None
                if user_id:
                    profile = profiles.get(user_id) or {}
                    tally = Tally(key=key, user_id=user_id, name=profile.get("name"), email=profile.get("email"))
                else:
                    tally = Tally(key=key, name=_text(participant.get("guest_name")))
                tallies[key] = tally
            tally.add(participant["spent"], participant["won"])
    return sorted(tallies.values(), key=lambda t: t.net, reverse=True)


def user_participation(game: Dict[str, Any], user_id: str) -> Optional[Dict[str, Any]]:
    for participant in game.get("participants") or []:
        if participant.get("user_id") == user_id:
            return participant
    return None


def group_breakdown(
    games: Iterable[Dict[str, Any]],
    user_id: str,
    groups: Dict[str, Dict[str, Any]],
) -> List[Tally]:
    """One user's own results grouped by group, highest net first"""
    tallies: Dict[str, Tally] = {}
    for game in games:
        participation = user_participation(game, user_id)
        if participation is None:
            continue
        group_id = game["group_id"]
        tally = tallies.get(group_id)
        if tally is None:
            tally = Tally(key=group_id, name=(groups.get(group_id) or {}).get("name"))
            tallies[group_id] = tally
        tally.add(participation["spent"], participation["won"])
    return sorted(tallies.values(), key=lambda t: t.net, reverse=True)


def participant_net(participant: Dict[str, Any]) -> Decimal:
    return calculate_net(participant["won"], participant["spent"])


def validate_participants(participants: List[Dict[str, Any]], member_ids: Set[str]) -> None:
    """Check a full participant set before it replaces a game's current one.

    ``member_ids`` are the current members of the game's group. Raises
    ``ValidationFailedError`` carrying every problem found in ``details``.
    """
    errors: List[str] = []
    if len(participants) < MIN_PARTICIPANTS:
        errors.append(f"A game must have at least {MIN_PARTICIPANTS} participants")

    seen_users: Set[str] = set()
    duplicate = False
    not_member = False
    for index, participant in enumerate(participants):
        user_id = _text(participant.get("user_id"))
        guest_name = _text(participant.get("guest_name"))
        if bool(user_id) == bool(guest_name):
            errors.append(f"participants[{index}]: Participant must be either a user OR a guest, not both")
        for field in ("spent", "won"):
            if not is_valid_money(participant.get(field)):
                errors.append(
                    f"participants[{index}].{field}: must be a non-negative amount below 10,000,000,000 with at most two decimal places"
                )
        if not user_id:
            continue
        if user_id in seen_users:
            duplicate = True
        seen_users.add(user_id)
        if user_id not in member_ids:
            not_member = True

    if duplicate:
        errors.append("Duplicate user participants are not allowed")
    if not_member:
        errors.append("All user participants must be group members")
    if errors:
        raise ValidationFailedError(errors[0], details=errors)
