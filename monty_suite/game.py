"""
Trial engine for the Monty Hall game
Game setup, contestant pick, host reveal, stay/switch decision and outcome
"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple


DOORS = (1, 2, 3)
GOAT = "goat"
CAR = "car"
PRIZES = (GOAT, GOAT, CAR)


class InvalidArgumentError(ValueError):
    """Raised when a door index, game or trial count is out of range"""


class Strategy(str, Enum):
    STAY = "stay"
    SWITCH = "switch"


class Outcome(str, Enum):
    WIN = "WIN"
    LOSE = "LOSE"


def _source(rng: Optional[random.Random]):
    # Module-level functions share the global generator
    return random if rng is None else rng


def _validate_door(door, label: str = "door") -> int:
    if isinstance(door, bool) or not isinstance(door, int) or door not in DOORS:
        raise InvalidArgumentError(f"{label} must be one of {DOORS}, got {door!r}")
    return door


def _validate_game(game: Sequence[str]) -> Tuple[str, ...]:
    try:
        values = tuple(game)
    except TypeError:
        raise InvalidArgumentError(f"game must be a sequence of 3 prizes, got {game!r}") from None

    if (len(values) != len(DOORS)
            or any(value not in (GOAT, CAR) for value in values)
            or values.count(CAR) != 1):
        raise InvalidArgumentError(
            f"game must hold exactly one '{CAR}' and two '{GOAT}' entries, got {game!r}"
        )
    return values


def create_game(rng: Optional[random.Random] = None) -> Tuple[str, ...]:
    """Shuffle two goats and one car behind doors 1, 2 and 3"""
    return tuple(_source(rng).sample(PRIZES, k=len(PRIZES)))


def select_door(rng: Optional[random.Random] = None) -> int:
    """Contestant's initial pick, uniform over the three doors"""
    return _source(rng).choice(DOORS)


def open_goat_door(game: Sequence[str], pick: int, rng: Optional[random.Random] = None) -> int:
    """
    Door the host opens to reveal a goat.

    If the contestant picked the car, the host chooses at random between the
    two goat doors. Otherwise exactly one goat door is left and it is opened.
    """
    game = _validate_game(game)
    pick = _validate_door(pick, "pick")

    goat_doors = [door for door in DOORS if game[door - 1] == GOAT and door != pick]
    if game[pick - 1] == CAR:
        return _source(rng).choice(goat_doors)
    return goat_doors[0]


def change_door(stay: bool, opened: int, pick: int) -> int:
    """Final door: the initial pick when staying, the other closed door when switching"""
    opened = _validate_door(opened, "opened")
    pick = _validate_door(pick, "pick")
    if opened == pick:
        raise InvalidArgumentError(f"host cannot open the picked door ({pick})")

    if stay:
        return pick
    return next(door for door in DOORS if door not in (opened, pick))


def determine_winner(final_pick: int, game: Sequence[str]) -> Outcome:
    game = _validate_game(game)
    final_pick = _validate_door(final_pick, "final_pick")
    return Outcome.WIN if game[final_pick - 1] == CAR else Outcome.LOSE


@dataclass
class TrialResult:
    """Outcome of both strategies against a single game"""
    game: Tuple[str, ...]
    first_pick: int
    opened_door: int
    final_picks: Dict[Strategy, int] = field(default_factory=dict)
    outcomes: Dict[Strategy, Outcome] = field(default_factory=dict)

    def outcome(self, strategy: Strategy) -> Outcome:
        return self.outcomes[Strategy(strategy)]

    @property
    def winning_strategy(self) -> Strategy:
        return next(s for s, o in self.outcomes.items() if o is Outcome.WIN)

    def to_rows(self) -> List[Dict[str, str]]:
        """One row per strategy, stay first"""
        return [
            {'strategy': strategy.value, 'outcome': self.outcomes[strategy].value}
            for strategy in Strategy
        ]

    def to_dict(self) -> Dict:
        return {
            'game': list(self.game),
            'first_pick': self.first_pick,
            'opened_door': self.opened_door,
            'final_picks': {s.value: door for s, door in self.final_picks.items()},
            'outcomes': {s.value: o.value for s, o in self.outcomes.items()},
        }


def play_game(rng: Optional[random.Random] = None) -> TrialResult:
    """Play one game and resolve both the stay and the switch strategy"""
    new_game = create_game(rng)
    first_pick = select_door(rng)
    opened_door = open_goat_door(new_game, first_pick, rng)

    final_picks = {
        Strategy.STAY: change_door(True, opened_door, first_pick),
        Strategy.SWITCH: change_door(False, opened_door, first_pick),
    }
    outcomes = {
        strategy: determine_winner(door, new_game)
        for strategy, door in final_picks.items()
    }

    return TrialResult(
        game=new_game,
        first_pick=first_pick,
        opened_door=opened_door,
        final_picks=final_picks,
        outcomes=outcomes,
    )
