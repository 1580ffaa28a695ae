"""Board and role configuration.

The standard table reproduces the published rules for 5 to 10 players,
including the rebalanced variant. Custom configurations are validated with a
pydantic model and always come back as a plain, immutable ``BoardConfig``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from errors import ConfigError
from role_data import PowerKind

BOARD_SLOTS = 5

SMALL_BOARD = (
    PowerKind.NONE,
    PowerKind.NONE,
    PowerKind.POLICY_PEEK,
    PowerKind.EXECUTION,
    PowerKind.EXECUTION,
)
MEDIUM_BOARD = (
    PowerKind.NONE,
    PowerKind.INVESTIGATE,
    PowerKind.SPECIAL_ELECTION,
    PowerKind.EXECUTION,
    PowerKind.EXECUTION,
)
LARGE_BOARD = (
    PowerKind.INVESTIGATE,
    PowerKind.INVESTIGATE,
    PowerKind.SPECIAL_ELECTION,
    PowerKind.EXECUTION,
    PowerKind.EXECUTION,
)

STANDARD_BOARDS = {
    5: SMALL_BOARD,
    6: SMALL_BOARD,
    7: MEDIUM_BOARD,
    8: MEDIUM_BOARD,
    9: LARGE_BOARD,
    10: LARGE_BOARD,
}


@dataclass(frozen=True)
class BoardConfig:
    player_count: int
    num_liberals: int
    num_regular_fascists: int
    num_hitlers: int = 1
    deck_liberal: int = 6
    deck_fascist: int = 11
    placed_liberal: int = 0
    placed_fascist: int = 0
    fascist_board: Tuple[PowerKind, ...] = MEDIUM_BOARD
    hitler_zone: int = 3
    veto_zone: int = 5
    rebalanced: bool = False

    @property
    def team_size(self) -> int:
        """Size of the hidden fascist team, Hitler included."""
        return self.num_regular_fascists + self.num_hitlers

    @property
    def seats(self) -> range:
        return range(1, self.player_count + 1)

    @property
    def total_liberal(self) -> int:
        return self.deck_liberal + self.placed_liberal

    @property
    def total_fascist(self) -> int:
        return self.deck_fascist + self.placed_fascist

    def round_power(self, fascist_enacted_count: int) -> PowerKind:
        """Power granted by the ``fascist_enacted_count``-th fascist policy on the board."""
        if 1 <= fascist_enacted_count <= len(self.fascist_board):
            return self.fascist_board[fascist_enacted_count - 1]
        return PowerKind.NONE

    def veto_unlocked(self, fascist_enacted_count: int) -> bool:
        return fascist_enacted_count >= self.veto_zone


def standard_board_config(player_count: int, rebalanced: bool = False) -> BoardConfig:
    if player_count not in STANDARD_BOARDS:
        raise ConfigError(f"There is no standard board for {player_count} players (valid: 5 - 10).")
    num_regular_fascists = (player_count - 1) // 2 - 1
    return BoardConfig(
        player_count=player_count,
        num_liberals=player_count - num_regular_fascists - 1,
        num_regular_fascists=num_regular_fascists,
        num_hitlers=1,
        deck_liberal=6,
        deck_fascist=10 if rebalanced and player_count in (6, 7, 9) else 11,
        placed_liberal=0,
        placed_fascist=1 if rebalanced and player_count == 6 else 0,
        fascist_board=STANDARD_BOARDS[player_count],
        hitler_zone=3,
        veto_zone=5,
        rebalanced=rebalanced,
    )


class BoardConfigModel(BaseModel):
    """Validation schema for externally supplied configurations."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    player_count: int = Field(ge=3)
    num_liberals: int = Field(ge=1)
    num_regular_fascists: int = Field(ge=0)
    num_hitlers: int = 1
    deck_liberal: int = Field(default=6, ge=0)
    deck_fascist: int = Field(default=11, ge=0)
    placed_liberal: int = Field(default=0, ge=0)
    placed_fascist: int = Field(default=0, ge=0)
    fascist_board: Tuple[PowerKind, ...] = MEDIUM_BOARD
    hitler_zone: int = Field(default=3, ge=1, le=BOARD_SLOTS)
    veto_zone: int = Field(default=5, ge=1, le=BOARD_SLOTS)
    rebalanced: bool = False

    @field_validator("fascist_board", mode="before")
    @classmethod
    def _parse_board(cls, value: Any):
        if isinstance(value, (list, tuple)):
            return tuple(PowerKind(v) if isinstance(v, str) else v for v in value)
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "BoardConfigModel":
        if self.num_hitlers != 1:
            raise ValueError(f"exactly one Hitler is required, got {self.num_hitlers}")
        head_count = self.num_liberals + self.num_regular_fascists + self.num_hitlers
        if head_count != self.player_count:
            raise ValueError(
                f"role head-counts sum to {head_count} but the table seats {self.player_count} players"
            )
        if self.num_regular_fascists + self.num_hitlers >= self.num_liberals:
            raise ValueError("the fascist team must be a minority")
        if len(self.fascist_board) != BOARD_SLOTS:
            raise ValueError(f"the fascist board needs {BOARD_SLOTS} slots, got {len(self.fascist_board)}")
        if self.deck_liberal + self.deck_fascist < 3:
            raise ValueError("the deck must hold at least one full draw")
        return self

    def to_config(self) -> BoardConfig:
        return BoardConfig(**self.model_dump())


def load_board_config(source) -> BoardConfig:
    """Build a ``BoardConfig`` from a mapping, a JSON string or a JSON file path."""
    if isinstance(source, BoardConfig):
        return source
    if isinstance(source, Path) or (isinstance(source, str) and not source.lstrip().startswith("{")):
        try:
            source = Path(source).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Failed to read board configuration: {exc}") from exc
    if isinstance(source, (str, bytes)):
        try:
            source = json.loads(source)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Board configuration is not valid JSON: {exc}") from exc
    if not isinstance(source, Mapping):
        raise ConfigError(f"Cannot build a board configuration from {type(source).__name__}.")
    try:
        return BoardConfigModel.model_validate(dict(source)).to_config()
    except ValidationError as exc:
        raise ConfigError(f"Invalid board configuration: {exc}") from exc


def board_config_to_dict(config: BoardConfig) -> Dict[str, Any]:
    """Inverse of ``load_board_config`` for mappings."""
    return {
        "player_count": config.player_count,
        "num_liberals": config.num_liberals,
        "num_regular_fascists": config.num_regular_fascists,
        "num_hitlers": config.num_hitlers,
        "deck_liberal": config.deck_liberal,
        "deck_fascist": config.deck_fascist,
        "placed_liberal": config.placed_liberal,
        "placed_fascist": config.placed_fascist,
        "fascist_board": [power.value for power in config.fascist_board],
        "hitler_zone": config.hitler_zone,
        "veto_zone": config.veto_zone,
        "rebalanced": config.rebalanced,
    }
