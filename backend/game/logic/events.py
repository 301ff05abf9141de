"""Game event log model: the immutable event envelope and its typed payloads.

Payload classes form a tagged union discriminated by ``type``; their field
names and enumerated result vocabularies are the umpire-facing wire contract.
Undo and edit events never mutate the log in place. The log is resolved
through effective_events(), which drops undone events and applies edits.

All layers import exclusively from this module for event types.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field, field_validator, model_validator

from game.logic.enums import AtBatResult, EventType, FlipCupResult, PitchResult, ScoringMethod
from game.logic.settings import ALLOWED_INNINGS, DEFAULT_INNINGS, MAX_GAME_NOTES_LENGTH, MAX_UNDO_REASON_LENGTH

if TYPE_CHECKING:
    from collections.abc import Iterable

# Events that rewrite the log rather than describe gameplay.
LOG_CONTROL_EVENTS = frozenset({EventType.UNDO, EventType.EDIT})

CUP_HIT_RESULTS: dict[PitchResult, AtBatResult] = {
    PitchResult.FIRST_CUP_HIT: AtBatResult.SINGLE,
    PitchResult.SECOND_CUP_HIT: AtBatResult.DOUBLE,
    PitchResult.THIRD_CUP_HIT: AtBatResult.TRIPLE,
    PitchResult.FOURTH_CUP_HIT: AtBatResult.HOMERUN,
}

_PLAYER_ID_FIELD = Field(min_length=1)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class EventPayload(BaseModel):
    """Base class for all event payloads."""

    model_config = ConfigDict(frozen=True)

    type: EventType


class Lineups(BaseModel):
    model_config = ConfigDict(frozen=True)

    home: tuple[str, ...] = Field(min_length=1)
    away: tuple[str, ...] = Field(min_length=1)


class GameStartPayload(EventPayload):
    type: Literal[EventType.GAME_START] = EventType.GAME_START
    umpire_id: str = Field(min_length=1)
    home_team_id: str = Field(min_length=1)
    away_team_id: str = Field(min_length=1)
    lineups: Lineups
    innings: int = DEFAULT_INNINGS

    @field_validator("innings")
    @classmethod
    def _validate_innings(cls, v: int) -> int:
        if v not in ALLOWED_INNINGS:
            raise ValueError(f"innings must be one of {sorted(ALLOWED_INNINGS)}")
        return v

    @model_validator(mode="after")
    def _validate_teams(self) -> GameStartPayload:
        if self.home_team_id == self.away_team_id:
            raise ValueError("home and away teams must be different")
        return self


class PitchPayload(EventPayload):
    type: Literal[EventType.PITCH] = EventType.PITCH
    result: PitchResult
    batter_id: str = _PLAYER_ID_FIELD
    catcher_id: str = _PLAYER_ID_FIELD

    @property
    def is_cup_hit(self) -> bool:
        return self.result in CUP_HIT_RESULTS


class FlipCupPayload(EventPayload):
    type: Literal[EventType.FLIP_CUP] = EventType.FLIP_CUP
    result: FlipCupResult
    batter_id: str = _PLAYER_ID_FIELD
    catcher_id: str = _PLAYER_ID_FIELD
    errors: tuple[str, ...] = ()


class AtBatPayload(EventPayload):
    type: Literal[EventType.AT_BAT] = EventType.AT_BAT
    result: AtBatResult
    batter_id: str = _PLAYER_ID_FIELD
    catcher_id: str = _PLAYER_ID_FIELD


class UndoPayload(EventPayload):
    type: Literal[EventType.UNDO] = EventType.UNDO
    target_event_id: str = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=MAX_UNDO_REASON_LENGTH)


class EditPayload(EventPayload):
    type: Literal[EventType.EDIT] = EventType.EDIT
    target_event_id: str = Field(min_length=1)
    new_data: dict[str, Any]
    reason: str | None = Field(default=None, max_length=MAX_UNDO_REASON_LENGTH)


class TakeoverPayload(EventPayload):
    type: Literal[EventType.TAKEOVER] = EventType.TAKEOVER
    previous_umpire_id: str = Field(min_length=1)
    new_umpire_id: str = Field(min_length=1)

    @model_validator(mode="after")
    def _validate_umpires(self) -> TakeoverPayload:
        if self.previous_umpire_id == self.new_umpire_id:
            raise ValueError("new umpire must be different from the previous umpire")
        return self


class InningEndPayload(EventPayload):
    """Umpire-forced end of the current half-inning, with optional score corrections."""

    type: Literal[EventType.INNING_END] = EventType.INNING_END
    score_home: int | None = Field(default=None, ge=0)
    score_away: int | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=MAX_GAME_NOTES_LENGTH)


class GameEndPayload(EventPayload):
    type: Literal[EventType.GAME_END] = EventType.GAME_END
    final_score_home: int = Field(ge=0)
    final_score_away: int = Field(ge=0)
    notes: str | None = Field(default=None, max_length=MAX_GAME_NOTES_LENGTH)
    scoring_method: ScoringMethod = ScoringMethod.LIVE

    @model_validator(mode="after")
    def _validate_no_tie(self) -> GameEndPayload:
        if self.final_score_home == self.final_score_away:
            raise ValueError("games cannot end in a tie")
        return self


Payload = Annotated[
    GameStartPayload
    | PitchPayload
    | FlipCupPayload
    | AtBatPayload
    | UndoPayload
    | EditPayload
    | TakeoverPayload
    | InningEndPayload
    | GameEndPayload,
    Field(discriminator="type"),
]

_payload_adapter: TypeAdapter[Payload] = TypeAdapter(Payload)


# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class GameEvent(BaseModel):
    """
    One immutable entry of a game's event log.

    Ordered by sequence_number, which is unique and strictly increasing per game.
    Accepts the persisted row shape where ``type`` sits beside ``payload``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    game_id: str = Field(min_length=1)
    sequence_number: int = Field(ge=1)
    payload: Payload
    umpire_id: str = Field(min_length=1)
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _lift_type_into_payload(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("payload"), dict) and "type" in data:
            payload = data["payload"]
            if "type" not in payload:
                data = {**data, "payload": {**payload, "type": data["type"]}}
        return data

    @computed_field  # type: ignore[prop-decorator]
    @property
    def type(self) -> EventType:
        return self.payload.type

    @property
    def is_gameplay(self) -> bool:
        return self.payload.type not in LOG_CONTROL_EVENTS


def parse_payload(event_type: EventType | str, data: dict[str, Any]) -> Payload:
    """Validate raw payload data for the given event type.

    Raises:
        pydantic.ValidationError: If the data does not satisfy the payload contract

    """
    return _payload_adapter.validate_python({**data, "type": event_type})


def parse_event(data: dict[str, Any]) -> GameEvent:
    """Validate a raw event record (persisted row or submission)."""
    return GameEvent.model_validate(data)


def merge_payload(payload: Payload, new_data: dict[str, Any]) -> Payload:
    """Return payload with new_data applied on top, re-validated for the same type."""
    merged = payload.model_dump(mode="json")
    merged.update(new_data)
    return parse_payload(payload.type, merged)


def effective_events(events: Iterable[GameEvent]) -> list[GameEvent]:
    """
    Resolve a raw log into the gameplay events that currently count.

    Events are taken in sequence order. An undo removes its target, an edit
    replaces its target's payload. Undo and edit records are not returned.

    Raises:
        pydantic.ValidationError: If a recorded edit no longer validates against its target

    """
    effective: dict[str, GameEvent] = {}
    for event in sorted(events, key=lambda e: e.sequence_number):
        payload = event.payload
        if isinstance(payload, UndoPayload):
            effective.pop(payload.target_event_id, None)
        elif isinstance(payload, EditPayload):
            target = effective.get(payload.target_event_id)
            if target is not None:
                effective[target.id] = target.model_copy(
                    update={"payload": merge_payload(target.payload, payload.new_data)},
                )
        else:
            effective[event.id] = event
    return list(effective.values())
