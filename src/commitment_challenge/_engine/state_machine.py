# Area: Engine
"""
commitment_challenge._engine.state_machine — Game state machine
===============================================================

Transition table for the game lifecycle. Games never move backwards and
terminal states accept no events.
"""

from typing import Optional

from ..enums import GameEvent, GameState


# Valid state transitions: {current_state: {event: next_state}}
TRANSITIONS = {
    GameState.WAITING_FOR_PLAYERS: {
        GameEvent.START: GameState.IN_PROGRESS,
    },
    GameState.IN_PROGRESS: {
        GameEvent.END: GameState.ENDED,
        GameEvent.ABORT: GameState.ABORTED,
    },
    GameState.ENDED: {},
    GameState.ABORTED: {},
}


def can_transition(state: GameState, event: GameEvent) -> bool:
    """
    Check if an event is valid from a state.

    Args:
        state: The game's current state
        event: The event to check

    Returns:
        True if the transition is valid, False otherwise
    """
    return event in TRANSITIONS.get(state, {})


def next_state(state: GameState, event: GameEvent) -> Optional[GameState]:
    """Return the state an event leads to, or None if it is not allowed."""
    return TRANSITIONS.get(state, {}).get(event)
