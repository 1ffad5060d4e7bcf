"""
Game session: the orchestration layer around the pure core.

A session owns the current :class:`GameState` snapshot and is the only
place it is replaced. Every action resolves fully (movement, displacement,
hatching) before visibility is recomputed from the committed result.
"""

from dataclasses import replace
from typing import FrozenSet, List, Optional

import structlog

from ..config import settings
from .coordinates import Coordinate
from .environment import EnvironmentEffect, terrain_exposure_effect, update_health_for_turn
from .exceptions import InvalidMoveError
from .fog import FogRenderer
from .hatching import Hatcher, HatchResult, hatch_in_place, spawn_animal
from .models import DisplacementEvent, GameState
from .movement import MoveResult, calculate_valid_moves, move_animal, reset_movement_flags
from .visibility import (
    GameStateReader,
    VisibilityEngine,
    VisibilityUpdate,
    apply_fog_toggle,
    compute_visible_tiles,
)

logger = structlog.get_logger()


class GameSession:
    """Applies player actions to a game and keeps fog of war in step."""

    def __init__(
        self,
        state: GameState,
        renderer: Optional[FogRenderer] = None,
        environment_effect: EnvironmentEffect = terrain_exposure_effect,
        hatcher: Hatcher = hatch_in_place,
        reveal_radius: Optional[int] = None,
    ):
        """
        Initialize a session.

        Args:
            state: Starting snapshot
            renderer: Fog-of-war collaborator for the active player's view
            environment_effect: Vitality rule applied to movers
            hatcher: Policy deciding what comes out of an egg
            reveal_radius: Vision radius around creatures
        """
        self.state = state
        self.environment_effect = environment_effect
        self.hatcher = hatcher
        self.reveal_radius = settings.reveal_radius if reveal_radius is None else reveal_radius
        self.visibility = VisibilityEngine(
            GameStateReader(lambda: self.state), renderer, radius=self.reveal_radius
        )
        self.last_displacement: Optional[DisplacementEvent] = None

    def _commit_visibility(self, update: Optional[VisibilityUpdate]) -> None:
        if update is not None:
            self.state = update.apply(self.state)

    def refresh_visibility(self) -> None:
        """Recompute every player's set; only the active player's view is rendered."""
        if self.state.board is None:
            return
        active = self.state.active_player_id
        self._commit_visibility(self.visibility.update_player_visibility(active))
        everything = None
        for player in self.state.players:
            if player.id == active:
                continue
            if self.state.fog_of_war_enabled:
                visible = compute_visible_tiles(self.state, player.id, self.reveal_radius)
            else:
                if everything is None:
                    everything = frozenset(self.state.board.all_coordinates())
                visible = everything
            self.state = self.state.with_player_visibility(player.id, visible)

    def initialize(self) -> None:
        """Batch-reveal the active player's starting view."""
        self._commit_visibility(self.visibility.initialize_visibility())

    def valid_moves(self, creature_id: str) -> List[Coordinate]:
        creature = self.state.find_creature(creature_id)
        if creature is None or self.state.board is None:
            return []
        return calculate_valid_moves(
            creature, self.state.board, self.state.creatures, self.state.eggs, include_occupied=True
        )

    def move(self, creature_id: str, x: int, y: int) -> MoveResult:
        """
        Move one of the active player's creatures.

        Unknown creatures and a missing board are silently ignored. Moving
        another player's creature, moving twice, or moving out of range
        raises :class:`InvalidMoveError`.
        """
        creature = self.state.find_creature(creature_id)
        if creature is None or self.state.board is None:
            return MoveResult(creatures=tuple(self.state.creatures))
        if creature.owner_id != self.state.active_player_id:
            raise InvalidMoveError(f"creature {creature_id} does not belong to the active player")
        if creature.has_moved:
            raise InvalidMoveError(f"creature {creature_id} has already moved")
        if (x, y) not in self.valid_moves(creature_id):
            raise InvalidMoveError(f"invalid move to ({x},{y})")

        result = move_animal(creature_id, x, y, self.state, self.environment_effect)
        self.state = replace(self.state, creatures=result.creatures)
        self.last_displacement = result.displacement_event

        # Visibility only after the move has fully resolved
        self.refresh_visibility()
        logger.info(
            "Creature moved",
            creature_id=creature_id,
            x=x,
            y=y,
            displaced=result.displacement_event.creature_id if result.displacement_event else None,
        )
        return result

    def hatch(self, egg_id: str) -> Optional[HatchResult]:
        self.state, result = spawn_animal(egg_id, self.state, self.hatcher)
        if result is not None:
            self.last_displacement = result.displacement_event
            self.refresh_visibility()
        return result

    def set_active_player(self, player_id: int) -> None:
        if self.state.find_player(player_id) is None:
            logger.warning("Unknown player", player_id=player_id)
            return
        self.state = replace(self.state, active_player_id=player_id)
        self.refresh_visibility()
        if self.state.fog_of_war_enabled:
            self.visibility.update_fog_for_active_player(player_id)

    def end_turn(self) -> None:
        """
        Hand over to the next player.

        Movement flags are cleared. When play wraps back to the first player
        the turn counter advances and the start-of-turn vitality rule runs.
        """
        players = self.state.players
        creatures = reset_movement_flags(self.state.creatures)
        turn = self.state.turn
        next_player = self.state.active_player_id
        if players:
            ids = [p.id for p in players]
            index = ids.index(self.state.active_player_id) if self.state.active_player_id in ids else -1
            next_index = (index + 1) % len(ids)
            next_player = ids[next_index]
            if next_index == 0:
                turn += 1
                if self.state.board is not None:
                    creatures = tuple(
                        update_health_for_turn(
                            creatures, self.state.biomes, self.state.board, settings.max_health
                        )
                    )
        self.state = replace(self.state, creatures=creatures, turn=turn)
        self.last_displacement = None
        logger.info("Turn ended", turn=turn, next_player=next_player)
        self.set_active_player(next_player)

    def toggle_fog_of_war(self, enabled: bool) -> None:
        self.state = apply_fog_toggle(self.state, enabled, self.reveal_radius)
        self._commit_visibility(self.visibility.toggle_fog_of_war(enabled))

    def visible_tiles(self, player_id: int) -> FrozenSet[Coordinate]:
        player = self.state.find_player(player_id)
        return player.visible_tiles if player is not None else frozenset()
