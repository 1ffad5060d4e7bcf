#!/usr/bin/env python3
"""
Simple demo script showing board generation and a few turns of play.
"""

import numpy as np
from py_terrarium.core import GameSession, TerrainType, create_game_state
from py_terrarium.core.fog import FogLayer

TERRAIN_CHARS = {
    TerrainType.WATER: '~',
    TerrainType.UNDERWATER: '=',
    TerrainType.BEACH: '.',
    TerrainType.GRASS: '"',
    TerrainType.MOUNTAIN: '^',
}


def render(session, player_id, fog):
    """ASCII map from one player's point of view."""
    state = session.state
    occupied = {c.position: c for c in state.creatures}
    lines = []
    for row in state.board.tiles:
        line = ''
        for tile in row:
            x, y = tile.coordinate
            if fog.is_hidden(x, y):
                line += ' '
            elif tile.coordinate in occupied:
                line += str(occupied[tile.coordinate].owner_id)
            elif tile.is_habitat:
                line += 'H'
            else:
                line += TERRAIN_CHARS[tile.terrain]
        lines.append(line)
    return '\n'.join(lines)


def main():
    """Generate a board and play a few random turns."""
    print("Terrarium Demo")
    print("=" * 40)

    width, height = 40, 24
    state = create_game_state(width, height, 2, seed=2024)
    print(f"\nBoard {width}x{height}, {len(state.biomes)} biomes, {len(state.creatures)} creatures")

    counts = {}
    for tile in state.board.iter_tiles():
        counts[tile.terrain] = counts.get(tile.terrain, 0) + 1
    for terrain, count in sorted(counts.items(), key=lambda kv: -kv[1]):
        print(f"  {terrain.value:<10} {count:4d} ({count / (width * height) * 100:.1f}%)")

    fog = FogLayer()
    fog.create_fog_of_war(state.board)
    session = GameSession(state, renderer=fog)
    session.initialize()

    rng = np.random.default_rng(7)
    for turn in range(6):
        player_id = session.state.active_player_id
        for creature in [c for c in session.state.creatures if c.owner_id == player_id]:
            moves = session.valid_moves(creature.id)
            if not moves:
                continue
            target = moves[int(rng.integers(len(moves)))]
            result = session.move(creature.id, target.x, target.y)
            if result.displacement_event is not None:
                event = result.displacement_event
                print(f"  {event.creature_id} pushed from {tuple(event.from_position)} to {tuple(event.to_position)}")

        print(f"\nTurn {session.state.turn}, player {player_id} sees {len(session.visible_tiles(player_id))} tiles")
        session.end_turn()

    active = session.state.active_player_id
    print(f"\nView of player {active}:")
    print(render(session, active, fog))

    print("\nFog disabled:")
    session.toggle_fog_of_war(False)
    print(render(session, active, fog))


if __name__ == "__main__":
    main()
