"""FastAPI main application."""

import logging
import uuid
from typing import Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..config import settings
from ..core.board_generator import create_game_state
from ..core.coordinates import Coordinate
from ..core.exceptions import GameNotFoundError, InvalidMoveError
from ..core.fog import FogLayer
from ..core.game import GameSession
from ..core.models import Creature, DisplacementEvent
from ..core.partition import VoronoiNode, generate_partition

# Configure logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Terrarium API",
    description="Turn-based isometric territory simulation",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# In-memory game registry; games do not outlive the process
games: Dict[str, GameSession] = {}


# Request/Response models
class TileCoord(BaseModel):
    x: int
    y: int


class NewGameRequest(BaseModel):
    """Request to start a new game."""

    width: int = Field(settings.default_board_width, ge=5, le=settings.max_board_width, description="Board width in tiles")
    height: int = Field(settings.default_board_height, ge=5, le=settings.max_board_height, description="Board height in tiles")
    num_players: int = Field(settings.default_num_players, ge=1, le=6, description="Number of players")
    seed: Optional[int] = Field(None, description="Seed for reproducible generation")
    fog_of_war: bool = Field(settings.fog_of_war_enabled, description="Start with fog of war enabled")


class CreatureView(BaseModel):
    id: str
    species: str
    owner_id: Optional[int]
    x: int
    y: int
    state: str
    health: int
    has_moved: bool
    facing: str


class BiomeView(BaseModel):
    id: str
    owner_id: Optional[int]
    habitat: TileCoord
    color: int
    lushness: float
    tile_count: int


class PlayerView(BaseModel):
    id: int
    name: str
    color: str
    visible_tile_count: int


class GameResponse(BaseModel):
    """Public state of one game."""

    game_id: str
    width: int
    height: int
    turn: int
    active_player_id: int
    fog_of_war_enabled: bool
    players: List[PlayerView]
    creatures: List[CreatureView]
    biomes: List[BiomeView]


class MoveRequest(BaseModel):
    creature_id: str
    x: int
    y: int


class DisplacementView(BaseModel):
    creature_id: str
    from_position: TileCoord
    to_position: TileCoord


class MoveResponse(BaseModel):
    creatures: List[CreatureView]
    displacement: Optional[DisplacementView] = None


class VisibilityResponse(BaseModel):
    player_id: int
    count: int
    tiles: List[TileCoord]


class FogRequest(BaseModel):
    enabled: bool


class NodeModel(BaseModel):
    id: str
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)


class PartitionRequest(BaseModel):
    """Partition an empty board around the given nodes."""

    width: int = Field(..., ge=1, le=settings.max_board_width)
    height: int = Field(..., ge=1, le=settings.max_board_height)
    nodes: List[NodeModel]


class PartitionResponse(BaseModel):
    biome_map: List[List[Optional[str]]]


def _creature_view(creature: Creature) -> CreatureView:
    return CreatureView(
        id=creature.id,
        species=creature.species,
        owner_id=creature.owner_id,
        x=creature.position.x,
        y=creature.position.y,
        state=creature.state.value,
        health=creature.health,
        has_moved=creature.has_moved,
        facing=creature.facing.value,
    )


def _tiles(coords) -> List[TileCoord]:
    return [TileCoord(x=c.x, y=c.y) for c in sorted(coords, key=lambda c: (c.y, c.x))]


def _displacement_view(event: Optional[DisplacementEvent]) -> Optional[DisplacementView]:
    if event is None:
        return None
    return DisplacementView(
        creature_id=event.creature_id,
        from_position=TileCoord(x=event.from_position.x, y=event.from_position.y),
        to_position=TileCoord(x=event.to_position.x, y=event.to_position.y),
    )


def _game_response(game_id: str, session: GameSession) -> GameResponse:
    state = session.state
    board = state.board
    tile_counts: Dict[str, int] = {}
    for tile in board.iter_tiles():
        if tile.biome_id is not None:
            tile_counts[tile.biome_id] = tile_counts.get(tile.biome_id, 0) + 1
    return GameResponse(
        game_id=game_id,
        width=board.width,
        height=board.height,
        turn=state.turn,
        active_player_id=state.active_player_id,
        fog_of_war_enabled=state.fog_of_war_enabled,
        players=[
            PlayerView(id=p.id, name=p.name, color=p.color, visible_tile_count=len(p.visible_tiles))
            for p in state.players
        ],
        creatures=[_creature_view(c) for c in state.creatures],
        biomes=[
            BiomeView(
                id=b.id,
                owner_id=b.owner_id,
                habitat=TileCoord(x=b.habitat.position.x, y=b.habitat.position.y),
                color=b.color,
                lushness=b.lushness,
                tile_count=tile_counts.get(b.id, 0),
            )
            for b in state.biomes.values()
        ],
    )


def get_session(game_id: str) -> GameSession:
    session = games.get(game_id)
    if session is None:
        raise GameNotFoundError(game_id)
    return session


def _lookup(game_id: str) -> GameSession:
    try:
        return get_session(game_id)
    except GameNotFoundError:
        raise HTTPException(status_code=404, detail="Game not found")


# Event handlers
@app.on_event("startup")
async def startup_event():
    logger.info("Starting Terrarium API", version=__version__)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Terrarium API", games=len(games))


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Terrarium API", "version": __version__, "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "games": len(games)}


@app.post("/games", response_model=GameResponse, status_code=201)
async def create_game(request: NewGameRequest):
    """Generate a board and seat the players."""
    logger.info("Game creation requested", request=request.model_dump())

    game_id = str(uuid.uuid4())
    state = create_game_state(
        request.width,
        request.height,
        request.num_players,
        seed=request.seed,
        fog_of_war_enabled=request.fog_of_war,
    )
    fog = FogLayer()
    session = GameSession(state, renderer=fog)
    if request.fog_of_war:
        fog.create_fog_of_war(state.board)
        session.initialize()
    games[game_id] = session

    logger.info("Game created", game_id=game_id, biomes=len(state.biomes))
    return _game_response(game_id, session)


@app.get("/games/{game_id}", response_model=GameResponse)
async def get_game(game_id: str):
    return _game_response(game_id, _lookup(game_id))


@app.post("/games/{game_id}/moves", response_model=MoveResponse)
async def move_creature(game_id: str, request: MoveRequest):
    """Move a creature of the active player, displacing any occupant."""
    session = _lookup(game_id)
    try:
        result = session.move(request.creature_id, request.x, request.y)
    except InvalidMoveError as e:
        logger.warning("Move rejected", game_id=game_id, error=str(e))
        raise HTTPException(status_code=409, detail=str(e))
    return MoveResponse(
        creatures=[_creature_view(c) for c in result.creatures],
        displacement=_displacement_view(result.displacement_event),
    )


@app.post("/games/{game_id}/end-turn", response_model=GameResponse)
async def end_turn(game_id: str):
    session = _lookup(game_id)
    session.end_turn()
    return _game_response(game_id, session)


@app.get("/games/{game_id}/players/{player_id}/visibility", response_model=VisibilityResponse)
async def get_visibility(game_id: str, player_id: int):
    """Tiles currently visible to one player."""
    session = _lookup(game_id)
    if session.state.find_player(player_id) is None:
        raise HTTPException(status_code=404, detail="Player not found")
    visible = session.visible_tiles(player_id)
    return VisibilityResponse(player_id=player_id, count=len(visible), tiles=_tiles(visible))


@app.post("/games/{game_id}/fog", response_model=GameResponse)
async def toggle_fog(game_id: str, request: FogRequest):
    session = _lookup(game_id)
    session.toggle_fog_of_war(request.enabled)
    return _game_response(game_id, session)


@app.post("/partition", response_model=PartitionResponse)
async def partition(request: PartitionRequest):
    """Manhattan partition of a blank board; the earliest node wins ties."""
    for node in request.nodes:
        if node.x >= request.width or node.y >= request.height:
            raise HTTPException(status_code=422, detail=f"Node {node.id} lies off the board")
    nodes = [VoronoiNode(id=n.id, position=Coordinate(n.x, n.y)) for n in request.nodes]
    return PartitionResponse(biome_map=generate_partition(request.width, request.height, nodes))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
