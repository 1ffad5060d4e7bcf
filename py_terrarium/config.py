"""Configuration management."""

import os
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env for local/dev runs, never overriding values already in the environment
BASE_DIR = Path(__file__).resolve().parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    for k, v in file_env.items():
        if k not in os.environ and v is not None:
            os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    # Board Generation Configuration
    default_board_width: int = Field(default=30, description="Default board width in tiles")
    default_board_height: int = Field(default=30, description="Default board height in tiles")
    max_board_width: int = Field(default=200, description="Max allowed board width")
    max_board_height: int = Field(default=200, description="Max allowed board height")
    default_num_players: int = Field(default=2, description="Players seated in a new game")
    min_node_separation: int = Field(
        default=5, description="Minimum Manhattan distance between biome seed nodes"
    )
    node_placement_iterations: int = Field(
        default=100, description="Round-robin passes when filling biome seed nodes"
    )
    partition_kdtree_threshold: int = Field(
        default=64, description="Node count above which partitioning uses a k-d tree"
    )

    # Simulation Configuration
    reveal_radius: int = Field(default=1, description="Chebyshev radius revealed around a unit")
    max_health: int = Field(default=10, description="Vitality cap for creatures")
    starting_species: str = Field(default="turtle", description="Species of each player's first creature")
    fog_of_war_enabled: bool = Field(default=True, description="Fog of war on for new games")

    class Config:
        env_prefix = "TERRARIUM_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
