# keygrid/utils/config.py
"""
Configuration management and shared data structures for the layout converter.

Provides:
  - Tunable threshold constants for the physical-to-logical conversion
  - Type-safe configuration validation using Pydantic
  - Data structures shared between the geometry, neighbor and grid stages
  - Configuration classes for:
    - Conversion thresholds
    - Path management
    - Logging settings
    - Visualization settings
  - The package exception hierarchy

All configuration classes include validation rules to ensure:
  - Thresholds are positive (axis threshold within (0, 1])
  - Log levels are valid level names
  - Paths exist and are writable
"""
from typing import Dict, Optional, NamedTuple
from dataclasses import dataclass, field
from pathlib import Path
import numpy as np
from pydantic import BaseModel, Field, field_validator

#------------------------------------------------
# Conversion thresholds (all lengths in units)
#------------------------------------------------
# Extra spacing beyond one key pitch that reserves an empty grid line
GAP_THRESHOLD = 1.5
# Centers closer than this are duplicates, not neighbors
MIN_DISTANCE_THRESHOLD = 0.001
# Candidates must be at least this far ahead along the search direction
MIN_FORWARD_DISTANCE = 0.1
# perpendicular / forward; ~tan(60deg)
MAX_ALIGNMENT_RATIO = 1.73
FORWARD_DISTANCE_WEIGHT = 0.3
# Max center offset for two axis-aligned keys to share a row or column
ALIGNMENT_THRESHOLD = 0.5
# ~cos(30deg)
AXIS_ALIGNED_THRESHOLD = 0.866
# Keys wider/taller than this are clustered by their center
LARGE_KEY_THRESHOLD = 2.0

DIRECTIONS = ('right', 'left', 'down', 'up')
OPPOSITE = {'right': 'left', 'left': 'right', 'down': 'up', 'up': 'down'}

#------------------------------------------------
# neighbors.py
#------------------------------------------------
class Neighbor(NamedTuple):
    """Best candidate found in one direction."""
    index: int
    score: float

#------------------------------------------------
# geometry.py
#------------------------------------------------
@dataclass
class KeyInfo:
    """Derived geometry for one key, valid for a single conversion."""
    index: int
    center: np.ndarray
    local_right: np.ndarray
    local_down: np.ndarray
    neighbors: Dict[str, Optional[Neighbor]] = field(
        default_factory=lambda: {d: None for d in DIRECTIONS})

    def direction_vector(self, direction: str) -> np.ndarray:
        """Unit vector for a direction in this key's rotated frame."""
        if direction == 'right':
            return self.local_right
        if direction == 'left':
            return -self.local_right
        if direction == 'down':
            return self.local_down
        if direction == 'up':
            return -self.local_down
        raise ValueError(f"Unknown direction: {direction}")

    def __repr__(self) -> str:
        found = {d: n.index for d, n in self.neighbors.items() if n is not None}
        return (f"KeyInfo({self.index}, center=({self.center[0]:.3f}, {self.center[1]:.3f}), "
                f"neighbors={found})")

#------------------------------------------------
# errors
#------------------------------------------------
class LayoutError(Exception):
    """Base exception for layout-related errors."""
    pass

class LayoutParseError(LayoutError):
    """Raised when a layout file cannot be read or is invalid."""
    pass

#------------------------------------------------
# Config
#------------------------------------------------
class ThresholdsConfig(BaseModel):
    """Heuristic thresholds for the physical-to-logical conversion."""
    gap_threshold: float = Field(default=GAP_THRESHOLD, gt=0)
    min_distance_threshold: float = Field(default=MIN_DISTANCE_THRESHOLD, gt=0)
    min_forward_distance: float = Field(default=MIN_FORWARD_DISTANCE, gt=0)
    max_alignment_ratio: float = Field(default=MAX_ALIGNMENT_RATIO, gt=0)
    forward_distance_weight: float = Field(default=FORWARD_DISTANCE_WEIGHT, gt=0)
    alignment_threshold: float = Field(default=ALIGNMENT_THRESHOLD, gt=0)
    axis_aligned_threshold: float = Field(default=AXIS_ALIGNED_THRESHOLD, gt=0, le=1)
    large_key_threshold: float = Field(default=LARGE_KEY_THRESHOLD, gt=0)

    class Config:
        validate_assignment = True

class LoggingConfig(BaseModel):
    """Logging configuration."""
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    console_level: str = Field(default='INFO', pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    file_level: str = Field(default='DEBUG', pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

class PathsConfig(BaseModel):
    """Path configuration."""
    logs_dir: Path = Path('output/logs')
    output_dir: Path = Path('output')

    @field_validator('*')
    @classmethod
    def create_directories(cls, v: Path) -> Path:
        v.mkdir(parents=True, exist_ok=True)
        return v

class VisualizationConfig(BaseModel):
    """Visualization settings."""
    dpi: int = Field(default=150, gt=0)
    figure_width: float = Field(default=12.0, gt=0)
    key_padding: float = Field(default=0.05, ge=0, lt=0.5)
    palette: str = 'husl'

class Config(BaseModel):
    """Complete configuration with nested validation."""
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)

    class Config:
        arbitrary_types_allowed = True
