"""
Edgeslot Map Configuration

Plain values that size the coverage bitmap and bound the parametric hash
search. A MapConfig is validated on construction; it can also be read from
the [map] table of a TOML file:

    [map]
    map_size = 65536
    delta = 10
    sigma = 0.001
    inst_ratio = 100
    seed = 1234
    unsolved_policy = "exclude_solved"
    quiet = false
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

# TOML parsing - use stdlib tomllib in 3.11+, fallback to tomli
try:
    import tomllib
except ImportError:
    import tomli as tomllib

from slot_errors import InvalidConfiguration


MAP_SIZE_POW2 = 16
MAP_SIZE = 1 << MAP_SIZE_POW2
# keys and slots are emitted as i32 constants
MAX_MAP_SIZE = 1 << 32

DEFAULT_DELTA = 10
DEFAULT_SIGMA = 0.001


class UnsolvedPolicy(Enum):
    """What the hash solver reports as unsolved at the end of a round."""
    EXCLUDE_SOLVED = "exclude_solved"  # only blocks with no accepted (x, z)
    REQUEUE_ALL = "requeue_all"        # every multi-predecessor block


@dataclass
class MapConfig:
    """Configuration for one slot planning run"""
    map_size: int = MAP_SIZE
    delta: int = DEFAULT_DELTA
    sigma: float = DEFAULT_SIGMA
    inst_ratio: int = 100
    seed: Optional[int] = None
    unsolved_policy: UnsolvedPolicy = UnsolvedPolicy.EXCLUDE_SOLVED
    quiet: bool = False

    def __post_init__(self):
        if isinstance(self.unsolved_policy, str):
            try:
                self.unsolved_policy = UnsolvedPolicy(self.unsolved_policy)
            except ValueError:
                raise InvalidConfiguration(
                    f"Unknown unsolved_policy '{self.unsolved_policy}' "
                    f"(expected one of: {', '.join(p.value for p in UnsolvedPolicy)})"
                )
        self.validate()

    def validate(self):
        """Raise InvalidConfiguration if any value is out of range."""
        if not _is_int(self.map_size) or self.map_size < 2 or \
                self.map_size & (self.map_size - 1):
            raise InvalidConfiguration(
                f"map_size must be a power of two >= 2, got {self.map_size!r}"
            )
        if self.map_size > MAX_MAP_SIZE:
            raise InvalidConfiguration(
                f"map_size must not exceed {MAX_MAP_SIZE} (32-bit slot indices), got {self.map_size}"
            )
        if not _is_int(self.delta) or self.delta < 0:
            raise InvalidConfiguration(
                f"delta must be a non-negative integer, got {self.delta!r}"
            )
        if isinstance(self.sigma, bool) or not isinstance(self.sigma, (int, float)) \
                or not 0.0 <= self.sigma <= 1.0:
            raise InvalidConfiguration(
                f"sigma must be between 0 and 1, got {self.sigma!r}"
            )
        if not _is_int(self.inst_ratio) or not 1 <= self.inst_ratio <= 100:
            raise InvalidConfiguration(
                f"Bad value of inst_ratio (must be between 1 and 100), got {self.inst_ratio!r}"
            )
        if self.seed is not None and not _is_int(self.seed):
            raise InvalidConfiguration(f"seed must be an integer, got {self.seed!r}")
        if not isinstance(self.unsolved_policy, UnsolvedPolicy):
            raise InvalidConfiguration(
                f"unsolved_policy must be an UnsolvedPolicy, got {self.unsolved_policy!r}"
            )

    @property
    def map_size_pow2(self) -> int:
        """Bit width of the bitmap index, log2(map_size)."""
        return self.map_size.bit_length() - 1


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def config_from_dict(data: Dict[str, Any]) -> MapConfig:
    """Build a MapConfig from a plain dict, rejecting unknown keys."""
    known = {f.name for f in fields(MapConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidConfiguration(f"Unknown map option(s): {', '.join(unknown)}")
    return MapConfig(**data)


def parse_map_config(text: str) -> MapConfig:
    """Parse the [map] table of a TOML document."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise InvalidConfiguration(f"Invalid TOML: {e}")

    table = data.get("map", {})
    if not isinstance(table, dict):
        raise InvalidConfiguration("[map] must be a table")
    return config_from_dict(table)


def load_map_config(path: str) -> MapConfig:
    """Load a MapConfig from a TOML file."""
    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError as e:
        raise InvalidConfiguration(f"Cannot read config file {path}: {e}")
    return parse_map_config(text)
