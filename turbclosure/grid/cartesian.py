"""
Structured Cartesian mesh used as the reference discretisation collaborator.

Coordinate System:
    - i: streamwise direction (west → east)
    - j: wall-normal direction (south → north)

Grid Layout:
    - Node coordinates x_nodes (NI+1,), y_nodes (NJ+1,)
    - Cell (i,j) is bounded by x_nodes[i:i+2] and y_nodes[j:j+2]
    - Cell quantities have shape (NI, NJ)
    - I-face quantities have shape (NI+1, NJ), J-face quantities (NI, NJ+1)

Each of the four sides carries a boundary type:
    wall          no-slip wall, Dirichlet turbulence wall values
    fixedValue    inflow/free-stream Dirichlet value
    zeroGradient  no diffusive flux
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from ..constants import Y_MIN

WALL = "wall"
FIXED_VALUE = "fixedValue"
ZERO_GRADIENT = "zeroGradient"

BOUNDARY_TYPES = (WALL, FIXED_VALUE, ZERO_GRADIENT)
SIDES = ("west", "east", "south", "north")


def _default_boundaries() -> Dict[str, str]:
    return {
        "west": FIXED_VALUE,
        "east": ZERO_GRADIENT,
        "south": WALL,
        "north": ZERO_GRADIENT,
    }


@dataclass
class CartesianMesh:
    """
    Rectilinear 2D mesh with optional stretching.

    Attributes
    ----------
    x_nodes : ndarray, shape (NI+1,)
        Monotonically increasing node x-coordinates.
    y_nodes : ndarray, shape (NJ+1,)
        Monotonically increasing node y-coordinates.
    boundaries : dict
        Side name → boundary type.
    """
    x_nodes: np.ndarray
    y_nodes: np.ndarray
    boundaries: Dict[str, str] = field(default_factory=_default_boundaries)

    def __post_init__(self):
        self.x_nodes = np.asarray(self.x_nodes, dtype=np.float64)
        self.y_nodes = np.asarray(self.y_nodes, dtype=np.float64)
        if self.x_nodes.ndim != 1 or self.x_nodes.size < 2:
            raise ValueError("x_nodes must be a 1D array with at least 2 nodes")
        if self.y_nodes.ndim != 1 or self.y_nodes.size < 2:
            raise ValueError("y_nodes must be a 1D array with at least 2 nodes")
        if np.any(np.diff(self.x_nodes) <= 0) or np.any(np.diff(self.y_nodes) <= 0):
            raise ValueError("Node coordinates must be strictly increasing")

        merged = _default_boundaries()
        merged.update(self.boundaries)
        for side, kind in merged.items():
            if side not in SIDES:
                raise ValueError(f"Unknown boundary side '{side}' (expected one of {SIDES})")
            if kind not in BOUNDARY_TYPES:
                raise ValueError(
                    f"Unknown boundary type '{kind}' on side '{side}' "
                    f"(expected one of {BOUNDARY_TYPES})"
                )
        self.boundaries = merged

    # =========================================================================
    # Construction helpers
    # =========================================================================

    @classmethod
    def uniform(cls, NI: int, NJ: int, Lx: float = 1.0, Ly: float = 1.0,
                boundaries: Optional[Dict[str, str]] = None) -> "CartesianMesh":
        """Uniform mesh of NI × NJ cells on [0, Lx] × [0, Ly]."""
        return cls(
            x_nodes=np.linspace(0.0, Lx, NI + 1),
            y_nodes=np.linspace(0.0, Ly, NJ + 1),
            boundaries=dict(boundaries or {}),
        )

    @classmethod
    def stretched(cls, NI: int, NJ: int, Lx: float = 1.0, Ly: float = 1.0,
                  y_ratio: float = 1.1,
                  boundaries: Optional[Dict[str, str]] = None) -> "CartesianMesh":
        """
        Mesh with geometric growth of the j-spacing away from the south side.

        Parameters
        ----------
        y_ratio : float
            Ratio of successive cell heights (1.0 gives a uniform mesh).
        """
        if abs(y_ratio - 1.0) < 1e-12:
            return cls.uniform(NI, NJ, Lx, Ly, boundaries)
        heights = y_ratio ** np.arange(NJ)
        heights *= Ly / heights.sum()
        y_nodes = np.concatenate(([0.0], np.cumsum(heights)))
        y_nodes[-1] = Ly
        return cls(
            x_nodes=np.linspace(0.0, Lx, NI + 1),
            y_nodes=y_nodes,
            boundaries=dict(boundaries or {}),
        )

    # =========================================================================
    # Geometry
    # =========================================================================

    @property
    def NI(self) -> int:
        """Number of cells in i-direction."""
        return self.x_nodes.size - 1

    @property
    def NJ(self) -> int:
        """Number of cells in j-direction."""
        return self.y_nodes.size - 1

    @property
    def shape(self):
        return (self.NI, self.NJ)

    @property
    def dx(self) -> np.ndarray:
        return np.diff(self.x_nodes)

    @property
    def dy(self) -> np.ndarray:
        return np.diff(self.y_nodes)

    @property
    def xc(self) -> np.ndarray:
        """Cell-centre x, shape (NI, NJ)."""
        x = 0.5 * (self.x_nodes[1:] + self.x_nodes[:-1])
        return np.broadcast_to(x[:, None], self.shape).copy()

    @property
    def yc(self) -> np.ndarray:
        """Cell-centre y, shape (NI, NJ)."""
        y = 0.5 * (self.y_nodes[1:] + self.y_nodes[:-1])
        return np.broadcast_to(y[None, :], self.shape).copy()

    @property
    def volume(self) -> np.ndarray:
        """Cell areas, shape (NI, NJ)."""
        return np.outer(self.dx, self.dy)

    @property
    def face_area_i(self) -> np.ndarray:
        """I-face lengths, shape (NI+1, NJ)."""
        return np.broadcast_to(self.dy[None, :], (self.NI + 1, self.NJ)).copy()

    @property
    def face_area_j(self) -> np.ndarray:
        """J-face lengths, shape (NI, NJ+1)."""
        return np.broadcast_to(self.dx[:, None], (self.NI, self.NJ + 1)).copy()

    def is_wall(self, side: str) -> bool:
        return self.boundaries[side] == WALL

    def wall_sides(self):
        return [side for side in SIDES if self.is_wall(side)]

    def wall_distance(self) -> np.ndarray:
        """
        Distance from each cell centre to the nearest wall side.

        Returns
        -------
        ndarray, shape (NI, NJ)
            Floored at Y_MIN; a large value everywhere if the mesh has no walls.
        """
        xc, yc = self.xc, self.yc
        distances = {
            "west": xc - self.x_nodes[0],
            "east": self.x_nodes[-1] - xc,
            "south": yc - self.y_nodes[0],
            "north": self.y_nodes[-1] - yc,
        }
        walls = self.wall_sides()
        if not walls:
            span = max(self.x_nodes[-1] - self.x_nodes[0], self.y_nodes[-1] - self.y_nodes[0])
            return np.full(self.shape, 1e3 * span)
        d = np.minimum.reduce([distances[side] for side in walls])
        return np.maximum(d, Y_MIN)

    def boundary_cells(self, side: str):
        """Index expression selecting the cells adjacent to a side."""
        return {
            "west": (0, slice(None)),
            "east": (-1, slice(None)),
            "south": (slice(None), 0),
            "north": (slice(None), -1),
        }[side]

    def wall_cell_mask(self) -> np.ndarray:
        """Boolean (NI, NJ) mask of cells with at least one wall face."""
        mask = np.zeros(self.shape, dtype=bool)
        for side in self.wall_sides():
            mask[self.boundary_cells(side)] = True
        return mask
