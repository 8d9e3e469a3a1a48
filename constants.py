# constants.py
"""
Application-level constants.

These values are static and do not change between simulation runs.
They are fundamental to the model and to the viewer, and are not part of
the experimental configuration.
"""
import numpy as np

# --- Physics ---
# Interaction range of the harmonic spheres. It is also the particle diameter.
CUTOFF_RADIUS = 1.0
TWO_PI = 2.0 * np.pi

# Half-stencil of neighbor cell offsets (dx, dy). The own cell comes first.
# No offset is the opposite of another one, so each pair of adjacent cells
# is visited from one side only.
HALF_STENCIL = (
    (0, 0),
    (1, 0),
    (-1, 1),
    (0, 1),
    (1, 1),
)

# Below this many cells per side the periodic offsets alias each other.
MIN_CELLS_PER_SIDE = 3

BACKENDS = ("numba", "numpy")
DEFAULT_BACKEND = "numba"

# Visualization settings
UI_PANEL_WIDTH = 260
DEFAULT_WINDOW_SIZE = (900, 900)
BACKGROUND_COLOR = (24, 24, 24) # Dark Gray
BOX_BORDER_COLOR = (90, 90, 90)
DEFAULT_PARTICLE_COLOR = (0, 255, 255)   # Cyan
ORIENTATION_COLOR = (255, 204, 0)        # Gold
UI_BACKGROUND_ALPHA = 100
