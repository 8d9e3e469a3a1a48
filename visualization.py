# visualization.py
"""
Handles the live visualization of the active particles using Pygame.
"""
import logging
import pygame
import numpy as np
from constants import (
    BACKGROUND_COLOR, BOX_BORDER_COLOR, DEFAULT_PARTICLE_COLOR,
    DEFAULT_WINDOW_SIZE, ORIENTATION_COLOR, UI_BACKGROUND_ALPHA,
    UI_PANEL_WIDTH
)
from typing import Optional, Tuple

# Forward reference for type hinting to avoid circular import
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from simulation import SimulationState


# --- Data Contracts ---
#
# class Visualizer:
#   - __init__(self, box_length: float, sim_params: dict, fullscreen: bool,
#              window_size: Tuple[int, int], particle_color: Optional[list]):
#     - Side Effects: Initializes Pygame and creates a display surface.
#
#   - draw(self, state: "SimulationState") -> bool:
#     - Outputs:
#       - bool: False if the user has quit, True otherwise.
#     - Side Effects: Renders particles and the parameter panel, handles
#       Pygame events. Never modifies the state.

class Visualizer:
    """
    Renders the periodic box and a side panel with the run parameters.
    """
    def __init__(
        self,
        box_length: float,
        sim_params: Optional[dict] = None,
        fullscreen: bool = False,
        window_size: Tuple[int, int] = DEFAULT_WINDOW_SIZE,
        particle_color: Optional[list] = None,
    ):
        """
        Initializes Pygame and the display window.
        """
        pygame.init()
        pygame.font.init()

        if fullscreen:
            display_info = pygame.display.Info()
            width, height = display_info.current_w, display_info.current_h
            self.screen = pygame.display.set_mode((width, height), pygame.FULLSCREEN)
        else:
            width, height = int(window_size[0]) + UI_PANEL_WIDTH, int(window_size[1])
            self.screen = pygame.display.set_mode((width, height))

        # The box is drawn as the largest square left of the UI panel.
        self.box_pixels = min(width - UI_PANEL_WIDTH, height)
        self.box_length = float(box_length)
        self.scale = self.box_pixels / self.box_length
        # Particles have a diameter of 1 length unit.
        self.particle_radius = max(1, int(round(0.5 * self.scale)))

        self.sim_surface = pygame.Surface((self.box_pixels, self.box_pixels))
        self.ui_panel_surface = pygame.Surface((UI_PANEL_WIDTH, height), pygame.SRCALPHA)
        self.ui_panel_surface.fill((40, 40, 40, UI_BACKGROUND_ALPHA))
        self.panel_x = width - UI_PANEL_WIDTH

        pygame.display.set_caption("Active Brownian particles")

        self.particle_color = self._initialize_color(particle_color)
        self.font_title = pygame.font.SysFont(None, 22, bold=True)
        self.font_main = pygame.font.SysFont(None, 18)

        self.text_color_title = (255, 255, 255)
        self.text_color_key = (200, 200, 200)
        self.sim_params = sim_params if sim_params is not None else {}

        logging.info(
            f"Visualizer initialized with Pygame display ({width}x{height}), "
            f"{self.scale:.2f} px per length unit."
        )

    def _initialize_color(self, config_color: Optional[list]) -> pygame.Color:
        """Reads the particle color from config, falling back to the default."""
        if not config_color:
            return pygame.Color(DEFAULT_PARTICLE_COLOR)
        try:
            return pygame.Color(*config_color)
        except (ValueError, TypeError) as e:
            logging.error(f"Could not parse particle color from config: {e}. Using default.")
            return pygame.Color(DEFAULT_PARTICLE_COLOR)

    def to_screen(self, positions: np.ndarray) -> np.ndarray:
        """Converts box coordinates to pixels. The y axis points up."""
        pixels = np.empty_like(positions)
        pixels[:, 0] = positions[:, 0] * self.scale
        pixels[:, 1] = self.box_pixels - positions[:, 1] * self.scale
        return pixels

    def _draw_particles(self, state: "SimulationState"):
        pixels = self.to_screen(state.positions)
        orientations = state.orientations
        heading = np.stack((np.cos(orientations), -np.sin(orientations)), axis=1)
        tips = pixels + heading * self.particle_radius

        margin = self.particle_radius
        for i in range(pixels.shape[0]):
            px, py = pixels[i]

            # Periodic ghosts of the particles crossing an edge
            x_offsets = [0]
            if px < margin:
                x_offsets.append(self.box_pixels)
            elif px > self.box_pixels - margin:
                x_offsets.append(-self.box_pixels)
            y_offsets = [0]
            if py < margin:
                y_offsets.append(self.box_pixels)
            elif py > self.box_pixels - margin:
                y_offsets.append(-self.box_pixels)

            for x_offset in x_offsets:
                for y_offset in y_offsets:
                    center = (int(px + x_offset), int(py + y_offset))
                    tip = (int(tips[i, 0] + x_offset), int(tips[i, 1] + y_offset))
                    pygame.draw.circle(self.sim_surface, self.particle_color, center, self.particle_radius)
                    pygame.draw.line(self.sim_surface, ORIENTATION_COLOR, center, tip)

    def _draw_panel(self, state: "SimulationState"):
        """Renders the parameters and the step counter in the side panel."""
        x = self.panel_x + 20
        y = 20
        title = self.font_title.render("Parameters", True, self.text_color_title)
        self.screen.blit(title, (x, y))
        y += title.get_height() + 10

        entries = list(self.sim_params.items()) + [("step", state.step_count)]
        for key, value in entries:
            display_value = f"{value:.4g}" if isinstance(value, float) else str(value)
            text = self.font_main.render(
                f"{key.replace('_', ' ')}: {display_value}", True, self.text_color_key
            )
            self.screen.blit(text, (x, y))
            y += self.font_main.get_linesize()

    def draw(self, state: "SimulationState") -> bool:
        """
        Draws all particles and the UI, and handles events.

        Returns:
            bool: False if the simulation should exit, True otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False
            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                logging.info("ESC key pressed. Shutting down visualizer.")
                return False

        self.screen.fill(BACKGROUND_COLOR)
        self.sim_surface.fill(BACKGROUND_COLOR)
        self._draw_particles(state)
        pygame.draw.rect(self.sim_surface, BOX_BORDER_COLOR, self.sim_surface.get_rect(), 1)
        self.screen.blit(self.sim_surface, (0, 0))

        self.screen.blit(self.ui_panel_surface, (self.panel_x, 0))
        self._draw_panel(state)

        pygame.display.flip()
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()
