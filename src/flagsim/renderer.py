# renderer.py
from pathlib import Path

import moderngl
import numpy as np
import pygame

from flagsim.camera import orbit_view, perspective
from flagsim.flag import FlagSimulation
from flagsim.types import PROJ, VIEW

RENDER_MODES = ("Filled", "Wireframe", "Filled+Edges")


class Renderer:
    def __init__(
        self,
        ctx: moderngl.Context,
        flag: FlagSimulation,
        width: int = 800,
        height: int = 600,
    ):
        self.ctx = ctx
        self.ctx.enable(moderngl.DEPTH_TEST)

        self.width = width
        self.height = height
        self.flag = flag
        self.render_mode = 0

        pygame.font.init()
        self.font = pygame.font.SysFont("monospace", 18)

        base = Path(__file__).parent / "shaders"

        # 3D program
        self.prog = self.ctx.program(
            vertex_shader=(base / "mesh.vert").read_text(),
            geometry_shader=(base / "mesh.geom").read_text(),
            fragment_shader=(base / "mesh.frag").read_text(),
        )

        # UI program
        self.ui_prog = self.ctx.program(
            vertex_shader=(base / "ui.vert").read_text(),
            fragment_shader=(base / "ui.frag").read_text(),
        )

        self.ui_vbo = self.ctx.buffer(reserve=4 * 4 * 4)
        self.ui_vao = self.ctx.vertex_array(
            self.ui_prog,
            [(self.ui_vbo, "2f 2f", "in_pos", "in_uv")],
        )
        self.ui_texture: moderngl.Texture | None = None

        # Flag buffers: indices once, positions every frame
        self.positions = np.zeros((flag.cloth.num_particles, 3), dtype=np.float32)
        self.vbo = self.ctx.buffer(reserve=self.positions.nbytes, dynamic=True)
        self.ebo = self.ctx.buffer(flag.faces.astype("i4").ravel().tobytes())
        self.vao = self.ctx.vertex_array(
            self.prog,
            [(self.vbo, "3f", "in_position")],
            self.ebo,
        )

        print(f"Renderer initialized: {len(flag.faces)} triangles")

    def cycle_render_mode(self) -> str:
        self.render_mode = (self.render_mode + 1) % len(RENDER_MODES)
        return RENDER_MODES[self.render_mode]

    # ------------------------
    # Draw
    # ------------------------

    def draw(
        self,
        camera_rot: tuple[float, float],
        camera_pos: tuple[float, float, float],
        lines: list[str],
    ) -> None:
        self.ctx.clear(0.55, 0.7, 0.85, 1.0)

        self.flag.render(self.positions)
        self.vbo.orphan()
        self.vbo.write(self.positions.tobytes())

        view, proj = self._get_matrices(camera_rot, camera_pos)
        self.prog["u_view"].write(view.tobytes())  # type: ignore
        self.prog["u_proj"].write(proj.tobytes())  # type: ignore

        light_world = np.array([4.0, 6.0, 5.0, 1.0], dtype=np.float32)
        light_view = (view.T @ light_world)[:3]
        self.prog["u_light_pos_view"].value = tuple(light_view)  # type: ignore
        self.prog["u_light_color"].value = (1.0, 0.97, 0.92)  # type: ignore

        if self.render_mode in (0, 2):
            self.prog["u_color"].value = (0.85, 0.15, 0.2)  # type: ignore
            self.vao.render()
        if self.render_mode in (1, 2):
            self.ctx.wireframe = True
            self.prog["u_color"].value = (0.1, 0.1, 0.1)  # type: ignore
            self.vao.render()
            self.ctx.wireframe = False

        self._draw_ui_overlay(lines)
        pygame.display.flip()

    def _get_matrices(
        self,
        camera_rot: tuple[float, float],
        camera_pos: tuple[float, float, float],
    ) -> tuple[VIEW, PROJ]:
        view = orbit_view(camera_rot, camera_pos)
        proj = perspective(np.radians(50.0), self.width / self.height, 0.05, 100.0)
        return view, proj

    # ------------------------
    # UI Overlay
    # ------------------------

    def _surface_to_texture(self, surface: pygame.Surface) -> moderngl.Texture:
        surface = pygame.transform.flip(surface, False, True)
        data = pygame.image.tobytes(surface, "RGBA", False)

        tex = self.ctx.texture(surface.get_size(), 4, data)
        tex.filter = (moderngl.NEAREST, moderngl.NEAREST)
        return tex

    def _draw_ui_overlay(self, lines: list[str]) -> None:
        if not lines:
            return

        self.ctx.enable(moderngl.BLEND)
        self.ctx.blend_func = moderngl.SRC_ALPHA, moderngl.ONE_MINUS_SRC_ALPHA

        line_h = self.font.get_height()
        w = max(self.font.size(line)[0] for line in lines)
        h = line_h * len(lines)

        surface = pygame.Surface((w, h), pygame.SRCALPHA)
        for i, line in enumerate(lines):
            surface.blit(self.font.render(line, True, (20, 20, 30)), (0, i * line_h))

        if self.ui_texture:
            self.ui_texture.release()
        self.ui_texture = self._surface_to_texture(surface)
        self.ui_texture.use(0)

        # Top-left quad in NDC
        margin = 10
        x0 = -1.0 + 2.0 * margin / self.width
        y0 = 1.0 - 2.0 * margin / self.height
        x1 = x0 + 2.0 * w / self.width
        y1 = y0 - 2.0 * h / self.height

        quad = np.array(
            [
                [x0, y0, 0.0, 1.0],
                [x0, y1, 0.0, 0.0],
                [x1, y0, 1.0, 1.0],
                [x1, y1, 1.0, 0.0],
            ],
            dtype="f4",
        )

        self.ui_vbo.write(quad.tobytes())
        self.ui_prog["u_texture"] = 0
        self.ctx.disable(moderngl.DEPTH_TEST)
        self.ui_vao.render(mode=moderngl.TRIANGLE_STRIP)
        self.ctx.enable(moderngl.DEPTH_TEST)
        self.ctx.disable(moderngl.BLEND)

    def release(self) -> None:
        for resource in (self.vao, self.vbo, self.ebo, self.ui_vao, self.ui_vbo, self.ui_texture):
            if resource is not None:
                resource.release()
