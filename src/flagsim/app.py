import argparse
import sys
import time

import moderngl
import numpy as np
import pygame

from flagsim.config import FlagConfig, PinConfig, Side
from flagsim.layout import build_flag
from flagsim.renderer import Renderer
from flagsim.wind import Wind

# Hoist edges cycled with the P key
PIN_CYCLE = (Side.LEFT, Side.TOP, Side.RIGHT, Side.BOTTOM)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive flag simulation")
    parser.add_argument("--width", default="1.8", help="Flag width in metres")
    parser.add_argument("--height", default="1.2", help="Flag height in metres")
    parser.add_argument("--mass", type=float, default=0.11, help="Areal density (kg/m^2)")
    parser.add_argument("--rest-distance", type=float, default=0.12, help="Grid spacing (m)")
    parser.add_argument(
        "--pin", nargs="+", default=["left"], help="Pinned edges (top/left/bottom/right)"
    )
    parser.add_argument("--spacing", type=int, default=1, help="Pin every Nth particle")
    parser.add_argument("--wind", type=float, default=5.0, help="Mean wind speed (m/s)")
    parser.add_argument("--gust", type=float, default=0.3, help="Relative gust amplitude")
    parser.add_argument("--fps", type=int, default=60, help="Target frame rate")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> FlagConfig:
    return FlagConfig(
        width=args.width,
        height=args.height,
        mass=args.mass,
        rest_distance=args.rest_distance,
        pin=PinConfig(edges=args.pin, spacing=args.spacing),
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    config = config_from_args(args)

    print("Building flag...")
    flag = build_flag(config).simulation
    cloth = flag.cloth
    wind = Wind(direction=(1.0, 0.0, 0.3), speed=args.wind, variance=args.gust)

    # Window + GL context
    width, height = 1000, 700
    pygame.init()
    clock = pygame.time.Clock()
    pygame.display.set_mode((width, height), pygame.OPENGL | pygame.DOUBLEBUF)
    pygame.display.set_caption("Flag Simulation")
    ctx = moderngl.create_context()
    renderer = Renderer(ctx, flag, width, height)

    # Camera looks at the middle of the flag from +z
    center = (cloth.width * 0.5, cloth.height * 0.5, 0.0)
    distance = max(cloth.width, cloth.height) * 1.8
    camera_rot = [0.0, 0.0]

    running = True
    paused = False
    pin_choice = 0
    start = time.perf_counter()

    print("\n" + "=" * 60)
    print("Camera:")
    print("  Arrow Keys      - Rotate camera")
    print("  +/-             - Zoom in/out")
    print("\nSimulation:")
    print("  Space           - Pause/Resume")
    print("  R               - Reset flag")
    print("  P               - Cycle hoist edge")
    print("  U               - Unpin (free fall)")
    print("  Q / A           - Increase/Decrease wind")
    print("\nRendering:")
    print("  W               - Cycle modes (Filled/Wireframe/Both)")
    print("=" * 60)

    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_SPACE:
                    paused = not paused
                    print(f"[Simulation {'PAUSED' if paused else 'RESUMED'}]")
                elif event.key == pygame.K_r:
                    flag.reset()
                    print("[Simulation RESET]")
                elif event.key == pygame.K_w:
                    print(f"[Render Mode: {renderer.cycle_render_mode()}]")
                elif event.key == pygame.K_p:
                    pin_choice = (pin_choice + 1) % len(PIN_CYCLE)
                    side = PIN_CYCLE[pin_choice]
                    flag.unpin()
                    flag.pin((side,), config.pin.spacing)
                    flag.set_length_constraints(side)
                    flag.reset()
                    print(f"[Hoist: {side.value}]")
                elif event.key == pygame.K_u:
                    flag.unpin()
                    flag.set_length_constraints(None)
                    print("[Unpinned]")
                elif event.key == pygame.K_q:
                    wind.speed = min(40.0, wind.speed + 1.0)
                    print(f"Wind: {wind.speed:.1f} m/s")
                elif event.key == pygame.K_a:
                    wind.speed = max(0.0, wind.speed - 1.0)
                    print(f"Wind: {wind.speed:.1f} m/s")

        keys = pygame.key.get_pressed()
        if keys[pygame.K_LEFT]:
            camera_rot[1] -= 0.03
        if keys[pygame.K_RIGHT]:
            camera_rot[1] += 0.03
        if keys[pygame.K_UP]:
            camera_rot[0] -= 0.03
        if keys[pygame.K_DOWN]:
            camera_rot[0] += 0.03
        if keys[pygame.K_EQUALS] or keys[pygame.K_PLUS]:
            distance = max(0.5, distance - 0.05)
        if keys[pygame.K_MINUS]:
            distance += 0.05

        # dt is clamped inside the solver after a stall
        dt = clock.tick(args.fps) / 1000.0
        if not paused:
            cloth.wind[:] = wind.vector_at(time.perf_counter() - start)
            flag.simulate(dt)

        if cloth.is_exploded:
            print("[Flag diverged, resetting]")
            flag.reset()

        eye = np.array(center) + np.array([0.0, 0.0, distance])
        lines = [
            f"FPS: {clock.get_fps():.1f}",
            f"Wind: {wind.speed:.1f} m/s",
            f"Pins: {len(flag.pins)}",
            f"Hoist: {flag.hoist_side.value if flag.hoist_side else '-'}",
        ]
        renderer.draw((camera_rot[0], camera_rot[1]), tuple(eye), lines)

    print("\n[Main] Shutting down...")
    renderer.release()
    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
