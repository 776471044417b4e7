"""Render 2-D latent trajectories to RGB image frames.

A ball of fixed colour is drawn at each latent position on a background,
blurred with a 2x2 box filter and clamped to ``[0, 1]``.
"""

from __future__ import annotations

import numpy as np

__all__ = [
    "X_MIN",
    "X_MAX",
    "Y_MIN",
    "BALL_COLOR",
    "BG_COLOR",
    "draw_sequence",
]

X_MIN = np.float32(-3.0)
X_MAX = np.float32(4.0)
Y_MIN = np.float32(-4.0)

BALL_COLOR = np.array([173.0 / 255.0, 146.0 / 255.0, 0.0], dtype=np.float32)
"""Ball colour in ``[0, 1]`` RGB."""

BG_COLOR = np.array([81.0 / 255.0, 88.0 / 255.0, 93.0 / 255.0], dtype=np.float32)
"""Background colour in ``[0, 1]`` RGB."""

_PIXEL_LIMIT = 2**62


def _to_pixel(world: np.float32, origin: np.float32, space_res: np.float32) -> int:
    """Map a world coordinate to a pixel index, truncating toward zero."""
    value = (np.float32(world) - origin) / space_res
    if np.isnan(value):
        return 0
    value = float(np.clip(value, -_PIXEL_LIMIT, _PIXEL_LIMIT))
    return int(value)


def _circle_offsets(radius: int) -> tuple[np.ndarray, np.ndarray]:
    span = np.arange(-radius, radius + 1)
    dy, dx = np.meshgrid(span, span, indexing="ij")
    inside = dx * dx + dy * dy <= radius * radius
    return dy[inside], dx[inside]


def _box_blur_2x2(frames: np.ndarray) -> np.ndarray:
    """2x2 box blur with zero padding on the top and left, always divided by 4."""
    padded = np.pad(frames, ((0, 0), (1, 0), (1, 0), (0, 0)))
    current = padded[:, 1:, 1:]
    left = padded[:, 1:, :-1]
    top = padded[:, :-1, 1:]
    top_left = padded[:, :-1, :-1]
    return ((current + left + top + top_left) / np.float32(4.0)).astype(np.float32)


def draw_sequence(latents: np.ndarray, res: int) -> np.ndarray:
    """Render a ``[T, 2]`` trajectory into a ``[T, res, res, 3]`` float32 video in ``[0, 1]``."""
    latents = np.asarray(latents, dtype=np.float32)
    if latents.ndim != 2 or latents.shape[1] != 2:
        got = latents.shape[1] if latents.ndim == 2 else latents.shape
        raise ValueError(f"draw_sequence requires dim_latent == 2 (got {got})")
    if res <= 0:
        raise ValueError(f"res must be > 0 (got {res})")

    t_len = latents.shape[0]
    space_res = np.float32((X_MAX - X_MIN) / np.float32(res))
    radius = int(np.float32(1.0) / space_res)
    dy, dx = _circle_offsets(radius)

    frames = np.zeros((t_len, res, res, 3), dtype=np.float32)
    for time_idx, (world_x, world_y) in enumerate(latents):
        cols = _to_pixel(world_x, X_MIN, space_res) + dx
        rows = _to_pixel(world_y, Y_MIN, space_res) + dy
        visible = (cols >= 0) & (cols < res) & (rows >= 0) & (rows < res)
        frames[time_idx, rows[visible], cols[visible]] = BALL_COLOR

    frames = _box_blur_2x2(frames)
    return np.clip(frames + BG_COLOR, 0.0, 1.0).astype(np.float32)