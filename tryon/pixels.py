from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle in pixel coordinates. May extend past the image."""

    x: int
    y: int
    width: int
    height: int

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def clip(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """
        Intersect with a (width, height) image.

        Returns (x0, y0, x1, y1) with x0 <= x1 and y0 <= y1; an empty
        intersection has x0 == x1 or y0 == y1.
        """
        x0 = min(max(self.x, 0), width)
        y0 = min(max(self.y, 0), height)
        x1 = max(min(self.x + self.width, width), x0)
        y1 = max(min(self.y + self.height, height), y0)
        return x0, y0, x1, y1

    @classmethod
    def from_fractions(cls, width: int, height: int, fx: float, fy: float, fw: float, fh: float) -> "Region":
        return cls(
            x=int(width * fx),
            y=int(height * fy),
            width=int(width * fw),
            height=int(height * fh),
        )


@dataclass(frozen=True)
class PixelBuffer:
    """
    Decoded RGBA raster, row-major, origin top-left.

    `pixels` is a read-only uint8 array of shape (height, width, 4).
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Invalid image size: {(self.width, self.height)}")
        if self.pixels.shape != (self.height, self.width, 4):
            raise ValueError(
                f"Expected RGBA array of shape {(self.height, self.width, 4)}, got {self.pixels.shape}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 samples, got dtype={self.pixels.dtype}")
        # Private read-only copy; the caller's array stays untouched.
        frozen = np.array(self.pixels, copy=True)
        frozen.setflags(write=False)
        object.__setattr__(self, "pixels", frozen)

    @classmethod
    def from_rgba(cls, width: int, height: int, data: Union[bytes, bytearray, Sequence[int], np.ndarray]) -> "PixelBuffer":
        """
        Build from a flat RGBA sequence (4 samples per pixel).
        """
        if isinstance(data, (bytes, bytearray)):
            flat = np.frombuffer(bytes(data), dtype=np.uint8)
        else:
            flat = np.asarray(data, dtype=np.uint8).reshape(-1)
        expected = width * height * 4
        if flat.size != expected:
            raise ValueError(f"Expected {expected} RGBA samples for {width}x{height}, got {flat.size}")
        return cls(width=width, height=height, pixels=flat.reshape(height, width, 4))

    @classmethod
    def filled(cls, width: int, height: int, rgba: Tuple[int, int, int, int]) -> "PixelBuffer":
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[...] = np.array(rgba, dtype=np.uint8)
        return cls(width=width, height=height, pixels=arr)

    @property
    def area(self) -> int:
        return self.width * self.height

    def sample(self, region: Region, step: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Strided view of the pixels inside `region`, clipped to the buffer.

        Returns (rgb, xs, ys): rgb is an int32 array (n_rows, n_cols, 3) and
        xs / ys are the sampled pixel coordinates (n_cols,) and (n_rows,).
        Out-of-bounds pixels are skipped.
        """
        if step < 1:
            raise ValueError(f"step must be >= 1, got {step}")
        x0, y0, x1, y1 = region.clip(self.width, self.height)
        rgb = self.pixels[y0:y1:step, x0:x1:step, :3].astype(np.int32)
        xs = np.arange(x0, x1, step)
        ys = np.arange(y0, y1, step)
        return rgb, xs, ys
