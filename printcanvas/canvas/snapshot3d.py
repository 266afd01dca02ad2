"""Still snapshots of a 3D product with the design wrapped on it.

The design is composited into a square UV texture with the shared element
routine, the product mesh is loaded with trimesh and drawn by a small numpy
rasterizer (z-buffer, perspective-correct UVs, Lambert lighting). Every
failure ends in ``None`` rather than an exception.
"""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import PurePosixPath
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import numpy as np
import trimesh
from PIL import Image

from printcanvas.core.errors import ResourceLoadError
from printcanvas.core.objects import DesignElement, Point, Product, parse_hex_rgba
from printcanvas.core.state import DEFAULT_BG_COLOR, EXPORT_SCALE, SNAPSHOT_JPEG_QUALITY, SNAPSHOT_SIZE
from .export import Compositor, is_white, image_to_data_url
from .images import ImageLoader

logger = logging.getLogger(__name__)

SNAPSHOT_BACKGROUND = "#f5f5f5"
MODEL_YAW = 2.5
GAMMA = 2.2


async def generate_uv_texture(product: Optional[Product], elements: Sequence[DesignElement],
                              background_color: str = DEFAULT_BG_COLOR,
                              compositor: Optional[Compositor] = None,
                              scale: float = EXPORT_SCALE) -> Optional[Image.Image]:
    """Square texture of the print area; elements centred outside it are left out."""
    if product is None or product.print_area is None:
        return None
    compositor = compositor or Compositor()
    pa = product.print_area
    side = max(pa.width, pa.height)
    px = max(1, int(round(side * scale)))
    # white base, transparent texels render black on the mesh
    canvas = Image.new("RGBA", (px, px), (255, 255, 255, 255))
    if not is_white(background_color):
        canvas.paste(parse_hex_rgba(background_color),
                     (0, 0, int(round(pa.width * scale)), int(round(pa.height * scale))))

    def outside(el: DesignElement) -> bool:
        rx, ry = el.x - pa.x, el.y - pa.y
        return rx < 0 or ry < 0 or rx >= pa.width or ry >= pa.height

    await compositor.draw_elements(canvas, elements, Point(pa.x, pa.y), scale, skip=outside)
    return canvas


def load_meshes(glb_url: str, loader: Optional[ImageLoader] = None) -> List[trimesh.Trimesh]:
    """Load a GLB/GLTF and flatten any scene graph into world-space meshes."""
    data = (loader or ImageLoader()).read_bytes(glb_url)
    suffix = PurePosixPath(urlparse(glb_url).path).suffix.lower().lstrip(".")
    file_type = suffix if suffix in ("glb", "gltf", "obj", "ply", "stl") else "glb"
    try:
        loaded = trimesh.load(BytesIO(data), file_type=file_type)
    except Exception as e:
        raise ResourceLoadError(glb_url, f"cannot parse mesh: {e}") from e

    if isinstance(loaded, trimesh.Trimesh):
        return [loaded]
    meshes: List[trimesh.Trimesh] = []
    if isinstance(loaded, trimesh.Scene):
        for node in loaded.graph.nodes_geometry:
            transform, geom_name = loaded.graph[node]
            geom = loaded.geometry.get(geom_name)
            if not isinstance(geom, trimesh.Trimesh):
                continue
            mesh = geom.copy()
            mesh.apply_transform(transform)
            meshes.append(mesh)
    if not meshes:
        raise ResourceLoadError(glb_url, "no valid meshes in file")
    return meshes


@dataclass
class TextureMapping:
    """UV transform ``uv * repeat + offset`` with repeat wrapping.

    The default covers the whole texture once with V flipped, so texture row
    0 lands at the top of the model's UV layout.
    """

    offset: Tuple[float, float] = (0.0, 0.0)
    repeat: Tuple[float, float] = (1.0, -1.0)

    def apply(self, u: np.ndarray, v: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return u * self.repeat[0] + self.offset[0], v * self.repeat[1] + self.offset[1]


@dataclass
class Light:
    kind: str
    intensity: float
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)


def _default_lights() -> List[Light]:
    return [
        Light("ambient", 1.2),
        Light("directional", 3.5, (10.0, 10.0, 5.0)),
        Light("directional", 5.2, (0.0, 5.0, 10.0)),
        Light("point", 2.2, (-10.0, -10.0, -5.0)),
    ]


@dataclass
class SceneLights:
    lights: List[Light] = field(default_factory=_default_lights)

    def irradiance(self, positions: np.ndarray, normals: np.ndarray) -> np.ndarray:
        """Per-vertex diffuse irradiance for world-space positions and normals."""
        total = np.zeros(len(positions), dtype=np.float64)
        for light in self.lights:
            if light.kind == "ambient":
                total += light.intensity
                continue
            pos = np.asarray(light.position, dtype=np.float64)
            if light.kind == "directional":
                d = pos / max(np.linalg.norm(pos), 1e-12)
                total += light.intensity * np.clip(normals @ d, 0.0, None)
            elif light.kind == "point":
                to_light = pos[None, :] - positions
                dist = np.linalg.norm(to_light, axis=1)
                d = to_light / np.maximum(dist, 1e-12)[:, None]
                ndl = np.clip(np.einsum("ij,ij->i", normals, d), 0.0, None)
                total += light.intensity * ndl / np.maximum(dist * dist, 0.01)
        return total


@dataclass
class Camera:
    fov: float = 70.0
    position: Tuple[float, float, float] = (0.5, 0.5, 1.0)
    look_at: Tuple[float, float, float] = (0.0, 0.3, 0.0)
    near: float = 0.1
    far: float = 1000.0

    def view_matrix(self) -> np.ndarray:
        eye = np.asarray(self.position, dtype=np.float64)
        target = np.asarray(self.look_at, dtype=np.float64)
        f = target - eye
        f /= np.linalg.norm(f)
        r = np.cross(f, np.array([0.0, 1.0, 0.0]))
        r /= np.linalg.norm(r)
        u = np.cross(r, f)
        m = np.eye(4)
        m[0, :3], m[1, :3], m[2, :3] = r, u, -f
        m[0, 3] = -r @ eye
        m[1, 3] = -u @ eye
        m[2, 3] = f @ eye
        return m


def _yaw_matrix(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


class SoftwareRenderer:
    """Minimal offline stand-in for a WebGL render of a textured mesh."""

    def __init__(self, width: int = SNAPSHOT_SIZE, height: int = SNAPSHOT_SIZE,
                 camera: Optional[Camera] = None, lights: Optional[SceneLights] = None,
                 mapping: Optional[TextureMapping] = None, model_yaw: float = MODEL_YAW,
                 background: str = SNAPSHOT_BACKGROUND, supersample: int = 2,
                 cull_backfaces: bool = True) -> None:
        self.width = max(1, int(width))
        self.height = max(1, int(height))
        self.camera = camera or Camera()
        self.lights = lights or SceneLights()
        self.mapping = mapping or TextureMapping()
        self.model_yaw = model_yaw
        self.background = background
        self.supersample = max(1, int(supersample))
        self.cull_backfaces = cull_backfaces
        self._depth: Optional[np.ndarray] = None
        self._color: Optional[np.ndarray] = None

    def render(self, meshes: Sequence[trimesh.Trimesh], texture: Optional[Image.Image]) -> Image.Image:
        w, h = self.width * self.supersample, self.height * self.supersample
        bg = np.array(parse_hex_rgba(self.background)[:3], dtype=np.float64) / 255.0
        self._depth = np.full((h, w), np.inf, dtype=np.float64)
        self._color = np.empty((h, w, 3), dtype=np.float64)
        self._color[:] = bg ** GAMMA

        tex = None
        if texture is not None:
            tex = (np.asarray(texture.convert("RGB"), dtype=np.float64) / 255.0) ** GAMMA

        for mesh in meshes:
            self._draw_mesh(mesh, tex, w, h)

        out = np.clip(self._color, 0.0, 1.0) ** (1.0 / GAMMA)
        img = Image.fromarray((out * 255.0 + 0.5).astype(np.uint8), "RGB")
        if self.supersample > 1:
            img = img.resize((self.width, self.height), Image.LANCZOS)
        return img

    def dispose(self) -> None:
        self._depth = None
        self._color = None

    def _project(self, world: np.ndarray, w: int, h: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        cam = self.camera
        homo = np.hstack([world, np.ones((len(world), 1))])
        view = homo @ self.camera.view_matrix().T
        depth = -view[:, 2]
        f = 1.0 / math.tan(math.radians(cam.fov) / 2.0)
        aspect = w / float(h)
        safe = np.where(np.abs(depth) < 1e-9, 1e-9, depth)
        ndc_x = (f / aspect) * view[:, 0] / safe
        ndc_y = f * view[:, 1] / safe
        ndc_z = ((cam.far + cam.near) * depth - 2.0 * cam.far * cam.near) / ((cam.far - cam.near) * safe)
        sx = (ndc_x + 1.0) * 0.5 * w
        sy = (1.0 - ndc_y) * 0.5 * h
        return np.column_stack([sx, sy]), ndc_z, depth

    def _draw_mesh(self, mesh: trimesh.Trimesh, tex: Optional[np.ndarray], w: int, h: int) -> None:
        faces = np.asarray(mesh.faces, dtype=np.int64)
        if faces.size == 0:
            return
        rot = _yaw_matrix(self.model_yaw)
        world = np.asarray(mesh.vertices, dtype=np.float64) @ rot.T
        normals = np.asarray(mesh.vertex_normals, dtype=np.float64) @ rot.T
        light = self.lights.irradiance(world, normals) / math.pi

        uv = getattr(mesh.visual, "uv", None)
        if uv is not None and len(uv) == len(world) and tex is not None:
            uv = np.asarray(uv, dtype=np.float64)
            # trimesh stores V with a bottom-left origin
            tu, tv = self.mapping.apply(uv[:, 0], 1.0 - uv[:, 1])
        else:
            tu = tv = None

        screen, zndc, depth = self._project(world, w, h)
        near = self.camera.near
        th, tw = (tex.shape[0], tex.shape[1]) if tex is not None else (0, 0)

        for tri in faces:
            if np.any(depth[tri] < near):
                continue
            a, b, c = screen[tri]
            denom = (b[1] - c[1]) * (a[0] - c[0]) + (c[0] - b[0]) * (a[1] - c[1])
            if abs(denom) < 1e-12:
                continue
            # screen y points down, so front faces (CCW in NDC) have a negative denom
            if self.cull_backfaces and denom > 0:
                continue
            x0 = max(int(math.floor(min(a[0], b[0], c[0]))), 0)
            x1 = min(int(math.ceil(max(a[0], b[0], c[0]))), w - 1)
            y0 = max(int(math.floor(min(a[1], b[1], c[1]))), 0)
            y1 = min(int(math.ceil(max(a[1], b[1], c[1]))), h - 1)
            if x1 < x0 or y1 < y0:
                continue
            xs, ys = np.meshgrid(np.arange(x0, x1 + 1) + 0.5, np.arange(y0, y1 + 1) + 0.5)
            l0 = ((b[1] - c[1]) * (xs - c[0]) + (c[0] - b[0]) * (ys - c[1])) / denom
            l1 = ((c[1] - a[1]) * (xs - c[0]) + (a[0] - c[0]) * (ys - c[1])) / denom
            l2 = 1.0 - l0 - l1
            inside = (l0 >= 0) & (l1 >= 0) & (l2 >= 0)
            if not inside.any():
                continue
            z = l0 * zndc[tri[0]] + l1 * zndc[tri[1]] + l2 * zndc[tri[2]]
            zregion = self._depth[y0:y1 + 1, x0:x1 + 1]
            hit = inside & (z < zregion)
            if not hit.any():
                continue
            zregion[hit] = z[hit]

            iw = 1.0 / depth[tri]
            p0, p1, p2 = l0[hit] * iw[0], l1[hit] * iw[1], l2[hit] * iw[2]
            q = p0 + p1 + p2
            shade = (p0 * light[tri[0]] + p1 * light[tri[1]] + p2 * light[tri[2]]) / q
            if tu is not None:
                u = (p0 * tu[tri[0]] + p1 * tu[tri[1]] + p2 * tu[tri[2]]) / q
                v = (p0 * tv[tri[0]] + p1 * tv[tri[1]] + p2 * tv[tri[2]]) / q
                u = u - np.floor(u)
                v = v - np.floor(v)
                col = np.clip((u * tw).astype(np.int64), 0, tw - 1)
                row = np.clip(((1.0 - v) * th).astype(np.int64), 0, th - 1)
                albedo = tex[row, col]
            else:
                albedo = np.ones((int(hit.sum()), 3))
            cregion = self._color[y0:y1 + 1, x0:x1 + 1]
            cregion[hit] = albedo * shade[:, None]


async def generate_3d_snapshot(product: Optional[Product], elements: Sequence[DesignElement],
                               background_color: str = DEFAULT_BG_COLOR,
                               width: int = SNAPSHOT_SIZE, height: int = SNAPSHOT_SIZE,
                               compositor: Optional[Compositor] = None) -> Optional[str]:
    """JPEG data URL of the textured product model, or None."""
    glb_url = product.glb_url if product is not None else None
    if product is None or not glb_url or not product.is_3d:
        logger.warning("Cannot take a 3D snapshot: product is not 3D or has no GLB url")
        return None
    compositor = compositor or Compositor()
    try:
        texture = await generate_uv_texture(product, elements, background_color, compositor)
        if texture is None:
            logger.warning("UV texture generation failed")
            return None
        meshes = await asyncio.to_thread(load_meshes, glb_url, compositor.loader)
        renderer = SoftwareRenderer(width, height)
        try:
            image = await asyncio.to_thread(renderer.render, meshes, texture)
        finally:
            renderer.dispose()
        return image_to_data_url(image, "JPEG", SNAPSHOT_JPEG_QUALITY)
    except Exception:
        logger.exception("Failed to generate 3D snapshot")
        return None
