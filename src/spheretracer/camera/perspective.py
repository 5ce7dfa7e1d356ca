"""Fly-through perspective camera with a cached ray-direction table.

The camera owns its position, a forward direction (no roll), a vertical
field of view and near/far clip planes. From those and the viewport size it
derives a projection matrix, a view matrix, their inverses, and one
world-space ray direction per pixel.

Deriving the ray directions is the expensive part, and it only depends on
camera state, so it is done once per camera change and reused for every
frame the camera stays still. That is what makes progressive accumulation
cheap: a static camera costs nothing per frame.

Host-side math (matrices, quaternions) uses NumPy. The ray-direction table
is computed by a Taichi kernel into a preallocated field that the
integrator reads directly.

Derived state follows explicit dirty flags: setting the position or forward
direction marks the view stale, and every read of the matrices or the ray
table recomputes stale state first.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.camera.perspective import Camera, LookInput, MovementInput
    >>> camera = Camera(vertical_fov=45.0, near_clip=0.1, far_clip=100.0)
    >>> camera.resize(640, 360)
    >>> moved = camera.update(
    ...     1.0 / 60.0,
    ...     MovementInput(forward=True),
    ...     LookInput(delta=(12.0, 0.0), engaged=True),
    ... )
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from spheretracer.core.config import MAX_PIXELS, RenderConfig

logger = logging.getLogger(__name__)

vec3 = tm.vec3
vec4 = tm.vec4

# Up is always world +y; the camera never rolls
WORLD_UP = np.array([0.0, 1.0, 0.0])

# Rotations that would bring the forward direction closer than this
# (as a cosine) to world up are rejected: the view basis degenerates there.
MAX_PITCH_COS = 0.999


# =============================================================================
# Input Structures
# =============================================================================


@dataclass
class MovementInput:
    """Key-down state of the camera movement actions for one frame.

    For each opposing pair the first action wins when both are held:
    forward over backward, left over right, down over up.
    """

    forward: bool = False
    backward: bool = False
    left: bool = False
    right: bool = False
    up: bool = False
    down: bool = False


@dataclass
class LookInput:
    """Pointer state for one frame.

    Attributes:
        delta: Pointer movement since the previous frame, in pixels (x, y).
        engaged: Whether free-look is engaged (e.g. right mouse button held).
            Without it the camera ignores all input.
    """

    delta: tuple[float, float] = (0.0, 0.0)
    engaged: bool = False


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

# World-space direction per pixel, indexed x + y * width
ray_directions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PIXELS)

# Position of the camera whose directions are in ray_directions
camera_position = ti.Vector.field(3, dtype=ti.f32, shape=())

_inverse_projection = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
_inverse_view = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())

# The ray-direction field is shared; track which camera last filled it
_ray_cache = {"owner": None}


@ti.kernel
def _compute_ray_directions(width: ti.i32, height: ti.i32, pixel_offset: ti.f32):
    """Unproject every pixel into a world-space unit direction."""
    for i in range(width * height):
        x = i % width
        y = i // width

        # Pixel to [-1, 1] normalized device coordinates
        u = (ti.cast(x, ti.f32) + pixel_offset) / ti.cast(width, ti.f32)
        v = (ti.cast(y, ti.f32) + pixel_offset) / ti.cast(height, ti.f32)
        ndc_x = u * 2.0 - 1.0
        ndc_y = v * 2.0 - 1.0

        # Point on the far plane in view space, then perspective divide
        target = _inverse_projection[None] @ vec4(ndc_x, ndc_y, 1.0, 1.0)
        view_dir = tm.normalize(vec3(target.x, target.y, target.z) / target.w)

        # Directions ignore the translation part of the inverse view (w = 0)
        world = _inverse_view[None] @ vec4(view_dir.x, view_dir.y, view_dir.z, 0.0)
        ray_directions[i] = vec3(world.x, world.y, world.z)


# =============================================================================
# Host-side Matrix and Quaternion Helpers
# =============================================================================


def _normalize(v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    return v / np.linalg.norm(v)


def perspective_fov(
    fov_radians: float, width: float, height: float, near: float, far: float
) -> npt.NDArray[np.float64]:
    """Build a right-handed perspective projection with [-1, 1] clip depth.

    Args:
        fov_radians: Vertical field of view.
        width: Viewport width (only the aspect ratio matters).
        height: Viewport height.
        near: Near clip distance.
        far: Far clip distance.

    Returns:
        4x4 matrix acting on column vectors.
    """
    h = math.cos(0.5 * fov_radians) / math.sin(0.5 * fov_radians)
    w = h * height / width

    m = np.zeros((4, 4))
    m[0, 0] = w
    m[1, 1] = h
    m[2, 2] = -(far + near) / (far - near)
    m[2, 3] = -(2.0 * far * near) / (far - near)
    m[3, 2] = -1.0
    return m


def look_at(
    eye: npt.NDArray[np.float64],
    center: npt.NDArray[np.float64],
    up: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """Build a right-handed view matrix looking from eye toward center."""
    f = _normalize(center - eye)
    s = _normalize(np.cross(f, up))
    u = np.cross(s, f)

    m = np.eye(4)
    m[0, :3] = s
    m[1, :3] = u
    m[2, :3] = -f
    m[0, 3] = -np.dot(s, eye)
    m[1, 3] = -np.dot(u, eye)
    m[2, 3] = np.dot(f, eye)
    return m


def angle_axis(angle: float, axis: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Quaternion (w, x, y, z) rotating by angle radians about a unit axis."""
    half = 0.5 * angle
    s = math.sin(half)
    return np.array([math.cos(half), axis[0] * s, axis[1] * s, axis[2] * s])


def quat_multiply(
    q1: npt.NDArray[np.float64], q2: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """Hamilton product q1 * q2 (apply q2 first, then q1)."""
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2
    return np.array(
        [
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        ]
    )


def quat_rotate(q: npt.NDArray[np.float64], v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Rotate vector v by unit quaternion q."""
    qv = q[1:]
    t = 2.0 * np.cross(qv, v)
    return v + q[0] * t + np.cross(qv, t)


# =============================================================================
# Camera
# =============================================================================


class Camera:
    """Perspective fly-through camera.

    The camera is created once with its field of view and clip planes, moved
    every frame by :meth:`update` and resized by :meth:`resize` whenever the
    viewport changes. :meth:`prepare` makes the ray-direction field and
    camera position current for the kernels; the renderer calls it before
    every frame.

    Attributes:
        revision: Incremented whenever derived state (view, projection or
            ray directions) changes. The renderer compares it between frames
            to detect camera motion.
        ray_cache_rebuilds: Number of times the ray-direction table has been
            recomputed.
    """

    def __init__(
        self,
        vertical_fov: float = 45.0,
        near_clip: float = 0.1,
        far_clip: float = 100.0,
        *,
        position: tuple[float, float, float] = (0.0, 0.0, 5.0),
        forward: tuple[float, float, float] = (0.0, 0.0, -1.0),
        config: RenderConfig | None = None,
    ) -> None:
        """Create a camera.

        Args:
            vertical_fov: Vertical field of view in degrees, in (0, 180).
            near_clip: Near clip distance (positive).
            far_clip: Far clip distance (greater than near_clip).
            position: Initial position in world space.
            forward: Initial viewing direction. Normalized; must not be
                parallel to world up.
            config: Render configuration supplying speeds, mouse
                sensitivity and the pixel-center offset.

        Raises:
            ValueError: If the projection parameters or the forward
                direction are invalid.
        """
        if not 0.0 < vertical_fov < 180.0:
            raise ValueError(f"vertical_fov must be in (0, 180), got {vertical_fov}")
        if near_clip <= 0.0 or far_clip <= near_clip:
            raise ValueError(
                f"Clip planes must satisfy 0 < near < far, got near={near_clip}, far={far_clip}"
            )

        self._vertical_fov = float(vertical_fov)
        self._near_clip = float(near_clip)
        self._far_clip = float(far_clip)
        self._config = config if config is not None else RenderConfig()

        self._position = np.array(position, dtype=np.float64)
        self._forward = self._checked_forward(forward)

        self._viewport_width = 0
        self._viewport_height = 0

        self._projection = np.eye(4)
        self._inverse_projection = np.eye(4)
        self._view = np.eye(4)
        self._inverse_view = np.eye(4)

        self._view_dirty = True
        self._projection_dirty = False
        self._rays_dirty = True

        self.revision = 0
        self.ray_cache_rebuilds = 0

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def position(self) -> npt.NDArray[np.float64]:
        """Camera position in world space (copy)."""
        return self._position.copy()

    @position.setter
    def position(self, value: tuple[float, float, float]) -> None:
        self._position = np.array(value, dtype=np.float64)
        self._view_dirty = True
        self._rays_dirty = True

    @property
    def forward(self) -> npt.NDArray[np.float64]:
        """Unit viewing direction in world space (copy)."""
        return self._forward.copy()

    @forward.setter
    def forward(self, value: tuple[float, float, float]) -> None:
        self._forward = self._checked_forward(value)
        self._view_dirty = True
        self._rays_dirty = True

    @property
    def right(self) -> npt.NDArray[np.float64]:
        """Unit right direction (forward x world up)."""
        return _normalize(np.cross(self._forward, WORLD_UP))

    @property
    def vertical_fov(self) -> float:
        """Vertical field of view in degrees."""
        return self._vertical_fov

    @vertical_fov.setter
    def vertical_fov(self, value: float) -> None:
        if not 0.0 < value < 180.0:
            raise ValueError(f"vertical_fov must be in (0, 180), got {value}")
        self._vertical_fov = float(value)
        self._projection_dirty = True
        self._rays_dirty = True

    @property
    def near_clip(self) -> float:
        return self._near_clip

    @property
    def far_clip(self) -> float:
        return self._far_clip

    @property
    def viewport_width(self) -> int:
        return self._viewport_width

    @property
    def viewport_height(self) -> int:
        return self._viewport_height

    @property
    def config(self) -> RenderConfig:
        return self._config

    @config.setter
    def config(self, value: RenderConfig) -> None:
        if value.pixel_center_offset != self._config.pixel_center_offset:
            self._rays_dirty = True
        self._config = value

    @property
    def projection(self) -> npt.NDArray[np.float64]:
        self._ensure_matrices()
        return self._projection.copy()

    @property
    def inverse_projection(self) -> npt.NDArray[np.float64]:
        self._ensure_matrices()
        return self._inverse_projection.copy()

    @property
    def view(self) -> npt.NDArray[np.float64]:
        self._ensure_matrices()
        return self._view.copy()

    @property
    def inverse_view(self) -> npt.NDArray[np.float64]:
        self._ensure_matrices()
        return self._inverse_view.copy()

    @staticmethod
    def _checked_forward(value: tuple[float, float, float]) -> npt.NDArray[np.float64]:
        forward = np.array(value, dtype=np.float64)
        norm = np.linalg.norm(forward)
        if norm < 1e-8:
            raise ValueError("forward direction must be non-zero")
        forward = forward / norm
        if abs(np.dot(forward, WORLD_UP)) > MAX_PITCH_COS:
            raise ValueError("forward direction must not be parallel to world up")
        return forward

    # -------------------------------------------------------------------------
    # Per-frame update and resize
    # -------------------------------------------------------------------------

    def update(self, delta_time: float, movement: MovementInput, look: LookInput) -> bool:
        """Apply one frame of movement and free-look rotation.

        Translation moves along forward, right and world up at
        ``config.movement_speed`` units per second. The pointer delta is
        converted with ``config.mouse_sensitivity`` and scaled by
        ``config.rotation_speed``; pitch rotates about the camera's right
        axis and yaw about world up, combined in one quaternion so the
        camera never rolls.

        Args:
            delta_time: Seconds elapsed since the previous frame.
            movement: Movement key state.
            look: Pointer delta and free-look flag. Without free-look the
                camera does not move at all.

        Returns:
            True if the camera translated or rotated. The caller should
            reset accumulation in that case.
        """
        if not look.engaged:
            return False

        moved = False

        right = self.right
        step = self._config.movement_speed * delta_time

        if movement.forward:
            self._position += self._forward * step
            moved = True
        elif movement.backward:
            self._position -= self._forward * step
            moved = True

        if movement.left:
            self._position -= right * step
            moved = True
        elif movement.right:
            self._position += right * step
            moved = True

        if movement.down:
            self._position -= WORLD_UP * step
            moved = True
        elif movement.up:
            self._position += WORLD_UP * step
            moved = True

        dx = look.delta[0] * self._config.mouse_sensitivity
        dy = look.delta[1] * self._config.mouse_sensitivity
        if dx != 0.0 or dy != 0.0:
            pitch_delta = dy * self._config.rotation_speed
            yaw_delta = dx * self._config.rotation_speed

            q = quat_multiply(angle_axis(-pitch_delta, right), angle_axis(-yaw_delta, WORLD_UP))
            q = q / np.linalg.norm(q)
            rotated = _normalize(quat_rotate(q, self._forward))

            if abs(np.dot(rotated, WORLD_UP)) <= MAX_PITCH_COS:
                self._forward = rotated
                moved = True

        if moved:
            self._recalculate_view()
            self._recalculate_ray_directions()

        return moved

    def resize(self, width: int, height: int) -> None:
        """Set the viewport size.

        A no-op when the size is unchanged. Otherwise recomputes the
        projection, its inverse and the ray-direction table.

        Raises:
            ValueError: If a dimension is negative or the pixel count
                exceeds MAX_PIXELS.
        """
        if width == self._viewport_width and height == self._viewport_height:
            return

        if width < 0 or height < 0:
            raise ValueError(f"Viewport dimensions must be >= 0, got {width}x{height}")
        if width * height > MAX_PIXELS:
            raise ValueError(
                f"Viewport dimensions ({width}x{height}) exceed maximum supported "
                f"pixel count ({MAX_PIXELS})"
            )

        self._viewport_width = int(width)
        self._viewport_height = int(height)
        logger.info("Camera viewport resized to %dx%d", width, height)

        self._recalculate_projection()
        self._recalculate_ray_directions()

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    def prepare(self) -> None:
        """Make the kernel-side ray table and camera position current.

        Recomputes any stale matrices and, if the table is stale or was last
        filled by another camera, the ray directions.
        """
        self._ensure_matrices()
        if self._rays_dirty or _ray_cache["owner"] is not self:
            self._recalculate_ray_directions()
        camera_position[None] = self._position.tolist()

    def get_ray_directions_numpy(self) -> npt.NDArray[np.float32]:
        """Get the cached ray directions as a NumPy array.

        Returns:
            Array of shape (width * height, 3), row i holding the direction
            of pixel (i % width, i // width).
        """
        self.prepare()
        n = self._viewport_width * self._viewport_height
        return ray_directions.to_numpy()[:n].astype(np.float32)

    def _ensure_matrices(self) -> None:
        if self._view_dirty:
            self._recalculate_view()
        if self._projection_dirty:
            self._recalculate_projection()

    def _recalculate_projection(self) -> None:
        self._projection_dirty = False
        if self._viewport_width == 0 or self._viewport_height == 0:
            # No aspect ratio; there are no pixels to unproject anyway
            self._projection = np.eye(4)
            self._inverse_projection = np.eye(4)
        else:
            self._projection = perspective_fov(
                math.radians(self._vertical_fov),
                float(self._viewport_width),
                float(self._viewport_height),
                self._near_clip,
                self._far_clip,
            )
            self._inverse_projection = np.linalg.inv(self._projection)
        self._rays_dirty = True
        self.revision += 1

    def _recalculate_view(self) -> None:
        self._view_dirty = False
        self._view = look_at(self._position, self._position + self._forward, WORLD_UP)
        self._inverse_view = np.linalg.inv(self._view)
        self._rays_dirty = True
        self.revision += 1

    def _recalculate_ray_directions(self) -> None:
        self._ensure_matrices()

        _inverse_projection[None] = ti.Matrix(self._inverse_projection.tolist())
        _inverse_view[None] = ti.Matrix(self._inverse_view.tolist())

        n = self._viewport_width * self._viewport_height
        if n > 0:
            _compute_ray_directions(
                self._viewport_width,
                self._viewport_height,
                self._config.pixel_center_offset,
            )

        camera_position[None] = self._position.tolist()
        _ray_cache["owner"] = self
        self._rays_dirty = False
        self.ray_cache_rebuilds += 1
        self.revision += 1
        logger.debug(
            "Rebuilt ray directions for %dx%d viewport",
            self._viewport_width,
            self._viewport_height,
        )

    def __repr__(self) -> str:
        return (
            f"Camera(position={tuple(self._position.round(4))}, "
            f"forward={tuple(self._forward.round(4))}, fov={self._vertical_fov}, "
            f"viewport={self._viewport_width}x{self._viewport_height})"
        )
