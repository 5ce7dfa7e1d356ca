"""Random sampling for the bounce loop.

The integrator only ever needs one kind of random number: a vector drawn
uniformly from an axis-aligned cube. Two implementations of that
capability are provided:

- ``hash``: a stateless per-pixel stream. The state is seeded by hashing
  the pixel index, the renderer's sample index and the configured seed, then
  advanced with xorshift32. Every pixel owns its own stream, so there is no
  shared generator state between parallel iterations and a frame can be
  reproduced exactly from its inputs.
- ``taichi``: Taichi's built-in per-thread generator (``ti.random``). Faster
  to seed, but not reproducible across thread schedules.

Streams are threaded through the kernel explicitly: every sampling function
takes the current state and returns the advanced state alongside its value.

Example:
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     state = seed_stream(0, 1, 42)
    ...     u, state = next_float(state)
    ...     return u
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Sampler selection, mirrors SAMPLER_KINDS in core.config
SAMPLER_HASH = 0
SAMPLER_TAICHI = 1

# 2^-24: maps the top 24 bits of a u32 onto [0, 1)
_INV_2_24 = 1.0 / 16777216.0


@ti.func
def wang_hash(value: ti.u32) -> ti.u32:
    """Scramble a 32-bit integer (Thomas Wang's integer hash)."""
    h = value
    h = (h ^ ti.cast(61, ti.u32)) ^ (h >> 16)
    h = h * ti.cast(9, ti.u32)
    h = h ^ (h >> 4)
    h = h * ti.cast(668265261, ti.u32)
    h = h ^ (h >> 15)
    return h


@ti.func
def seed_stream(pixel_index: ti.i32, sample_index: ti.i32, seed: ti.i32) -> ti.u32:
    """Derive the initial stream state for one pixel sample.

    Args:
        pixel_index: Flat pixel index (x + y * width).
        sample_index: Index of the frame being traced.
        seed: Global seed from the render configuration.

    Returns:
        A non-zero 32-bit state.
    """
    h = wang_hash(ti.cast(pixel_index, ti.u32))
    h = wang_hash(h ^ ti.cast(sample_index, ti.u32))
    h = wang_hash(h ^ ti.cast(seed, ti.u32))
    # xorshift has a fixed point at zero
    if h == 0:
        h = ti.cast(0x1E3779B9, ti.u32)
    return h


@ti.func
def xorshift32(state: ti.u32) -> ti.u32:
    """Advance a xorshift32 generator by one step."""
    s = state
    s = s ^ (s << 13)
    s = s ^ (s >> 17)
    s = s ^ (s << 5)
    return s


@ti.func
def next_float(state: ti.u32):
    """Draw a float uniformly from [0, 1).

    Returns:
        A tuple (value, new_state).
    """
    s = xorshift32(state)
    value = ti.cast(s >> 8, ti.f32) * _INV_2_24
    return value, s


@ti.func
def sample_cube(state: ti.u32, kind: ti.i32, low: ti.f32, high: ti.f32):
    """Draw a vector uniformly from the cube [low, high]^3.

    Args:
        state: Current stream state (ignored by the taichi sampler).
        kind: SAMPLER_HASH or SAMPLER_TAICHI.
        low: Lower bound of every component.
        high: Upper bound of every component.

    Returns:
        A tuple (vector, new_state).
    """
    u = vec3(0.0, 0.0, 0.0)
    s = state
    if kind == SAMPLER_HASH:
        ux, s = next_float(s)
        uy, s = next_float(s)
        uz, s = next_float(s)
        u = vec3(ux, uy, uz)
    else:
        u = vec3(ti.random(ti.f32), ti.random(ti.f32), ti.random(ti.f32))
    return low + (high - low) * u, s


def sampler_code(kind: str) -> int:
    """Translate a configured sampler name into its kernel-side code.

    Raises:
        ValueError: If the sampler name is unknown.
    """
    codes = {"hash": SAMPLER_HASH, "taichi": SAMPLER_TAICHI}
    if kind not in codes:
        raise ValueError(f"Unknown sampler '{kind}'")
    return codes[kind]
