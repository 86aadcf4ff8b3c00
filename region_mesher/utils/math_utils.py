"""
Mathematical utilities for Region Mesher.

Provides small 3D vector helpers and the quaternion operations used
to orient pin markers and animate the globe. Quaternions are plain
(x, y, z, w) tuples.
"""

from typing import Tuple
import math

Vec3 = Tuple[float, float, float]
Quat = Tuple[float, float, float, float]

IDENTITY_QUAT: Quat = (0.0, 0.0, 0.0, 1.0)


def normalize_angle(angle: float) -> float:
    """
    Normalize angle to [-180, 180) degrees.

    Args:
        angle: Angle in degrees

    Returns:
        Equivalent angle on the shortest path
    """
    return ((angle + 180.0) % 360.0) - 180.0


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value to [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def vec_sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def vec_add(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def vec_dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def vec_cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def vec_length(v: Vec3) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def vec_normalize(v: Vec3) -> Vec3:
    """
    Normalize 3D vector to unit length.

    Returns:
        Unit vector, or (0, 0, 0) if input is zero-length
    """
    length = vec_length(v)
    if length < 1e-15:
        return (0.0, 0.0, 0.0)
    return (v[0] / length, v[1] / length, v[2] / length)


def quat_from_axis_angle(axis: Vec3, angle: float) -> Quat:
    """
    Quaternion rotating by angle (radians) around a unit axis.
    """
    half = angle / 2.0
    s = math.sin(half)
    return (axis[0] * s, axis[1] * s, axis[2] * s, math.cos(half))


def quat_multiply(a: Quat, b: Quat) -> Quat:
    """
    Hamilton product a * b (applies b first, then a).
    """
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return (
        ax * bw + aw * bx + ay * bz - az * by,
        ay * bw + aw * by + az * bx - ax * bz,
        az * bw + aw * bz + ax * by - ay * bx,
        aw * bw - ax * bx - ay * by - az * bz,
    )


def quat_normalize(q: Quat) -> Quat:
    length = math.sqrt(q[0] * q[0] + q[1] * q[1] + q[2] * q[2] + q[3] * q[3])
    if length == 0.0:
        return IDENTITY_QUAT
    return (q[0] / length, q[1] / length, q[2] / length, q[3] / length)


def quat_from_unit_vectors(v_from: Vec3, v_to: Vec3) -> Quat:
    """
    Minimal rotation taking unit vector v_from onto unit vector v_to.

    Opposite vectors get a 180 degree turn around any perpendicular axis.
    """
    r = vec_dot(v_from, v_to) + 1.0

    if r < 1e-12:
        # Opposite directions
        if abs(v_from[0]) > abs(v_from[2]):
            q = (-v_from[1], v_from[0], 0.0, 0.0)
        else:
            q = (0.0, -v_from[2], v_from[1], 0.0)
    else:
        c = vec_cross(v_from, v_to)
        q = (c[0], c[1], c[2], r)

    return quat_normalize(q)


def quat_rotate(q: Quat, v: Vec3) -> Vec3:
    """Rotate vector v by unit quaternion q."""
    qx, qy, qz, qw = q
    vx, vy, vz = v

    # t = 2 * cross(q.xyz, v)
    tx = 2.0 * (qy * vz - qz * vy)
    ty = 2.0 * (qz * vx - qx * vz)
    tz = 2.0 * (qx * vy - qy * vx)

    return (
        vx + qw * tx + (qy * tz - qz * ty),
        vy + qw * ty + (qz * tx - qx * tz),
        vz + qw * tz + (qx * ty - qy * tx),
    )


def quat_slerp(a: Quat, b: Quat, t: float) -> Quat:
    """
    Spherical linear interpolation from a (t=0) to b (t=1).

    Takes the shorter arc; t is clamped to [0, 1].
    """
    t = clamp(t, 0.0, 1.0)
    if t == 0.0:
        return a
    if t == 1.0:
        return b

    ax, ay, az, aw = a
    bx, by, bz, bw = b
    cos_half = ax * bx + ay * by + az * bz + aw * bw

    if cos_half < 0.0:
        bx, by, bz, bw = -bx, -by, -bz, -bw
        cos_half = -cos_half

    if cos_half >= 1.0:
        return a

    sqr_sin_half = 1.0 - cos_half * cos_half
    if sqr_sin_half <= 1e-12:
        s = 1.0 - t
        return quat_normalize((
            s * ax + t * bx,
            s * ay + t * by,
            s * az + t * bz,
            s * aw + t * bw,
        ))

    sin_half = math.sqrt(sqr_sin_half)
    half_theta = math.atan2(sin_half, cos_half)
    ratio_a = math.sin((1.0 - t) * half_theta) / sin_half
    ratio_b = math.sin(t * half_theta) / sin_half

    return (
        ax * ratio_a + bx * ratio_b,
        ay * ratio_a + by * ratio_b,
        az * ratio_a + bz * ratio_b,
        aw * ratio_a + bw * ratio_b,
    )


def quat_angle_between(a: Quat, b: Quat) -> float:
    """Rotation angle (radians) separating two unit quaternions."""
    d = abs(a[0] * b[0] + a[1] * b[1] + a[2] * b[2] + a[3] * b[3])
    return 2.0 * math.acos(clamp(d, -1.0, 1.0))
