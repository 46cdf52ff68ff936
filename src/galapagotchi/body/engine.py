from __future__ import annotations

import math
from enum import Enum

import numpy as np

from galapagotchi.sim.errors import CapacityExceeded, ProgrammerError

BILATERAL_MIDDLE = 0
BILATERAL_RIGHT = 1
BILATERAL_LEFT = 2

SPRING_STIFFNESS = 0.05
DRAG = 0.02
GRAVITY = 0.0008
GROUND_FRICTION = 0.5
GROWTH_TICKS = 60
ACTUATION_TICKS = 120
MAX_ACTUATION = 0.3
MIN_SPAN = 1e-6
HIGH_LOW_SCALE = 15.0


class Direction(Enum):
    REST = 0
    FORWARD = 1
    LEFT = 2
    RIGHT = 3
    REVERSE = 4


def _unit(vector: np.ndarray) -> np.ndarray:
    length = float(np.linalg.norm(vector))
    if length < MIN_SPAN:
        return np.zeros(3)
    return vector / length


class FabricEngine:
    """Reference mass-spring stepper for one simulation instance.

    Joints are point masses, intervals are springs whose rest span can grow
    (after creation) or oscillate (after a trigger). ``iterate`` reports the
    largest outstanding growth or actuation countdown; zero means settled.
    """

    def __init__(self, joint_count_max: int, interval_count_max: int, face_count_max: int) -> None:
        self.joint_count_max = joint_count_max
        self.interval_count_max = interval_count_max
        self.face_count_max = face_count_max
        self.locations = np.zeros((joint_count_max, 3))
        self.velocities = np.zeros((joint_count_max, 3))
        self.joint_tags = np.zeros(joint_count_max, dtype=np.int32)
        self.joint_lateralities = np.zeros(joint_count_max, dtype=np.int8)
        self.alphas = np.zeros(interval_count_max, dtype=np.int32)
        self.omegas = np.zeros(interval_count_max, dtype=np.int32)
        self.ideal_spans = np.zeros(interval_count_max)
        self.start_spans = np.zeros(interval_count_max)
        self.growth_countdown = np.zeros(interval_count_max, dtype=np.int32)
        self.actuation_countdown = np.zeros(interval_count_max, dtype=np.int32)
        self.high_low = np.zeros((interval_count_max, len(Direction)), dtype=np.uint8)
        self.faces = np.zeros((face_count_max, 3), dtype=np.int32)
        self.reset()

    def reset(self) -> None:
        for array in (
            self.locations,
            self.velocities,
            self.joint_tags,
            self.joint_lateralities,
            self.alphas,
            self.omegas,
            self.ideal_spans,
            self.start_spans,
            self.growth_countdown,
            self.actuation_countdown,
            self.high_low,
            self.faces,
        ):
            array.fill(0)
        self.joint_count = 0
        self.interval_count = 0
        self.face_count = 0
        self.age = 0
        self.tag_counter = 0
        self.direction = Direction.REST
        self.anchor = np.zeros(3)
        self.hanger_removed = False

    def next_joint_tag(self) -> int:
        self.tag_counter += 1
        return self.tag_counter

    def create_joint(self, tag: int, laterality: int, x: float, y: float, z: float) -> int:
        if self.joint_count >= self.joint_count_max:
            raise CapacityExceeded(f"joint count would exceed {self.joint_count_max}")
        if laterality not in (BILATERAL_MIDDLE, BILATERAL_RIGHT, BILATERAL_LEFT):
            raise ProgrammerError(f"invalid laterality: {laterality}")
        index = self.joint_count
        self.locations[index] = (x, y, z)
        self.velocities[index] = 0.0
        self.joint_tags[index] = tag
        self.joint_lateralities[index] = laterality
        self.joint_count += 1
        return index

    def create_interval(self, alpha: int, omega: int, span: float, growing: bool) -> int:
        """Negative ``span`` means the current distance between the joints."""
        if self.interval_count >= self.interval_count_max:
            raise CapacityExceeded(f"interval count would exceed {self.interval_count_max}")
        self._check_joint(alpha)
        self._check_joint(omega)
        if alpha == omega:
            raise ProgrammerError(f"interval needs two distinct joints, got {alpha} twice")
        current = float(np.linalg.norm(self.locations[omega] - self.locations[alpha]))
        index = self.interval_count
        self.alphas[index] = alpha
        self.omegas[index] = omega
        self.ideal_spans[index] = current if span < 0 else span
        self.start_spans[index] = current
        self.growth_countdown[index] = GROWTH_TICKS if growing else 0
        self.actuation_countdown[index] = 0
        self.high_low[index] = 0
        self.interval_count += 1
        return index

    def create_face(self, joint0: int, joint1: int, joint2: int) -> int:
        if self.face_count >= self.face_count_max:
            raise CapacityExceeded(f"face count would exceed {self.face_count_max}")
        for joint in (joint0, joint1, joint2):
            self._check_joint(joint)
        index = self.face_count
        self.faces[index] = (joint0, joint1, joint2)
        self.face_count += 1
        return index

    def remove_face(self, face_index: int) -> None:
        self._check_face(face_index)
        self.faces[face_index : self.face_count - 1] = self.faces[face_index + 1 : self.face_count]
        self.face_count -= 1
        self.faces[self.face_count] = 0

    def trigger_interval(self, interval_index: int) -> None:
        self._check_interval(interval_index)
        if self.actuation_countdown[interval_index] == 0:
            self.actuation_countdown[interval_index] = ACTUATION_TICKS

    def set_interval_high_low(self, interval_index: int, direction: Direction, high_low: int) -> None:
        self._check_interval(interval_index)
        if not isinstance(direction, Direction):
            raise ProgrammerError(f"unknown direction: {direction!r}")
        if high_low < 0 or high_low > 255:
            raise ProgrammerError(f"high_low must fit in a byte, got {high_low}")
        self.high_low[interval_index, direction.value] = high_low

    def set_next_direction(self, direction: Direction) -> None:
        if not isinstance(direction, Direction):
            raise ProgrammerError(f"unknown direction: {direction!r}")
        self.direction = direction

    def remove_hanger(self) -> None:
        self.hanger_removed = True

    def centralize(self, altitude: float) -> float:
        """Center the joints over the origin with the lowest joint at ``altitude``."""
        if self.joint_count == 0:
            self.anchor = np.array((0.0, altitude, 0.0))
            return 0.0
        locations = self.locations[: self.joint_count]
        midpoint = locations.mean(axis=0)
        lift = altitude - float(locations[:, 1].min())
        locations -= (midpoint[0], 0.0, midpoint[2])
        locations[:, 1] += lift
        self.anchor = locations.mean(axis=0)
        return lift

    def iterate(self, ticks: int, hanging: bool) -> int:
        pinned = hanging and not self.hanger_removed
        for _ in range(ticks):
            self.age += 1
            self._tick(pinned)
        return self.time_sweep()

    def time_sweep(self) -> int:
        count = self.interval_count
        if count == 0:
            return 0
        return int(max(self.growth_countdown[:count].max(), self.actuation_countdown[:count].max()))

    def find_opposite_face_index(self, face_index: int) -> int | None:
        self._check_face(face_index)
        laterality = self.face_laterality(face_index)
        if laterality == BILATERAL_MIDDLE:
            return None
        wanted = BILATERAL_LEFT if laterality == BILATERAL_RIGHT else BILATERAL_RIGHT
        tags = sorted(int(self.joint_tags[joint]) for joint in self.faces[face_index])
        for candidate in range(self.face_count):
            if candidate == face_index or self.face_laterality(candidate) != wanted:
                continue
            if sorted(int(self.joint_tags[joint]) for joint in self.faces[candidate]) == tags:
                return candidate
        return None

    def face_laterality(self, face_index: int) -> int:
        lateralities = {int(self.joint_lateralities[joint]) for joint in self.faces[face_index]}
        if BILATERAL_LEFT in lateralities:
            return BILATERAL_LEFT
        if BILATERAL_RIGHT in lateralities:
            return BILATERAL_RIGHT
        return BILATERAL_MIDDLE

    def write_geometry(
        self,
        vectors: np.ndarray,
        face_midpoints: np.ndarray,
        face_locations: np.ndarray,
        face_normals: np.ndarray,
    ) -> None:
        locations = self.locations[: self.joint_count]
        midpoint = locations.mean(axis=0) if self.joint_count else np.zeros(3)
        right = self._right_vector()
        forward = np.array((-right[2], 0.0, right[0]))
        vectors[:] = np.concatenate((midpoint, self.anchor, forward, right))
        if self.face_count == 0:
            return
        corners = self.locations[self.faces[: self.face_count]]
        face_locations[:] = corners.reshape(-1)
        face_midpoints[:] = corners.mean(axis=1).reshape(-1)
        normals = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])
        lengths = np.maximum(np.linalg.norm(normals, axis=1), MIN_SPAN)
        normals = normals / lengths[:, None]
        face_normals[:] = np.repeat(normals, 3, axis=0).reshape(-1)

    def _right_vector(self) -> np.ndarray:
        count = self.joint_count
        lefts = np.flatnonzero(self.joint_lateralities[:count] == BILATERAL_LEFT)
        rights = np.flatnonzero(self.joint_lateralities[:count] == BILATERAL_RIGHT)
        if len(lefts) == 0 or len(rights) == 0:
            return np.array((0.0, 0.0, 1.0))
        across = self.locations[rights[0]] - self.locations[lefts[0]]
        across[1] = 0.0
        return _unit(across)

    def _target_spans(self, count: int) -> np.ndarray:
        ideal = self.ideal_spans[:count]
        target = ideal.copy()
        growth = self.growth_countdown[:count]
        growing = growth > 0
        if growing.any():
            start = self.start_spans[:count]
            target[growing] = ideal[growing] + (start[growing] - ideal[growing]) * growth[growing] / GROWTH_TICKS
        actuation = self.actuation_countdown[:count]
        acting = (actuation > 0) & ~growing
        if acting.any():
            high_low = self.high_low[:count, self.direction.value].astype(np.int32)
            amplitude = ((high_low >> 4) - (high_low & 0xF)) / HIGH_LOW_SCALE * MAX_ACTUATION
            progress = 1.0 - actuation / ACTUATION_TICKS
            target[acting] = ideal[acting] * (1.0 + amplitude[acting] * np.sin(2.0 * math.pi * progress[acting]))
        return target

    def _tick(self, pinned: bool) -> None:
        count = self.joint_count
        if count == 0:
            return
        locations = self.locations[:count]
        velocities = self.velocities[:count]
        forces = np.zeros((count, 3))
        intervals = self.interval_count
        if intervals:
            alphas = self.alphas[:intervals]
            omegas = self.omegas[:intervals]
            delta = locations[omegas] - locations[alphas]
            length = np.linalg.norm(delta, axis=1)
            unit = delta / np.maximum(length, MIN_SPAN)[:, None]
            pull = (SPRING_STIFFNESS * (length - self._target_spans(intervals)))[:, None] * unit
            np.add.at(forces, alphas, pull)
            np.add.at(forces, omegas, -pull)
        forces[:, 1] -= GRAVITY
        velocities *= 1.0 - DRAG
        velocities += forces
        locations += velocities
        grounded = locations[:, 1] < 0.0
        if grounded.any():
            locations[grounded, 1] = 0.0
            velocities[grounded, 1] = np.maximum(velocities[grounded, 1], 0.0)
            velocities[grounded, 0] *= 1.0 - GROUND_FRICTION
            velocities[grounded, 2] *= 1.0 - GROUND_FRICTION
        if pinned:
            locations += self.anchor - locations.mean(axis=0)
            velocities -= velocities.mean(axis=0)
        if intervals:
            np.maximum(self.growth_countdown[:intervals] - 1, 0, out=self.growth_countdown[:intervals])
            np.maximum(self.actuation_countdown[:intervals] - 1, 0, out=self.actuation_countdown[:intervals])

    def _check_joint(self, joint_index: int) -> None:
        if joint_index < 0 or joint_index >= self.joint_count:
            raise ProgrammerError(f"invalid joint index: {joint_index}")

    def _check_interval(self, interval_index: int) -> None:
        if interval_index < 0 or interval_index >= self.interval_count:
            raise ProgrammerError(f"invalid interval index: {interval_index}")

    def _check_face(self, face_index: int) -> None:
        if face_index < 0 or face_index >= self.face_count:
            raise ProgrammerError(f"invalid face index: {face_index}")
