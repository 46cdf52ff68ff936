from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from galapagotchi.body.engine import BILATERAL_LEFT, BILATERAL_MIDDLE, BILATERAL_RIGHT, Direction
from galapagotchi.body.kernel import FLOATS_IN_VECTOR, VECTORS_FOR_FACE, FabricInstance
from galapagotchi.sim.errors import CapacityExceeded

SEED_RADIUS = 1.0
APEX_LIFT = 0.1
UNFOLD_JOINTS = 2
UNFOLD_INTERVALS = 6
UNFOLD_FACE_PEAK = 5


@dataclass(frozen=True)
class JointSnapshot:
    joint_number: int
    joint_index: int
    tag: int
    location: np.ndarray


@dataclass(frozen=True)
class FaceSnapshot:
    index: int
    joints: tuple[JointSnapshot, ...]
    laterality: int
    midpoint: np.ndarray
    normal: np.ndarray

    @property
    def average_span(self) -> float:
        corners = [joint.location for joint in self.joints]
        spans = [float(np.linalg.norm(corners[a] - corners[b])) for a, b in ((0, 1), (1, 2), (2, 0))]
        return sum(spans) / len(spans)


class Fabric:
    """A creature body: structural operations over one kernel instance."""

    def __init__(self, instance: FabricInstance) -> None:
        self.instance = instance
        limits = instance.kernel.limits
        self.joint_count_max = limits.joint_count_max
        self.interval_count_max = limits.interval_count_max
        self.face_count_max = limits.face_count_max

    @property
    def joint_count(self) -> int:
        return self.instance.joint_count

    @property
    def interval_count(self) -> int:
        return self.instance.interval_count

    @property
    def face_count(self) -> int:
        return self.instance.face_count

    @property
    def age(self) -> int:
        return self.instance.age

    @property
    def midpoint(self) -> np.ndarray:
        return self.instance.midpoint.copy()

    @property
    def forward(self) -> np.ndarray:
        return self.instance.forward.copy()

    def create_seed(self, corners: int, altitude: float) -> None:
        if corners < 3:
            raise ValueError("seed needs at least 3 corners")
        instance = self.instance
        for walk in range(corners):
            angle = walk * math.pi * 2 / corners
            instance.create_joint(
                instance.next_joint_tag(),
                BILATERAL_MIDDLE,
                SEED_RADIUS * math.sin(angle),
                SEED_RADIUS * math.cos(angle),
                0.0,
            )
        pair_tag = instance.next_joint_tag()
        left = instance.create_joint(pair_tag, BILATERAL_LEFT, 0.0, 0.0, -SEED_RADIUS)
        right = instance.create_joint(pair_tag, BILATERAL_RIGHT, 0.0, 0.0, SEED_RADIUS)
        self._interval(left, right, -1.0)
        for walk in range(corners):
            following = (walk + 1) % corners
            self._interval(walk, following, -1.0)
            self._interval(walk, left, -1.0)
            self._interval(walk, right, -1.0)
        for walk in range(corners):
            following = (walk + 1) % corners
            instance.create_face(left, walk, following)
            instance.create_face(right, following, walk)
        instance.centralize(altitude)

    def iterate(self, ticks: int, hanging: bool) -> int:
        return self.instance.iterate(ticks, hanging)

    def remove_hanger(self) -> None:
        self.instance.remove_hanger()

    def trigger_interval(self, interval_index: int) -> None:
        self.instance.trigger_interval(interval_index)

    def set_interval_high_low(self, interval_index: int, direction: Direction, high_low: int) -> None:
        self.instance.set_interval_high_low(interval_index, direction, high_low)

    def set_next_direction(self, direction: Direction) -> None:
        self.instance.set_next_direction(direction)

    def face_snapshot(self, face_index: int) -> FaceSnapshot:
        instance = self.instance
        locations = instance.face_locations
        normals = instance.face_normals
        base = face_index * VECTORS_FOR_FACE * FLOATS_IN_VECTOR
        joints: list[JointSnapshot] = []
        for joint_number in range(VECTORS_FOR_FACE):
            joint_index = instance.face_joint_index(face_index, joint_number)
            offset = base + joint_number * FLOATS_IN_VECTOR
            joints.append(
                JointSnapshot(
                    joint_number=joint_number,
                    joint_index=joint_index,
                    tag=instance.joint_tag(joint_index),
                    location=np.array(locations[offset : offset + FLOATS_IN_VECTOR], dtype=np.float64),
                )
            )
        midpoint_offset = face_index * FLOATS_IN_VECTOR
        return FaceSnapshot(
            index=face_index,
            joints=tuple(joints),
            laterality=instance.face_laterality(face_index),
            midpoint=np.array(instance.face_midpoints[midpoint_offset : midpoint_offset + FLOATS_IN_VECTOR], dtype=np.float64),
            normal=np.array(normals[base : base + FLOATS_IN_VECTOR], dtype=np.float64),
        )

    def unfold(self, face_index: int, joint_number: int) -> list[FaceSnapshot]:
        """Raise a new apex over a face (and its mirror face); empty when out of capacity."""
        try:
            self._reserve_unfold_capacity()
        except CapacityExceeded:
            return []
        apex_tag = self.instance.next_joint_tag()
        opposite_index = self.instance.find_opposite_face_index(face_index)
        fresh_faces = self._unfold_face(self.face_snapshot(face_index), joint_number, apex_tag)
        if opposite_index is None:
            return fresh_faces
        if opposite_index > face_index:
            opposite_index -= 1
        opposite_faces = self._unfold_face(self.face_snapshot(opposite_index), joint_number, apex_tag)
        # the second removal shifts every fresh face above it down by one
        shifted = [self.face_snapshot(face.index - 1 if face.index > opposite_index else face.index) for face in fresh_faces]
        return shifted + opposite_faces

    def _reserve_unfold_capacity(self) -> None:
        if self.joint_count + UNFOLD_JOINTS > self.joint_count_max:
            raise CapacityExceeded(f"unfold needs {UNFOLD_JOINTS} joints beyond {self.joint_count}")
        if self.interval_count + UNFOLD_INTERVALS > self.interval_count_max:
            raise CapacityExceeded(f"unfold needs {UNFOLD_INTERVALS} intervals beyond {self.interval_count}")
        if self.face_count + UNFOLD_FACE_PEAK > self.face_count_max:
            raise CapacityExceeded(f"unfold needs room for {UNFOLD_FACE_PEAK} faces beyond {self.face_count}")

    def _unfold_face(self, face: FaceSnapshot, joint_number: int, apex_tag: int) -> list[FaceSnapshot]:
        instance = self.instance
        youngest_first = sorted(face.joints, key=lambda joint: joint.tag, reverse=True)
        chosen = youngest_first[joint_number]
        apex_location = chosen.location + face.normal * face.average_span * APEX_LIFT
        apex = instance.create_joint(apex_tag, face.laterality, *(float(value) for value in apex_location))
        for joint in face.joints:
            if joint.joint_number != chosen.joint_number:
                span = float(np.linalg.norm(joint.location - apex_location))
                self._interval(joint.joint_index, apex, span)
        instance.create_interval(chosen.joint_index, apex, face.average_span, True)
        corner = [joint.joint_index for joint in face.joints]
        created = [
            instance.create_face(corner[1], corner[2], apex),
            instance.create_face(corner[2], corner[0], apex),
            instance.create_face(corner[0], corner[1], apex),
        ]
        instance.remove_face(face.index)
        return [self.face_snapshot(index - 1) for index in created]

    def _interval(self, alpha: int, omega: int, span: float) -> int:
        return self.instance.create_interval(alpha, omega, span, False)
