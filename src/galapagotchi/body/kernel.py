from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from galapagotchi.body.engine import Direction, FabricEngine
from galapagotchi.sim.errors import ProgrammerError, SlotExhaustion

FLOATS_IN_VECTOR = 3
VECTORS_FOR_FACE = 3
SEED_VECTORS = 4
FLOAT_BYTES = np.dtype(np.float32).itemsize
DEFAULT_INSTANCE_MAX = 16
DEFAULT_JOINT_COUNT_MAX = 40
FACE_VIEW_NAMES = ("face_midpoints", "face_locations", "face_normals")


@dataclass(frozen=True)
class KernelLimits:
    instance_max: int = DEFAULT_INSTANCE_MAX
    joint_count_max: int = DEFAULT_JOINT_COUNT_MAX

    def __post_init__(self) -> None:
        if not isinstance(self.instance_max, int) or self.instance_max <= 0:
            raise ValueError("kernel.instance_max must be an integer > 0")
        if not isinstance(self.joint_count_max, int) or self.joint_count_max <= 0:
            raise ValueError("kernel.joint_count_max must be an integer > 0")

    @property
    def interval_count_max(self) -> int:
        return self.joint_count_max * 3 + 30

    @property
    def face_count_max(self) -> int:
        return self.joint_count_max * 2 + 20


@dataclass(frozen=True)
class BufferOffsets:
    """Byte offsets of the float blocks inside one instance's buffer region."""

    vectors: int
    face_midpoints: int
    face_locations: int
    face_normals: int
    instance_bytes: int

    @classmethod
    def for_face_count_max(cls, face_count_max: int) -> BufferOffsets:
        seed_vector_floats = SEED_VECTORS * FLOATS_IN_VECTOR
        face_vector_floats = face_count_max * FLOATS_IN_VECTOR
        face_joint_floats = face_vector_floats * VECTORS_FOR_FACE
        vectors = 0
        face_midpoints = vectors + seed_vector_floats * FLOAT_BYTES
        face_locations = face_midpoints + face_vector_floats * FLOAT_BYTES
        face_normals = face_locations + face_joint_floats * FLOAT_BYTES
        instance_bytes = face_normals + face_joint_floats * FLOAT_BYTES
        return cls(
            vectors=vectors,
            face_midpoints=face_midpoints,
            face_locations=face_locations,
            face_normals=face_normals,
            instance_bytes=instance_bytes,
        )


class FabricInstance:
    """One kernel slot: a region of the shared buffer plus the engine that fills it."""

    def __init__(self, kernel: FabricKernel, index: int) -> None:
        self.kernel = kernel
        self.index = index
        self.live = False
        self.engine = FabricEngine(
            joint_count_max=kernel.limits.joint_count_max,
            interval_count_max=kernel.limits.interval_count_max,
            face_count_max=kernel.limits.face_count_max,
        )
        self._base = index * kernel.offsets.instance_bytes
        self._views: dict[str, np.ndarray] = {}

    def reset(self) -> None:
        self.engine.reset()
        end = self._base + self.kernel.offsets.instance_bytes
        self.kernel.buffer[self._base : end] = 0
        self.refresh()

    def refresh(self) -> None:
        self._views.clear()

    def _refresh_faces(self) -> None:
        for name in FACE_VIEW_NAMES:
            self._views.pop(name, None)

    def _view(self, name: str, offset: int, float_count: int) -> np.ndarray:
        view = self._views.get(name)
        if view is None:
            start = self._base + offset
            view = self.kernel.buffer[start : start + float_count * FLOAT_BYTES].view(np.float32)
            self._views[name] = view
        return view

    @property
    def vectors(self) -> np.ndarray:
        return self._view("vectors", self.kernel.offsets.vectors, SEED_VECTORS * FLOATS_IN_VECTOR)

    @property
    def midpoint(self) -> np.ndarray:
        return self.vectors[0:3]

    @property
    def seed(self) -> np.ndarray:
        return self.vectors[3:6]

    @property
    def forward(self) -> np.ndarray:
        return self.vectors[6:9]

    @property
    def right(self) -> np.ndarray:
        return self.vectors[9:12]

    @property
    def face_midpoints(self) -> np.ndarray:
        count = self.engine.face_count * FLOATS_IN_VECTOR
        return self._view("face_midpoints", self.kernel.offsets.face_midpoints, count)

    @property
    def face_locations(self) -> np.ndarray:
        count = self.engine.face_count * FLOATS_IN_VECTOR * VECTORS_FOR_FACE
        return self._view("face_locations", self.kernel.offsets.face_locations, count)

    @property
    def face_normals(self) -> np.ndarray:
        count = self.engine.face_count * FLOATS_IN_VECTOR * VECTORS_FOR_FACE
        return self._view("face_normals", self.kernel.offsets.face_normals, count)

    def publish(self) -> None:
        self.engine.write_geometry(self.vectors, self.face_midpoints, self.face_locations, self.face_normals)

    @property
    def age(self) -> int:
        return self.engine.age

    @property
    def joint_count(self) -> int:
        return self.engine.joint_count

    @property
    def interval_count(self) -> int:
        return self.engine.interval_count

    @property
    def face_count(self) -> int:
        return self.engine.face_count

    def iterate(self, ticks: int, hanging: bool) -> int:
        time_sweep = self.engine.iterate(ticks, hanging)
        self.publish()
        return time_sweep

    def next_joint_tag(self) -> int:
        return self.engine.next_joint_tag()

    def create_joint(self, tag: int, laterality: int, x: float, y: float, z: float) -> int:
        index = self.engine.create_joint(tag, laterality, x, y, z)
        self.publish()
        return index

    def create_interval(self, alpha: int, omega: int, span: float, growing: bool) -> int:
        return self.engine.create_interval(alpha, omega, span, growing)

    def create_face(self, joint0: int, joint1: int, joint2: int) -> int:
        index = self.engine.create_face(joint0, joint1, joint2)
        self._refresh_faces()
        self.publish()
        return index

    def remove_face(self, face_index: int) -> None:
        self.engine.remove_face(face_index)
        self._refresh_faces()
        self.publish()

    def find_opposite_face_index(self, face_index: int) -> int | None:
        return self.engine.find_opposite_face_index(face_index)

    def face_joint_index(self, face_index: int, joint_number: int) -> int:
        if face_index < 0 or face_index >= self.engine.face_count:
            raise ProgrammerError(f"invalid face index: {face_index}")
        if joint_number not in (0, 1, 2):
            raise ProgrammerError(f"invalid face joint number: {joint_number}")
        return int(self.engine.faces[face_index, joint_number])

    def face_laterality(self, face_index: int) -> int:
        return self.engine.face_laterality(face_index)

    def joint_tag(self, joint_index: int) -> int:
        return int(self.engine.joint_tags[joint_index])

    def joint_laterality(self, joint_index: int) -> int:
        return int(self.engine.joint_lateralities[joint_index])

    def trigger_interval(self, interval_index: int) -> None:
        self.engine.trigger_interval(interval_index)

    def set_interval_high_low(self, interval_index: int, direction: Direction, high_low: int) -> None:
        self.engine.set_interval_high_low(interval_index, direction, high_low)

    def set_next_direction(self, direction: Direction) -> None:
        self.engine.set_next_direction(direction)

    def remove_hanger(self) -> None:
        self.engine.remove_hanger()

    def centralize(self, altitude: float) -> float:
        lift = self.engine.centralize(altitude)
        self.publish()
        return lift


class FabricKernel:
    """A fixed pool of simulation instances sharing one contiguous byte buffer."""

    def __init__(self, limits: KernelLimits | None = None) -> None:
        self.limits = limits or KernelLimits()
        self.offsets = BufferOffsets.for_face_count_max(self.limits.face_count_max)
        self.buffer = np.zeros(self.limits.instance_max * self.offsets.instance_bytes, dtype=np.uint8)
        self._instances = [FabricInstance(self, index) for index in range(self.limits.instance_max)]

    @property
    def instance_max(self) -> int:
        return self.limits.instance_max

    @property
    def buffer_bytes(self) -> int:
        return int(self.buffer.nbytes)

    @property
    def live_count(self) -> int:
        return sum(1 for instance in self._instances if instance.live)

    @property
    def free_count(self) -> int:
        return self.instance_max - self.live_count

    def allocate(self) -> FabricInstance:
        for instance in self._instances:
            if not instance.live:
                instance.reset()
                instance.live = True
                return instance
        raise SlotExhaustion(f"all {self.instance_max} simulation instances are live")

    def release(self, instance: FabricInstance) -> None:
        if instance.kernel is not self or self._instances[instance.index] is not instance:
            raise ProgrammerError(f"instance {instance.index} does not belong to this kernel")
        if not instance.live:
            raise ProgrammerError(f"instance {instance.index} is not live")
        instance.live = False
