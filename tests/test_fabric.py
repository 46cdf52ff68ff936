import pytest

from galapagotchi.body.engine import BILATERAL_LEFT, BILATERAL_RIGHT, GROWTH_TICKS
from galapagotchi.body.fabric import Fabric
from galapagotchi.body.kernel import FabricKernel, KernelLimits
from galapagotchi.sim.errors import ProgrammerError


def _seeded_fabric(joint_count_max: int = 40, corners: int = 5) -> Fabric:
    kernel = FabricKernel(KernelLimits(instance_max=1, joint_count_max=joint_count_max))
    fabric = Fabric(kernel.allocate())
    fabric.create_seed(corners, 1.0)
    return fabric


def test_seed_is_centered_above_the_ground() -> None:
    fabric = _seeded_fabric()
    engine = fabric.instance.engine

    assert (fabric.joint_count, fabric.interval_count, fabric.face_count) == (7, 16, 10)
    assert engine.locations[: fabric.joint_count, 1].min() == pytest.approx(1.0)
    assert fabric.midpoint[0] == pytest.approx(0.0, abs=1e-6)
    assert fabric.midpoint[2] == pytest.approx(0.0, abs=1e-6)
    assert engine.time_sweep() == 0


def test_seed_needs_three_corners() -> None:
    kernel = FabricKernel(KernelLimits(instance_max=1))
    with pytest.raises(ValueError):
        Fabric(kernel.allocate()).create_seed(2, 1.0)


def test_seed_faces_come_in_mirrored_pairs() -> None:
    fabric = _seeded_fabric()
    instance = fabric.instance

    assert instance.face_laterality(0) == BILATERAL_LEFT
    assert instance.face_laterality(1) == BILATERAL_RIGHT
    assert instance.find_opposite_face_index(0) == 1
    assert instance.find_opposite_face_index(1) == 0


def test_unfold_raises_an_apex_over_a_face_and_its_mirror() -> None:
    fabric = _seeded_fabric()

    fresh = fabric.unfold(0, 0)

    assert (fabric.joint_count, fabric.interval_count, fabric.face_count) == (9, 22, 14)
    assert [face.index for face in fresh] == [8, 9, 10, 11, 12, 13]
    apex_tag = fabric.instance.joint_tag(fabric.joint_count - 1)
    assert all(apex_tag in {joint.tag for joint in face.joints} for face in fresh)
    assert fabric.instance.engine.time_sweep() == GROWTH_TICKS


def test_unfold_without_capacity_returns_empty() -> None:
    fabric = _seeded_fabric(joint_count_max=8)

    assert fabric.unfold(0, 1) == []
    assert (fabric.joint_count, fabric.interval_count, fabric.face_count) == (7, 16, 10)


def test_face_snapshot_reads_geometry_from_buffer() -> None:
    fabric = _seeded_fabric()
    face = fabric.face_snapshot(3)

    assert face.index == 3
    assert len(face.joints) == 3
    assert face.average_span > 0.0
    assert abs(float((face.normal**2).sum()) - 1.0) < 1e-5
    with pytest.raises(ProgrammerError):
        fabric.face_snapshot(fabric.face_count)


def test_growing_fabric_settles_after_growth_ticks() -> None:
    fabric = _seeded_fabric()
    fabric.unfold(2, 1)

    assert fabric.iterate(GROWTH_TICKS - 1, True) == 1
    assert fabric.iterate(1, True) == 0
    assert fabric.age == GROWTH_TICKS
