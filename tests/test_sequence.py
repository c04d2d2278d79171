import math

import numpy as np
import pytest

from surfacekit.sequence import PathSequencePlanner, ProcessPath, SimplePathSequencePlanner

SPACING = 1.0


def _line(x, count=3):
    ys = np.linspace(0.0, 1.0, count)
    points = np.column_stack([np.full(count, x), ys, np.zeros(count)])
    normals = np.tile([0.0, 0.0, 1.0], (count, 1))
    return ProcessPath(points, normals=normals)


def _raster(xs):
    return [_line(x) for x in xs]


def _ordered(planner):
    return [planner.paths[i] for i in planner.indices]


def test_flip_reverses_points_and_normals():
    path = ProcessPath(
        [[0, 0, 0], [1, 0, 0], [2, 0, 0]],
        normals=[[0, 0, 1], [0, 1, 0], [1, 0, 0]],
        derivatives=[[1, 0, 0], [2, 0, 0], [3, 0, 0]],
    )
    path.flip()
    assert path.points.tolist() == [[2, 0, 0], [1, 0, 0], [0, 0, 0]]
    assert path.normals.tolist() == [[1, 0, 0], [0, 1, 0], [0, 0, 1]]
    assert path.derivatives[:, 0].tolist() == [3, 2, 1]


def test_flip_twice_is_identity():
    path = _line(0.0, count=5)
    original = path.points.copy()
    path.flip()
    path.flip()
    assert np.array_equal(path.points, original)


def test_start_and_end():
    path = _line(2.0)
    assert path.start.tolist() == [2.0, 0.0, 0.0]
    assert path.end.tolist() == [2.0, 1.0, 0.0]


def test_empty_path_rejected():
    with pytest.raises(ValueError):
        ProcessPath(np.empty((0, 3)))


def test_mismatched_normals_rejected():
    with pytest.raises(ValueError):
        ProcessPath([[0, 0, 0], [1, 0, 0]], normals=[[0, 0, 1]])


def test_base_planner_is_abstract():
    with pytest.raises(TypeError):
        PathSequencePlanner()


def test_no_paths_gives_no_indices():
    planner = SimplePathSequencePlanner()
    planner.set_paths([])
    assert planner.link_paths() == []


def test_single_path():
    planner = SimplePathSequencePlanner()
    planner.set_paths([_line(0.0)])
    assert planner.link_paths() == [0]


def test_raster_is_linked_as_serpentine():
    planner = SimplePathSequencePlanner()
    planner.set_paths(_raster([0.0, 1.0, 2.0, 3.0]))
    indices = planner.link_paths()
    assert sorted(indices) == [0, 1, 2, 3]
    assert indices == planner.indices
    ordered = _ordered(planner)
    for previous, current in zip(ordered, ordered[1:]):
        assert math.isclose(math.dist(previous.end, current.start), SPACING)
    directions = [np.sign(p.end[1] - p.start[1]) for p in ordered]
    for a, b in zip(directions, directions[1:]):
        assert a == -b


def test_linking_keeps_points_of_every_path():
    originals = _raster([2.0, 0.0, 3.0, 1.0])
    planner = SimplePathSequencePlanner()
    planner.set_paths(originals)
    indices = planner.link_paths()
    assert sorted(indices) == [0, 1, 2, 3]
    for original, linked in zip(originals, planner.paths):
        forward = np.array_equal(original.points, linked.points)
        backward = np.array_equal(original.points[::-1], linked.points)
        assert forward or backward


def test_set_paths_does_not_modify_input():
    originals = _raster([0.0, 1.0, 2.0, 3.0])
    before = [p.points.copy() for p in originals]
    planner = SimplePathSequencePlanner()
    planner.set_paths(originals)
    planner.link_paths()
    for path, points in zip(originals, before):
        assert np.array_equal(path.points, points)


def test_set_paths_clears_indices():
    planner = SimplePathSequencePlanner()
    planner.set_paths(_raster([0.0, 1.0]))
    planner.link_paths()
    assert len(planner.indices) == 2
    planner.set_paths(_raster([0.0, 1.0, 2.0]))
    assert planner.indices == []


def test_link_paths_twice_keeps_order():
    planner = SimplePathSequencePlanner()
    planner.set_paths(_raster([0.0, 1.0, 2.0]))
    first = planner.link_paths()
    assert planner.link_paths() == first


def test_unreachable_path_raises():
    bad = ProcessPath([[math.nan, 0.0, 0.0], [math.nan, 1.0, 0.0]])
    planner = SimplePathSequencePlanner()
    planner.set_paths([_line(0.0), bad])
    with pytest.raises(ValueError):
        planner.link_paths()