import math

import numpy as np
import pytest
from numpy.random import default_rng

from kdtreex.algo import build_tree
from kdtreex.exceptions import InputContractError
from tests.utils.datasets import labelled_points

_DIAGONAL = [[1.0, 1.0], [2.0, 2.0], [3.0, 3.0], [4.0, 4.0], [5.0, 5.0]]
_DIAGONAL_IDS = ["a", "b", "c", "d", "e"]


def test_diagonal_batch_builds_expected_shape():
    tree = build_tree(_DIAGONAL, _DIAGONAL_IDS)

    root = tree.root
    assert root.point.tolist() == [3.0, 3.0]
    assert root.id == "c"
    assert root.axis == 0
    assert root.left.point.tolist() == [2.0, 2.0]
    assert root.left.axis == 1
    assert root.right.point.tolist() == [5.0, 5.0]
    assert root.right.axis == 1
    assert root.left.left.id == "a"
    assert root.right.left.id == "d"
    assert len(tree) == 5
    assert tree.dimension == 2


def test_ids_travel_with_their_points():
    points = [[9.0, 0.0], [1.0, 5.0], [5.0, 2.0], [3.0, 7.0]]
    ids = ["nine", "one", "five", "three"]
    tree = build_tree(points, ids)

    by_id = {node.id: node.point.tolist() for node in tree.iter_nodes()}
    assert by_id == {"nine": [9.0, 0.0], "one": [1.0, 5.0], "five": [5.0, 2.0], "three": [3.0, 7.0]}
    # Upper median on axis 0 of [1, 3, 5, 9].
    assert tree.root.id == "five"


def test_single_point_is_a_leaf():
    tree = build_tree([[0.5, -0.5, 2.0]], ["only"])
    assert tree.root.is_leaf()
    assert tree.root.axis == 0
    assert tree.height() == 1


def test_axis_cycles_with_depth():
    rng = default_rng(3)
    points, ids = labelled_points(rng, 200, 3)
    tree = build_tree(points, ids)

    stack = [(tree.root, 0)]
    while stack:
        node, depth = stack.pop()
        assert node.axis == depth % 3
        stack.extend((child, depth + 1) for child in node.children())


def test_start_depth_offsets_axes():
    tree = build_tree(_DIAGONAL, _DIAGONAL_IDS, depth=1)
    assert tree.root.axis == 1
    assert tree.root.left.axis == 0


@pytest.mark.parametrize("count", [1, 2, 3, 7, 8, 100, 1023, 1024])
def test_height_is_logarithmic(count: int):
    rng = default_rng(count)
    points, ids = labelled_points(rng, count, 2)
    tree = build_tree(points, ids)
    assert tree.height() == math.ceil(math.log2(count + 1))


def test_built_tree_satisfies_partition():
    rng = default_rng(11)
    points, ids = labelled_points(rng, 500, 4)
    tree = build_tree(points, ids)
    tree.validate()


def test_duplicate_points_are_all_kept():
    points = np.ones((6, 2), dtype=np.float32)
    tree = build_tree(points, [str(i) for i in range(6)])
    assert sorted(tree.ids()) == [str(i) for i in range(6)]
    tree.validate()


def test_empty_batch_is_rejected():
    with pytest.raises(InputContractError):
        build_tree([], [])


def test_mismatched_batches_are_rejected():
    with pytest.raises(InputContractError):
        build_tree(_DIAGONAL, _DIAGONAL_IDS[:-1])


def test_ragged_points_are_rejected():
    with pytest.raises(InputContractError):
        build_tree([[1.0, 2.0], [3.0]], ["a", "b"])


def test_non_string_ids_are_rejected():
    with pytest.raises(InputContractError):
        build_tree([[1.0], [2.0]], ["a", 2])


def test_negative_depth_is_rejected():
    with pytest.raises(InputContractError):
        build_tree(_DIAGONAL, _DIAGONAL_IDS, depth=-1)


def test_input_contract_error_is_a_value_error():
    with pytest.raises(ValueError):
        build_tree([], [])
