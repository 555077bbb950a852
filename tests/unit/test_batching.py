import numpy as np
import pytest

from deepnet.core.errors import InvalidConfiguration, ShapeMismatch
from deepnet.training.batching import batch_sizes, make_batches, shuffle_in_place


def _examples(n):
    return [(np.array([float(i), float(-i)]), np.array([float(i) * 10])) for i in range(n)]


class _RecordingRng:
    def __init__(self):
        self.highs = []

    def integers(self, low, high):
        self.highs.append(high)
        return low


def test_shuffle_walks_from_last_index_down():
    rng = _RecordingRng()
    shuffle_in_place(_examples(5), rng)
    assert rng.highs == [5, 4, 3, 2, 1]


def test_shuffle_is_a_permutation_that_keeps_pairs_together():
    data = _examples(20)
    shuffle_in_place(data, np.random.default_rng(4))
    assert sorted(float(x[0]) for x, _ in data) == [float(i) for i in range(20)]
    for inputs, outputs in data:
        assert outputs[0] == inputs[0] * 10


def test_shuffle_is_reproducible_for_a_seed():
    a, b = _examples(10), _examples(10)
    shuffle_in_place(a, np.random.default_rng(9))
    shuffle_in_place(b, np.random.default_rng(9))
    assert [x[0] for x, _ in a] == [x[0] for x, _ in b]


def test_batch_sizes_with_and_without_truncation():
    assert batch_sizes(10, 4, truncate=False) == [4, 4, 2]
    assert batch_sizes(10, 4, truncate=True) == [4, 4]
    assert batch_sizes(8, 4, truncate=True) == [4, 4]
    assert batch_sizes(3, 4, truncate=True) == []
    with pytest.raises(InvalidConfiguration):
        batch_sizes(10, 0)


def test_make_batches_preserves_order_and_shapes():
    batches = make_batches(_examples(10), 4, truncate=False)
    assert [len(b) for b in batches] == [4, 4, 2]
    assert batches[0].inputs.shape == (4, 2)
    assert batches[2].targets.shape == (2, 1)
    np.testing.assert_array_equal(batches[1].inputs[:, 0], [4.0, 5.0, 6.0, 7.0])


def test_make_batches_rejects_ragged_vectors():
    data = _examples(3)
    data[1] = (np.array([1.0]), np.array([10.0]))
    with pytest.raises(ShapeMismatch):
        make_batches(data, 3)
