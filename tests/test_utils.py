import numpy as np

from weakgrad.utils import sum_to


def test_sum_to_same_shape_is_identity():
    x = np.arange(6.0).reshape(2, 3)
    assert sum_to(x, (2, 3)) is x


def test_sum_to_keepdim_axis():
    x = np.arange(6.0).reshape(2, 3)
    np.testing.assert_array_equal(sum_to(x, (1, 3)), [[3.0, 5.0, 7.0]])
    np.testing.assert_array_equal(sum_to(x, (2, 1)), [[3.0], [12.0]])


def test_sum_to_drops_leading_axes():
    x = np.ones((4, 2, 3))
    y = sum_to(x, (3,))
    assert y.shape == (3,)
    np.testing.assert_array_equal(y, [8.0, 8.0, 8.0])


def test_sum_to_scalar_shapes():
    x = np.arange(6.0).reshape(2, 3)
    np.testing.assert_array_equal(sum_to(x, (1,)), [15.0])
    assert sum_to(np.array([4.0]), ()).shape == ()
