"""
Tests for SignalResult validation and the boundary mapping format.
"""

import numpy as np
import pytest

from shotsearch import SignalResult


def test_time_series_mapping():
    result = SignalResult(data=[1.0, 2.0, 3.0], times=[0.0, 0.1, 0.2],
                          units={'data': 'A', 'times': 's'})
    mapping = result.as_dict()

    assert list(mapping) == ['data', 'times', 'units']
    np.testing.assert_array_equal(mapping['data'], [1.0, 2.0, 3.0])
    np.testing.assert_array_equal(mapping['times'], [0.0, 0.1, 0.2])
    assert mapping['units'] == {'data': 'A', 'times': 's'}


def test_scalar_has_no_times_key():
    mapping = SignalResult(data=3.5, units={'data': 'm'}).as_dict()
    assert 'times' not in mapping
    assert mapping['data'].ndim == 0
    assert mapping['units'] == {'data': 'm'}


def test_profile_uses_first_axis_as_times():
    data = np.zeros((4, 33))
    result = SignalResult(data=data, times=np.arange(4.0))
    assert result.data.shape == (4, 33)


def test_length_mismatch_rejected():
    with pytest.raises(ValueError, match='length mismatch'):
        SignalResult(data=np.zeros(5), times=np.zeros(4))


def test_multidimensional_times_rejected():
    with pytest.raises(ValueError, match='1-d'):
        SignalResult(data=np.zeros(4), times=np.zeros((2, 2)))


def test_scalar_with_times_rejected():
    with pytest.raises(ValueError):
        SignalResult(data=1.0, times=[0.0])


def test_times_unit_without_times_axis_rejected():
    with pytest.raises(ValueError, match='times unit'):
        SignalResult(data=[1.0], units={'data': 'A', 'times': 's'})


def test_unknown_unit_axis_rejected():
    with pytest.raises(ValueError, match='Unknown unit axes'):
        SignalResult(data=[1.0], units={'rho': '-'})


def test_empty_unit_labels_dropped():
    result = SignalResult(data=[1.0], times=[0.0], units={'data': '', 'times': 'ms'})
    assert result.units == {'times': 'ms'}
