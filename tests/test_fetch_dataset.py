"""
Tests for fetch_dataset: several signals merged into one xarray Dataset.
"""

import numpy as np
import pytest
import xarray as xr

from shotsearch import FetchError, ShotStatus
from shotsearch.pipeline import FetchDataset, process_shot
from tests.helpers import RampSignal, ScalarSignal


def dataset_for(shot, signals, align_with=None):
    outcome = process_shot([FetchDataset('ds', tuple(signals.items()), align_with)], shot)
    return outcome


def test_shared_time_base_merges_directly():
    outcome = dataset_for(2, {'ip': RampSignal(n=5), 'ne': RampSignal(n=5, scale=10.0)})
    ds = outcome.record['ds']

    assert isinstance(ds, xr.Dataset)
    assert set(ds.data_vars) == {'ip', 'ne'}
    assert ds.sizes['times'] == 5
    np.testing.assert_allclose(ds['ne'].values, 10 * ds['ip'].values)
    assert ds['ip'].attrs['units'] == 'A'


def test_outer_join_on_times():
    # linspace(0, 1, 3) is a subset of linspace(0, 1, 5)
    outcome = dataset_for(1, {'fast': RampSignal(n=5), 'slow': RampSignal(n=3)})
    ds = outcome.record['ds']

    assert ds.sizes['times'] == 5
    np.testing.assert_allclose(ds['times'].values, np.linspace(0, 1, 5))
    assert int(ds['slow'].isnull().sum()) == 2
    assert not bool(ds['fast'].isnull().any())


def test_align_with_interpolates_onto_member_times():
    outcome = dataset_for(4, {'fast': RampSignal(n=9), 'slow': RampSignal(n=3)}, align_with='slow')
    ds = outcome.record['ds']

    assert ds.sizes['times'] == 3
    np.testing.assert_allclose(ds['times'].values, [0.0, 0.5, 1.0])
    # Both ramps are linear in time, so interpolation is exact
    np.testing.assert_allclose(ds['fast'].values, ds['slow'].values)


def test_scalar_member_has_no_times_dimension():
    outcome = dataset_for(3, {'ip': RampSignal(), 'count': ScalarSignal()})
    ds = outcome.record['ds']
    assert ds['count'].dims == ()
    assert float(ds['count']) == 3.0


def test_member_failure_errors_whole_field():
    outcome = dataset_for(2, {'ip': RampSignal(), 'ne': RampSignal(fail_shots=[2])})

    assert outcome.status == ShotStatus.FAILED
    assert 'ds' not in outcome.record.fields
    assert isinstance(outcome.record.errors['ds'], FetchError)


def test_align_with_scalar_member_is_fetch_error():
    outcome = dataset_for(1, {'ip': RampSignal(), 'count': ScalarSignal()}, align_with='count')
    error = outcome.record.errors['ds']
    assert isinstance(error, FetchError)
    assert 'no times axis' in error.cause


@pytest.mark.parametrize('shot', [1, 5])
def test_pipeline_builder_stores_dataset(pipeline_factory, sequential, shot):
    pipe = pipeline_factory([shot])
    pipe.add_fetch_dataset('ds', {'ip': RampSignal(), 'ne': RampSignal(n=3)})
    rec = pipe.compute(sequential)[0]
    assert rec.shot == shot
    assert set(rec['ds'].data_vars) == {'ip', 'ne'}
