"""
Utility script to mirror catalogue signals from MDSplus into per-shot Zarr stores.

Each shot gets its own store (``--store`` template, formatted with the shot
number). Every signal is written as a group holding a ``data`` array and, when
the signal has a time base, a ``time`` coordinate, so it can be read back with
``ZarrSignal('<name>/data', store=...)``.

Usage:
    python scripts/export_zarr_stores.py SHOT [SHOT ...] [--signals NAME ...]
                                        [--store TEMPLATE] [--backend NAME] [--workers N]

Example:
    python scripts/export_zarr_stores.py 165920 165921 --signals ipmhd vloop \\
        --store /data/d3d/{shot}.zarr --backend worker_pool --workers 4
"""

import argparse
import sys
from pathlib import Path

import xarray as xr

# Add parent directory to path to import shotsearch
sys.path.insert(0, str(Path(__file__).parent.parent))

from shotsearch import Pipeline, configure_logging, create_backend
from shotsearch.signals import load_signal_catalog


def signal_to_dataset(value: dict) -> xr.Dataset:
    """
    Convert a fetched signal mapping into a Dataset with 'data' and optional 'time'.

    Args:
        value: Mapping {'data', 'times'?, 'units'} stored by a fetch stage

    Returns:
        xarray Dataset ready for to_zarr()
    """
    data = value['data']
    units = value.get('units', {})
    attrs = {'units': units['data']} if 'data' in units else {}

    if 'times' not in value:
        dims = [f"dim_{i}" for i in range(data.ndim)]
        return xr.Dataset({'data': (dims, data, attrs)})

    dims = ['time'] + [f"dim_{i}" for i in range(1, data.ndim)]
    time_attrs = {'units': units['times']} if 'times' in units else {}
    return xr.Dataset(
        {'data': (dims, data, attrs)},
        coords={'time': ('time', value['times'], time_attrs)},
    )


class WriteStore:
    """Map stage writing every fetched signal of a Record to the shot's store."""

    def __init__(self, store_template, names):
        self.store_template = store_template
        self.names = list(names)

    def __call__(self, rec):
        store = self.store_template.format(shot=rec.shot)
        written = []
        for name in self.names:
            if name not in rec.fields:
                continue
            signal_to_dataset(rec[name]).to_zarr(store, group=name, mode='w')
            written.append(name)
        rec.set('written', written)


def main():
    parser = argparse.ArgumentParser(
        description='Mirror catalogue signals from MDSplus into per-shot Zarr stores'
    )
    parser.add_argument(
        'shots',
        type=int,
        nargs='+',
        help='Shot numbers to export'
    )
    parser.add_argument(
        '--signals',
        nargs='+',
        default=None,
        help='Catalogue signal names (default: all)'
    )
    parser.add_argument(
        '--store',
        type=str,
        default='{shot}.zarr',
        help="Store path template containing '{shot}' (default: {shot}.zarr)"
    )
    parser.add_argument(
        '--backend',
        type=str,
        default=None,
        help='Execution backend (default: config default_backend)'
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Worker count for the worker_pool backend'
    )

    args = parser.parse_args()
    configure_logging()

    catalog = load_signal_catalog()
    names = args.signals or list(catalog)
    unknown = [name for name in names if name not in catalog]
    if unknown:
        parser.error(f"Unknown signals {unknown}. Available: {sorted(catalog)}")

    pipe = Pipeline(args.shots)
    for name in names:
        pipe.add_fetch(name, catalog[name])
    pipe.add_map(WriteStore(args.store, names))
    pipe.add_keep(['written'])

    backend_kwargs = {}
    if args.workers and args.backend == 'worker_pool':
        backend_kwargs['num_workers'] = args.workers
    backend = create_backend(args.backend, **backend_kwargs)

    print(f"Exporting {len(names)} signal(s) for {len(pipe.shots)} shot(s)")
    print(f"Store template: {args.store}")

    # Missing signals mark a shot FAILED but whatever was fetched is still written
    results = pipe.compute(backend)

    print(f"\n{'='*70}")
    print("Summary per shot:")
    print(f"{'='*70}")
    for rec in results.sorted():
        print(f"  Shot {rec.shot}: wrote {len(rec['written'])}/{len(names)} signal(s)")
    for shot, failure in sorted(results.failures.items()):
        written = failure.record.get('written', [])
        print(f"  Shot {shot}: wrote {len(written)}/{len(names)} signal(s)")
        for field, error in failure.errors.items():
            print(f"    ✗ {field}: {error.cause}")


if __name__ == '__main__':
    main()
