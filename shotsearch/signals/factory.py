"""
Signal Factory

Discovers the Signal variants of this package and builds signals from plain
mappings, so pipelines can take their signal definitions from YAML.
"""
from shotsearch.signals.base import Signal
import importlib
import pkgutil
import pathlib
from typing import Any, Dict, Optional, Type

import yaml

CATALOG_PATH = pathlib.Path(__file__).parent / 'catalog.yaml'

# Catalogue keys that document a signal but are not constructor arguments
METADATA_KEYS = ('description', 'notes')


def snake_to_pascal(snake_str: str) -> str:
    """Convert snake_case to PascalCase"""
    return ''.join(word.capitalize() for word in snake_str.split('_'))


class SignalFactory:

    signal_types: Dict[str, Type[Signal]] = {}

    def __init__(self):
        """
        Factory class registering every '<name>_signal' module's '<Name>Signal' class
        under its TYPE tag.
        """
        package_name = "shotsearch.signals"
        package = importlib.import_module(package_name)
        package_path = pathlib.Path(package.__file__).parent
        for _, module_name, _ in pkgutil.iter_modules([str(package_path)]):
            if not module_name.endswith("_signal"):
                continue
            module = importlib.import_module(f"{package_name}.{module_name}")
            signal_cls = getattr(module, snake_to_pascal(module_name))
            self.signal_types[signal_cls.TYPE] = signal_cls

    def list_types(self) -> list[str]:
        return sorted(self.signal_types)

    def __call__(self, definition: Dict[str, Any]) -> Signal:
        """
        Build a Signal from a mapping such as {'type': 'mds', 'expression': '\\ipmhd', 'tree': 'efit01'}.

        :param definition: Mapping with a 'type' tag and the constructor arguments
        :return: Signal instance
        :rtype: Signal
        """
        kwargs = {k: v for k, v in definition.items() if k not in METADATA_KEYS}
        signal_type = kwargs.pop('type', None)
        if signal_type not in self.signal_types:
            raise ValueError(
                f"Unknown signal type '{signal_type}'. "
                f"Available: {self.list_types()}"
            )
        try:
            return self.signal_types[signal_type](**kwargs)
        except TypeError as e:
            raise ValueError(f"Invalid arguments for '{signal_type}' signal: {e}") from e


def load_signal_catalog(path: Optional[pathlib.Path] = None,
                        factory: Optional[SignalFactory] = None) -> Dict[str, Signal]:
    """
    Load named signal definitions from a YAML catalogue.

    Args:
        path: Catalogue file (default: the packaged catalog.yaml)
        factory: SignalFactory to build with (default: a new one)

    Returns:
        Dict mapping signal name -> Signal

    Example:
        >>> catalog = load_signal_catalog()
        >>> pipe.add_fetch('ipmhd', catalog['ipmhd'])
    """
    path = pathlib.Path(path) if path else CATALOG_PATH
    with open(path, 'r') as f:
        config = yaml.safe_load(f) or {}

    factory = factory or SignalFactory()
    return {name: factory(definition) for name, definition in config.get('signals', {}).items()}
