import importlib

from rawktool.framework import REGISTRY

__all__ = [
    'neversoftmetadata',
    'multitrack',
    'milo',
    'texture',
    'neversoft',
    'rawkfile',
]


def initialise(registry=REGISTRY):
    if registry.initialised:
        return registry

    registry.initialised = True

    for name in __all__:
        handler = importlib.import_module('rawktool.plugins.' + name).get_class()
        handler().initialise(registry)

    return registry
