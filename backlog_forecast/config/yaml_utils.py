"""YAML utilities for configuration processing.

Mappings are loaded as `odicti` instances so that section and option names
keep their order and can be looked up case-insensitively (`Forecast`,
`forecast` and `FORECAST` all refer to the same section).
"""

import yaml
from pydicti import odicti


class OrderedSafeLoader(yaml.SafeLoader):  # pylint: disable=too-many-ancestors
    """SafeLoader that builds case-insensitive ordered mappings."""


def _construct_odicti(loader, node):
    loader.flatten_mapping(node)
    return odicti(loader.construct_pairs(node))


OrderedSafeLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_odicti
)


def ordered_load(stream):
    """
    Load a YAML document, returning ordered case-insensitive mappings.
    """
    return yaml.load(stream, OrderedSafeLoader)  # nosec B506 - SafeLoader subclass
