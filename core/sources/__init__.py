"""根数数据源"""

from .element_source import (
    ElementSetSource,
    StaticElementSetSource,
    JsonFileElementSetSource,
    collection_fingerprint,
)

__all__ = [
    'ElementSetSource',
    'StaticElementSetSource',
    'JsonFileElementSetSource',
    'collection_fingerprint',
]
