"""Content-addressed core: identifiers, block store, codecs, DAG import,
path resolution and CAR archives."""

from carforge.core.block_store import MemoryBlockStore
from carforge.core.car import CarEncoder, encode_car, load_car, read_car
from carforge.core.codecs import CodecRegistry, default_registry
from carforge.core.identifier import identify, parse_cid, verify
from carforge.core.importer import DagImporter
from carforge.core.resolver import PathResolver
from carforge.core.service import BuildSnapshot, DagService

__all__ = [
    "identify",
    "verify",
    "parse_cid",
    "MemoryBlockStore",
    "CodecRegistry",
    "default_registry",
    "DagImporter",
    "PathResolver",
    "CarEncoder",
    "encode_car",
    "read_car",
    "load_car",
    "DagService",
    "BuildSnapshot",
]
