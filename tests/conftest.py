"""Shared test fixtures for carforge."""

from __future__ import annotations

import pytest
from multiformats import CID

from carforge.config import CarforgeConfig
from carforge.core.block_store import MemoryBlockStore
from carforge.core.car import CarEncoder
from carforge.core.codecs import CodecRegistry, default_registry
from carforge.core.importer import DagImporter
from carforge.core.resolver import PathResolver
from carforge.core.service import DagService

# Well-known identifiers
EMPTY_DIR_BYTES = bytes.fromhex("0a020801")
EMPTY_DIR_CID_V1 = "bafybeiczsscdsbs7ffqz55asqdf3smv6klcw3gofszvwlyarci47bgf354"
EMPTY_DIR_CID_V0 = "QmUNLLsPACCz1vLxQVkXqqLX5R1X345qqfHbsf67hvA3Nn"
EMPTY_RAW_CID = "bafkreihdwdcefgh4dqkjv67uzcmw7ojee6xedzdetojuzjevtenxquvyku"
HELLO_WORLD_RAW_CID = "bafkreifzjut3te2nhyekklss27nh3k72ysco7y32koao5eei66wof36n5e"

SAMPLE_PAIRS = [("a.txt", "hello"), ("dir/b.txt", "world")]


@pytest.fixture
def store() -> MemoryBlockStore:
    """Provide a fresh, empty block store."""
    return MemoryBlockStore()


@pytest.fixture
def registry() -> CodecRegistry:
    """Provide a registry with raw, dag-pb and dag-cbor."""
    return default_registry()


@pytest.fixture
def importer(store: MemoryBlockStore, registry: CodecRegistry) -> DagImporter:
    """Provide a DagImporter with default policies."""
    return DagImporter(store, registry)


@pytest.fixture
def resolver(store: MemoryBlockStore, registry: CodecRegistry) -> PathResolver:
    return PathResolver(store, registry)


@pytest.fixture
def encoder(store: MemoryBlockStore, registry: CodecRegistry) -> CarEncoder:
    return CarEncoder(store, registry)


@pytest.fixture
def sample_root(importer: DagImporter) -> CID:
    """Root of ``a.txt`` plus ``dir/b.txt``, stored in the ``store`` fixture."""
    return importer.build(SAMPLE_PAIRS)


@pytest.fixture
def service() -> DagService:
    """Provide a DagService with default settings, independent of the environment."""
    return DagService(config=CarforgeConfig(_env_file=None))
