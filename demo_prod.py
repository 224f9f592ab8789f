"""Production smoke test — builds a tiny tree and round-trips it through a CAR.

Usage:
    python demo_prod.py
"""

from __future__ import annotations

from carforge import __version__
from carforge.config import config
from carforge.core.block_store import MemoryBlockStore
from carforge.core.car import load_car
from carforge.core.service import DagService


def main() -> None:
    """Run a production smoke build."""
    print(f"carforge v{__version__}")
    print(f"Environment: {config.environment} | CID version: {config.cid_version}")
    print()

    service = DagService(config=config)
    root = service.build([("a.txt", "hello"), ("dir/b.txt", "world")])
    print(f"Root: {root}")

    data = service.archive("/")
    print(f"Archive: {len(data)} bytes")

    # Re-hydrate into a fresh store, as a client would
    roots = load_car(data, MemoryBlockStore())
    print(f"Round trip ok: {roots == [root]}")


if __name__ == "__main__":
    main()
