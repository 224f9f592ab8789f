"""carforge: content-addressed build artifacts served as CAR archives.

Build artifacts go in as ``(path, bytes)`` pairs and come out as a UnixFS
Merkle DAG (raw file leaves under dag-pb directories) held in an in-memory
block store. Any sub-tree can then be exported as a self-contained CAR v1
archive.
"""

__version__ = "0.1.0"
__description__ = "Content-addressed Merkle DAGs and CAR archives for build artifacts"

from carforge.core.service import DagService
from carforge.models.archive import CAR_CONTENT_TYPE

__all__ = ["DagService", "CAR_CONTENT_TYPE", "__version__"]
