"""CAR archive models."""

from __future__ import annotations

from multiformats import CID
from pydantic import BaseModel, ConfigDict

CAR_CONTENT_TYPE = "application/vnd.ipld.car"
CAR_VERSION = 1


class CarBlock(BaseModel):
    """One ``(cid, payload)`` record of an archive."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    cid: CID
    data: bytes

    @property
    def codec(self) -> str:
        return self.cid.codec.name


class CarArchive(BaseModel):
    """Roots plus every block reachable from them, in traversal order."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    roots: tuple[CID, ...]
    blocks: tuple[CarBlock, ...] = ()

    @property
    def cids(self) -> list[CID]:
        return [block.cid for block in self.blocks]

    def get(self, cid: CID) -> bytes | None:
        for block in self.blocks:
            if block.cid == cid:
                return block.data
        return None
