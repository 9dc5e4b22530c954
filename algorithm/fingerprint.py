"""
goal: turn the SHA-256 of an address into something a human can glance at. two outputs:
an N x N grid of hex nibbles (0-15) read straight off the digest, wrapping past 64 cells, and a
4-token sequence where each token comes from 4 consecutive hex digits reduced modulo the pool size.
both are pure functions of the address, so the same paste always looks the same.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

from dataclasses import dataclass  # frozen fingerprint record

from agent.integrity_check import Hasher, sha256_hex

# fixed, ordered token pool; reordering changes every fingerprint
TOKEN_POOL: tuple[str, ...] = (
    "🚀", "🛡️", "💎", "🔥", "🦊", "🐱", "🦄", "🌈", "🍀", "⭐",
    "🌙", "🌊", "🍄", "🧊", "🎸", "🦁", "🐯", "🐼", "🐨", "🐙",
    "🦋", "☀️", "🌍", "⚡", "⚓", "🛸", "👑", "🔮", "🧬", "🧪",
)

TOKEN_COUNT = 4  # tokens per fingerprint
TOKEN_WIDTH = 4  # hex digits consumed per token

# grid palette used when drawing cells (value % len)
GRID_PALETTE: tuple[str, ...] = (
    "#ef4444",  # red
    "#22c55e",  # green
    "#eab308",  # yellow
    "#3b82f6",  # blue
    "#a855f7",  # purple
    "#ec4899",  # pink
    "#06b6d4",  # cyan
    "#f97316",  # orange
)


@dataclass(frozen=True)
class VisualFingerprint:
    digest: str  # lowercase hex sha256 of the address
    grid: tuple[tuple[int, ...], ...]  # size x size nibbles
    token_indices: tuple[int, ...]  # indices into TOKEN_POOL

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(TOKEN_POOL[i] for i in self.token_indices)

    @property
    def size(self) -> int:
        return len(self.grid)

    def to_dict(self) -> dict:
        return {
            "digest": self.digest,
            "grid": [list(row) for row in self.grid],
            "tokenIndices": list(self.token_indices),
            "tokens": list(self.tokens),
        }


def grid_from_digest(digest: str, size: int = 8) -> tuple[tuple[int, ...], ...]:
    # cell (i, j) reads hex digit (i*size + j) mod len(digest), so grids bigger than 8x8 wrap around
    n = len(digest)
    if size < 0:
        raise ValueError("grid size must be non-negative")
    return tuple(
        tuple(int(digest[(i * size + j) % n], 16) for j in range(size)) for i in range(size)
    )


def tokens_from_digest(digest: str, pool_size: int = len(TOKEN_POOL)) -> tuple[int, ...]:
    out = []
    for k in range(TOKEN_COUNT):
        chunk = digest[k * TOKEN_WIDTH : (k + 1) * TOKEN_WIDTH]
        out.append(int(chunk, 16) % pool_size)
    return tuple(out)


def fingerprint(address: str, size: int = 8, hasher: Hasher | None = None) -> VisualFingerprint:
    """
    Build the visual fingerprint for address.

    raises HashingUnavailable (from the hasher) when the digest can not be trusted.
    """
    digest = hasher.sha256_hex(address) if hasher is not None else sha256_hex(address)
    return VisualFingerprint(
        digest=digest,
        grid=grid_from_digest(digest, size),
        token_indices=tokens_from_digest(digest),
    )


def cell_style(value: int) -> tuple[str, bool, bool]:
    """(colour, dimmed, shrunk) for one grid cell: dim every 4th value, shrink odd ones."""
    return GRID_PALETTE[value % len(GRID_PALETTE)], value % 4 == 0, value % 2 == 1
