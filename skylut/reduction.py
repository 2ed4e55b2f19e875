"""Summation of per-worker partial results into one value per texel.

A texel is computed by a group of ``group_size`` cooperating workers, each
producing one 3-channel partial sample. Partials live in a field of shape
``(width, height, group_size)`` and are reduced into a ``(width, height)``
field of totals.

Two interchangeable strategies are provided:

- :class:`CollectiveSum` uses taichi's native reduction of ``+=`` on global
  fields inside parallel loops, which backends lower to atomic adds with
  warp/thread-local pre-reduction. It needs no scratch memory and no
  explicit barriers.
- :class:`TreeReduction` halves the group in ``log2(group_size)`` steps
  through a :class:`GroupScratch` arena, with a barrier after the initial
  write and after every halving step. It is the portable fallback and its
  summation order is fixed, so its results are bit-reproducible.
"""

import logging

import taichi as ti
from taichi.lang import impl

from skylut.math_utils import is_power_of_two, log2_int

logger = logging.getLogger(__name__)

# backends whose atomic float adds go through the native reduction path
COLLECTIVE_ARCHS = tuple(getattr(ti, name) for name in ("x64", "arm64", "cuda", "amdgpu") if hasattr(ti, name))


@ti.data_oriented
class GroupScratch:
    """Shared reduction storage for every group of a dispatch, one slot per worker."""

    def __init__(self, shape, group_size: int):
        if not is_power_of_two(group_size):
            raise ValueError(f"group size must be a power of 2, got {group_size}")
        self.shape = tuple(shape)
        self.group_size = group_size
        self.buffer = ti.Vector.field(3, dtype=ti.f32, shape=self.shape + (group_size,))

    def barrier(self):
        # every kernel launched so far has finished writing the buffer
        ti.sync()


@ti.data_oriented
class CollectiveSum:
    name = "collective"
    needs_scratch = False

    def reduce(self, partials, totals, scratch=None):
        totals.fill(0.0)
        self._accumulate(partials, totals)

    @ti.kernel
    def _accumulate(self, partials: ti.template(), totals: ti.template()):
        for x, y, i in partials:
            totals[x, y] += partials[x, y, i]


@ti.data_oriented
class TreeReduction:
    name = "tree"
    needs_scratch = True

    def reduce(self, partials, totals, scratch):
        if scratch is None:
            raise ValueError("tree reduction needs a GroupScratch arena")
        group_size = partials.shape[-1]
        if scratch.group_size != group_size or scratch.shape != tuple(totals.shape):
            raise ValueError(f"scratch arena {scratch.shape + (scratch.group_size,)} does not match "
                             f"partials {partials.shape}")

        self._store(partials, scratch.buffer)
        scratch.barrier()

        stride = group_size // 2
        for _ in range(log2_int(group_size)):
            self._halve(scratch.buffer, stride)
            scratch.barrier()
            stride //= 2

        self._collect(scratch.buffer, totals)

    @ti.kernel
    def _store(self, partials: ti.template(), buffer: ti.template()):
        for x, y, i in partials:
            buffer[x, y, i] = partials[x, y, i]

    @ti.kernel
    def _halve(self, buffer: ti.template(), stride: ti.i32):
        for x, y, i in ti.ndrange(buffer.shape[0], buffer.shape[1], stride):
            buffer[x, y, i] += buffer[x, y, i + stride]

    @ti.kernel
    def _collect(self, buffer: ti.template(), totals: ti.template()):
        # slot 0 holds the group total
        for x, y in totals:
            totals[x, y] = buffer[x, y, 0]


def select_reduction(strategy: str = "auto"):
    """Build the reduction for ``strategy``; "auto" picks by the active taichi backend."""
    if strategy == "auto":
        arch = impl.current_cfg().arch
        strategy = CollectiveSum.name if arch in COLLECTIVE_ARCHS else TreeReduction.name
        logger.debug("reduction strategy %s selected for arch %s", strategy, arch)
    if strategy == CollectiveSum.name:
        return CollectiveSum()
    if strategy == TreeReduction.name:
        return TreeReduction()
    raise ValueError(f"unknown reduction strategy {strategy!r}")
