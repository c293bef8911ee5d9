# Copyright 2023 Google LLC

# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     https://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Read-only view of a horizontally unstructured, vertically layered mesh."""

from __future__ import annotations

import dataclasses

from seamount import typing

import numpy as np


IntArray = typing.IntArray


@dataclasses.dataclass(frozen=True)
class Mesh:
  """Connectivity and geometry consumed by edge-based tendency computations.

  Cells are polygons of the horizontal mesh; each edge separates exactly two
  cells. Level indices are zero-based and ranges are inclusive. Edges are
  ordered so that the first `n_edges_owned` are owned by this process and the
  remainder are halo edges.

  Attributes:
    cells_on_edge: integer array of shape [2, edges] holding the two cells
      neighbouring each edge.
    dc_edge: distance between the centers of the cells on each edge.
    angle_edge: angle between the edge normal and the zonal direction.
    edge_mask: array of shape [layers, edges], one where the edge is active.
    min_level_edge_bot: shallowest layer that is active on both sides.
    max_level_edge_top: deepest layer that is active on both sides.
    min_level_cell: shallowest active layer of each cell.
    max_level_cell: deepest active layer of each cell.
    n_edges_owned: number of leading edges owned by this process.
  """

  cells_on_edge: IntArray
  dc_edge: np.ndarray
  angle_edge: np.ndarray
  edge_mask: np.ndarray
  min_level_edge_bot: IntArray
  max_level_edge_top: IntArray
  min_level_cell: IntArray
  max_level_cell: IntArray
  n_edges_owned: int | None = None

  def __post_init__(self):
    for name in ('cells_on_edge', 'min_level_edge_bot', 'max_level_edge_top',
                 'min_level_cell', 'max_level_cell'):
      object.__setattr__(self, name, np.asarray(getattr(self, name), int))
    for name in ('dc_edge', 'angle_edge', 'edge_mask'):
      object.__setattr__(self, name, np.asarray(getattr(self, name), float))
    if self.n_edges_owned is None:
      object.__setattr__(self, 'n_edges_owned', self.n_edges)

    if self.cells_on_edge.ndim != 2 or self.cells_on_edge.shape[0] != 2:
      raise ValueError(
          'Expected `cells_on_edge` of shape [2, edges]; '
          f'got shape {self.cells_on_edge.shape}.'
      )
    for name in ('dc_edge', 'angle_edge', 'min_level_edge_bot',
                 'max_level_edge_top'):
      if getattr(self, name).shape != (self.n_edges,):
        raise ValueError(
            f'Expected `{name}` of shape {(self.n_edges,)}; '
            f'got shape {getattr(self, name).shape}.'
        )
    if self.edge_mask.ndim != 2 or self.edge_mask.shape[1] != self.n_edges:
      raise ValueError(
          f'Expected `edge_mask` of shape [layers, {self.n_edges}]; '
          f'got shape {self.edge_mask.shape}.'
      )
    if self.max_level_cell.shape != self.min_level_cell.shape:
      raise ValueError(
          '`min_level_cell` and `max_level_cell` must have the same shape; '
          f'got {self.min_level_cell.shape} and {self.max_level_cell.shape}.'
      )
    if self.cells_on_edge.size and not (
        0 <= self.cells_on_edge.min()
        and self.cells_on_edge.max() < self.n_cells
    ):
      raise ValueError(
          f'`cells_on_edge` must index {self.n_cells} cells; got values in '
          f'[{self.cells_on_edge.min()}, {self.cells_on_edge.max()}].'
      )
    if not 0 <= self.n_edges_owned <= self.n_edges:
      raise ValueError(
          f'Expected 0 <= n_edges_owned <= {self.n_edges}; '
          f'got {self.n_edges_owned}.'
      )
    if np.any(self.min_level_edge_bot > self.max_level_edge_top):
      bad = np.flatnonzero(self.min_level_edge_bot > self.max_level_edge_top)
      raise ValueError(
          f'Expected min_level_edge_bot <= max_level_edge_top; violated on '
          f'edges {bad.tolist()}.'
      )
    if np.any(self.min_level_edge_bot < 0) or np.any(
        self.max_level_edge_top >= self.layers
    ):
      raise ValueError(
          f'Edge level ranges must lie within [0, {self.layers - 1}].'
      )

  @property
  def n_cells(self) -> int:
    return self.min_level_cell.shape[0]

  @property
  def n_edges(self) -> int:
    return self.cells_on_edge.shape[1]

  @property
  def layers(self) -> int:
    return self.edge_mask.shape[0]

  @property
  def owned_cells_on_edge(self) -> IntArray:
    """Neighbouring cells of owned edges, shape [2, n_edges_owned]."""
    return self.cells_on_edge[:, :self.n_edges_owned]

  @classmethod
  def from_cell_levels(
      cls,
      cells_on_edge: IntArray,
      dc_edge: np.ndarray,
      angle_edge: np.ndarray,
      min_level_cell: IntArray,
      max_level_cell: IntArray,
      layers: int,
      n_edges_owned: int | None = None,
  ) -> Mesh:
    """Builds a `Mesh`, deriving edge level ranges from the cells they join.

    An edge is wet only where both of its cells are wet, so its active range is
    the intersection of the two cells' ranges and its mask is one inside that
    range and zero elsewhere.

    Args:
      cells_on_edge: integer array of shape [2, edges].
      dc_edge: distance between cell centers across each edge.
      angle_edge: angle of each edge normal.
      min_level_cell: shallowest active layer of each cell.
      max_level_cell: deepest active layer of each cell.
      layers: total number of vertical layers.
      n_edges_owned: number of leading edges owned by this process.

    Returns:
      A `Mesh` with `min_level_edge_bot`, `max_level_edge_top` and `edge_mask`
      filled in.
    """
    cells_on_edge = np.asarray(cells_on_edge, int)
    min_level_cell = np.asarray(min_level_cell, int)
    max_level_cell = np.asarray(max_level_cell, int)
    cell1, cell2 = cells_on_edge
    min_level_edge_bot = np.maximum(
        min_level_cell[cell1], min_level_cell[cell2])
    max_level_edge_top = np.minimum(
        max_level_cell[cell1], max_level_cell[cell2])
    k = np.arange(layers)[:, np.newaxis]
    edge_mask = ((k >= min_level_edge_bot) & (k <= max_level_edge_top))
    return cls(
        cells_on_edge=cells_on_edge,
        dc_edge=dc_edge,
        angle_edge=angle_edge,
        edge_mask=edge_mask.astype(float),
        min_level_edge_bot=min_level_edge_bot,
        max_level_edge_top=max_level_edge_top,
        min_level_cell=min_level_cell,
        max_level_cell=max_level_cell,
        n_edges_owned=n_edges_owned,
    )
