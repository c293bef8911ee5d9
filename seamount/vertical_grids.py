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

"""Terrain-following vertical grids for ocean columns.

A column of water between the sea surface and the sea floor is divided into
layers whose interfaces sit at fixed fractions of the local water depth, so
that layer surfaces follow the bathymetry.
"""

from __future__ import annotations

import dataclasses

from seamount import typing

import jax
import jax.numpy as jnp
import numpy as np


Array = typing.Array


@dataclasses.dataclass(frozen=True, eq=False)
class VerticalGrid:
  """Interface locations of an ocean column as fractions of its depth.

  Entry 0 is the sea surface and entry `layers` is the sea floor, so a grid of
  `n` layers holds `n + 1` interface locations.

  Attributes:
    interface_locations: strictly increasing fractions, from 0 to 1.
  """

  interface_locations: np.ndarray

  def __post_init__(self):
    locations = np.asarray(self.interface_locations, dtype=float)
    object.__setattr__(self, 'interface_locations', locations)
    if locations.ndim != 1 or locations.size < 2:
      raise ValueError(
          'Interface locations must be a 1-d array of at least two values; '
          f'got shape {locations.shape}.'
      )
    if locations[0] != 0.0 or not np.isclose(locations[-1], 1.0):
      raise ValueError(
          'The column must span the sea surface (0) to the sea floor (1); '
          f'got interface locations from {locations[0]} to {locations[-1]}.'
      )
    if np.any(np.diff(locations) <= 0):
      raise ValueError(
          'Every layer must have positive thickness; got interface '
          f'locations {locations.tolist()}.'
      )

  @classmethod
  def uniform(cls, layers: int) -> VerticalGrid:
    if layers <= 0:
      raise ValueError(f'Expected a positive number of layers, got {layers}')
    return cls(np.linspace(0, 1, layers + 1))

  @property
  def layers(self) -> int:
    return self.interface_locations.size - 1

  @property
  def layer_thickness(self) -> np.ndarray:
    """The fraction of the column occupied by each layer."""
    return np.diff(self.interface_locations)

  def ref_bottom_depth(self, max_depth: Array) -> jax.Array:
    """Resting depth of the bottom of each layer in the deepest column."""
    return max_depth * jnp.asarray(self.interface_locations[1:])

  def ref_z_mid(self, max_depth: Array) -> jax.Array:
    """Resting (negative) height of each layer mid-point in the deepest column."""
    mid = 0.5 * (self.interface_locations[1:] + self.interface_locations[:-1])
    return -max_depth * jnp.asarray(mid)

  def split_column(self, column_thickness: Array) -> jax.Array:
    """Divides per-cell column thicknesses into layers of shape [layers, ...]."""
    column_thickness = jnp.asarray(column_thickness)
    fractions = self.layer_thickness.reshape(
        (-1,) + (1,) * column_thickness.ndim)
    return fractions * column_thickness


@jax.named_call
def cumulative_layer_integral(
    x: Array,
    layer_thickness: Array,
    axis: int = 0,
    downward: bool = True,
) -> jax.Array:
  """Approximates the integral of `x` over depth, layer by layer.

  Uses a midpoint rule, treating `x` as constant within each layer, to
  approximate

    ∫x dz

  from the sea surface down to the bottom of each layer if `downward` is True,
  and from the sea floor up to the top of each layer otherwise.

  Args:
    x: values located at layer mid-points, with layers along `axis`.
    layer_thickness: layer thicknesses, broadcastable against `x`.
    axis: the axis indexing layers. Defaults to 0, the leading axis of
      `[layers, cells]` fields.
    downward: the direction of the integral.

  Returns:
    An array with the same shape as `x` holding the partial integrals.
  """
  xdz = jnp.asarray(x) * jnp.asarray(layer_thickness)
  if downward:
    return jnp.cumsum(xdz, axis=axis)
  else:
    return jnp.flip(jnp.cumsum(jnp.flip(xdz, axis), axis), axis)
