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

"""Initial conditions for the parabolic bowl wetting-and-drying test case.

The analytic solution describes a periodically oscillating free surface in a
rotating, frictionless paraboloid basin [1]. The basin drains and floods near
its rim, which exercises the minimum-thickness treatment of dry cells.

  [1]: Thacker, William Carlisle. "Some exact solutions to the nonlinear
       shallow-water wave equations." Journal of Fluid Mechanics 107 (1981):
       499-508.
"""

from typing import NamedTuple

from absl import logging
from seamount import ocean_state
from seamount import pressure_gradient
from seamount import typing
from seamount import vertical_grids

import jax
import jax.numpy as jnp
import numpy as np


Array = typing.Array
Numeric = typing.Numeric

# Tolerance below which the analytic water depth is considered dry.
EPS = 1.0e-10


class ParabolicBowlParameters(NamedTuple):
  """Parameters of the parabolic bowl solution."""

  gravity: Numeric
  coriolis_parameter: Numeric
  # Frequency of the free surface oscillation.
  omega: Numeric
  # Depth of the bowl at its center.
  b0: Numeric
  # Amplitude of the initial free surface displacement at the center.
  eta0: Numeric
  drying_min_cell_height: Numeric
  vertical_levels: int
  temperature: Numeric = 10.0
  salinity: Numeric = 30.0


def get_default_parameters() -> ParabolicBowlParameters:
  return ParabolicBowlParameters(
      gravity=9.81,
      coriolis_parameter=1.0e-4,
      omega=1.4e-4,
      b0=50.0,
      eta0=2.0,
      drying_min_cell_height=1.0e-3,
      vertical_levels=3,
  )


def validate_parameters(parameters: ParabolicBowlParameters):
  """Raises if `parameters` do not describe a bounded bowl."""
  if parameters.vertical_levels <= 0:
    logging.error(
        'Validation failed for parabolic_bowl. Not given a usable value for '
        'vertical levels: %s', parameters.vertical_levels)
    raise pressure_gradient.InvalidConfigurationError(
        'Expected a positive number of vertical levels; '
        f'got {parameters.vertical_levels}.')
  if parameters.omega**2 <= parameters.coriolis_parameter**2:
    raise ValueError(
        'Expected omega**2 > coriolis_parameter**2; '
        f'got omega={parameters.omega}, '
        f'coriolis_parameter={parameters.coriolis_parameter}.')


def get_length_scale(parameters: ParabolicBowlParameters) -> Numeric:
  """Radius `L` at which the resting bowl meets the surface."""
  num = 8.0 * parameters.gravity * parameters.b0
  den = parameters.omega**2 - parameters.coriolis_parameter**2
  return np.sqrt(num / den)


def get_amplitude_ratio(parameters: ParabolicBowlParameters) -> Numeric:
  """Dimensionless amplitude `C` of the free surface oscillation."""
  b0, eta0 = parameters.b0, parameters.eta0
  return ((b0 + eta0)**2 - b0**2) / ((b0 + eta0)**2 + b0**2)


def get_bathymetry(
    x: Array, y: Array, parameters: ParabolicBowlParameters
) -> jax.Array:
  """Positive bottom depth `b0 (1 - r²/L²)`; negative above the rim."""
  r2 = jnp.asarray(x)**2 + jnp.asarray(y)**2
  return parameters.b0 * (1.0 - r2 / get_length_scale(parameters)**2)


def get_ssh(
    x: Array, y: Array, parameters: ParabolicBowlParameters
) -> jax.Array:
  """Analytic sea surface height at time zero."""
  c = get_amplitude_ratio(parameters)
  one_m_c2 = 1.0 - c**2
  one_m_c = 1.0 - c
  r2 = jnp.asarray(x)**2 + jnp.asarray(y)**2
  ssh = (
      np.sqrt(one_m_c2) / one_m_c
      - 1.0
      - r2 / get_length_scale(parameters)**2
      * (one_m_c2 / one_m_c**2 - 1.0)
  )
  return parameters.b0 * ssh


def get_velocity(
    x: Array, y: Array, parameters: ParabolicBowlParameters
) -> tuple[jax.Array, jax.Array]:
  """Analytic `(u, v)` at time zero, zero where the bowl is dry."""
  x = jnp.asarray(x)
  y = jnp.asarray(y)
  c = get_amplitude_ratio(parameters)
  one_m_c2 = 1.0 - c**2
  one_m_c = 1.0 - c
  r2 = x**2 + y**2
  depth = parameters.b0 * (
      np.sqrt(one_m_c2) / one_m_c
      - r2 / get_length_scale(parameters)**2 * (one_m_c2 / one_m_c**2))
  factor = (
      0.5 * parameters.coriolis_parameter * (np.sqrt(one_m_c2) + c - 1.0)
      / one_m_c)
  u = jnp.where(depth < EPS, 0.0, -factor * y)
  v = jnp.where(depth < EPS, 0.0, factor * x)
  return u, v


def center_coordinates(
    x_cell: Array, y_cell: Array, *coordinates: Array
) -> tuple[np.ndarray, ...]:
  """Shifts coordinates so that the cell extent is centered on the origin.

  Args:
    x_cell: x coordinates of cell centers.
    y_cell: y coordinates of cell centers.
    *coordinates: further `(x, y)` pairs, e.g. of edges, shifted by the same
      amount.

  Returns:
    The shifted `x_cell, y_cell` followed by the shifted `coordinates`.
  """
  x_shift = 0.5 * (np.min(x_cell) + np.max(x_cell))
  y_shift = 0.5 * (np.min(y_cell) + np.max(y_cell))
  if len(coordinates) % 2:
    raise ValueError('`coordinates` must come in (x, y) pairs.')
  shifts = (x_shift, y_shift) * (1 + len(coordinates) // 2)
  return tuple(
      np.asarray(c) - s
      for c, s in zip((x_cell, y_cell) + coordinates, shifts))


class ParabolicBowlState(NamedTuple):
  """Initial condition of the parabolic bowl on a mesh."""

  state: ocean_state.State
  layer_thickness: Array
  resting_thickness: Array
  bottom_depth: Array
  normal_velocity: Array
  ref_bottom_depth: Array
  ref_z_mid: Array


def initial_state(
    x_cell: Array,
    y_cell: Array,
    x_edge: Array,
    y_edge: Array,
    angle_edge: Array,
    parameters: ParabolicBowlParameters | None = None,
    grid: vertical_grids.VerticalGrid | None = None,
    equation_of_state: ocean_state.LinearEquationOfState | None = None,
    adjust_domain_center: bool = True,
) -> ParabolicBowlState:
  """Evaluates the parabolic bowl solution on the cells and edges of a mesh.

  Every cell uses all `parameters.vertical_levels` layers, with interfaces at
  fixed fractions of the local water column. Columns are never thinner than
  `vertical_levels * drying_min_cell_height`.

  Args:
    x_cell: x coordinates of cell centers.
    y_cell: y coordinates of cell centers.
    x_edge: x coordinates of edge mid-points.
    y_edge: y coordinates of edge mid-points.
    angle_edge: angle of each edge normal with respect to the x axis.
    parameters: bowl parameters, defaults to `get_default_parameters()`.
    grid: vertical grid, defaults to uniform layers.
    equation_of_state: defaults to `LinearEquationOfState()`.
    adjust_domain_center: if True, coordinates are shifted so that the center
      of the cell extent coincides with the center of the bowl.

  Returns:
    A `ParabolicBowlState`. Its fields have shapes [layers, cells] except
    `bottom_depth` of shape [cells], `normal_velocity` of shape [layers, edges]
    and the resting profiles `ref_bottom_depth` and `ref_z_mid` of shape
    [layers], taken in the deepest column.
  """
  if parameters is None:
    parameters = get_default_parameters()
  validate_parameters(parameters)
  levels = parameters.vertical_levels
  if grid is None:
    grid = vertical_grids.VerticalGrid.uniform(levels)
  if grid.layers != levels:
    raise ValueError(
        f'Expected a grid with {levels} layers; got {grid.layers}.')
  if equation_of_state is None:
    equation_of_state = ocean_state.LinearEquationOfState()

  if adjust_domain_center:
    x_cell, y_cell, x_edge, y_edge = center_coordinates(
        x_cell, y_cell, x_edge, y_edge)

  bottom_depth = get_bathymetry(x_cell, y_cell, parameters)
  ssh = get_ssh(x_cell, y_cell, parameters)
  min_column = levels * (parameters.drying_min_cell_height + EPS)
  column_thickness = jnp.maximum(ssh + bottom_depth, min_column)
  layer_thickness = jnp.maximum(
      parameters.drying_min_cell_height + EPS,
      grid.split_column(column_thickness))
  resting_thickness = grid.split_column(bottom_depth)
  max_bottom_depth = jnp.max(bottom_depth)

  u, v = get_velocity(x_edge, y_edge, parameters)
  normal_velocity = u * jnp.cos(angle_edge) + v * jnp.sin(angle_edge)
  normal_velocity = jnp.broadcast_to(
      normal_velocity, (levels,) + normal_velocity.shape)

  n_cells = bottom_depth.shape[0]
  tracers = jnp.stack([
      jnp.full((levels, n_cells), parameters.temperature),
      jnp.full((levels, n_cells), parameters.salinity),
  ])
  state = ocean_state.diagnose_state(
      layer_thickness,
      bottom_depth,
      tracers,
      equation_of_state,
      parameters.gravity,
  )
  logging.info(
      'Parabolic bowl initialized on %d cells with %d layers.',
      n_cells, levels)
  return ParabolicBowlState(
      state=state,
      layer_thickness=layer_thickness,
      resting_thickness=resting_thickness,
      bottom_depth=bottom_depth,
      normal_velocity=normal_velocity,
      ref_bottom_depth=grid.ref_bottom_depth(max_bottom_depth),
      ref_z_mid=grid.ref_z_mid(max_bottom_depth),
  )
