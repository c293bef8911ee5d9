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

"""Ocean state snapshots and the hydrostatic diagnostics that produce them."""

from __future__ import annotations

import dataclasses

from seamount import typing
from seamount import unstructured_mesh
from seamount import vertical_grids

import jax
import jax.numpy as jnp
import tree_math


Array = typing.Array

INDEX_TEMPERATURE = 0
INDEX_SALINITY = 1

# For consistency with commonly accepted notation, we use Greek letters within
# some of the functions below.
# pylint: disable=invalid-name


@tree_math.struct
class State:
  """A read-only snapshot of the ocean fields used by momentum tendencies.

  The expected shapes are described in terms of # of layers `h`, # of cells
  `c` and # of active tracers `n`.

  Attributes:
    ssh: sea surface height of shape [c].
    surface_pressure: pressure applied at the sea surface of shape [c].
    pressure: pressure at layer mid-points of shape [h, c].
    montgomery_potential: Montgomery potential of shape [h, c].
    z_mid: (negative) height of layer mid-points of shape [h, c].
    density: in-situ density of shape [h, c].
    potential_density: potential density of shape [h, c].
    thermal_expansion_coeff: `-(1/ρ) ∂ρ/∂T` of shape [h, c].
    saline_contraction_coeff: `(1/ρ) ∂ρ/∂S` of shape [h, c].
    tracers: active tracers of shape [n, h, c].
  """

  ssh: Array
  surface_pressure: Array
  pressure: Array
  montgomery_potential: Array
  z_mid: Array
  density: Array
  potential_density: Array
  thermal_expansion_coeff: Array
  saline_contraction_coeff: Array
  tracers: Array


class StateShapeError(Exception):
  """Exceptions for unexpected state shapes."""


def validate_state_shape(state: State, mesh: unstructured_mesh.Mesh):
  """Validates that values in `state` have shapes compatible with `mesh`."""
  surface_shape = (mesh.n_cells,)
  layer_shape = (mesh.layers, mesh.n_cells)
  for name in ('ssh', 'surface_pressure'):
    shape = jnp.shape(getattr(state, name))
    if shape != surface_shape:
      raise StateShapeError(
          f'Expected {name} shape {surface_shape}; got shape {shape}.'
      )
  for name in ('pressure', 'montgomery_potential', 'z_mid', 'density',
               'potential_density', 'thermal_expansion_coeff',
               'saline_contraction_coeff'):
    shape = jnp.shape(getattr(state, name))
    if shape != layer_shape:
      raise StateShapeError(
          f'Expected {name} shape {layer_shape}; got shape {shape}.'
      )
  tracers_shape = jnp.shape(state.tracers)
  if len(tracers_shape) != 3 or tracers_shape[1:] != layer_shape:
    raise StateShapeError(
        f'Expected tracers shape (n, {mesh.layers}, {mesh.n_cells}); '
        f'got shape {tracers_shape}.'
    )


@dataclasses.dataclass(frozen=True)
class LinearEquationOfState:
  """Density as a linear function of temperature and salinity.

    ρ = ρ_ref - α (T - T_ref) + β (S - S_ref)

  Attributes:
    density_ref: reference density in kg m⁻³.
    alpha: thermal expansion in kg m⁻³ °C⁻¹.
    beta: saline contraction in kg m⁻³ PSU⁻¹.
    temperature_ref: reference temperature in °C.
    salinity_ref: reference salinity in PSU.
  """

  density_ref: float = 1000.0
  alpha: float = 0.2
  beta: float = 0.8
  temperature_ref: float = 5.0
  salinity_ref: float = 35.0

  def __call__(
      self, temperature: Array, salinity: Array
  ) -> tuple[jax.Array, jax.Array, jax.Array]:
    """Returns density and the thermal/saline coefficients (divided by ρ)."""
    density = (
        self.density_ref
        - self.alpha * (jnp.asarray(temperature) - self.temperature_ref)
        + self.beta * (jnp.asarray(salinity) - self.salinity_ref)
    )
    return density, self.alpha / density, self.beta / density


@jax.named_call
def z_mid_from_thickness(layer_thickness: Array, bottom_depth: Array) -> Array:
  """Heights of layer mid-points for columns resting on `bottom_depth`.

  Args:
    layer_thickness: thickness of each layer of shape [h, c].
    bottom_depth: positive depth of the sea floor of shape [c].

  Returns:
    Array of shape [h, c] with `z_mid[k] = -bottom_depth + Σ_{j>=k} h[j] -
    h[k] / 2`.
  """
  layer_thickness = jnp.asarray(layer_thickness)
  z_top = -bottom_depth + vertical_grids.cumulative_layer_integral(
      jnp.ones_like(layer_thickness), layer_thickness, downward=False)
  return z_top - 0.5 * layer_thickness


@jax.named_call
def hydrostatic_pressure(
    density: Array,
    layer_thickness: Array,
    surface_pressure: Array,
    gravity: float,
) -> Array:
  """Pressure at layer mid-points from hydrostatic balance.

    p[0] = p_s + g ρ[0] h[0] / 2
    p[k] = p[k-1] + g (ρ[k-1] h[k-1] + ρ[k] h[k]) / 2

  Args:
    density: density of shape [h, c].
    layer_thickness: layer thickness of shape [h, c].
    surface_pressure: pressure at the sea surface of shape [c].
    gravity: gravitational acceleration.

  Returns:
    Mid-layer pressure of shape [h, c].
  """
  weight = jnp.asarray(density) * layer_thickness
  column_weight = vertical_grids.cumulative_layer_integral(
      density, layer_thickness)
  return surface_pressure + gravity * (column_weight - 0.5 * weight)


@jax.named_call
def montgomery_potential(
    density: Array,
    layer_thickness: Array,
    ssh: Array,
    gravity: float,
    surface_pressure: Array = 0.0,
) -> Array:
  """Montgomery potential `M = p/ρ + g z` of stacked layers of constant density.

    M[0] = g η + p_s / ρ[0]
    M[k] = M[k-1] + p_top[k] (1/ρ[k] - 1/ρ[k-1])

  where `p_top[k]` is the pressure at the top of layer `k`, including the
  surface pressure `p_s`.

  Args:
    density: density of shape [h, c].
    layer_thickness: layer thickness of shape [h, c].
    ssh: sea surface height of shape [c].
    gravity: gravitational acceleration.
    surface_pressure: pressure at the sea surface of shape [c].

  Returns:
    Montgomery potential of shape [h, c].
  """
  density = jnp.asarray(density)
  weight = density * layer_thickness
  p_top = surface_pressure + gravity * (
      vertical_grids.cumulative_layer_integral(density, layer_thickness)
      - weight)
  increments = p_top[1:] * (1 / density[1:] - 1 / density[:-1])
  surface = (gravity * jnp.asarray(ssh) + p_top[0] / density[0])[jnp.newaxis]
  return jnp.concatenate(
      [surface, surface + jnp.cumsum(increments, axis=0)], axis=0)


def diagnose_state(
    layer_thickness: Array,
    bottom_depth: Array,
    tracers: Array,
    equation_of_state: LinearEquationOfState,
    gravity: float,
    surface_pressure: Array | None = None,
    index_temperature: int = INDEX_TEMPERATURE,
    index_salinity: int = INDEX_SALINITY,
) -> State:
  """Builds a hydrostatically consistent `State` from prognostic fields.

  Args:
    layer_thickness: layer thickness of shape [h, c].
    bottom_depth: positive depth of the sea floor of shape [c].
    tracers: active tracers of shape [n, h, c].
    equation_of_state: maps temperature and salinity to density.
    gravity: gravitational acceleration.
    surface_pressure: optional pressure at the sea surface of shape [c].
      Defaults to zero.
    index_temperature: index of temperature in `tracers`.
    index_salinity: index of salinity in `tracers`.

  Returns:
    A `State` whose ssh, pressure, mid-layer heights, Montgomery potential and
    density-related fields are mutually consistent.
  """
  layer_thickness = jnp.asarray(layer_thickness)
  bottom_depth = jnp.asarray(bottom_depth)
  tracers = jnp.asarray(tracers)
  if surface_pressure is None:
    surface_pressure = jnp.zeros_like(bottom_depth)
  ssh = layer_thickness.sum(axis=0) - bottom_depth
  density, thermal_expansion, saline_contraction = equation_of_state(
      tracers[index_temperature], tracers[index_salinity])
  return State(
      ssh=ssh,
      surface_pressure=surface_pressure,
      pressure=hydrostatic_pressure(
          density, layer_thickness, surface_pressure, gravity),
      montgomery_potential=montgomery_potential(
          density, layer_thickness, ssh, gravity, surface_pressure),
      z_mid=z_mid_from_thickness(layer_thickness, bottom_depth),
      density=density,
      potential_density=density,
      thermal_expansion_coeff=thermal_expansion,
      saline_contraction_coeff=saline_contraction,
      tracers=tracers,
  )


# pylint: enable=invalid-name
