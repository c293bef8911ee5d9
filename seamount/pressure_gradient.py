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

"""Momentum tendencies due to the horizontal pressure gradient force.

Tendencies are computed at every owned edge of an unstructured mesh and every
layer that is active on both sides of that edge, using one of several
discretizations of the pressure gradient. The density-Jacobian formulations
follow

  Shchepetkin, A. F., and J. C. McWilliams. "A method for computing horizontal
  pressure-gradient force in an oceanic model with a nonaligned vertical
  coordinate." Journal of Geophysical Research 108, no. C3 (2003).
"""

from __future__ import annotations

import dataclasses
from typing import Any, ClassVar, NamedTuple

from absl import logging
from seamount import ocean_state
from seamount import typing
from seamount import unstructured_mesh

import jax
from jax import lax
import jax.numpy as jnp
import numpy as np


Array = typing.Array

GRAVITY = 9.80616  # m s⁻²
RHO_SW = 1026.0  # kg m⁻³

# Time integrators that advance different regions with different step sizes.
LTS_TIME_INTEGRATORS = ('LTS', 'FB_LTS')

# For consistency with commonly accepted notation, we use Greek letters within
# some of the functions below.
# pylint: disable=invalid-name

#  =============================================================================
#  Configuration
#
#  Immutable configuration and the constants precomputed from it once per run.
#  =============================================================================


class InvalidConfigurationError(Exception):
  """Raised when the pressure gradient configuration cannot be used."""


_NAMELIST_OPTIONS = {
    'config_pressure_gradient_type': 'pressure_gradient_type',
    'config_density0': 'density0',
    'config_common_level_weight': 'common_level_weight',
    'config_time_integrator': 'time_integrator',
    'config_disable_vel_pgrad': 'disable_vel_pgrad',
    'config_zonal_ssh_grad': 'zonal_ssh_grad',
    'config_meridional_ssh_grad': 'meridional_ssh_grad',
}


@dataclasses.dataclass(frozen=True)
class PressureGradientConfig:
  """Configuration of the horizontal pressure gradient.

  Attributes:
    pressure_gradient_type: name of the discretization, one of the `name`s of
      the `PressureGradientScheme` subclasses.
    density0: reference density of sea water ρ₀.
    gravity: gravitational acceleration g.
    common_level_weight: weight `w` in [0, 1] blending the two estimates of the
      common level used by the Jacobian formulations.
    time_integrator: name of the time integration method.
    disable_vel_pgrad: if True, the pressure gradient is not applied.
    zonal_ssh_grad: zonal sea surface height gradient for 'constant_forced'.
    meridional_ssh_grad: meridional sea surface height gradient for
      'constant_forced'.
    index_temperature: index of temperature in the active tracers.
    index_salinity: index of salinity in the active tracers.
  """

  pressure_gradient_type: str = 'Jacobian_from_TS'
  density0: float = RHO_SW
  gravity: float = GRAVITY
  common_level_weight: float = 0.5
  time_integrator: str = 'split_explicit'
  disable_vel_pgrad: bool = False
  zonal_ssh_grad: float = 0.0
  meridional_ssh_grad: float = 0.0
  index_temperature: int = ocean_state.INDEX_TEMPERATURE
  index_salinity: int = ocean_state.INDEX_SALINITY

  @classmethod
  def from_namelist(
      cls, namelist: typing.Namelist, **overrides: Any
  ) -> PressureGradientConfig:
    """Constructs a config from `config_*` namelist options.

    Options unrelated to the pressure gradient are ignored.

    Args:
      namelist: mapping from namelist option names to values.
      **overrides: values for fields that are not namelist options, such as
        `gravity` or the tracer indices.

    Returns:
      A `PressureGradientConfig`.
    """
    kwargs = {
        field: namelist[option]
        for option, field in _NAMELIST_OPTIONS.items()
        if option in namelist
    }
    if 'pressure_gradient_type' in kwargs:
      kwargs['pressure_gradient_type'] = kwargs['pressure_gradient_type'].strip()
    kwargs.update(overrides)
    return cls(**kwargs)

  def asdict(self):
    return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True)
class PressureGradientConstants:
  """Constants shared by every evaluation of the pressure gradient.

  Attributes:
    gravity: gravitational acceleration g.
    density0_inv: `1 / ρ₀`.
    gdensity0_inv: `g / ρ₀`.
    common_level_weight: weight `w` blending the common-level estimates.
    pgrad_off: if True, tendencies are left untouched.
    time_integrator_lts: whether local time stepping is active.
  """

  gravity: float
  density0_inv: float
  gdensity0_inv: float
  common_level_weight: float
  pgrad_off: bool
  time_integrator_lts: bool


#  =============================================================================
#  Edge Columns
#
#  The view of the state seen by a single edge: the vertical columns of its two
#  neighbouring cells together with the edge geometry.
#  =============================================================================


class EdgeColumns(NamedTuple):
  """State columns on both sides of an edge.

  When batched over edges every leaf gains a trailing edge axis.

  Attributes:
    left: state of the first cell on the edge, with fields of shape [layers].
    right: state of the second cell on the edge.
    inv_dc_edge: inverse distance between the two cell centers.
    angle_edge: angle of the edge normal with respect to the zonal direction.
    edge_mask: active-layer mask of shape [layers].
    k_min: shallowest layer active on both sides.
    k_max: deepest layer active on both sides.
  """

  left: ocean_state.State
  right: ocean_state.State
  inv_dc_edge: Array
  angle_edge: Array
  edge_mask: Array
  k_min: Array
  k_max: Array

  @property
  def layers(self) -> int:
    return self.edge_mask.shape[0]


def gather_edge_columns(
    mesh: unstructured_mesh.Mesh, state: ocean_state.State
) -> EdgeColumns:
  """Gathers the neighbouring cell columns of every owned edge."""
  cell1, cell2 = mesh.owned_cells_on_edge
  owned = slice(0, mesh.n_edges_owned)
  take = lambda idx: lambda x: jnp.take(jnp.asarray(x), idx, axis=-1)
  return EdgeColumns(
      left=jax.tree_util.tree_map(take(cell1), state),
      right=jax.tree_util.tree_map(take(cell2), state),
      inv_dc_edge=1 / jnp.asarray(mesh.dc_edge[owned]),
      angle_edge=jnp.asarray(mesh.angle_edge[owned]),
      edge_mask=jnp.asarray(mesh.edge_mask[:, owned]),
      k_min=jnp.asarray(mesh.min_level_edge_bot[owned]),
      k_max=jnp.asarray(mesh.max_level_edge_top[owned]),
  )


def _active_layers(columns: EdgeColumns) -> jax.Array:
  k = jnp.arange(columns.layers)
  return (k >= columns.k_min) & (k <= columns.k_max)


def _masked(columns: EdgeColumns, tendency: Array) -> jax.Array:
  """Applies the edge mask, zeroing layers outside the active range."""
  tendency = jnp.broadcast_to(tendency, (columns.layers,))
  return jnp.where(_active_layers(columns), columns.edge_mask * tendency, 0.0)


def _pressure_and_z_mid_gradient(
    columns: EdgeColumns, constants: PressureGradientConstants
) -> jax.Array:
  """Unmasked `-(1/ρ₀)(∇p + ρ g ∇z_mid)` at every layer of an edge."""
  left, right = columns.left, columns.right
  return columns.inv_dc_edge * (
      -constants.density0_inv * (right.pressure - left.pressure)
      - constants.gdensity0_inv * 0.5 * (left.density + right.density)
      * (right.z_mid - left.z_mid)
  )


#  =============================================================================
#  Density Jacobian Helpers
#
#  Quantities defined at the internal interfaces of an edge's two columns. For
#  columns of `n` layers each function returns `n - 1` values, where entry
#  `k - 1` refers to the interface between layers `k - 1` and `k`.
#  =============================================================================


def common_level_geometry(
    z_left: Array, z_right: Array, weight: float
) -> tuple[jax.Array, jax.Array]:
  """Returns the Jacobian cell area and the common level `z_Γ` per interface.

  Following Shchepetkin & McWilliams (2003), eqs. 2.7, 2.8, 3.2 and 4.1:

    Area = ½ (z[k-1]ᴸ - z[k]ᴸ + z[k-1]ᴿ - z[k]ᴿ)
    z*   = (z[k-1]ᴿ z[k-1]ᴸ - z[k]ᴿ z[k]ᴸ) / (z[k-1]ᴿ - z[k]ᴿ + z[k-1]ᴸ - z[k]ᴸ)
    z_c  = ¼ (z[k]ᴸ + z[k-1]ᴸ + z[k]ᴿ + z[k-1]ᴿ)
    z_Γ  = (1 - w) z* + w z_c

  The factor Δx of eq. 2.7 is omitted to keep the area in units of length.

  Args:
    z_left: mid-layer heights of the first column, layers along axis 0.
    z_right: mid-layer heights of the second column.
    weight: the blending weight `w`.

  Returns:
    A tuple `(area, z_gamma)` with one fewer entry than the inputs along axis 0.
  """
  zL_up, zL_dn = z_left[:-1], z_left[1:]
  zR_up, zR_dn = z_right[:-1], z_right[1:]
  area = 0.5 * (zL_up - zL_dn + zR_up - zR_dn)
  z_star = (zR_up * zL_up - zR_dn * zL_dn) / (zR_up - zR_dn + zL_up - zL_dn)
  z_c = 0.25 * (zL_dn + zL_up + zR_dn + zR_up)
  z_gamma = (1.0 - weight) * z_star + weight * z_c
  return area, z_gamma


def interpolate_to_common_level(f: Array, z: Array, z_gamma: Array) -> jax.Array:
  """Linearly interpolates `f` between adjacent layers of a column to `z_Γ`."""
  z_up, z_dn = z[:-1], z[1:]
  return (f[1:] * (z_up - z_gamma) + f[:-1] * (z_gamma - z_dn)) / (z_up - z_dn)


def _interface_average(left: Array, right: Array) -> jax.Array:
  """Mean over the four points bracketing each interface of both columns."""
  return 0.25 * (left[1:] + left[:-1] + right[1:] + right[:-1])


def _integrate_jacobian(
    columns: EdgeColumns,
    constants: PressureGradientConstants,
    jacobian: Array,
) -> jax.Array:
  """Accumulates interface Jacobians downward from the top active layer.

  The top active layer takes the pressure-and-z_mid gradient. Each deeper layer
  adds `(g/ρ₀) J[k] / dc` to the running gradient of the layer above.

  Args:
    columns: the edge columns.
    constants: pressure gradient constants.
    jacobian: density Jacobian at internal interfaces, shape [layers - 1].

  Returns:
    Masked tendency of shape [layers].
  """
  k = jnp.arange(columns.layers)
  interior = (k > columns.k_min) & (k <= columns.k_max)
  jacobian = jnp.pad(jacobian, [(1, 0)])
  # Entries outside the active range may be non-finite and must not enter the
  # running sum.
  increments = jnp.where(
      interior,
      constants.gdensity0_inv * jacobian * columns.inv_dc_edge,
      0.0,
  )
  top = _pressure_and_z_mid_gradient(columns, constants)[columns.k_min]

  def step(pgrad, increment):
    pgrad = pgrad + increment
    return pgrad, pgrad

  _, pgrad = lax.scan(step, top, increments)
  return _masked(columns, pgrad)


#  =============================================================================
#  Pressure Gradient Schemes
#
#  One dataclass per discretization. Each maps the columns of a single edge to
#  the tendency contribution at every layer of that edge.
#  =============================================================================


class PressureGradientScheme:
  """Base class of the pressure gradient discretizations."""

  name: ClassVar[str]

  @classmethod
  def from_config(cls, config: PressureGradientConfig) -> PressureGradientScheme:
    del config  # unused.
    return cls()

  def column_tendency(
      self, columns: EdgeColumns, constants: PressureGradientConstants
  ) -> jax.Array:
    """Returns the tendency contribution at every layer of one edge."""
    raise NotImplementedError


@dataclasses.dataclass(frozen=True)
class SSHGradient(PressureGradientScheme):
  """Barotropic gradient `-g ∇η - (1/ρ₀) ∇p_s`.

  With local time stepping the sea surface height forcing is applied by the
  time integrator, so only the surface pressure term remains.
  """

  name: ClassVar[str] = 'ssh_gradient'

  @jax.named_call
  def column_tendency(self, columns, constants):
    left, right = columns.left, columns.right
    gradient = constants.density0_inv * (
        right.surface_pressure - left.surface_pressure)
    if not constants.time_integrator_lts:
      gradient = constants.gravity * (right.ssh - left.ssh) + gradient
    return _masked(columns, -columns.inv_dc_edge * gradient)


@dataclasses.dataclass(frozen=True)
class PressureAndZMid(PressureGradientScheme):
  """Generalized-coordinate gradient `-(1/ρ₀)(∇p + ρ g ∇z_mid)`."""

  name: ClassVar[str] = 'pressure_and_zmid'

  @jax.named_call
  def column_tendency(self, columns, constants):
    return _masked(columns, _pressure_and_z_mid_gradient(columns, constants))


@dataclasses.dataclass(frozen=True)
class MontgomeryPotential(PressureGradientScheme):
  """Gradient of the Montgomery potential, for isopycnal coordinates."""

  name: ClassVar[str] = 'MontgomeryPotential'

  @jax.named_call
  def column_tendency(self, columns, constants):
    left, right = columns.left, columns.right
    return _masked(
        columns,
        -columns.inv_dc_edge
        * (right.montgomery_potential - left.montgomery_potential),
    )


@dataclasses.dataclass(frozen=True)
class MontgomeryPotentialAndDensity(PressureGradientScheme):
  """`-∇M + p ∇(1/σ)` where σ is the potential density.

  See Bleck (2002), eq. 1 and the last equation of appendix A. This
  formulation has not been extensively tested.
  """

  name: ClassVar[str] = 'MontgomeryPotential_and_density'

  @jax.named_call
  def column_tendency(self, columns, constants):
    left, right = columns.left, columns.right
    return _masked(
        columns,
        columns.inv_dc_edge * (
            -(right.montgomery_potential - left.montgomery_potential)
            + 0.5 * (left.pressure + right.pressure)
            * (1 / right.potential_density - 1 / left.potential_density)
        ),
    )


@dataclasses.dataclass(frozen=True)
class JacobianFromDensity(PressureGradientScheme):
  """Finite-volume density Jacobian in common-level form."""

  name: ClassVar[str] = 'Jacobian_from_density'

  @jax.named_call
  def column_tendency(self, columns, constants):
    left, right = columns.left, columns.right
    area, z_gamma = common_level_geometry(
        left.z_mid, right.z_mid, constants.common_level_weight)
    ρL = interpolate_to_common_level(left.density, left.z_mid, z_gamma)
    ρR = interpolate_to_common_level(right.density, right.z_mid, z_gamma)
    return _integrate_jacobian(columns, constants, area * (ρL - ρR))


@dataclasses.dataclass(frozen=True)
class JacobianFromTS(PressureGradientScheme):
  """Density Jacobian assembled from temperature and salinity Jacobians.

  Uses eq. 7.16 of Shchepetkin & McWilliams (2003):

    J(ρ) = -α J(T) + β J(S)

  where α and β are `ρ · thermal_expansion_coeff` and
  `ρ · saline_contraction_coeff` averaged over the four points bracketing each
  interface.

  Attributes:
    index_temperature: index of temperature in the tracers.
    index_salinity: index of salinity in the tracers.
  """

  name: ClassVar[str] = 'Jacobian_from_TS'
  index_temperature: int = ocean_state.INDEX_TEMPERATURE
  index_salinity: int = ocean_state.INDEX_SALINITY

  @classmethod
  def from_config(cls, config):
    return cls(config.index_temperature, config.index_salinity)

  @jax.named_call
  def column_tendency(self, columns, constants):
    left, right = columns.left, columns.right
    area, z_gamma = common_level_geometry(
        left.z_mid, right.z_mid, constants.common_level_weight)

    def jacobian_of(index):
      fL = interpolate_to_common_level(
          left.tracers[index], left.z_mid, z_gamma)
      fR = interpolate_to_common_level(
          right.tracers[index], right.z_mid, z_gamma)
      return area * (fL - fR)

    jacobian_t = jacobian_of(self.index_temperature)
    jacobian_s = jacobian_of(self.index_salinity)
    # The coefficients carry a factor of 1/ρ.
    alpha = _interface_average(
        left.density * left.thermal_expansion_coeff,
        right.density * right.thermal_expansion_coeff)
    beta = _interface_average(
        left.density * left.saline_contraction_coeff,
        right.density * right.saline_contraction_coeff)
    jacobian = -alpha * jacobian_t + beta * jacobian_s
    return _integrate_jacobian(columns, constants, jacobian)


@dataclasses.dataclass(frozen=True)
class ConstantForced(PressureGradientScheme):
  """Spatially uniform forcing by a prescribed sea surface height gradient.

  Attributes:
    zonal_ssh_grad: zonal component of the sea surface height gradient.
    meridional_ssh_grad: meridional component.
  """

  name: ClassVar[str] = 'constant_forced'
  zonal_ssh_grad: float = 0.0
  meridional_ssh_grad: float = 0.0

  @classmethod
  def from_config(cls, config):
    return cls(config.zonal_ssh_grad, config.meridional_ssh_grad)

  @jax.named_call
  def column_tendency(self, columns, constants):
    gradient = (
        self.zonal_ssh_grad * jnp.cos(columns.angle_edge)
        + self.meridional_ssh_grad * jnp.sin(columns.angle_edge)
    )
    return _masked(columns, -constants.gravity * gradient)


SCHEMES: dict[str, type[PressureGradientScheme]] = {
    scheme.name: scheme for scheme in (
        SSHGradient,
        PressureAndZMid,
        MontgomeryPotential,
        MontgomeryPotentialAndDensity,
        JacobianFromDensity,
        JacobianFromTS,
        ConstantForced,
    )
}


#  =============================================================================
#  Initialization and Dispatch
#  =============================================================================


def initialize(
    config: PressureGradientConfig,
) -> tuple[PressureGradientConstants, PressureGradientScheme | None]:
  """Validates `config` and precomputes constants for the pressure gradient.

  Args:
    config: the pressure gradient configuration.

  Returns:
    A tuple `(constants, scheme)`. `scheme` is None when the pressure gradient
    is disabled.

  Raises:
    InvalidConfigurationError: if the configuration names an unknown scheme or
      holds unusable constants. This error is not recoverable.
  """
  time_integrator_lts = config.time_integrator in LTS_TIME_INTEGRATORS
  if config.disable_vel_pgrad:
    logging.info('Horizontal pressure gradient is disabled.')
    # Nothing reads the scaling constants when the gradient is off.
    constants = PressureGradientConstants(
        gravity=config.gravity,
        density0_inv=0.0,
        gdensity0_inv=0.0,
        common_level_weight=0.0,
        pgrad_off=True,
        time_integrator_lts=time_integrator_lts,
    )
    return constants, None

  if config.density0 <= 0:
    logging.error('Reference density must be positive, got %s', config.density0)
    raise InvalidConfigurationError(
        f'Expected a positive reference density; got {config.density0}.')

  scheme_cls = SCHEMES.get(config.pressure_gradient_type)
  if scheme_cls is None:
    logging.error(
        'Incorrect choice of pressure_gradient_type: %r. Expected one of %s.',
        config.pressure_gradient_type, sorted(SCHEMES))
    raise InvalidConfigurationError(
        f'Unknown pressure_gradient_type {config.pressure_gradient_type!r}; '
        f'expected one of {sorted(SCHEMES)}.')
  if not 0.0 <= config.common_level_weight <= 1.0:
    logging.error(
        'common_level_weight must lie in [0, 1], got %s',
        config.common_level_weight)
    raise InvalidConfigurationError(
        'Expected common_level_weight in [0, 1]; '
        f'got {config.common_level_weight}.')

  logging.info('Pressure type is: %s', scheme_cls.name)
  if scheme_cls is MontgomeryPotentialAndDensity:
    logging.warning(
        'Pressure type %s has not been extensively tested and is not '
        'supported.', scheme_cls.name)

  constants = PressureGradientConstants(
      gravity=config.gravity,
      density0_inv=1.0 / config.density0,
      gdensity0_inv=config.gravity / config.density0,
      common_level_weight=config.common_level_weight,
      pgrad_off=False,
      time_integrator_lts=time_integrator_lts,
  )
  return constants, scheme_cls.from_config(config)


def compute_tendency(
    mesh: unstructured_mesh.Mesh,
    state: ocean_state.State,
    scheme: PressureGradientScheme | None,
    constants: PressureGradientConstants,
    tend: Array,
) -> Array:
  """Adds the pressure gradient tendency to `tend`.

  Edges are independent of each other, so the scheme's column function is
  mapped over owned edges. Halo edges are left untouched.

  Args:
    mesh: mesh connectivity and geometry.
    state: read-only state snapshot.
    scheme: the discretization returned by `initialize`.
    constants: constants returned by `initialize`.
    tend: accumulated velocity tendency of shape [layers, edges].

  Returns:
    `tend` plus the pressure gradient contribution, or `tend` itself if the
    pressure gradient is disabled.
  """
  if constants.pgrad_off:
    return tend
  if not isinstance(scheme, PressureGradientScheme):
    raise TypeError(f'Expected a PressureGradientScheme; got {scheme!r}.')

  columns = gather_edge_columns(mesh, state)
  column_fn = lambda c: scheme.column_tendency(c, constants)
  contribution = jax.vmap(column_fn, in_axes=-1, out_axes=-1)(columns)
  return jnp.asarray(tend).at[:, :mesh.n_edges_owned].add(contribution)


@dataclasses.dataclass(frozen=True)
class HorizontalPressureGradient:
  """Pressure gradient term bound to a mesh, for use by a time stepper.

  Attributes:
    mesh: mesh connectivity and geometry.
    scheme: the selected discretization, or None if disabled.
    constants: precomputed constants.
  """

  mesh: unstructured_mesh.Mesh
  scheme: PressureGradientScheme | None
  constants: PressureGradientConstants

  @classmethod
  def from_config(
      cls, config: PressureGradientConfig, mesh: unstructured_mesh.Mesh
  ) -> HorizontalPressureGradient:
    constants, scheme = initialize(config)
    return cls(mesh, scheme, constants)

  def tendency(self, state: ocean_state.State, tend: Array) -> Array:
    """Validates `state` and returns `tend` plus the pressure gradient."""
    ocean_state.validate_state_shape(state, self.mesh)
    expected_shape = (self.mesh.layers, self.mesh.n_edges)
    if np.shape(tend) != expected_shape:
      raise ocean_state.StateShapeError(
          f'Expected tend shape {expected_shape}; got {np.shape(tend)}.')
    return compute_tendency(
        self.mesh, state, self.scheme, self.constants, tend)

  def jit_tendency_fn(self) -> typing.TendencyFn:
    """Returns a compiled `(state, tend) -> tend` function."""
    return jax.jit(
        lambda state, tend: compute_tendency(
            self.mesh, state, self.scheme, self.constants, tend))


# pylint: enable=invalid-name
