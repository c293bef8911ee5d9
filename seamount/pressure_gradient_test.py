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

"""Tests for pressure_gradient."""

import dataclasses

from absl.testing import absltest
from absl.testing import parameterized

from seamount import ocean_state
from seamount import pressure_gradient
from seamount import unstructured_mesh

import jax
import numpy as np


jax.config.update('jax_enable_x64', True)

GRAVITY = pressure_gradient.GRAVITY


def line_mesh(n_cells=2, layers=1, dc=1000.0, angle=0.0, n_edges_owned=None):
  """Cells in a row, each edge joining consecutive cells."""
  cells_on_edge = np.stack([np.arange(n_cells - 1), np.arange(1, n_cells)])
  n_edges = n_cells - 1
  return unstructured_mesh.Mesh.from_cell_levels(
      cells_on_edge=cells_on_edge,
      dc_edge=np.full(n_edges, dc),
      angle_edge=np.full(n_edges, angle),
      min_level_cell=np.zeros(n_cells, int),
      max_level_cell=np.full(n_cells, layers - 1),
      layers=layers,
      n_edges_owned=n_edges_owned,
  )


def irregular_mesh():
  """Four cells with differing active ranges, joined by four edges."""
  return unstructured_mesh.Mesh.from_cell_levels(
      cells_on_edge=np.array([[0, 1, 2, 0], [1, 2, 3, 3]]),
      dc_edge=np.array([1000.0, 1500.0, 800.0, 1200.0]),
      angle_edge=np.array([0.0, 0.5, 1.0, 2.0]),
      min_level_cell=np.array([0, 1, 0, 0]),
      max_level_cell=np.array([3, 2, 3, 1]),
      layers=4,
  )


def uniform_state(layers, n_cells, **overrides):
  """State with flat layers 10 m thick and uniform properties."""
  z_mid = -10.0 * (np.arange(layers) + 0.5)
  fields = dict(
      ssh=np.zeros(n_cells),
      surface_pressure=np.zeros(n_cells),
      pressure=np.zeros((layers, n_cells)),
      montgomery_potential=np.zeros((layers, n_cells)),
      z_mid=np.repeat(z_mid[:, np.newaxis], n_cells, axis=1),
      density=np.full((layers, n_cells), 1025.0),
      potential_density=np.full((layers, n_cells), 1025.0),
      thermal_expansion_coeff=np.full((layers, n_cells), 2e-4),
      saline_contraction_coeff=np.full((layers, n_cells), 8e-4),
      tracers=np.stack([np.full((layers, n_cells), 10.0),
                        np.full((layers, n_cells), 35.0)]),
  )
  fields.update(overrides)
  return ocean_state.State(**fields)


def random_state(seed, layers, n_cells, uniform_tracers=False):
  """Hydrostatically consistent state with sloping layers."""
  rs = np.random.RandomState(seed)
  thickness = rs.uniform(5.0, 15.0, size=(layers, n_cells))
  bottom_depth = thickness.sum(axis=0) + rs.uniform(-0.5, 0.5, size=n_cells)
  if uniform_tracers:
    temperature = np.full((layers, n_cells), 12.0)
    salinity = np.full((layers, n_cells), 34.5)
  else:
    temperature = rs.uniform(5.0, 20.0, size=(layers, n_cells))
    salinity = rs.uniform(33.0, 36.0, size=(layers, n_cells))
  return ocean_state.diagnose_state(
      thickness,
      bottom_depth,
      np.stack([temperature, salinity]),
      ocean_state.LinearEquationOfState(),
      GRAVITY,
      surface_pressure=rs.uniform(0.0, 100.0, size=n_cells),
  )


def poison_inactive_layers(state, mesh):
  """Replaces every value outside each cell's active range with NaN."""
  k = np.arange(mesh.layers)[:, np.newaxis]
  active = (k >= mesh.min_level_cell) & (k <= mesh.max_level_cell)

  def poison(x):
    x = np.asarray(x)
    return np.where(active, x, np.nan) if x.ndim >= 2 else x

  return jax.tree_util.tree_map(poison, state)


def initialize(pressure_gradient_type, **kwargs):
  config = pressure_gradient.PressureGradientConfig(
      pressure_gradient_type=pressure_gradient_type, **kwargs)
  return pressure_gradient.initialize(config)


def reference_jacobian_tendency(mesh, state, constants, from_ts):
  """Edge-by-edge, layer-by-layer evaluation of the Jacobian schemes."""
  z = np.asarray(state.z_mid)
  rho = np.asarray(state.density)
  p = np.asarray(state.pressure)
  temperature, salinity = np.asarray(state.tracers)
  rho_alpha = rho * np.asarray(state.thermal_expansion_coeff)
  rho_beta = rho * np.asarray(state.saline_contraction_coeff)
  w = constants.common_level_weight
  tend = np.zeros((mesh.layers, mesh.n_edges))

  def interp(f, c, k, z_gamma):
    return ((f[k, c] * (z[k - 1, c] - z_gamma)
             + f[k - 1, c] * (z_gamma - z[k, c]))
            / (z[k - 1, c] - z[k, c]))

  for e in range(mesh.n_edges_owned):
    c1, c2 = mesh.cells_on_edge[:, e]
    inv_dc = 1.0 / mesh.dc_edge[e]
    k_min = mesh.min_level_edge_bot[e]
    k_max = mesh.max_level_edge_top[e]
    jacobian = np.zeros(mesh.layers)
    for k in range(k_min + 1, k_max + 1):
      area = 0.5 * (z[k - 1, c1] - z[k, c1] + z[k - 1, c2] - z[k, c2])
      z_star = ((z[k - 1, c2] * z[k - 1, c1] - z[k, c2] * z[k, c1])
                / (z[k - 1, c2] - z[k, c2] + z[k - 1, c1] - z[k, c1]))
      z_c = 0.25 * (z[k, c1] + z[k - 1, c1] + z[k, c2] + z[k - 1, c2])
      z_gamma = (1.0 - w) * z_star + w * z_c
      if from_ts:
        jacobian_t = area * (interp(temperature, c1, k, z_gamma)
                             - interp(temperature, c2, k, z_gamma))
        jacobian_s = area * (interp(salinity, c1, k, z_gamma)
                             - interp(salinity, c2, k, z_gamma))
        alpha = 0.25 * (rho_alpha[k, c1] + rho_alpha[k - 1, c1]
                        + rho_alpha[k, c2] + rho_alpha[k - 1, c2])
        beta = 0.25 * (rho_beta[k, c1] + rho_beta[k - 1, c1]
                       + rho_beta[k, c2] + rho_beta[k - 1, c2])
        jacobian[k] = -alpha * jacobian_t + beta * jacobian_s
      else:
        jacobian[k] = area * (interp(rho, c1, k, z_gamma)
                              - interp(rho, c2, k, z_gamma))

    k = k_min
    pgrad = mesh.edge_mask[k, e] * inv_dc * (
        -constants.density0_inv * (p[k, c2] - p[k, c1])
        - constants.gdensity0_inv * 0.5 * (rho[k, c1] + rho[k, c2])
        * (z[k, c2] - z[k, c1]))
    tend[k, e] += pgrad
    for k in range(k_min + 1, k_max + 1):
      pgrad += constants.gdensity0_inv * jacobian[k] * inv_dc
      tend[k, e] += pgrad
  return tend


class InitializeTest(parameterized.TestCase):

  @parameterized.named_parameters(
      ('ssh_gradient', 'ssh_gradient', pressure_gradient.SSHGradient),
      ('pressure_and_zmid', 'pressure_and_zmid',
       pressure_gradient.PressureAndZMid),
      ('montgomery', 'MontgomeryPotential',
       pressure_gradient.MontgomeryPotential),
      ('montgomery_density', 'MontgomeryPotential_and_density',
       pressure_gradient.MontgomeryPotentialAndDensity),
      ('jacobian_density', 'Jacobian_from_density',
       pressure_gradient.JacobianFromDensity),
      ('jacobian_ts', 'Jacobian_from_TS', pressure_gradient.JacobianFromTS),
      ('constant_forced', 'constant_forced', pressure_gradient.ConstantForced),
  )
  def testSchemeSelection(self, name, expected_cls):
    constants, scheme = initialize(name)
    self.assertIsInstance(scheme, expected_cls)
    self.assertFalse(constants.pgrad_off)

  def testConstants(self):
    constants, _ = initialize(
        'pressure_and_zmid', density0=1000.0, gravity=10.0,
        common_level_weight=0.25)
    self.assertEqual(constants.density0_inv, 1e-3)
    self.assertEqual(constants.gdensity0_inv, 1e-2)
    self.assertEqual(constants.gravity, 10.0)
    self.assertEqual(constants.common_level_weight, 0.25)

  def testUnknownSchemeRaises(self):
    with self.assertRaisesRegex(
        pressure_gradient.InvalidConfigurationError, 'not_a_scheme'):
      initialize('not_a_scheme')

  def testDisabledSkipsValidation(self):
    constants, scheme = initialize(
        'not_a_scheme', disable_vel_pgrad=True, density0=0.0,
        common_level_weight=2.0)
    self.assertIsNone(scheme)
    self.assertTrue(constants.pgrad_off)
    self.assertEqual(constants.common_level_weight, 0.0)

  @parameterized.parameters(-0.1, 1.5)
  def testInvalidWeightRaises(self, weight):
    with self.assertRaises(pressure_gradient.InvalidConfigurationError):
      initialize('Jacobian_from_density', common_level_weight=weight)

  def testInvalidDensityRaises(self):
    with self.assertRaises(pressure_gradient.InvalidConfigurationError):
      initialize('ssh_gradient', density0=0.0)

  @parameterized.parameters(
      ('LTS', True),
      ('FB_LTS', True),
      ('split_explicit', False),
      ('RK4', False),
  )
  def testLocalTimeStepping(self, time_integrator, expected):
    constants, _ = initialize('ssh_gradient', time_integrator=time_integrator)
    self.assertEqual(constants.time_integrator_lts, expected)

  def testSchemeData(self):
    _, scheme = initialize(
        'Jacobian_from_TS', index_temperature=3, index_salinity=1)
    self.assertEqual(scheme, pressure_gradient.JacobianFromTS(3, 1))
    _, scheme = initialize(
        'constant_forced', zonal_ssh_grad=1e-5, meridional_ssh_grad=2e-5)
    self.assertEqual(scheme, pressure_gradient.ConstantForced(1e-5, 2e-5))

  def testFromNamelist(self):
    namelist = {
        'config_pressure_gradient_type': ' Jacobian_from_density  ',
        'config_density0': 1000.0,
        'config_common_level_weight': 0.0,
        'config_time_integrator': 'FB_LTS',
        'config_disable_vel_pgrad': False,
        'config_dt': '00:05:00',
    }
    config = pressure_gradient.PressureGradientConfig.from_namelist(
        namelist, gravity=9.81)
    self.assertEqual(config.pressure_gradient_type, 'Jacobian_from_density')
    self.assertEqual(config.density0, 1000.0)
    self.assertEqual(config.common_level_weight, 0.0)
    self.assertEqual(config.time_integrator, 'FB_LTS')
    self.assertEqual(config.gravity, 9.81)
    self.assertEqual(config.zonal_ssh_grad, 0.0)
    constants, scheme = pressure_gradient.initialize(config)
    self.assertTrue(constants.time_integrator_lts)
    self.assertIsInstance(scheme, pressure_gradient.JacobianFromDensity)


class ComputeTendencyTest(parameterized.TestCase):

  @parameterized.parameters(*pressure_gradient.SCHEMES)
  def testDisabledLeavesTendencyUnchanged(self, name):
    mesh = irregular_mesh()
    state = random_state(0, mesh.layers, mesh.n_cells)
    tend = np.random.RandomState(1).normal(size=(mesh.layers, mesh.n_edges))
    constants, scheme = initialize(name, disable_vel_pgrad=True)
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, tend)
    self.assertIs(actual, tend)

  def testSchemeMustBeVariant(self):
    mesh = line_mesh()
    constants, _ = initialize('ssh_gradient')
    with self.assertRaises(TypeError):
      pressure_gradient.compute_tendency(
          mesh, uniform_state(1, 2), 'ssh_gradient', constants,
          np.zeros((1, 1)))

  def testSSHGradientUniformIsZero(self):
    mesh = line_mesh(n_cells=5, layers=3)
    state = uniform_state(
        3, 5, ssh=np.full(5, 0.7), surface_pressure=np.full(5, 12.0))
    tend = np.random.RandomState(0).normal(size=(3, 4))
    constants, scheme = initialize('ssh_gradient')
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, tend)
    np.testing.assert_array_equal(actual, tend)

  def testSSHGradientExample(self):
    mesh = line_mesh(n_cells=2, layers=1, dc=1000.0)
    state = uniform_state(1, 2, ssh=np.array([0.0, 0.1]))
    constants, scheme = initialize('ssh_gradient', gravity=9.80665)
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, np.zeros((1, 1)))
    np.testing.assert_allclose(actual, [[-9.80665e-4]], rtol=1e-12)

  def testSSHGradientSurfacePressure(self):
    mesh = line_mesh(n_cells=2, layers=2, dc=500.0)
    state = uniform_state(
        2, 2, ssh=np.array([0.0, 0.1]), surface_pressure=np.array([0.0, 20.0]))
    expected_pressure_term = -(1 / 1026.0) * 20.0 / 500.0
    expected_ssh_term = -GRAVITY * 0.1 / 500.0

    with self.subTest('split_explicit'):
      constants, scheme = initialize('ssh_gradient', density0=1026.0)
      actual = pressure_gradient.compute_tendency(
          mesh, state, scheme, constants, np.zeros((2, 1)))
      np.testing.assert_allclose(
          actual, np.full((2, 1), expected_ssh_term + expected_pressure_term))

    with self.subTest('LTS'):
      constants, scheme = initialize(
          'ssh_gradient', density0=1026.0, time_integrator='LTS')
      actual = pressure_gradient.compute_tendency(
          mesh, state, scheme, constants, np.zeros((2, 1)))
      np.testing.assert_allclose(
          actual, np.full((2, 1), expected_pressure_term))

  def testPressureAndZMid(self):
    mesh = line_mesh(n_cells=3, layers=4, dc=2000.0)
    state = random_state(2, 4, 3)
    constants, scheme = initialize('pressure_and_zmid')
    tend = np.ones((4, 2))
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, tend)
    p, rho, z = (np.asarray(x) for x in
                 (state.pressure, state.density, state.z_mid))
    expected = tend + (
        -constants.density0_inv * (p[:, 1:] - p[:, :-1])
        - constants.gdensity0_inv * 0.5 * (rho[:, 1:] + rho[:, :-1])
        * (z[:, 1:] - z[:, :-1])) / 2000.0
    np.testing.assert_allclose(actual, expected, rtol=1e-12)

  def testMontgomeryPotential(self):
    mesh = line_mesh(n_cells=3, layers=2, dc=100.0)
    potential = np.array([[1.0, 2.0, 4.0], [0.5, 0.5, 3.0]])
    state = uniform_state(2, 3, montgomery_potential=potential)
    constants, scheme = initialize('MontgomeryPotential')
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, np.zeros((2, 2)))
    expected = -np.diff(potential, axis=1) / 100.0
    np.testing.assert_allclose(actual, expected, rtol=1e-12)

  def testMontgomeryPotentialAndDensity(self):
    mesh = line_mesh(n_cells=2, layers=1, dc=10.0)
    state = uniform_state(
        1, 2,
        montgomery_potential=np.array([[1.0, 3.0]]),
        pressure=np.array([[100.0, 300.0]]),
        potential_density=np.array([[1000.0, 1025.0]]),
    )
    constants, scheme = initialize('MontgomeryPotential_and_density')
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, np.zeros((1, 1)))
    expected = (-(3.0 - 1.0) + 200.0 * (1 / 1025.0 - 1 / 1000.0)) / 10.0
    np.testing.assert_allclose(actual, [[expected]], rtol=1e-12)

  @parameterized.parameters(
      dict(angle=0.0, zonal=1.0, meridional=0.0, expected=-GRAVITY),
      dict(angle=np.pi / 2, zonal=0.0, meridional=2.0, expected=-2 * GRAVITY),
      dict(angle=np.pi, zonal=1.0, meridional=0.0, expected=GRAVITY),
  )
  def testConstantForced(self, angle, zonal, meridional, expected):
    mesh = line_mesh(n_cells=2, layers=3, angle=angle)
    # The forcing does not depend on the state.
    state = jax.tree_util.tree_map(
        lambda x: np.full_like(x, np.nan), uniform_state(3, 2))
    constants, scheme = initialize(
        'constant_forced', zonal_ssh_grad=zonal,
        meridional_ssh_grad=meridional)
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, np.zeros((3, 1)))
    np.testing.assert_allclose(actual, np.full((3, 1), expected), atol=1e-12)

  def testConstantForcedExactZonal(self):
    mesh = line_mesh(n_cells=2, layers=2, angle=0.0)
    constants, scheme = initialize('constant_forced', zonal_ssh_grad=1.0)
    actual = pressure_gradient.compute_tendency(
        mesh, uniform_state(2, 2), scheme, constants, np.zeros((2, 1)))
    np.testing.assert_array_equal(
        actual, -constants.gravity * mesh.edge_mask[:, :1])

  @parameterized.parameters('Jacobian_from_density', 'Jacobian_from_TS')
  def testJacobianUniformFlatLayers(self, name):
    layers = 5
    mesh = line_mesh(n_cells=2, layers=layers)
    state = uniform_state(
        layers, 2, pressure=np.array([[0.0, 10.0]] * layers))
    constants, scheme = initialize(name)
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, np.zeros((layers, 1)))
    top = -constants.density0_inv * 10.0 / 1000.0
    np.testing.assert_allclose(actual, np.full((layers, 1), top), rtol=1e-14)

  @parameterized.parameters('Jacobian_from_density', 'Jacobian_from_TS')
  def testJacobianUniformSlopingLayers(self, name):
    layers = 6
    mesh = line_mesh(n_cells=4, layers=layers)
    state = random_state(3, layers, 4, uniform_tracers=True)
    constants, scheme = initialize(name)
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, np.zeros((layers, 3)))
    _, pzmid_scheme = initialize('pressure_and_zmid')
    pzmid = pressure_gradient.compute_tendency(
        mesh, state, pzmid_scheme, constants, np.zeros((layers, 3)))
    expected = np.broadcast_to(pzmid[:1], (layers, 3))
    np.testing.assert_allclose(actual, expected, rtol=1e-9, atol=1e-15)

  @parameterized.product(
      name=['Jacobian_from_density', 'Jacobian_from_TS'],
      weight=[0.0, 0.5, 1.0],
  )
  def testJacobianMatchesReference(self, name, weight):
    mesh = irregular_mesh()
    state = random_state(4, mesh.layers, mesh.n_cells)
    constants, scheme = initialize(name, common_level_weight=weight)
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, np.zeros((mesh.layers, mesh.n_edges)))
    expected = reference_jacobian_tendency(
        mesh, state, constants, from_ts=(name == 'Jacobian_from_TS'))
    np.testing.assert_allclose(actual, expected, rtol=1e-10, atol=1e-15)

  def testJacobianFromTSReducesToDensity(self):
    layers = 5
    mesh = line_mesh(n_cells=6, layers=layers)
    # A linear equation of state makes `-α ΔT + β ΔS` the exact density change.
    state = random_state(5, layers, 6)
    constants, density_scheme = initialize('Jacobian_from_density')
    _, ts_scheme = initialize('Jacobian_from_TS')
    tend = np.zeros((layers, 5))
    from_density = pressure_gradient.compute_tendency(
        mesh, state, density_scheme, constants, tend)
    from_ts = pressure_gradient.compute_tendency(
        mesh, state, ts_scheme, constants, tend)
    np.testing.assert_allclose(from_ts, from_density, rtol=1e-9, atol=1e-15)

  @parameterized.parameters(*pressure_gradient.SCHEMES)
  def testInactiveValuesDoNotLeak(self, name):
    mesh = irregular_mesh()
    state = poison_inactive_layers(
        random_state(6, mesh.layers, mesh.n_cells), mesh)
    constants, scheme = initialize(name)
    tend = np.zeros((mesh.layers, mesh.n_edges))
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, tend)
    self.assertTrue(np.all(np.isfinite(actual)))
    k = np.arange(mesh.layers)[:, np.newaxis]
    inactive = ((k < mesh.min_level_edge_bot)
                | (k > mesh.max_level_edge_top))
    np.testing.assert_array_equal(np.asarray(actual)[inactive], 0.0)

  @parameterized.parameters('Jacobian_from_density', 'Jacobian_from_TS')
  def testSingleLayerEdge(self, name):
    mesh = unstructured_mesh.Mesh.from_cell_levels(
        cells_on_edge=np.array([[0], [1]]),
        dc_edge=np.array([1000.0]),
        angle_edge=np.array([0.0]),
        min_level_cell=np.array([1, 0]),
        max_level_cell=np.array([1, 3]),
        layers=4,
    )
    self.assertEqual(mesh.min_level_edge_bot[0], mesh.max_level_edge_top[0])
    state = poison_inactive_layers(random_state(7, 4, 2), mesh)
    constants, scheme = initialize(name)
    _, pzmid_scheme = initialize('pressure_and_zmid')
    tend = np.zeros((4, 1))
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, tend)
    expected = pressure_gradient.compute_tendency(
        mesh, state, pzmid_scheme, constants, tend)
    np.testing.assert_allclose(actual, expected, rtol=1e-12)
    np.testing.assert_array_equal(np.asarray(actual)[[0, 2, 3]], 0.0)

  def testHaloEdgesUntouched(self):
    mesh = line_mesh(n_cells=4, layers=2, n_edges_owned=2)
    state = random_state(8, 2, 4)
    tend = np.random.RandomState(9).normal(size=(2, 3))
    constants, scheme = initialize('pressure_and_zmid')
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, tend)
    np.testing.assert_array_equal(np.asarray(actual)[:, 2], tend[:, 2])
    self.assertFalse(np.allclose(np.asarray(actual)[:, :2], tend[:, :2]))

  def testAccumulatesOntoTendency(self):
    mesh = irregular_mesh()
    state = random_state(10, mesh.layers, mesh.n_cells)
    constants, scheme = initialize('Jacobian_from_TS')
    zeros = np.zeros((mesh.layers, mesh.n_edges))
    tend = np.random.RandomState(11).normal(size=zeros.shape)
    contribution = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, zeros)
    actual = pressure_gradient.compute_tendency(
        mesh, state, scheme, constants, tend)
    np.testing.assert_allclose(actual, tend + contribution, rtol=1e-12)


class CommonLevelTest(parameterized.TestCase):

  @parameterized.parameters(0.0, 0.3, 1.0)
  def testFlatColumns(self, weight):
    z = np.array([-5.0, -15.0, -30.0])
    area, z_gamma = pressure_gradient.common_level_geometry(z, z, weight)
    np.testing.assert_allclose(area, [10.0, 15.0])
    np.testing.assert_allclose(z_gamma, [-10.0, -22.5])

  def testWeightBlendsEstimates(self):
    z_left = np.array([-5.0, -15.0])
    z_right = np.array([-7.0, -25.0])
    _, z_star = pressure_gradient.common_level_geometry(z_left, z_right, 0.0)
    _, z_c = pressure_gradient.common_level_geometry(z_left, z_right, 1.0)
    _, z_half = pressure_gradient.common_level_geometry(z_left, z_right, 0.5)
    expected_star = (-7.0 * -5.0 - -25.0 * -15.0) / (18.0 + 10.0)
    np.testing.assert_allclose(z_star, [expected_star])
    np.testing.assert_allclose(z_c, [-13.0])
    np.testing.assert_allclose(z_half, 0.5 * (z_star + z_c))

  def testInterpolationIsExactForLinearProfiles(self):
    z = np.array([-2.0, -9.0, -20.0, -41.0])
    f = 3.0 * z + 7.0
    z_gamma = np.array([-4.0, -12.5, -39.0])
    actual = pressure_gradient.interpolate_to_common_level(f, z, z_gamma)
    np.testing.assert_allclose(actual, 3.0 * z_gamma + 7.0)


class HorizontalPressureGradientTest(absltest.TestCase):

  def testMatchesComputeTendency(self):
    mesh = irregular_mesh()
    state = random_state(12, mesh.layers, mesh.n_cells)
    config = pressure_gradient.PressureGradientConfig(
        pressure_gradient_type='Jacobian_from_density')
    term = pressure_gradient.HorizontalPressureGradient.from_config(
        config, mesh)
    tend = np.zeros((mesh.layers, mesh.n_edges))
    expected = pressure_gradient.compute_tendency(
        mesh, state, term.scheme, term.constants, tend)
    np.testing.assert_array_equal(term.tendency(state, tend), expected)
    np.testing.assert_allclose(
        term.jit_tendency_fn()(state, tend), expected, rtol=1e-12)

  def testValidatesShapes(self):
    mesh = irregular_mesh()
    state = random_state(13, mesh.layers, mesh.n_cells)
    term = pressure_gradient.HorizontalPressureGradient.from_config(
        pressure_gradient.PressureGradientConfig(), mesh)
    with self.assertRaises(ocean_state.StateShapeError):
      term.tendency(state, np.zeros((mesh.layers + 1, mesh.n_edges)))
    bad_state = dataclasses.replace(
        state, ssh=np.zeros(mesh.n_cells + 1))
    with self.assertRaises(ocean_state.StateShapeError):
      term.tendency(bad_state, np.zeros((mesh.layers, mesh.n_edges)))


if __name__ == '__main__':
  absltest.main()
