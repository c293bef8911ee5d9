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

"""Defines the seamount module."""

import seamount.ocean_state
import seamount.parabolic_bowl
import seamount.pressure_gradient
import seamount.typing
import seamount.unstructured_mesh
import seamount.vertical_grids

__version__ = "1.0.0"
