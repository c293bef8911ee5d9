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

"""Defined commonly used types in the codebase."""

from typing import Any, Callable, Mapping

import jax.numpy as jnp
import numpy as np


Array = np.ndarray | jnp.ndarray
IntArray = np.ndarray
Numeric = float | int | Array
Pytree = Any

# Configuration values read from an MPAS-style namelist.
Namelist = Mapping[str, Any]

# Maps a state snapshot and an accumulated tendency to an updated tendency.
TendencyFn = Callable[[Pytree, Array], Array]
