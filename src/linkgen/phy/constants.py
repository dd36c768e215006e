#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Constants for the Linkgen PHY Package"""

import scipy

PI = scipy.constants.pi
SPEED_OF_LIGHT = scipy.constants.speed_of_light # m/s

# Resolution of the spatial consistency pixel grid [m]
GRID_RESOLUTION = 5.0

# Number of correlation distances after which the exponential
# autocorrelation drops below 1% (exp(-4.6) ~ 0.01)
CORRELATION_CUTOFF = 4.6

# Maximum azimuth and zenith angular spreads [deg]
MAX_AZIMUTH_SPREAD = 104.0
MAX_ZENITH_SPREAD = 52.0

# Clusters weaker than the strongest one by more than this value are
# discarded [dB]
CLUSTER_POWER_THRESHOLD_DB = 25.0
