#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Channel sub-package of the Linkgen PHY package"""

# pylint: disable=line-too-long
from .utils import time_lag_discrete_time_channel, path_filters
from . import tr38901
