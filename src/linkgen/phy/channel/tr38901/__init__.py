#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""
Channel sub-package of the Linkgen library implementing the 3GPP TR38.901
system-level channel link generation with spatial consistency.
"""

# pylint: disable=line-too-long
from .scenario import Scenario, ScenarioConfig
from .parameters import LSP_NAMES, LinkParameters, load_table
from .spatial import SpatialGrid, AutoCorrelationField, exponential_kernel, margin_for_distances
from .layout import wraparound_offsets, nearest_image, site_polygon, check_ue_position
from .propagation import los_probability, environment_height, o2i_loss, basic_pathloss, bs_orientation, ue_orientation, ue_mobility, los_angles
from .scenario_cache import ScenarioCache
from .lsp import LSP, LSPGenerator
from .clusters import Clusters, ClusterGenerator
from .channel_link import LinkConfig, ChannelInfo, LargeScaleLoss, ChannelLink, ChannelLinkGenerator
