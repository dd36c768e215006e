#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""
System boundary of a system-level scenario
"""

import numpy as np

from linkgen.phy.channel.tr38901 import site_polygon


def infer_scenario_extents(scenario_config, site_positions, ue_positions=None):
    # pylint: disable=line-too-long
    r"""
    Returns the system boundary of a scenario

    If the scenario configuration defines extents, they are returned
    unchanged. Otherwise:

    - For UMi, UMa and RMa, the boundary is the bounding box of the hexagons
      of all sites, see :func:`~linkgen.phy.channel.tr38901.site_polygon`.
    - For InH, it is the bounding box of all nodes, extended by 1 m on all
      sides.
    - For InF, it is the hall footprint centered on the origin.

    Input
    -----
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    site_positions : [num_sites, 3], `float`
        Site positions [m]

    ue_positions : `None` (default) | [num_ues, 3], `float`
        User equipment positions [m]. Only used for InH and for cellular
        scenarios without inter-site distance.

    Output
    ------
    : `None` | [4], `np.float64`
        System boundary ``[left, bottom, width, height]`` [m]. `None` if
        there are no nodes to infer it from.
    """
    if scenario_config.scenario_extents is not None:
        return np.array(scenario_config.scenario_extents, np.float64)

    scenario = scenario_config.scenario
    site_positions = np.reshape(np.asarray(site_positions, np.float64),
                                [-1, 3])
    if scenario.is_indoor_factory:
        length, width = scenario_config.hall_size[:2]
        return np.array([-length/2., -width/2., length, width])

    if scenario_config.inter_site_distance is not None:
        if site_positions.shape[0] == 0:
            return None
        x, y = site_polygon(scenario_config.inter_site_distance)
        xs = site_positions[:, :1] + x
        ys = site_positions[:, 1:2] + y
        min_pos = np.array([np.min(xs), np.min(ys)])
        max_pos = np.array([np.max(xs), np.max(ys)])
    else:
        positions = [site_positions]
        if ue_positions is not None:
            positions.append(np.reshape(np.asarray(ue_positions, np.float64),
                                        [-1, 3]))
        positions = np.concatenate(positions, axis=0)
        if positions.shape[0] == 0:
            return None
        min_pos = np.min(positions[:, :2], axis=0) - 1.
        max_pos = np.max(positions[:, :2], axis=0) + 1.
    return np.concatenate([min_pos, max_pos - min_pos])
