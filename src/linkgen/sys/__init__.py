#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Linkgen System-Level (SYS) Package"""

from .nodes import Node, BaseStation, UserEquipment
from .topology import infer_scenario_extents
from .link_registry import LinkKey, LinkRequest, ScenarioInfo, \
     ChannelDescriptor, SmallScaleExecutor, LinkRegistry
