#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Linkgen Physical Layer (PHY) Package"""

from .config import config, dtypes
from .constants import *
from .block import Object
from . import utils
from . import channel
