#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Linkgen Library"""

import importlib

__version__ = "0.3.0"

# pylint: disable=invalid-name
def __getattr__(name):
    if name in ["phy", "sys"]:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__} has no attribute {name}")
