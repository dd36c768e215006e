#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Base station and user equipment records of a system-level scenario"""

import numpy as np


class Node:
    r"""
    Network node with an identity, a position and antenna counts

    The position may be updated during the simulation to model mobility.
    Channel links keep the propagation state obtained at the position
    where they were generated, while their large scale loss is evaluated
    at the current position.

    Parameters
    ----------
    node_id : `int`
        Unique node identifier

    position : [3], `float`
        Position [m]

    num_transmit_antennas : `int`
        Number of transmit antennas. Defaults to 1.

    num_receive_antennas : `int`
        Number of receive antennas. Defaults to 1.
    """
    def __init__(self, node_id, position, num_transmit_antennas=1,
                 num_receive_antennas=1):
        self.node_id = int(node_id)
        self.position = position
        if num_transmit_antennas < 1 or num_receive_antennas < 1:
            raise ValueError("Antenna counts must be positive")
        self.num_transmit_antennas = int(num_transmit_antennas)
        self.num_receive_antennas = int(num_receive_antennas)

    @property
    def position(self):
        """
        [3], `np.float64` : Get/set the position [m]
        """
        return self._position

    @position.setter
    def position(self, value):
        value = np.asarray(value, np.float64)
        if value.shape != (3,):
            raise ValueError("Node positions must be 3D")
        self._position = value


class BaseStation(Node):
    # pylint: disable=line-too-long
    r"""
    Base station (sector) of a site

    Parameters
    ----------
    node_id : `int`
        Unique node identifier. Must be smaller than the identifiers of all
        user equipment.

    position : [3], `float`
        Position [m]

    num_transmit_antennas : `int`
        Number of transmit antennas. Defaults to 1.

    num_receive_antennas : `int`
        Number of receive antennas. Defaults to 1.

    site : `None` | `int`
        Zero-based site index. If `None`, the base station forms its own
        site, indexed by its rank among the base stations.

    sector : `int`
        Zero-based sector index within the site. Defaults to 0.

    txru_virtualization : `None` | `dict`
        TXRU virtualization with keys "K", "tilt", "L" and "pan"

    tx_orientation : `None` | [3], `float`
        Orientation of the transmit array [deg]. If `None`, it is derived
        from the sector index.
    """
    def __init__(self, node_id, position, num_transmit_antennas=1,
                 num_receive_antennas=1, site=None, sector=0,
                 txru_virtualization=None, tx_orientation=None):
        super().__init__(node_id, position, num_transmit_antennas,
                         num_receive_antennas)
        self.site = site
        self.sector = int(sector)
        self.txru_virtualization = txru_virtualization
        self.tx_orientation = tx_orientation


class UserEquipment(Node):
    r"""
    User equipment

    Parameters
    ----------
    node_id : `int`
        Unique node identifier

    position : [3], `float`
        Position [m]

    num_transmit_antennas : `int`
        Number of transmit antennas. Defaults to 1.

    num_receive_antennas : `int`
        Number of receive antennas. Defaults to 1.

    serving_bs_id : `None` | `int`
        Identifier of the base station the user equipment is attached to

    n_fl : `None` | `int`
        Floor number (1 for the ground floor). If `None`, it is derived from
        the height for the UMi, UMa and RMa scenarios.

    d_2d_in : `float`
        Indoor 2D distance [m]. Non-zero values denote an indoor user
        equipment. Defaults to 0.
    """
    def __init__(self, node_id, position, num_transmit_antennas=1,
                 num_receive_antennas=1, serving_bs_id=None, n_fl=None,
                 d_2d_in=0.):
        super().__init__(node_id, position, num_transmit_antennas,
                         num_receive_antennas)
        self.serving_bs_id = serving_bs_id
        self.n_fl = n_fl
        if d_2d_in < 0.:
            raise ValueError("'d_2d_in' must not be negative")
        self.d_2d_in = float(d_2d_in)
