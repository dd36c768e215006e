#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""3GPP TR 38.901 system-level scenarios and their configuration"""

from enum import Enum

import numpy as np


class Scenario(Enum):
    r"""
    3GPP TR 38.901 deployment scenarios supported by the link generator

    Every scenario belongs to a family ("UMi", "UMa", "RMa", "InH" or "InF")
    which selects the statistical tables, while the InH office type and the
    InF clutter/height variant refine the propagation condition models.
    """

    UMI = "UMi"
    UMA = "UMa"
    RMA = "RMa"
    INH_MIXED = "InH-Mixed"
    INH_OPEN = "InH-Open"
    INF_SL = "InF-SL"
    INF_DL = "InF-DL"
    INF_SH = "InF-SH"
    INF_DH = "InF-DH"
    INF_HH = "InF-HH"

    @classmethod
    def from_name(cls, name, office_type="Mixed"):
        r"""
        Returns the scenario matching ``name``

        Input
        -----
        name : `str` | :class:`~linkgen.phy.channel.tr38901.Scenario`
            Scenario name, e.g., "UMa", "InF-DH", "InH-Open", or "InH". The
            comparison is case-insensitive.

        office_type : "Mixed" (default) | "Open"
            Office type used if ``name`` is "InH"

        Output
        ------
        : :class:`~linkgen.phy.channel.tr38901.Scenario`
            Scenario
        """
        if isinstance(name, Scenario):
            return name
        if not isinstance(name, str):
            raise ValueError(f"Invalid scenario {name!r}")
        key = name.strip().lower()
        if key == "inh":
            key = f"inh-{str(office_type).lower()}"
        for scenario in cls:
            if scenario.value.lower() == key:
                return scenario
        names = ", ".join(s.value for s in cls)
        raise ValueError(f"Invalid scenario '{name}'. Must be one of "
                         f"{names} or 'InH'.")

    @property
    def family(self):
        """
        `str` : Scenario family, one of "UMi", "UMa", "RMa", "InH", "InF"
        """
        return self.value.split("-")[0]

    @property
    def variant(self):
        """
        `str` | `None` : Office type ("Mixed", "Open") for InH, clutter
        variant ("SL", "DL", "SH", "DH", "HH") for InF, `None` otherwise
        """
        parts = self.value.split("-")
        return parts[1] if len(parts) > 1 else None

    @property
    def is_cellular(self):
        """
        `bool` : `True` for the UMi, UMa and RMa scenarios
        """
        return self.family in ("UMi", "UMa", "RMa")

    @property
    def is_indoor_factory(self):
        """
        `bool` : `True` for the InF scenarios
        """
        return self.family == "InF"

    def select(self, umi, uma, rma, inh, inf):
        r"""
        Returns the value given for the family of this scenario

        Each value may be a callable, in which case it is evaluated without
        arguments. The InH and InF values may be dictionaries keyed by the
        scenario variant.
        """
        value = {"UMi" : umi,
                 "UMa" : uma,
                 "RMa" : rma,
                 "InH" : inh,
                 "InF" : inf}[self.family]
        if isinstance(value, dict):
            value = value[self.variant]
        if callable(value):
            value = value()
        return value


class ScenarioConfig():
    # pylint: disable=line-too-long
    r"""
    System-wide configuration of a 3GPP TR 38.901 system-level scenario

    Parameters
    ----------
    scenario : `str` | :class:`~linkgen.phy.channel.tr38901.Scenario`
        Deployment scenario. Defaults to "UMa".

    inter_site_distance : `float` | `None`
        Inter-site distance [m]. Only used by the UMi, UMa and RMa
        scenarios, for which it defaults to 500 m. It enables spatially
        correlated large scale parameters. If `None`, the large scale
        parameters of all links are drawn independently and no
        wrap-around is applied.

    wrapping : `bool`
        If `True` (default), toroidal wrap-around of the site layout is
        applied to the UMi, UMa and RMa scenarios

    spatial_consistency : `bool`
        If `True`, the propagation condition, O2I loss, cluster parameters
        and absolute time of arrival are spatially consistent. Defaults to
        `False`.

    seed : `int`
        Seed of all random streams of the scenario. Defaults to 0.

    office_type : "Mixed" (default) | "Open"
        InH office type, used if ``scenario`` is "InH"

    scenario_extents : `None` (default) | [4], `float`
        System boundary ``[left, bottom, width, height]`` [m]. If `None`, it
        is inferred from the node positions.

    hall_size : [3], `float`
        InF hall length, width and height [m]. Defaults to [120, 60, 10].

    clutter_size : `float`
        InF clutter size [m]. Defaults to 2.

    clutter_density : `float`
        InF clutter density. Defaults to 0.6.

    clutter_height : `float`
        InF clutter height [m]. Defaults to 6.

    absolute_toa : `bool`
        If `True`, the absolute time of arrival is modeled for InF scenarios.
        Defaults to `False`.

    interferer_has_small_scale : `bool`
        If `True`, fast fading is generated for links between nodes that are
        not attached. Defaults to `False`.

    interferer_same_link_end : `bool`
        If `True`, channels are also generated between two base stations
        and between two user equipments. Defaults to `False`.
    """
    def __init__(self,
                 scenario="UMa",
                 inter_site_distance=500.,
                 wrapping=True,
                 spatial_consistency=False,
                 seed=0,
                 office_type="Mixed",
                 scenario_extents=None,
                 hall_size=(120., 60., 10.),
                 clutter_size=2.,
                 clutter_density=0.6,
                 clutter_height=6.,
                 absolute_toa=False,
                 interferer_has_small_scale=False,
                 interferer_same_link_end=False):

        self._scenario = Scenario.from_name(scenario, office_type)
        self._inter_site_distance = None
        if self._scenario.is_cellular and inter_site_distance is not None:
            if not inter_site_distance > 0:
                raise ValueError("'inter_site_distance' must be positive")
            self._inter_site_distance = float(inter_site_distance)
        self._wrapping = bool(wrapping)
        self._spatial_consistency = bool(spatial_consistency)
        self._seed = int(seed)
        if scenario_extents is not None:
            scenario_extents = np.asarray(scenario_extents, np.float64)
            if scenario_extents.shape != (4,):
                raise ValueError("'scenario_extents' must be of the form "
                                 "[left, bottom, width, height]")
        self._scenario_extents = scenario_extents
        self._hall_size = np.asarray(hall_size, np.float64)
        self._clutter_size = float(clutter_size)
        self._clutter_density = float(clutter_density)
        self._clutter_height = float(clutter_height)
        self._absolute_toa = bool(absolute_toa)
        self._interferer_has_small_scale = bool(interferer_has_small_scale)
        self._interferer_same_link_end = bool(interferer_same_link_end)

    @property
    def scenario(self):
        """
        :class:`~linkgen.phy.channel.tr38901.Scenario` : Deployment scenario
        """
        return self._scenario

    @property
    def inter_site_distance(self):
        """
        `float` | `None` : Inter-site distance [m]. Always `None` for InH and
        InF.
        """
        return self._inter_site_distance

    @property
    def wrapping(self):
        """
        `bool` : Wrap-around is applied. Always `False` for InH and InF, and
        without inter-site distance.
        """
        return self._wrapping and self._inter_site_distance is not None

    @property
    def spatial_consistency(self):
        """
        `bool` : Spatial consistency is enabled
        """
        return self._spatial_consistency

    @property
    def seed(self):
        """
        `int` : Scenario seed
        """
        return self._seed

    @property
    def scenario_extents(self):
        """
        `None` | [4], `np.float64` : User-defined system boundary
        ``[left, bottom, width, height]``
        """
        return self._scenario_extents

    @property
    def hall_size(self):
        """
        [3], `np.float64` : InF hall length, width and height [m]
        """
        return self._hall_size

    @property
    def hall_volume_and_surface(self):
        """
        (`float`, `float`) : Volume [m^3] and surface [m^2] of the InF hall
        """
        l, w, h = self._hall_size
        volume = l*w*h
        surface = 2.*(l*w + l*h + w*h)
        return volume, surface

    @property
    def clutter_size(self):
        """
        `float` : InF clutter size [m]
        """
        return self._clutter_size

    @property
    def clutter_density(self):
        """
        `float` : InF clutter density
        """
        return self._clutter_density

    @property
    def clutter_height(self):
        """
        `float` : InF clutter height [m]
        """
        return self._clutter_height

    @property
    def absolute_toa(self):
        """
        `bool` : Absolute time of arrival is modeled. Always `False` outside
        of the InF scenarios.
        """
        return self._absolute_toa and self._scenario.is_indoor_factory

    @property
    def interferer_has_small_scale(self):
        """
        `bool` : Fast fading is generated for non-attached links
        """
        return self._interferer_has_small_scale

    @property
    def interferer_same_link_end(self):
        """
        `bool` : Channels are generated for BS-BS and UE-UE links
        """
        return self._interferer_same_link_end
