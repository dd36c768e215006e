#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Scenario-wide random fields shared by all links of a scenario"""

import logging
import numpy as np

from linkgen.phy import Object, config
from .parameters import load_table
from .spatial import AutoCorrelationField


# Correlation distances [m] of the O2I building type and of the high and low
# loss penetration deviations, Section 7.6.3.3
O2I_CORRELATION_DISTANCES = [50., 10., 10.]

# Names of the cluster-specific random fields, in order of creation
CLUSTER_FIELDS = ("delays", "powers",
                  "aoa_offset", "aod_offset", "zoa_offset", "zod_offset",
                  "aoa_sign", "aod_sign", "zoa_sign", "zod_sign")


def los_correlation_distance(scenario_config):
    """Correlation distance [m] of the LOS state, Table 7.6.3.1-2"""
    return scenario_config.scenario.select(
                50., 50., 60., 10., lambda: scenario_config.clutter_size/2.)


def atoa_correlation_distance(scenario_config):
    """Correlation distance [m] of the absolute time of arrival, Table
    7.6.9-1. 11 m is assumed for InF-HH."""
    return scenario_config.scenario.select(
                np.nan, np.nan, np.nan, np.nan,
                {"SL" : 6., "DL" : 6., "SH" : 11., "DH" : 11., "HH" : 11.})


def cluster_correlation_distances(scenario_config):
    """NLOS, LOS and O2I correlation distances [m] of the cluster-specific
    random variables, Table 7.6.3.1-2"""
    s = scenario_config.scenario
    return [s.select(15., 50., 60., 10., 10.),
            s.select(12., 40., 50., 10., 10.),
            s.select(15., 15., 15., np.nan, np.nan)]


class ScenarioCache(Object):
    # pylint: disable=line-too-long
    r"""
    Random fields shared by all links of a scenario

    The cache is tied to the set of site positions of the scenario. When this
    set changes, :meth:`reconfigure` must be called, which discards all fields
    and generates the ones which do not depend on a particular link:

    - O2I building type and penetration loss deviation fields (one set for
      the whole system)
    - One LOS state field per site
    - One absolute time of arrival field per site, for InF scenarios with
      absolute time of arrival

    These fields are only generated if spatial consistency is enabled. They
    are drawn from independent streams split off the system stream, whose
    seed is the product of the node counts plus the scenario seed.

    Large scale parameter fields and cluster-specific fields are generated
    lazily on first use. A large scale parameter field is identified by a
    site row and a column, and is drawn from a stream that only depends on
    this identification, such that the result does not depend on the order
    in which links are created.

    Links that have already been generated are not affected by a
    reconfiguration.

    Parameters
    ----------
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    precision : `None` (default) | "single" | "double"
        Precision used for the random fields.
        If set to `None`,
        :attr:`~linkgen.phy.config.Config.precision` is used.
    """
    def __init__(self, scenario_config, precision=None):
        super().__init__(precision=precision)
        self._config = scenario_config
        self._site_positions = None
        self._node_size = None
        self._extents = None
        self._o2i = None
        self._los = None
        self._atoa = None
        self._lsp = {}
        self._clusters = None

    @property
    def scenario_config(self):
        """
        :class:`~linkgen.phy.channel.tr38901.ScenarioConfig` : Scenario
        configuration
        """
        return self._config

    @property
    def site_positions(self):
        """
        `None` | [num_sites, 3], `np.float64` : Site positions the cache was
        configured with
        """
        return self._site_positions

    @property
    def num_sites(self):
        """
        `int` : Number of sites
        """
        return 0 if self._site_positions is None else self._site_positions.shape[0]

    @property
    def node_size(self):
        """
        `None` | (`int`, `int`, `int`) : Number of sites, sectors per site
        and user equipment the cache was configured with
        """
        return self._node_size

    @property
    def scenario_extents(self):
        """
        `None` | [4], `np.float64` : System boundary
        ``[left, bottom, width, height]`` [m]
        """
        return self._extents

    @property
    def is_configured(self):
        """
        `bool` : `True` once :meth:`reconfigure` has succeeded
        """
        return self._site_positions is not None

    def matches(self, site_positions, scenario_extents=None):
        """
        Returns `True` if the cache is configured for the given site positions
        and scenario extents

        Input
        -----
        site_positions : [num_sites, 3], `float`
            Site positions [m]

        scenario_extents : `None` (default) | [4], `float`
            System boundary ``[left, bottom, width, height]`` [m]

        Output
        ------
        : `bool`
            `True` if the site positions and the extents are unchanged
        """
        if self._site_positions is None:
            return False
        site_positions = np.asarray(site_positions, np.float64)
        if site_positions.shape != self._site_positions.shape or \
                not np.array_equal(site_positions, self._site_positions):
            return False
        if scenario_extents is None or self._extents is None:
            return scenario_extents is None and self._extents is None
        return np.array_equal(np.asarray(scenario_extents, np.float64),
                              self._extents)

    def reconfigure(self, site_positions, node_size, scenario_extents):
        r"""
        Discards all random fields and generates the system-wide fields for
        a new set of site positions

        Nothing is modified if an error occurs.

        Input
        -----
        site_positions : [num_sites, 3], `float`
            Site positions [m]

        node_size : (`int`, `int`, `int`)
            Number of sites, sectors per site and user equipment

        scenario_extents : `None` | [4], `float`
            System boundary ``[left, bottom, width, height]`` [m]. Required
            if spatial consistency is enabled or the inter-site distance is
            defined.
        """
        site_positions = np.atleast_2d(np.asarray(site_positions, np.float64))
        node_size = tuple(int(n) for n in node_size)
        if scenario_extents is not None:
            scenario_extents = np.asarray(scenario_extents, np.float64)
            if scenario_extents.shape != (4,) or np.any(scenario_extents[2:] < 0.):
                raise ValueError("Scenario extents must be of the form "
                                 "[left, bottom, width, height] with "
                                 "non-negative width and height")
        needs_extents = self._config.spatial_consistency or \
                        self._config.inter_site_distance is not None
        if needs_extents and scenario_extents is None:
            raise ValueError("Scenario extents are required for spatially "
                             "consistent random variables")

        o2i = los = atoa = None
        if self._config.spatial_consistency:
            min_corner = scenario_extents[:2]
            max_corner = min_corner + scenario_extents[2:]
            num_sites = site_positions.shape[0]
            rngs = self._system_stream(node_size).split(4)

            o2i = AutoCorrelationField(rngs[0], min_corner, max_corner,
                                       O2I_CORRELATION_DISTANCES,
                                       precision=self.precision)
            d = los_correlation_distance(self._config)
            los = AutoCorrelationField(rngs[1], min_corner, max_corner,
                                       [d]*num_sites,
                                       precision=self.precision)
            if self._config.absolute_toa:
                d = atoa_correlation_distance(self._config)
                atoa = AutoCorrelationField(rngs[2], min_corner, max_corner,
                                            [d]*num_sites,
                                            precision=self.precision)

        self._site_positions = site_positions
        self._node_size = node_size
        self._extents = scenario_extents
        self._o2i = o2i
        self._los = los
        self._atoa = atoa
        self._lsp = {}
        self._clusters = None
        logging.info("Scenario cache configured for %d sites",
                     site_positions.shape[0])

    def _system_stream(self, node_size):
        return config.stream(int(np.prod(node_size)) + self._config.seed)

    def _check_configured(self):
        if not self.is_configured:
            raise RuntimeError("The scenario cache is not configured")

    @property
    def o2i_field(self):
        """
        `None` | :class:`~linkgen.phy.channel.tr38901.AutoCorrelationField` :
        O2I building type (0) and high (1) and low (2) loss penetration
        deviation fields. `None` without spatial consistency.
        """
        return self._o2i

    def los_variable(self, site, ue_position):
        r"""
        Spatially consistent :math:`\mathcal{U}(0,1)` variable of the LOS
        state for a site

        Input
        -----
        site : `int`
            Zero-based site index. Sites beyond the number of configured sites
            reuse the fields modulo this number.

        ue_position : [3], `float`
            User equipment position [m]

        Output
        ------
        : [], `tf.float`
            Random variable
        """
        self._check_configured()
        return self._los.sample_uniform(ue_position, site % self._los.num_fields)

    def atoa_variable(self, site, ue_position):
        r"""
        Spatially consistent :math:`\mathcal{N}(0,1)` variable of the absolute
        time of arrival for a site

        Input
        -----
        site : `int`
            Zero-based site index

        ue_position : [3], `float`
            User equipment position [m]

        Output
        ------
        : [], `tf.float`
            Random variable
        """
        self._check_configured()
        return self._atoa.sample_normal(ue_position, site % self._atoa.num_fields)

    def lsp_field(self, row, column, correlation_distances):
        r"""
        Large scale parameter field of a site row and column, generated on
        first use

        Input
        -----
        row : `int`
            Zero-based row, usually the site index

        column : `int`
            Zero-based column: 0 for NLOS, 1 for LOS, and 2 and above for O2I

        correlation_distances : [7], `float`
            Correlation distances of the large scale parameters [m]. Only
            used when the field is created.

        Output
        ------
        : :class:`~linkgen.phy.channel.tr38901.AutoCorrelationField`
            Field with one component per large scale parameter
        """
        self._check_configured()
        key = (int(row), int(column))
        if key not in self._lsp:
            rng = config.stream(self._config.seed + key[0]).split(key[1]+1)[key[1]]
            min_corner = self._extents[:2]
            max_corner = min_corner + self._extents[2:]
            self._lsp[key] = AutoCorrelationField(rng, min_corner, max_corner,
                                                  correlation_distances,
                                                  precision=self.precision)
        return self._lsp[key]

    @property
    def num_cluster_fields(self):
        """
        `int` : Number of fields per cluster-specific random variable and link
        condition, the larger of the number of sites and of the maximum
        number of clusters of the scenario
        """
        scenario = self._config.scenario
        conditions = ["LOS", "NLOS"]
        if scenario.is_cellular:
            conditions.append("O2I")
        num_clusters = max(int(load_table(scenario.family, c)["numClusters"])
                           for c in conditions)
        return max(self.num_sites, num_clusters)

    def cluster_fields(self):
        r"""
        Cluster-specific random fields, generated on first use

        Each field has ``3*K`` components, where ``K`` is
        :attr:`num_cluster_fields`. Component ``3*k + c`` belongs to slot
        ``k`` and condition ``c`` (0 for NLOS, 1 for LOS, 2 for O2I).

        Output
        ------
        : `dict`
            Fields keyed by the names in ``CLUSTER_FIELDS``
        """
        self._check_configured()
        if self._clusters is None:
            k = self.num_cluster_fields
            distances = cluster_correlation_distances(self._config)*k
            min_corner = self._extents[:2]
            max_corner = min_corner + self._extents[2:]
            rng = self._system_stream(self._node_size).split(4)[3]
            fields = {}
            for name in CLUSTER_FIELDS:
                fields[name] = AutoCorrelationField(rng, min_corner,
                                                    max_corner, distances,
                                                    precision=self.precision)
            self._clusters = fields
            logging.debug("Created %d cluster-specific random fields",
                          len(fields))
        return self._clusters

    def _cluster_indices(self, site, num_clusters, indoor, los):
        k = self.num_cluster_fields
        slots = (site + np.arange(num_clusters)) % k
        condition = 2 if indoor else int(los)
        return 3*slots + condition

    def cluster_normal(self, name, site, ue_position, num_clusters, indoor,
                       los):
        r"""
        Spatially consistent :math:`\mathcal{N}(0,1)` cluster-specific
        variables

        Cluster :math:`n` of a link to site :math:`s` uses the slot
        :math:`(s+n) \bmod K`, which decorrelates the clusters of a link
        while reusing the fields across sites.

        Input
        -----
        name : `str`
            One of ``CLUSTER_FIELDS``

        site : `int`
            Zero-based site index

        ue_position : [3], `float`
            User equipment position [m]

        num_clusters : `int`
            Number of clusters

        indoor : `bool`
            O2I link

        los : `bool`
            LOS state

        Output
        ------
        : [num_clusters], `tf.float`
            Random variables
        """
        field = self.cluster_fields()[name]
        return field.sample_normal(ue_position,
                                   self._cluster_indices(site, num_clusters,
                                                         indoor, los))

    def cluster_uniform(self, name, site, ue_position, num_clusters, indoor,
                        los):
        r"""
        Spatially consistent :math:`\mathcal{U}(0,1)` cluster-specific
        variables. See :meth:`cluster_normal`.
        """
        field = self.cluster_fields()[name]
        return field.sample_uniform(ue_position,
                                    self._cluster_indices(site, num_clusters,
                                                          indoor, los))
