#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""
Class for sampling cluster delays, powers, angles, ray couplings, XPRs and
initial phases following steps 5 to 10 of Section 7.5 of TR 38.901.
"""

import numpy as np
import tensorflow as tf

from linkgen.phy import Object
from linkgen.phy.constants import CLUSTER_POWER_THRESHOLD_DB
from linkgen.phy.utils import log10


# Scaling factors of the azimuth angles, Table 7.5-2
C_PHI_NLOS = {4 : 0.779, 5 : 0.860, 8 : 1.018, 10 : 1.090, 11 : 1.123,
              12 : 1.146, 14 : 1.190, 15 : 1.211, 16 : 1.226, 19 : 1.273,
              20 : 1.289, 25 : 1.358}

# Scaling factors of the zenith angles, Table 7.5-4
C_THETA_NLOS = {8 : 0.889, 10 : 0.957, 11 : 1.031, 12 : 1.104, 15 : 1.1088,
                19 : 1.184, 20 : 1.178, 25 : 1.282}


class Clusters:
    r"""
    Class for conveniently storing the clusters of a link

    Parameters
    -----------

    delays : [num_clusters], `tf.float`
        Sorted cluster delays, without LOS scaling [s]

    delay_scaling : `float`
        LOS delay scaling factor. 1 for NLOS and O2I links.

    powers : [num_clusters], `tf.float`
        Normalized cluster powers

    los_powers : [num_clusters], `tf.float`
        Normalized cluster powers including the LOS ray in the first
        cluster. Equal to ``powers`` for NLOS and O2I links.

    k_factor_first_cluster : `float`
        K-factor of the first cluster [dB]. `-inf` for NLOS and O2I links.

    aoa : [num_clusters], `tf.float`
        Azimuth angles of arrival [deg]

    aod : [num_clusters], `tf.float`
        Azimuth angles of departure [deg]

    zoa : [num_clusters], `tf.float`
        Zenith angles of arrival [deg]

    zod : [num_clusters], `tf.float`
        Zenith angles of departure [deg]

    ray_coupling : [num_clusters, num_rays, 3], `tf.int32`
        Random coupling of the rays of AOD to AOA, ZOD to ZOA, and AOD to ZOD

    xpr : [num_clusters, num_rays], `tf.float`
        Cross-polarization power ratios [dB]

    initial_phases : [num_clusters, num_rays, 4], `tf.float`
        Initial phases [deg]

    has_los_cluster : `bool`
        `True` if the first cluster contains the LOS ray
    """
    def __init__(self, delays, delay_scaling, powers, los_powers,
                 k_factor_first_cluster, aoa, aod, zoa, zod, ray_coupling,
                 xpr, initial_phases, has_los_cluster):
        self.delays = delays
        self.delay_scaling = delay_scaling
        self.powers = powers
        self.los_powers = los_powers
        self.k_factor_first_cluster = k_factor_first_cluster
        self.aoa = aoa
        self.aod = aod
        self.zoa = zoa
        self.zod = zod
        self.ray_coupling = ray_coupling
        self.xpr = xpr
        self.initial_phases = initial_phases
        self.has_los_cluster = has_los_cluster

    @property
    def num_clusters(self):
        """
        `int` : Number of clusters
        """
        return int(self.delays.shape[0])

    @property
    def path_delays(self):
        """
        [num_clusters], `tf.float` : Cluster delays including the LOS scaling
        [s]
        """
        return self.delays/self.delay_scaling


class ClusterGenerator(Object):
    # pylint: disable=line-too-long
    r"""
    Generate the clusters of a link following steps 5 to 10 of Section 7.5
    of TR 38.901

    Delays, powers and angles use the site and user equipment stream of the
    link, unless spatial consistency is enabled, in which case they are
    sampled from the cluster-specific fields of a
    :class:`~linkgen.phy.channel.tr38901.ScenarioCache`. The ray
    coupling and the XPRs always use the site and user equipment stream,
    and the initial phases the user equipment stream.

    Clusters with a power more than 25 dB below the strongest cluster are
    removed, and the powers of the remaining clusters are normalized to
    sum to one.

    Parameters
    ----------
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    precision : `None` (default) | "single" | "double"
        Precision used for internal calculations and outputs.
        If set to `None`,
        :attr:`~linkgen.phy.config.Config.precision` is used.

    Input
    -----
    params : :class:`~linkgen.phy.channel.tr38901.LinkParameters`
        Statistical parameters of the link

    lsp : :class:`~linkgen.phy.channel.tr38901.LSP`
        Large scale parameters of the link

    los_angles : (`tf.float`, `tf.float`, `tf.float`, `tf.float`)
        AOA, AOD, ZOA and ZOD of the LOS direction [deg]

    site_ue_rng : `tf.random.Generator`
        Site and user equipment stream of the link

    ue_rng : `tf.random.Generator`
        User equipment stream of the link

    indoor : `bool`
        O2I link

    los : `bool`
        LOS state

    cache : `None` | :class:`~linkgen.phy.channel.tr38901.ScenarioCache`
        Scenario cache. Required if spatial consistency is enabled.

    site : `int`
        Zero-based site index

    ue_position : [3], `float`
        User equipment position [m]

    Output
    ------
    : :class:`~linkgen.phy.channel.tr38901.Clusters`
        Clusters of the link
    """
    def __init__(self, scenario_config, precision=None):
        super().__init__(precision=precision)
        self._config = scenario_config
        self._set_link_state(None, None, 0, None, False, False)

    def _set_link_state(self, rng, cache, site, ue_position, indoor, los):
        self._rng = rng
        self._cache = cache
        self._site = site
        self._ue_position = ue_position
        self._indoor = indoor
        self._los = los

    def _normal(self, name, n):
        if self._cache is None:
            return self._rng.normal([n], dtype=self.rdtype)
        return tf.cast(self._cache.cluster_normal(name, self._site,
                                                  self._ue_position, n,
                                                  self._indoor, self._los),
                       self.rdtype)

    def _uniform(self, name, n):
        if self._cache is None:
            return self._rng.uniform([n], dtype=self.rdtype)
        return tf.cast(self._cache.cluster_uniform(name, self._site,
                                                   self._ue_position, n,
                                                   self._indoor, self._los),
                       self.rdtype)

    def __call__(self, params, lsp, los_angles, site_ue_rng, ue_rng,
                 indoor=False, los=False, cache=None, site=0,
                 ue_position=None):

        if self._config.spatial_consistency and cache is None:
            raise ValueError("A scenario cache is required for spatially "
                             "consistent clusters")
        if not self._config.spatial_consistency:
            cache = None
        self._set_link_state(site_ue_rng, cache, site, ue_position, indoor,
                             los)
        try:
            return self._generate(params, lsp, los_angles, site_ue_rng,
                                  ue_rng, indoor, los)
        finally:
            self._set_link_state(None, None, 0, None, False, False)

    def _generate(self, params, lsp, los_angles, site_ue_rng, ue_rng, indoor,
                  los):
        has_los_cluster = bool(los and not indoor)
        k = lsp.k_factor

        delays, delay_scaling = self._delays(params, lsp, has_los_cluster)
        powers, los_powers, delays, k_first = self._powers(params, lsp,
                                                           delays,
                                                           has_los_cluster)
        aoa_los, aod_los, zoa_los, zod_los = los_angles
        n = int(powers.shape[0])
        aoa = self._azimuth("aoa", lsp.asa, aoa_los, los_powers, k,
                            params.num_clusters, has_los_cluster)
        aod = self._azimuth("aod", lsp.asd, aod_los, los_powers, k,
                            params.num_clusters, has_los_cluster)
        zoa = self._zenith("zoa", lsp.zsa, zoa_los, los_powers, k,
                           params.num_clusters, has_los_cluster, None)
        zod = self._zenith("zod", lsp.zsd, zod_los, los_powers, k,
                           params.num_clusters, has_los_cluster,
                           params.zod_offset)

        m = params.num_rays
        # Step 8
        coupling = tf.argsort(site_ue_rng.uniform([n, m, 3],
                                                  dtype=self.rdtype),
                              axis=1)
        # Step 9
        xpr = params.mu_xpr + params.sigma_xpr*site_ue_rng.normal(
                                                    [n, m], dtype=self.rdtype)
        # Step 10
        phases = ue_rng.uniform([n, m, 4], dtype=self.rdtype)*360. - 180.

        return Clusters(delays, delay_scaling, powers, los_powers, k_first,
                        aoa, aod, zoa, zod, coupling, xpr, phases,
                        has_los_cluster)

    def _delays(self, params, lsp, has_los_cluster):
        # Step 5
        n = params.num_clusters
        x = self._uniform("delays", n)
        x = tf.maximum(x, tf.constant(np.finfo(self.np_rdtype).tiny,
                                      self.rdtype))
        tau = -params.r_tau*lsp.ds*tf.math.log(x)
        tau = tf.sort(tau - tf.reduce_min(tau))
        scaling = 1.
        if has_los_cluster:
            k = float(lsp.k_factor)
            scaling = 0.7705 - 0.0433*k + 0.0002*k**2 + 0.000017*k**3
        return tau, scaling

    def _powers(self, params, lsp, delays, has_los_cluster):
        # Step 6
        r_tau = params.r_tau
        z = self._normal("powers", int(delays.shape[0]))
        shadowing = params.zeta*z
        p = tf.exp(-delays*(r_tau - 1.)/(r_tau*lsp.ds)) \
            * tf.pow(tf.constant(10., self.rdtype), -shadowing/10.)
        p = p/tf.reduce_sum(p)

        if has_los_cluster:
            kr = 10.**(float(lsp.k_factor)/10.)
            p1_los = kr/(kr + 1.)
            first = tf.one_hot(0, tf.shape(p)[0], dtype=self.rdtype)
            los_powers = p/(kr + 1.) + p1_los*first
            k_first = 10.*np.log10(p1_los/(float(los_powers[0]) - p1_los))
        else:
            los_powers = p
            k_first = -np.inf

        # Remove weak clusters
        p_db = 10.*log10(p)
        keep = p_db >= tf.reduce_max(p_db) - CLUSTER_POWER_THRESHOLD_DB
        p = tf.boolean_mask(p, keep)
        los_powers = tf.boolean_mask(los_powers, keep)
        delays = tf.boolean_mask(delays, keep)
        p = p/tf.reduce_sum(p)
        los_powers = los_powers/tf.reduce_sum(los_powers)
        return p, los_powers, delays, k_first

    def _random_components(self, name, spread, n):
        # Random sign X and offset Y of Equations 7.5-11 and 7.5-16
        x = self._uniform(name + "_sign", n)
        x = tf.where(x > 0.5, tf.ones_like(x), -tf.ones_like(x))
        y = spread/7.*self._normal(name + "_offset", n)
        return x, y

    def _azimuth(self, name, spread, los_angle, powers, k, num_clusters,
                 has_los_cluster):
        # Step 7, azimuth angles
        if num_clusters not in C_PHI_NLOS:
            raise ValueError(f"No azimuth scaling factor for {num_clusters} "
                             "clusters")
        c = C_PHI_NLOS[num_clusters]
        if has_los_cluster:
            k = float(k)
            c = c*(1.1035 - 0.028*k - 0.002*k**2 + 0.0001*k**3)
        phi = 2.*(spread/1.4)*tf.sqrt(-tf.math.log(powers
                                                   /tf.reduce_max(powers)))/c
        x, y = self._random_components(name, spread, int(powers.shape[0]))
        if has_los_cluster:
            return x*phi + y - (x[0]*phi[0] + y[0] - los_angle)
        return x*phi + y + los_angle

    def _zenith(self, name, spread, los_angle, powers, k, num_clusters,
                has_los_cluster, zod_offset):
        # Step 7, zenith angles
        if num_clusters not in C_THETA_NLOS:
            raise ValueError(f"No zenith scaling factor for {num_clusters} "
                             "clusters")
        c = C_THETA_NLOS[num_clusters]
        if has_los_cluster:
            k = float(k)
            c = c*(1.3086 + 0.0339*k - 0.0077*k**2 + 0.0002*k**3)
        theta = -spread*tf.math.log(powers/tf.reduce_max(powers))/c
        x, y = self._random_components(name, spread, int(powers.shape[0]))
        theta = x*theta + y
        if has_los_cluster:
            return theta - (theta[0] - los_angle)
        if zod_offset is None:
            # Arrival
            mean = 90. if self._indoor else los_angle
            return theta + mean
        return theta + los_angle + zod_offset
