#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""Generation of the channel link between a base station and a user
equipment following Section 7.5 of TR 38.901"""

import logging
import numpy as np
import tensorflow as tf

from linkgen.phy import Object, config
from linkgen.phy.constants import SPEED_OF_LIGHT
from linkgen.phy.channel.utils import path_filters
from .parameters import LinkParameters
from .propagation import los_probability, environment_height, o2i_loss, \
    basic_pathloss, bs_orientation, ue_orientation, ue_mobility, los_angles
from .layout import wraparound_offsets, nearest_image, check_ue_position
from .lsp import LSPGenerator
from .clusters import ClusterGenerator


# Statistics of the excess delay of the absolute time of arrival, Table
# 7.6.9-1
MU_LG_DELTA_TAU = -7.5
SIGMA_LG_DELTA_TAU = 0.4

# Cluster delay spread used if the scenario does not define it [s]
DEFAULT_CLUSTER_DELAY_SPREAD = 3.91e-9

# Relative delays of the sub-clusters of the strongest clusters, in units of
# the cluster delay spread, Table 7.5-5
SUB_CLUSTER_DELAYS = (0., 1.28, 2.56)


def default_txru_virtualization():
    """Default TXRU virtualization: one element per TXRU, no tilt or pan"""
    return {"K" : 1, "tilt" : 0., "L" : 1, "pan" : 0.}


class LinkConfig():
    # pylint: disable=line-too-long
    r"""
    Configuration of a single base station to user equipment link

    Links are always configured in the downlink orientation, i.e., the base
    station transmits.

    Parameters
    ----------
    bs_position : [3], `float`
        Base station position [m]

    ue_position : [3], `float`
        User equipment position [m]

    carrier_frequency : `float`
        Carrier frequency [Hz]

    node_subs : (`int`, `int`, `int`)
        Zero-based site, sector and user equipment indices of the link

    node_size : (`int`, `int`, `int`)
        Number of sites, sectors per site and user equipment. Used to seed
        the random streams.

    num_tx : `int`
        Number of transmit antennas

    num_rx : `int`
        Number of receive antennas

    fast_fading : `bool`
        If `True` (default), clusters are generated

    d_2d_in : `float`
        Indoor 2D distance of the user equipment [m]. Non-zero values denote
        an O2I link.

    n_fl : `int`
        Floor number of the user equipment

    txru_virtualization : `None` | `dict`
        TXRU virtualization of the base station with keys "K", "tilt", "L"
        and "pan". If `None`, one element per TXRU is assumed.

    tx_orientation : `None` | [3], `float`
        Orientation of the base station array [deg]. If `None`, it is
        derived from the sector index.

    layout : `None` | (`int`, `int`)
        Number of sites and sectors per site of the site layout, used for
        wrap-around. If `None`, the first two entries of ``node_size`` are
        used.

    los : `None` | `bool`
        If not `None`, the LOS state is forced to this value. The LOS random
        variable is drawn nonetheless.
    """
    def __init__(self,
                 bs_position,
                 ue_position,
                 carrier_frequency,
                 node_subs=(0, 0, 0),
                 node_size=(1, 1, 1),
                 num_tx=1,
                 num_rx=1,
                 fast_fading=True,
                 d_2d_in=0.,
                 n_fl=1,
                 txru_virtualization=None,
                 tx_orientation=None,
                 layout=None,
                 los=None):

        self.bs_position = np.asarray(bs_position, np.float64)
        self.ue_position = np.asarray(ue_position, np.float64)
        if self.bs_position.shape != (3,) or self.ue_position.shape != (3,):
            raise ValueError("Node positions must be 3D")
        self.carrier_frequency = float(carrier_frequency)
        if not self.carrier_frequency > 0.:
            raise ValueError("'carrier_frequency' must be positive")
        self.node_subs = tuple(int(i) for i in node_subs)
        self.node_size = tuple(int(n) for n in node_size)
        self.num_tx = int(num_tx)
        self.num_rx = int(num_rx)
        self.fast_fading = bool(fast_fading)
        self.d_2d_in = float(d_2d_in)
        if self.d_2d_in < 0.:
            raise ValueError("'d_2d_in' must not be negative")
        self.n_fl = int(n_fl)
        if txru_virtualization is None:
            txru_virtualization = default_txru_virtualization()
        self.txru_virtualization = txru_virtualization
        self.tx_orientation = tx_orientation
        if layout is None:
            layout = self.node_size[:2]
        self.layout = tuple(int(n) for n in layout)
        self.los = None if los is None else bool(los)

    @property
    def indoor(self):
        """
        `bool` : `True` for an O2I link
        """
        return self.d_2d_in != 0.


class ChannelInfo:
    r"""
    Class for conveniently storing the propagation state of a link

    Parameters
    -----------

    o2i_loss : [], `tf.float`
        O2I penetration loss [dB]

    los_probability : [], `tf.float`
        LOS probability

    los : `bool`
        LOS state

    h_e : [], `tf.float`
        Environment height [m]

    sf : [], `tf.float`
        Shadow fading [dB]

    k_factor : `None` | [], `tf.float`
        Rician K-factor [dB]

    distance_3d : `float`
        3D distance between the closest wrap-around image of the base
        station and the user equipment [m]
    """
    def __init__(self, o2i_loss, los_probability, los, h_e, sf, k_factor,
                 distance_3d):
        self.o2i_loss = o2i_loss
        self.los_probability = los_probability
        self.los = los
        self.h_e = h_e
        self.sf = sf
        self.k_factor = k_factor
        self.distance_3d = distance_3d


class LargeScaleLoss(Object):
    # pylint: disable=line-too-long
    r"""
    Large scale loss of a link, i.e., basic path loss plus O2I penetration
    loss minus shadow fading

    The loss is evaluated for the current node positions, which allows the
    nodes to move after the link has been generated while the propagation
    state (LOS, environment height, O2I loss and shadow fading) is kept.
    The base station is replaced by its wrap-around image which is closest
    to the user equipment.

    The loss is reciprocal. After :meth:`swap_direction`, the transmitter
    and receiver positions are exchanged before evaluation, so that the
    loss can be evaluated with the positions of an uplink transmission.
    The last result is cached and returned as long as the positions and
    the carrier frequency do not change.

    Parameters
    ----------
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    los : `bool`
        LOS state

    h_e : `float`
        Environment height [m]

    o2i_loss : `float`
        O2I penetration loss [dB]

    sf : `float`
        Shadow fading [dB]

    offsets : [num_images, 2], `float`
        Wrap-around displacements [m]

    precision : `None` (default) | "single" | "double"
        Precision used for internal calculations and outputs.
        If set to `None`,
        :attr:`~linkgen.phy.config.Config.precision` is used.

    Input
    -----
    tx_position : [3], `float`
        Transmitter position [m]

    rx_position : [3], `float`
        Receiver position [m]

    carrier_frequency : `float`
        Carrier frequency [Hz]

    Output
    ------
    : [], `tf.float`
        Large scale loss [dB]
    """
    def __init__(self, scenario_config, los, h_e, o2i_loss, sf, offsets,
                 precision=None):
        super().__init__(precision=precision)
        self._config = scenario_config
        self._los = bool(los)
        self._h_e = h_e
        self._o2i_loss = self._cast(o2i_loss)
        self._sf = self._cast(sf)
        self._offsets = np.asarray(offsets, np.float64)
        self._swapped = False
        self._cache_key = None
        self._cache_value = None

    @property
    def is_swapped(self):
        """
        `bool` : `True` if the transmitter and receiver positions are
        exchanged before evaluation
        """
        return self._swapped

    def swap_direction(self):
        """Toggles the exchange of the transmitter and receiver positions"""
        self._swapped = not self._swapped

    def __call__(self, tx_position, rx_position, carrier_frequency):
        tx_position = np.asarray(tx_position, np.float64)
        rx_position = np.asarray(rx_position, np.float64)
        if self._swapped:
            tx_position, rx_position = rx_position, tx_position

        key = (tuple(tx_position), tuple(rx_position), float(carrier_frequency))
        if key != self._cache_key:
            image, _ = nearest_image(tx_position, rx_position, self._offsets)
            pl, _ = basic_pathloss(self._config, self._los, carrier_frequency,
                                   image, rx_position, self._h_e,
                                   precision=self.precision)
            self._cache_value = pl + self._o2i_loss - self._sf
            self._cache_key = key
        return self._cache_value


class ChannelLink:
    # pylint: disable=line-too-long
    r"""
    Channel between a base station and a user equipment

    A channel link holds the large scale loss and, if fast fading is
    modeled, the clusters of the link. It is generated in the downlink
    orientation and can be used for the uplink by calling
    :meth:`swap_direction`.

    Parameters
    -----------

    carrier_frequency : `float`
        Carrier frequency [Hz]

    num_tx : `int`
        Number of transmit antennas

    num_rx : `int`
        Number of receive antennas

    large_scale : :class:`~linkgen.phy.channel.tr38901.LargeScaleLoss`
        Large scale loss

    info : :class:`~linkgen.phy.channel.tr38901.ChannelInfo`
        Propagation state

    lsp : :class:`~linkgen.phy.channel.tr38901.LSP`
        Large scale parameters

    clusters : `None` | :class:`~linkgen.phy.channel.tr38901.Clusters`
        Clusters. `None` if fast fading is not modeled.

    los_angles : (`tf.float`, `tf.float`, `tf.float`, `tf.float`)
        AOA, AOD, ZOA and ZOD of the LOS direction [deg]

    path_delays : [num_paths], `tf.float`
        Delays of the paths [s]

    node_subs : (`int`, `int`, `int`)
        Zero-based site, sector and user equipment indices

    node_size : (`int`, `int`, `int`)
        Number of sites, sectors and user equipment

    txru_virtualization : `None` | `dict`
        TXRU virtualization of the transmitter

    tx_orientation : [3], `float`
        Orientation of the transmit array [deg]

    rx_orientation : [3], `float`
        Orientation of the receive array [deg]

    max_doppler_shift : `None` | [], `tf.float`
        Maximum Doppler shift [Hz]

    direction_of_travel : `None` | [2], `tf.float`
        Azimuth and zenith of the direction of travel of the user
        equipment [deg]

    angle_spreads : `None` | [4], `float`
        Cluster ASD, ASA, ZSD and ZSA [deg]

    cluster_delay_spread : `None` | `float`
        Cluster delay spread [s]
    """
    def __init__(self, carrier_frequency, num_tx, num_rx, large_scale, info,
                 lsp, clusters, los_angles, path_delays, node_subs, node_size,
                 txru_virtualization, tx_orientation, rx_orientation,
                 max_doppler_shift=None, direction_of_travel=None,
                 angle_spreads=None, cluster_delay_spread=None):
        self.carrier_frequency = carrier_frequency
        self.num_tx = num_tx
        self.num_rx = num_rx
        self.large_scale = large_scale
        self.info = info
        self.lsp = lsp
        self.clusters = clusters
        self.los_angles = los_angles
        self.path_delays = path_delays
        self.node_subs = node_subs
        self.node_size = node_size
        self.txru_virtualization = txru_virtualization
        self.tx_orientation = tx_orientation
        self.rx_orientation = rx_orientation
        self.max_doppler_shift = max_doppler_shift
        self.direction_of_travel = direction_of_travel
        self.angle_spreads = angle_spreads
        self.cluster_delay_spread = cluster_delay_spread

    @property
    def fast_fading(self):
        """
        `bool` : `True` if clusters are modeled
        """
        return self.clusters is not None

    @property
    def distance_3d(self):
        """
        `float` : 3D distance between the base station image and the user
        equipment at the time of generation [m]
        """
        return self.info.distance_3d

    @property
    def is_swapped(self):
        """
        `bool` : `True` if the link is used in the uplink orientation
        """
        return self.large_scale.is_swapped

    def swap_direction(self):
        """Toggles the orientation of the link"""
        self.large_scale.swap_direction()

    def _angles(self, i, name):
        if self.clusters is None:
            return tf.reshape(self.los_angles[i], [1])
        return getattr(self.clusters, name)

    @property
    def aoa(self):
        """
        [num_clusters], `tf.float` : Azimuth angles of arrival [deg]. Only
        the LOS direction without fast fading.
        """
        return self._angles(0, "aoa")

    @property
    def aod(self):
        """
        [num_clusters], `tf.float` : Azimuth angles of departure [deg]
        """
        return self._angles(1, "aod")

    @property
    def zoa(self):
        """
        [num_clusters], `tf.float` : Zenith angles of arrival [deg]
        """
        return self._angles(2, "zoa")

    @property
    def zod(self):
        """
        [num_clusters], `tf.float` : Zenith angles of departure [deg]
        """
        return self._angles(3, "zod")

    def path_filters(self, sampling_frequency):
        """
        Returns the discrete-time filters of the paths of the link

        Input
        -----
        sampling_frequency : `float`
            Sampling frequency [Hz]

        Output
        ------
        : [num_paths, num_taps], `tf.float`
            Filter taps, see :func:`~linkgen.phy.channel.path_filters`
        """
        return path_filters(self.path_delays, sampling_frequency)


class ChannelLinkGenerator(Object):
    # pylint: disable=line-too-long
    r"""
    Generates the channel link between a base station and a user equipment

    The procedure follows Section 7.5 of TR 38.901. The base station is
    first replaced by its wrap-around image closest to the user equipment.
    Then, the array orientations, the mobility of the user equipment, the
    LOS state, the environment height, the O2I loss, the large scale
    parameters and, if fast fading is modeled, the clusters are generated.
    Finally, the absolute time of arrival is applied for InF scenarios if
    configured.

    Random variables are drawn from streams that are seeded with the
    scenario seed and the indices of the link:

    - The site and user equipment stream, seeded with
      ``seed + site + ue*num_sites``, provides the LOS state, environment
      height, large scale parameters, cluster delays, powers, angles, ray
      coupling, XPRs and absolute time of arrival, in this order.
    - The user equipment stream, seeded with ``seed + ue``, provides the
      receive array orientation, the mobility, the O2I loss and the initial
      phases, in this order.

    Hence, the links of co-located sectors with the same user equipment have
    the same parameters, and the same link is obtained regardless of the
    order in which links are generated.

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
    link_config : :class:`~linkgen.phy.channel.tr38901.LinkConfig`
        Link configuration

    cache : `None` | :class:`~linkgen.phy.channel.tr38901.ScenarioCache`
        Configured scenario cache. Required if the inter-site distance is
        defined or spatial consistency is enabled.

    Output
    ------
    : :class:`~linkgen.phy.channel.tr38901.ChannelLink`
        Channel link
    """
    def __init__(self, scenario_config, precision=None):
        super().__init__(precision=precision)
        self._config = scenario_config
        self._lsp_generator = LSPGenerator(scenario_config,
                                           precision=precision)
        self._cluster_generator = ClusterGenerator(scenario_config,
                                                   precision=precision)

    @property
    def scenario_config(self):
        """
        :class:`~linkgen.phy.channel.tr38901.ScenarioConfig` : Scenario
        configuration
        """
        return self._config

    def streams(self, link_config):
        """
        Returns the site and user equipment stream and the user equipment
        stream of a link

        Input
        -----
        link_config : :class:`~linkgen.phy.channel.tr38901.LinkConfig`
            Link configuration

        Output
        ------
        site_ue_rng : `tf.random.Generator`
            Site and user equipment stream

        ue_rng : `tf.random.Generator`
            User equipment stream
        """
        site, _, ue = link_config.node_subs
        num_sites = link_config.node_size[0]
        seed = self._config.seed
        return (config.stream(seed + site + ue*num_sites),
                config.stream(seed + ue))

    def _offsets(self, link_config):
        if not self._config.wrapping:
            return np.zeros([1, 2])
        num_sites, num_sectors = link_config.layout
        return wraparound_offsets(self._config.inter_site_distance,
                                  num_sites, num_sectors)

    def __call__(self, link_config, cache=None):

        cfg = link_config
        scenario = self._config.scenario
        site, sector, _ = cfg.node_subs
        indoor = cfg.indoor
        if indoor and not scenario.is_cellular:
            raise ValueError("O2I links are only supported by the UMi, UMa "
                             "and RMa scenarios")

        needs_cache = self._config.spatial_consistency or \
                      self._config.inter_site_distance is not None
        if needs_cache:
            if cache is None or not cache.is_configured:
                raise ValueError("A configured scenario cache is required")
            check_ue_position(cache.scenario_extents, cfg.ue_position)
        sc_cache = cache if self._config.spatial_consistency else None

        site_ue_rng, ue_rng = self.streams(cfg)

        # Wrap-around
        offsets = self._offsets(cfg)
        bs_position, distance_3d = nearest_image(cfg.bs_position,
                                                 cfg.ue_position, offsets)
        ue_position = cfg.ue_position
        distance_2d = float(np.linalg.norm(bs_position[:2] - ue_position[:2]))
        distance_2d_out = distance_2d - cfg.d_2d_in
        h_bs = float(bs_position[2])
        h_ut = float(ue_position[2])
        fc = cfg.carrier_frequency

        # Array orientations
        if cfg.tx_orientation is None:
            tx_orientation = bs_orientation(sector, cfg.layout[1])
        else:
            tx_orientation = np.asarray(cfg.tx_orientation, np.float64)
        rx_orientation = ue_orientation(ue_rng, precision=self.precision)

        # Mobility
        max_doppler_shift = direction_of_travel = None
        if cfg.fast_fading:
            max_doppler_shift, direction_of_travel = ue_mobility(
                                    self._config, ue_rng, fc, indoor,
                                    precision=self.precision)

        # LOS state
        p_los = los_probability(self._config, distance_2d_out, h_bs, h_ut,
                                precision=self.precision)
        if sc_cache is not None:
            x = tf.cast(sc_cache.los_variable(site, ue_position), self.rdtype)
        else:
            x = site_ue_rng.uniform([], dtype=self.rdtype)
        los = bool(x < p_los) if cfg.los is None else cfg.los

        # Path loss
        h_e = environment_height(self._config, site_ue_rng, distance_2d,
                                 h_ut, precision=self.precision)
        o2i = o2i_loss(self._config, ue_rng, cfg.d_2d_in, fc,
                       field=None if sc_cache is None else sc_cache.o2i_field,
                       ue_position=ue_position, precision=self.precision)

        # Large scale parameters
        params = LinkParameters(self._config, fc, los, indoor, distance_2d,
                                h_bs, h_ut)
        sigma_sf = params.sigma_sf
        if sigma_sf is None:
            _, sigma_sf = basic_pathloss(self._config, los, fc, bs_position,
                                         ue_position, h_e,
                                         precision=self.precision)
        lsp = self._lsp_generator(params, site_ue_rng, sigma_sf,
                                  cfg.fast_fading, cache=cache, site=site,
                                  ue_position=ue_position, indoor=indoor,
                                  los=los, n_fl=cfg.n_fl)

        # Clusters
        angles = los_angles(bs_position, ue_position,
                            precision=self.precision)
        clusters = None
        angle_spreads = cluster_delay_spread = None
        if cfg.fast_fading:
            clusters = self._cluster_generator(params, lsp, angles,
                                               site_ue_rng, ue_rng,
                                               indoor=indoor, los=los,
                                               cache=sc_cache, site=site,
                                               ue_position=ue_position)
            angle_spreads = [params.c_asd, params.c_asa, params.c_zsd,
                             params.c_zsa]
            cluster_delay_spread = params.c_ds
            if cluster_delay_spread is None:
                cluster_delay_spread = DEFAULT_CLUSTER_DELAY_SPREAD
            delays = tf.cast(clusters.path_delays, self.rdtype)
        else:
            delays = tf.zeros([1], self.rdtype)

        if self._config.absolute_toa:
            delays = self._absolute_toa(delays, clusters, distance_3d,
                                        site_ue_rng, sc_cache, site,
                                        ue_position)
        if clusters is not None:
            delays = self._expand_strongest_clusters(delays, clusters.powers,
                                                     cluster_delay_spread)

        large_scale = LargeScaleLoss(self._config, los, h_e, o2i, lsp.sf,
                                     offsets, precision=self.precision)
        info = ChannelInfo(o2i, p_los, los, h_e, lsp.sf, lsp.k_factor,
                           distance_3d)

        logging.debug("Generated channel link for site %d, sector %d and UE "
                      "%d (LOS: %s, fast fading: %s)", site, sector,
                      cfg.node_subs[2], los, cfg.fast_fading)

        return ChannelLink(fc, cfg.num_tx, cfg.num_rx, large_scale, info, lsp,
                           clusters, angles, delays, cfg.node_subs,
                           cfg.node_size, cfg.txru_virtualization,
                           tx_orientation, rx_orientation,
                           max_doppler_shift=max_doppler_shift,
                           direction_of_travel=direction_of_travel,
                           angle_spreads=angle_spreads,
                           cluster_delay_spread=cluster_delay_spread)

    def _absolute_toa(self, delays, clusters, distance_3d, rng, cache, site,
                      ue_position):
        # Section 7.6.9
        if cache is not None:
            x = tf.cast(cache.atoa_variable(site, ue_position), self.rdtype)
        else:
            x = rng.normal([], dtype=self.rdtype)
        delta_tau = tf.pow(tf.constant(10., self.rdtype),
                           MU_LG_DELTA_TAU + SIGMA_LG_DELTA_TAU*x)
        max_delay = 2.*float(np.max(self._config.hall_size))/SPEED_OF_LIGHT
        delta_tau = tf.minimum(delta_tau, max_delay)

        delays = delays + distance_3d/SPEED_OF_LIGHT
        if clusters is not None:
            first = int(clusters.has_los_cluster)
            n = int(delays.shape[0])
            excess = tf.concat([tf.zeros([first], self.rdtype),
                                tf.fill([n - first], delta_tau)], axis=0)
            delays = delays + excess
        return delays

    def _expand_strongest_clusters(self, delays, powers, cluster_delay_spread):
        # The two strongest clusters are split into three sub-clusters
        num_strongest = min(int(powers.shape[0]), 2)
        strongest = set(np.argsort(-powers.numpy())[:num_strongest].tolist())
        expanded = []
        for n in range(int(delays.shape[0])):
            if n in strongest:
                for d in SUB_CLUSTER_DELAYS:
                    expanded.append(delays[n] + d*cluster_delay_spread)
            else:
                expanded.append(delays[n])
        return tf.stack(expanded)
