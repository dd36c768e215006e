#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#
"""
Registry of the channel links of a system-level scenario
"""

from abc import ABC, abstractmethod
from collections import namedtuple
import logging
import warnings
import numpy as np
import tensorflow as tf

from linkgen.phy import Object
from linkgen.phy.channel.tr38901 import ScenarioCache, LinkConfig, \
    ChannelLinkGenerator, wraparound_offsets
from linkgen.sys.topology import infer_scenario_extents


LinkKey = namedtuple("LinkKey", ["transmitter_id", "receiver_id"])
LinkKey.__doc__ = """Identifier of a link direction: (transmitter ID, receiver ID)"""


class LinkRequest:
    r"""
    Request for the channel of a transmission

    Parameters
    ----------
    transmitter_id : `int`
        Identifier of the transmitting node

    receiver_id : `int`
        Identifier of the receiving node

    carrier_frequency : `float`
        Carrier frequency [Hz]

    num_transmit_antennas : `None` | `int`
        Number of transmit antennas. If `None`, the transmit antenna count of
        the transmitter is used.

    num_receive_antennas : `None` | `int`
        Number of receive antennas. If `None`, the receive antenna count of
        the receiver is used.

    start_time : `float`
        Start time of the transmission [s]. Defaults to 0.

    duration : `float`
        Duration of the transmission [s]. Defaults to 0.

    transmitter_position : `None` | [3], `float`
        Transmitter position [m]. If `None`, the current position of the
        transmitter is used.

    receiver_position : `None` | [3], `float`
        Receiver position [m]. If `None`, the current position of the
        receiver is used.
    """
    def __init__(self, transmitter_id, receiver_id, carrier_frequency,
                 num_transmit_antennas=None, num_receive_antennas=None,
                 start_time=0., duration=0., transmitter_position=None,
                 receiver_position=None):
        self.transmitter_id = int(transmitter_id)
        self.receiver_id = int(receiver_id)
        self.carrier_frequency = float(carrier_frequency)
        self.num_transmit_antennas = num_transmit_antennas
        self.num_receive_antennas = num_receive_antennas
        self.start_time = float(start_time)
        self.duration = float(duration)
        self.transmitter_position = transmitter_position
        self.receiver_position = receiver_position

    @property
    def key(self):
        """
        :class:`~linkgen.sys.LinkKey` : Link direction of the request
        """
        return LinkKey(self.transmitter_id, self.receiver_id)


class ScenarioInfo:
    r"""
    Summary of the scenario recorded by
    :meth:`~linkgen.sys.LinkRegistry.connect_nodes`

    Parameters
    ----------
    scenario : :class:`~linkgen.phy.channel.tr38901.Scenario`
        Deployment scenario

    inter_site_distance : `None` | `float`
        Inter-site distance [m]

    wrapping : `bool`
        Wrap-around is applied

    spatial_consistency : `bool`
        Spatial consistency is enabled

    node_size : (`int`, `int`, `int`)
        Number of sites, sectors per site and user equipment

    max_bs_id : `int`
        Largest base station identifier

    max_node_id : `int`
        Largest node identifier

    scenario_extents : `None` | [4], `np.float64`
        System boundary ``[left, bottom, width, height]`` [m]
    """
    def __init__(self, scenario, inter_site_distance, wrapping,
                 spatial_consistency, node_size, max_bs_id, max_node_id,
                 scenario_extents):
        self.scenario = scenario
        self.inter_site_distance = inter_site_distance
        self.wrapping = wrapping
        self.spatial_consistency = spatial_consistency
        self.node_size = node_size
        self.max_bs_id = max_bs_id
        self.max_node_id = max_node_id
        self.scenario_extents = scenario_extents

    @property
    def num_sites(self):
        """
        `int` : Number of sites
        """
        return self.node_size[0]

    @property
    def num_sectors(self):
        """
        `int` : Number of sectors per site
        """
        return self.node_size[1]

    @property
    def num_ues(self):
        """
        `int` : Number of user equipment
        """
        return self.node_size[2]


class ChannelDescriptor:
    # pylint: disable=line-too-long
    r"""
    Channel of a transmission, in the orientation of the request

    For a link used in the uplink orientation, the arrival and departure
    angles of the underlying downlink realization are exchanged, as are the
    cross-polarized initial phases.

    Parameters
    ----------
    link : :class:`~linkgen.phy.channel.tr38901.ChannelLink`
        Underlying channel link

    carrier_frequency : `float`
        Carrier frequency [Hz]

    num_tx : `int`
        Number of transmit antennas

    num_rx : `int`
        Number of receive antennas

    large_scale_loss : [], `tf.float`
        Large scale loss at the positions of the request [dB]

    path_delays : [num_paths], `tf.float`
        Path delays [s]

    cluster_delays : [num_clusters], `tf.float`
        Cluster delays [s]

    cluster_powers : [num_clusters], `tf.float`
        Normalized cluster powers

    aoa : [num_clusters], `tf.float`
        Azimuth angles of arrival [deg]

    aod : [num_clusters], `tf.float`
        Azimuth angles of departure [deg]

    zoa : [num_clusters], `tf.float`
        Zenith angles of arrival [deg]

    zod : [num_clusters], `tf.float`
        Zenith angles of departure [deg]

    ray_coupling : `None` | [num_clusters, num_rays, 3], `tf.int32`
        Random coupling of the rays

    xpr : `None` | [num_clusters, num_rays], `tf.float`
        Cross-polarization power ratios [dB]

    initial_phases : `None` | [num_clusters, num_rays, 4], `tf.float`
        Initial phases [deg]

    path_filters : `None` | [num_paths, num_taps], `tf.float`
        Discrete-time filters of the paths

    is_uplink : `bool`
        `True` if the link is used in the uplink orientation

    start_time : `float`
        Start time of the transmission [s]

    duration : `float`
        Duration of the transmission [s]
    """
    def __init__(self, link, carrier_frequency, num_tx, num_rx,
                 large_scale_loss, path_delays, cluster_delays,
                 cluster_powers, aoa, aod, zoa, zod, ray_coupling, xpr,
                 initial_phases, path_filters, is_uplink, start_time,
                 duration):
        self.link = link
        self.carrier_frequency = carrier_frequency
        self.num_tx = num_tx
        self.num_rx = num_rx
        self.large_scale_loss = large_scale_loss
        self.path_delays = path_delays
        self.cluster_delays = cluster_delays
        self.cluster_powers = cluster_powers
        self.aoa = aoa
        self.aod = aod
        self.zoa = zoa
        self.zod = zod
        self.ray_coupling = ray_coupling
        self.xpr = xpr
        self.initial_phases = initial_phases
        self.path_filters = path_filters
        self.is_uplink = is_uplink
        self.start_time = start_time
        self.duration = duration
        self.small_scale = None

    @property
    def num_clusters(self):
        """
        `int` : Number of clusters
        """
        return int(self.cluster_powers.shape[0])


class SmallScaleExecutor(ABC):
    r"""
    Abstract class for the computation of the small scale fading of a
    transmission from its channel descriptor

    Instances can be passed to :class:`~linkgen.sys.LinkRegistry`, whose
    :meth:`~linkgen.sys.LinkRegistry.channel_function` then stores the
    output in :attr:`~linkgen.sys.ChannelDescriptor.small_scale`.

    Input
    -----
    descriptor : :class:`~linkgen.sys.ChannelDescriptor`
        Channel of the transmission

    request : :class:`~linkgen.sys.LinkRequest`
        Transmission request

    Output
    ------
    : `object`
        Small scale fading of the transmission
    """
    @abstractmethod
    def __call__(self, descriptor, request):
        pass


class LinkRegistry(Object):
    # pylint: disable=line-too-long
    r"""
    Registry holding one channel link per direction of every pair of nodes
    of a system-level scenario

    The nodes are recorded with :meth:`connect_nodes`. Channels are then
    generated on first request and kept for the lifetime of the registry.

    Links between a base station and a user equipment are always generated
    in the downlink orientation. When the opposite direction of a link is
    requested, the existing link is reused if it was generated for the
    same carrier frequency and the same antenna counts, once mapped to the
    downlink orientation. Otherwise an independent link is generated. A
    reused link is the same object for both directions, and its swap flag
    is toggled to match the orientation of each request.

    Links between two base stations or two user equipment are only
    generated if
    :attr:`~linkgen.phy.channel.tr38901.ScenarioConfig.interferer_same_link_end`
    is set, and never reused for the opposite direction. They are
    generated with remapped node indices, such that their random streams
    differ from those of the base station to user equipment links:

    - A receiving base station of site :math:`s` and sector :math:`c` is
      treated as user equipment :math:`U + sC + c`, where :math:`U` is the
      number of user equipment and :math:`C` the number of sectors.
    - A transmitting user equipment :math:`u` is treated as site
      :math:`S + u`, where :math:`S` is the number of sites.

    When the site positions differ from those of the scenario cache, a new
    cache is built. It replaces the previous one only once the link that
    required it has been generated successfully.

    Parameters
    ----------
    scenario_config : :class:`~linkgen.phy.channel.tr38901.ScenarioConfig`
        Scenario configuration

    executor : `None` (default) | :class:`~linkgen.sys.SmallScaleExecutor`
        Small scale fading computation applied by :meth:`channel_function`

    sampling_frequency : `None` (default) | `float`
        Sampling frequency [Hz] of the path filters of the channel
        descriptors. If `None`, no path filters are computed.

    precision : `None` (default) | "single" | "double"
        Precision used for internal calculations and outputs.
        If set to `None`,
        :attr:`~linkgen.phy.config.Config.precision` is used.

    Example
    -------
    .. code-block:: Python

        config = ScenarioConfig("UMa", wrapping=False)
        registry = LinkRegistry(config)
        registry.connect_nodes([BaseStation(0, [0., 0., 25.])],
                               [UserEquipment(1, [100., 50., 1.5],
                                              serving_bs_id=0)])
        descriptor = registry.channel_function(LinkRequest(0, 1, 3.5e9))
    """
    def __init__(self, scenario_config, executor=None,
                 sampling_frequency=None, precision=None):
        super().__init__(precision=precision)
        self._config = scenario_config
        if executor is not None and not isinstance(executor,
                                                   SmallScaleExecutor):
            raise ValueError("'executor' must be a SmallScaleExecutor")
        self._executor = executor
        self._sampling_frequency = sampling_frequency
        self._generator = ChannelLinkGenerator(scenario_config,
                                               precision=precision)
        self._cache = ScenarioCache(scenario_config, precision=precision)
        self._links = {}
        self._info = None
        self._site_positions = None
        self._base_stations = {}
        self._ues = {}

    @property
    def scenario_config(self):
        """
        :class:`~linkgen.phy.channel.tr38901.ScenarioConfig` : Scenario
        configuration
        """
        return self._config

    @property
    def scenario_info(self):
        """
        `None` | :class:`~linkgen.sys.ScenarioInfo` : Scenario summary.
        `None` before :meth:`connect_nodes`.
        """
        return self._info

    @property
    def cache(self):
        """
        :class:`~linkgen.phy.channel.tr38901.ScenarioCache` : Current scenario
        cache
        """
        return self._cache

    @property
    def links(self):
        """
        `dict` : Channel links keyed by :class:`~linkgen.sys.LinkKey`. A
        reused link appears under both directions.
        """
        return dict(self._links)

    @property
    def num_links(self):
        """
        `int` : Number of distinct channel links
        """
        return len({id(link) for link in self._links.values()})

    def connect_nodes(self, base_stations, user_equipments):
        r"""
        Records the nodes of the scenario

        Can be called again when the nodes change. Links generated before
        are kept.

        Input
        -----
        base_stations : `list` of :class:`~linkgen.sys.BaseStation`
            Base stations

        user_equipments : `list` of :class:`~linkgen.sys.UserEquipment`
            User equipment
        """
        base_stations = list(base_stations)
        user_equipments = list(user_equipments)
        scenario = self._config.scenario
        if not base_stations:
            warnings.warn("No base station is connected")
        if not user_equipments:
            warnings.warn("No user equipment is connected")

        ids = [n.node_id for n in base_stations + user_equipments]
        if len(set(ids)) != len(ids):
            raise ValueError("Node identifiers must be unique")
        max_bs_id = max((bs.node_id for bs in base_stations), default=-1)
        min_ue_id = min((ue.node_id for ue in user_equipments),
                        default=max_bs_id + 1)
        if min_ue_id < max_bs_id:
            raise ValueError("User equipment identifiers must be larger "
                             "than base station identifiers")

        # Sites and sectors
        sites = [i if bs.site is None else int(bs.site)
                 for i, bs in enumerate(base_stations)]
        if any(s < 0 for s in sites) or \
           any(bs.sector < 0 for bs in base_stations):
            raise ValueError("Site and sector indices must not be negative")
        num_sites = max(sites, default=-1) + 1
        num_sectors = max((bs.sector for bs in base_stations), default=0) + 1
        site_positions = []
        for s in range(num_sites):
            if s not in sites:
                raise ValueError(f"No base station is located at site {s}")
            site_positions.append(base_stations[sites.index(s)].position)
        site_positions = np.reshape(np.array(site_positions, np.float64),
                                    [-1, 3])
        if self._config.wrapping and base_stations:
            wraparound_offsets(self._config.inter_site_distance, num_sites,
                               num_sectors)

        # User equipment
        bs_ids = {bs.node_id for bs in base_stations}
        ue_subs = {}
        for i, ue in enumerate(user_equipments):
            if ue.serving_bs_id is not None and ue.serving_bs_id not in bs_ids:
                raise ValueError(f"User equipment {ue.node_id} is attached "
                                 f"to unknown base station {ue.serving_bs_id}")
            if ue.d_2d_in > 0. and not scenario.is_cellular:
                raise ValueError("Indoor distances are only supported by the "
                                 "UMi, UMa and RMa scenarios")
            ue_subs[ue.node_id] = i

        ue_positions = [ue.position for ue in user_equipments]
        extents = infer_scenario_extents(self._config, site_positions,
                                         ue_positions)
        node_size = (num_sites, num_sectors, len(user_equipments))

        self._base_stations = {bs.node_id : (bs, s, bs.sector)
                               for bs, s in zip(base_stations, sites)}
        self._ues = {ue.node_id : (ue, ue_subs[ue.node_id])
                     for ue in user_equipments}
        self._site_positions = site_positions
        self._info = ScenarioInfo(scenario, self._config.inter_site_distance,
                                  self._config.wrapping,
                                  self._config.spatial_consistency,
                                  node_size, max_bs_id,
                                  max(ids, default=-1), extents)
        logging.info("Connected %d base stations at %d sites and %d user "
                     "equipment", len(base_stations), num_sites,
                     len(user_equipments))

    def _check_connected(self):
        if self._info is None:
            raise RuntimeError("connect_nodes() must be called before "
                               "requesting channels")

    def _node(self, node_id):
        if node_id in self._base_stations:
            return True, self._base_stations[node_id]
        if node_id in self._ues:
            return False, self._ues[node_id]
        raise ValueError(f"Unknown node {node_id}")

    def _antenna_counts(self, request, tx, rx):
        num_tx = request.num_transmit_antennas
        if num_tx is None:
            num_tx = tx.num_transmit_antennas
        num_rx = request.num_receive_antennas
        if num_rx is None:
            num_rx = rx.num_receive_antennas
        return int(num_tx), int(num_rx)

    def channel(self, request):
        r"""
        Returns the channel link of a request, generating it if needed

        Input
        -----
        request : :class:`~linkgen.sys.LinkRequest`
            Transmission request

        Output
        ------
        : `None` | :class:`~linkgen.phy.channel.tr38901.ChannelLink`
            Channel link, with its swap flag set to the orientation of the
            request. `None` for a link between two nodes of the same kind if
            such links are not modeled.
        """
        self._check_connected()
        tx_is_bs, tx = self._node(request.transmitter_id)
        rx_is_bs, rx = self._node(request.receiver_id)
        same_role = tx_is_bs == rx_is_bs
        if same_role and not self._config.interferer_same_link_end:
            return None
        is_uplink = rx_is_bs and not tx_is_bs

        num_tx, num_rx = self._antenna_counts(request, tx[0], rx[0])
        # Antenna counts in the downlink orientation
        if is_uplink:
            num_tx, num_rx = num_rx, num_tx

        key = request.key
        link = self._links.get(key)
        if link is None and not same_role:
            reverse = self._links.get(LinkKey(key.receiver_id,
                                              key.transmitter_id))
            if reverse is not None and \
               reverse.carrier_frequency == request.carrier_frequency and \
               (reverse.num_tx, reverse.num_rx) == (num_tx, num_rx):
                logging.debug("Reusing the channel link of %d to %d for the "
                              "opposite direction", key.receiver_id,
                              key.transmitter_id)
                link = reverse
                self._links[key] = link

        if link is None:
            if same_role:
                link_config = self._same_role_config(request, tx, rx, tx_is_bs,
                                                     num_tx, num_rx)
            elif is_uplink:
                link_config = self._link_config(request, rx, tx, num_tx,
                                                num_rx)
            else:
                link_config = self._link_config(request, tx, rx, num_tx,
                                                num_rx)
            link = self._generate(link_config)
            self._links[key] = link

        if link.is_swapped != is_uplink:
            link.swap_direction()
        return link

    def _fast_fading(self, bs=None, ue=None):
        if self._config.interferer_has_small_scale:
            return True
        if bs is None or ue is None:
            return False
        return ue.serving_bs_id == bs.node_id

    def _default_n_fl(self, ue):
        if ue.n_fl is not None:
            return int(ue.n_fl)
        if self._config.scenario.is_cellular:
            return int(np.floor((ue.position[2] - 1.5)/3. + 1.5))
        return 0

    def _link_config(self, request, bs_record, ue_record, num_tx, num_rx):
        bs, site, sector = bs_record
        ue, ue_sub = ue_record
        info = self._info
        return LinkConfig(bs.position, ue.position,
                          request.carrier_frequency,
                          node_subs=(site, sector, ue_sub),
                          node_size=info.node_size,
                          num_tx=num_tx,
                          num_rx=num_rx,
                          fast_fading=self._fast_fading(bs, ue),
                          d_2d_in=ue.d_2d_in,
                          n_fl=self._default_n_fl(ue),
                          txru_virtualization=bs.txru_virtualization,
                          tx_orientation=bs.tx_orientation,
                          layout=info.node_size[:2])

    def _same_role_config(self, request, tx_record, rx_record, tx_is_bs,
                          num_tx, num_rx):
        num_sites, num_sectors, num_ues = self._info.node_size
        node_size = (num_sites + num_ues, num_sectors,
                     num_ues + num_sites*num_sectors)
        tx, rx = tx_record[0], rx_record[0]
        if tx_is_bs:
            _, site, sector = tx_record
            _, rx_site, rx_sector = rx_record
            node_subs = (site, sector, num_ues + rx_site*num_sectors + rx_sector)
            d_2d_in, n_fl = 0., 0
            txru_virtualization = tx.txru_virtualization
            tx_orientation = tx.tx_orientation
        else:
            node_subs = (num_sites + tx_record[1], 0, rx_record[1])
            d_2d_in, n_fl = rx.d_2d_in, self._default_n_fl(rx)
            txru_virtualization = None
            tx_orientation = np.zeros([3])
        return LinkConfig(tx.position, rx.position,
                          request.carrier_frequency,
                          node_subs=node_subs,
                          node_size=node_size,
                          num_tx=num_tx,
                          num_rx=num_rx,
                          fast_fading=self._fast_fading(),
                          d_2d_in=d_2d_in,
                          n_fl=n_fl,
                          txru_virtualization=txru_virtualization,
                          tx_orientation=tx_orientation,
                          layout=(num_sites, num_sectors))

    def _generate(self, link_config):
        cache = self._cache
        if not cache.matches(self._site_positions,
                             self._info.scenario_extents):
            cache = ScenarioCache(self._config, precision=self.precision)
            cache.reconfigure(self._site_positions, self._info.node_size,
                              self._info.scenario_extents)
        link = self._generator(link_config, cache=cache)
        if cache is not self._cache:
            self._cache = cache
            logging.info("Scenario cache replaced after a change of the site "
                         "positions or of the scenario extents")
        return link

    def channel_function(self, request):
        r"""
        Returns the channel descriptor of a request

        The large scale loss is evaluated at the positions of the request,
        or at the current node positions if the request does not define
        them.

        Input
        -----
        request : :class:`~linkgen.sys.LinkRequest`
            Transmission request

        Output
        ------
        : `None` | :class:`~linkgen.sys.ChannelDescriptor`
            Channel descriptor. `None` if :meth:`channel` returns `None`.
        """
        link = self.channel(request)
        if link is None:
            return None
        _, tx = self._node(request.transmitter_id)
        _, rx = self._node(request.receiver_id)
        tx_position = request.transmitter_position
        if tx_position is None:
            tx_position = tx[0].position
        rx_position = request.receiver_position
        if rx_position is None:
            rx_position = rx[0].position
        loss = link.large_scale(tx_position, rx_position,
                                request.carrier_frequency)

        is_uplink = link.is_swapped
        aoa, aod, zoa, zod = link.aoa, link.aod, link.zoa, link.zod
        num_tx, num_rx = link.num_tx, link.num_rx
        clusters = link.clusters
        if clusters is None:
            cluster_delays = tf.zeros([1], self.rdtype)
            cluster_powers = tf.ones([1], self.rdtype)
            ray_coupling = xpr = phases = None
        else:
            cluster_delays = clusters.path_delays
            cluster_powers = clusters.powers
            ray_coupling = clusters.ray_coupling
            xpr = clusters.xpr
            phases = clusters.initial_phases
        if is_uplink:
            aoa, aod, zoa, zod = aod, aoa, zod, zoa
            num_tx, num_rx = num_rx, num_tx
            if phases is not None:
                phases = tf.gather(phases, [0, 2, 1, 3], axis=-1)

        filters = None
        if self._sampling_frequency is not None:
            filters = link.path_filters(self._sampling_frequency)

        descriptor = ChannelDescriptor(link, link.carrier_frequency, num_tx,
                                       num_rx, loss, link.path_delays,
                                       cluster_delays, cluster_powers, aoa,
                                       aod, zoa, zod, ray_coupling, xpr,
                                       phases, filters, is_uplink,
                                       request.start_time, request.duration)
        if self._executor is not None:
            descriptor.small_scale = self._executor(descriptor, request)
        return descriptor
