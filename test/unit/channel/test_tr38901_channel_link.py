#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#

import unittest
import numpy as np
import tensorflow as tf
from linkgen.phy.constants import SPEED_OF_LIGHT
from linkgen.phy.channel import time_lag_discrete_time_channel, path_filters
from linkgen.phy.channel.tr38901 import ScenarioConfig, ScenarioCache, \
    LinkConfig, ChannelLinkGenerator, basic_pathloss, LinkParameters


def uma_cache(scenario_config, site_positions=((0., 0., 10.),),
              node_size=(1, 1, 1)):
    cache = ScenarioCache(scenario_config)
    cache.reconfigure(site_positions, node_size,
                      scenario_config.scenario_extents)
    return cache


class TestChannelLink(unittest.TestCase):

    BS = [0., 0., 10.]
    UE = [100., 50., 1.5]
    FC = 3.5e9

    def uma_config(self, spatial_consistency=False, seed=0):
        return ScenarioConfig("UMa", inter_site_distance=500., wrapping=False,
                              spatial_consistency=spatial_consistency,
                              seed=seed,
                              scenario_extents=[-300., -300., 600., 600.])

    def test_example_scenario(self):
        """UMa link in forced LOS"""
        scenario_config = self.uma_config()
        link = ChannelLinkGenerator(scenario_config)(
                    LinkConfig(self.BS, self.UE, self.FC, los=True),
                    uma_cache(scenario_config))
        self.assertTrue(link.info.los)
        self.assertTrue(link.fast_fading)
        self.assertTrue(link.clusters.has_los_cluster)
        delays = link.clusters.path_delays.numpy()
        self.assertEqual(delays[0], 0.)
        self.assertTrue(np.all(np.diff(delays) >= 0.))
        self.assertEqual(link.path_delays.numpy()[0], 0.)
        # The two strongest clusters are split into three sub-clusters
        self.assertEqual(link.path_delays.shape[0],
                         link.clusters.num_clusters + 4)
        np.testing.assert_allclose(link.distance_3d,
                                   np.linalg.norm(np.subtract(self.BS,
                                                              self.UE)))
        self.assertEqual(link.aoa.shape, [link.clusters.num_clusters])
        self.assertEqual(len(link.angle_spreads), 4)
        self.assertAlmostEqual(link.cluster_delay_spread,
                               LinkParameters(scenario_config, self.FC, True,
                                              False, 111.8, 10., 1.5).c_ds)

    def test_spatially_consistent_lsp(self):
        """Moving the user equipment within a pixel keeps the large scale
        parameters"""
        scenario_config = self.uma_config(spatial_consistency=True)
        gen = ChannelLinkGenerator(scenario_config)
        cache = uma_cache(scenario_config)
        a = gen(LinkConfig(self.BS, self.UE, self.FC, fast_fading=False,
                           los=True), cache)
        b = gen(LinkConfig(self.BS, [101., 51., 1.5], self.FC,
                           fast_fading=False, los=True), cache)
        self.assertEqual(a.lsp.sf.numpy(), b.lsp.sf.numpy())
        self.assertEqual(a.info.los_probability.numpy() > 0., True)

        # A different cache configured alike yields the same values
        c = gen(LinkConfig(self.BS, [101., 51., 1.5], self.FC,
                           fast_fading=False, los=True),
                uma_cache(scenario_config))
        self.assertEqual(a.lsp.sf.numpy(), c.lsp.sf.numpy())

        # Large scale parameter field of site 0 in LOS
        dist = LinkParameters(scenario_config, self.FC, True, False, 111.8,
                              10., 1.5).correlation_distances
        field = cache.lsp_field(0, 1, dist)
        np.testing.assert_array_equal(field.sample_normal(self.UE).numpy(),
                                      field.sample_normal([104., 54.]).numpy())

    def test_deterministic(self):
        """Two generations with the same seed are identical"""
        links = []
        for _ in range(2):
            scenario_config = self.uma_config(seed=5)
            links.append(ChannelLinkGenerator(scenario_config)(
                            LinkConfig(self.BS, self.UE, self.FC),
                            uma_cache(scenario_config)))
        a, b = links
        self.assertEqual(a.info.los, b.info.los)
        self.assertEqual(a.lsp.sf.numpy(), b.lsp.sf.numpy())
        for name in ["delays", "powers", "aoa", "aod", "zoa", "zod", "xpr",
                     "initial_phases", "ray_coupling"]:
            np.testing.assert_array_equal(getattr(a.clusters, name).numpy(),
                                          getattr(b.clusters, name).numpy())
        np.testing.assert_array_equal(a.rx_orientation.numpy(),
                                      b.rx_orientation.numpy())

        # Another seed yields another realization
        scenario_config = self.uma_config(seed=6)
        c = ChannelLinkGenerator(scenario_config)(
                LinkConfig(self.BS, self.UE, self.FC),
                uma_cache(scenario_config))
        self.assertNotEqual(a.lsp.sf.numpy(), c.lsp.sf.numpy())

    def test_co_sited_sectors(self):
        """Sectors of a site share the random draws of a user equipment"""
        scenario_config = self.uma_config()
        cache = uma_cache(scenario_config, node_size=(1, 3, 2))
        gen = ChannelLinkGenerator(scenario_config)
        links = [gen(LinkConfig(self.BS, self.UE, self.FC,
                                node_subs=(0, sector, 1),
                                node_size=(1, 3, 2)), cache)
                 for sector in range(3)]
        for link in links[1:]:
            self.assertEqual(link.lsp.sf.numpy(), links[0].lsp.sf.numpy())
            np.testing.assert_array_equal(link.clusters.delays.numpy(),
                                          links[0].clusters.delays.numpy())
        np.testing.assert_array_equal(links[1].tx_orientation,
                                      [150., 0., 0.])

        # Another user equipment at the same position
        other = gen(LinkConfig(self.BS, self.UE, self.FC,
                               node_subs=(0, 0, 0), node_size=(1, 3, 2)),
                    cache)
        self.assertNotEqual(other.rx_orientation.numpy()[0],
                            links[0].rx_orientation.numpy()[0])

    def test_large_scale_loss(self):
        scenario_config = self.uma_config()
        link = ChannelLinkGenerator(scenario_config)(
                    LinkConfig(self.BS, self.UE, self.FC, los=True,
                               fast_fading=False),
                    uma_cache(scenario_config))
        pl, _ = basic_pathloss(scenario_config, True, self.FC, self.BS,
                               self.UE, link.info.h_e)
        loss = link.large_scale(self.BS, self.UE, self.FC)
        self.assertAlmostEqual(loss.numpy(),
                               (pl + link.info.o2i_loss - link.info.sf).numpy(),
                               places=3)
        self.assertEqual(link.info.o2i_loss.numpy(), 0.)

        # Reciprocity
        self.assertFalse(link.is_swapped)
        link.swap_direction()
        self.assertTrue(link.is_swapped)
        self.assertAlmostEqual(link.large_scale(self.UE, self.BS,
                                                self.FC).numpy(),
                               loss.numpy(), places=4)
        link.swap_direction()
        self.assertFalse(link.is_swapped)

        # Mobility
        moved = link.large_scale(self.BS, [200., 50., 1.5], self.FC)
        self.assertGreater(moved.numpy(), loss.numpy())

    def test_without_fast_fading(self):
        scenario_config = self.uma_config()
        link = ChannelLinkGenerator(scenario_config)(
                    LinkConfig(self.BS, self.UE, self.FC, fast_fading=False),
                    uma_cache(scenario_config))
        self.assertFalse(link.fast_fading)
        self.assertIsNone(link.clusters)
        self.assertIsNone(link.lsp.ds)
        np.testing.assert_array_equal(link.path_delays.numpy(), [0.])
        self.assertEqual(link.aoa.shape, [1])
        self.assertAlmostEqual(link.aod.numpy()[0],
                               np.degrees(np.arctan2(50., 100.)), places=3)
        self.assertIsNone(link.max_doppler_shift)

    def test_o2i(self):
        scenario_config = self.uma_config()
        link = ChannelLinkGenerator(scenario_config)(
                    LinkConfig(self.BS, self.UE, self.FC, d_2d_in=10.,
                               n_fl=2),
                    uma_cache(scenario_config))
        self.assertAlmostEqual(link.info.o2i_loss.numpy(), 25., places=4)
        self.assertFalse(link.clusters.has_los_cluster)

    def test_wrap_around(self):
        """The closest image of the base station is used"""
        scenario_config = ScenarioConfig("UMa", inter_site_distance=500.)
        isd = 500.
        sites = [[0., 0., 25.]]
        for k in range(6):
            a = np.radians(30. + 60.*k)
            sites.append([isd*np.cos(a), isd*np.sin(a), 25.])
        cache = ScenarioCache(scenario_config)
        cache.reconfigure(sites, (7, 1, 1), [-750., -750., 1500., 1500.])
        # A user equipment at the edge of the layout, far from site 4
        ue = [-600., 0., 1.5]
        link = ChannelLinkGenerator(scenario_config)(
                    LinkConfig(sites[1], ue, self.FC, node_subs=(1, 0, 0),
                               node_size=(7, 1, 1)), cache)
        self.assertLess(link.distance_3d,
                        np.linalg.norm(np.subtract(sites[1], ue)))

    def test_absolute_toa(self):
        scenario_config = ScenarioConfig("InF-DH", absolute_toa=True)
        bs = [0., 0., 8.]
        ue = [20., 10., 1.5]
        link = ChannelLinkGenerator(scenario_config, precision="double")(
                    LinkConfig(bs, ue, self.FC, los=True))
        d3 = np.linalg.norm(np.subtract(bs, ue))
        delays = link.path_delays.numpy()
        self.assertAlmostEqual(delays[0]/(d3/SPEED_OF_LIGHT), 1.)
        # The other paths arrive strictly later
        self.assertTrue(np.all(delays[1:] > d3/SPEED_OF_LIGHT))

    def test_errors(self):
        scenario_config = self.uma_config()
        gen = ChannelLinkGenerator(scenario_config)
        # A scenario cache is required with an inter-site distance
        with self.assertRaises(ValueError):
            gen(LinkConfig(self.BS, self.UE, self.FC))
        with self.assertRaises(ValueError):
            gen(LinkConfig(self.BS, self.UE, self.FC),
                ScenarioCache(scenario_config))
        # Outside of the system boundary
        with self.assertRaises(ValueError):
            gen(LinkConfig(self.BS, [400., 0., 1.5], self.FC),
                uma_cache(scenario_config))
        # O2I links in an indoor scenario
        with self.assertRaises(ValueError):
            ChannelLinkGenerator(ScenarioConfig("InH"))(
                LinkConfig([0., 0., 3.], [10., 0., 1.], self.FC, d_2d_in=3.))
        with self.assertRaises(ValueError):
            LinkConfig(self.BS, self.UE, -1.)
        with self.assertRaises(ValueError):
            LinkConfig(self.BS, [0., 0.], self.FC)

    def test_spatially_consistent_clusters(self):
        """User equipment in the same pixel share the cluster random
        variables"""
        scenario_config = ScenarioConfig("InH", spatial_consistency=True,
                                         scenario_extents=[-5., -5., 30., 20.])
        cache = ScenarioCache(scenario_config)
        cache.reconfigure([[0., 0., 3.]], (1, 1, 2),
                          scenario_config.scenario_extents)
        gen = ChannelLinkGenerator(scenario_config)
        a = gen(LinkConfig([0., 0., 3.], [12., 6., 1.5], self.FC,
                           node_subs=(0, 0, 0), node_size=(1, 1, 2),
                           los=False), cache)
        b = gen(LinkConfig([0., 0., 3.], [13., 7., 1.5], self.FC,
                           node_subs=(0, 0, 1), node_size=(1, 1, 2),
                           los=False), cache)
        self.assertNotEqual(a.lsp.ds.numpy(), b.lsp.ds.numpy())
        np.testing.assert_allclose(a.clusters.powers.numpy(),
                                   b.clusters.powers.numpy(), rtol=1e-3)
        self.assertEqual(cache.num_cluster_fields, 19)
        self.assertEqual(len(cache.cluster_fields()), 10)

    def test_uncorrelated_without_inter_site_distance(self):
        """Without inter-site distance, links need no cache and user
        equipment at the same position draw independent large scale
        parameters"""
        scenario_config = ScenarioConfig("UMa", inter_site_distance=None)
        self.assertFalse(scenario_config.wrapping)
        gen = ChannelLinkGenerator(scenario_config)
        a = gen(LinkConfig(self.BS, self.UE, self.FC, node_subs=(0, 0, 0),
                           node_size=(1, 1, 2), fast_fading=True, los=False))
        b = gen(LinkConfig(self.BS, self.UE, self.FC, node_subs=(0, 0, 1),
                           node_size=(1, 1, 2), fast_fading=True, los=False))
        self.assertGreater(a.clusters.num_clusters, 0)
        self.assertNotEqual(a.lsp.sf.numpy(), b.lsp.sf.numpy())

    def test_cluster_generator_releases_cache(self):
        """The cluster generator keeps no reference to the cache of the last
        link"""
        # pylint: disable=protected-access
        scenario_config = ScenarioConfig("InH", spatial_consistency=True,
                                         scenario_extents=[-5., -5., 30., 20.])
        cache = ScenarioCache(scenario_config)
        cache.reconfigure([[0., 0., 3.]], (1, 1, 1),
                          scenario_config.scenario_extents)
        gen = ChannelLinkGenerator(scenario_config)
        link = gen(LinkConfig([0., 0., 3.], [12., 6., 1.5], self.FC,
                              los=False), cache)
        self.assertGreater(link.clusters.num_clusters, 0)
        clusters = gen._cluster_generator
        self.assertIsNone(clusters._cache)
        self.assertIsNone(clusters._rng)
        self.assertIsNone(clusters._ue_position)


class TestPathFilters(unittest.TestCase):

    def test_time_lags(self):
        self.assertEqual(time_lag_discrete_time_channel(30.72e6), (-6, 99))
        self.assertEqual(time_lag_discrete_time_channel(1e6, 0.), (-6, 6))

    def test_filters(self):
        w = 10e6
        taps = path_filters(tf.constant([0., 1e-7, 3.5e-7]), w)
        l_min, l_max = time_lag_discrete_time_channel(w, 3.5e-7)
        self.assertEqual(taps.shape, [3, l_max - l_min + 1])
        taps = taps.numpy()
        # Integer delays in samples yield a single tap
        self.assertAlmostEqual(taps[0, -l_min], 1., places=5)
        self.assertAlmostEqual(np.sum(np.abs(taps[0])), 1., places=5)
        self.assertAlmostEqual(taps[1, -l_min + 1], 1., places=5)
        self.assertLess(np.max(taps[2]), 1.)

    def test_link_filters(self):
        scenario_config = ScenarioConfig("InH")
        link = ChannelLinkGenerator(scenario_config)(
                    LinkConfig([0., 0., 3.], [10., 5., 1.5], 3.5e9))
        taps = link.path_filters(20e6)
        self.assertEqual(taps.shape[0], link.path_delays.shape[0])
