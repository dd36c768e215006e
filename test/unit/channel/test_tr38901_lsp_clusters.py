#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#

import unittest
import numpy as np
from linkgen.phy import config
from linkgen.phy.constants import MAX_AZIMUTH_SPREAD, MAX_ZENITH_SPREAD, \
    CLUSTER_POWER_THRESHOLD_DB
from linkgen.phy.channel.tr38901 import ScenarioConfig, LinkParameters, \
    LSPGenerator, ClusterGenerator, los_angles


class TestLSPGenerator(unittest.TestCase):

    def test_field_subscripts(self):
        gen = LSPGenerator(ScenarioConfig("UMa"))
        self.assertEqual(gen.field_subscripts(3, 1, False, True, 1), (1, 1))
        self.assertEqual(gen.field_subscripts(3, 1, False, False, 4), (1, 0))
        self.assertEqual(gen.field_subscripts(3, 1, True, True, 2), (0, 2))
        self.assertEqual(gen.field_subscripts(1, 0, True, False, 2), (0, 3))

    def test_spreads_are_limited(self):
        """Angular spreads never exceed 104 and 52 degrees"""
        for name in ["InH", "InH-Open", "InF-DH", "InF-SL"]:
            scenario_config = ScenarioConfig(name)
            gen = LSPGenerator(scenario_config)
            for los in [True, False]:
                params = LinkParameters(scenario_config, 3.5e9, los, False,
                                        20., 3., 1.5)
                rng = config.stream(10)
                for _ in range(100):
                    lsp = gen(params, rng, 3., True)
                    self.assertLessEqual(lsp.asd.numpy(), MAX_AZIMUTH_SPREAD)
                    self.assertLessEqual(lsp.asa.numpy(), MAX_AZIMUTH_SPREAD)
                    self.assertLessEqual(lsp.zsd.numpy(), MAX_ZENITH_SPREAD)
                    self.assertLessEqual(lsp.zsa.numpy(), MAX_ZENITH_SPREAD)
                    self.assertGreater(lsp.ds.numpy(), 0.)

    def test_no_fast_fading(self):
        """Only the shadow fading is generated without fast fading"""
        scenario_config = ScenarioConfig("InH")
        params = LinkParameters(scenario_config, 3.5e9, True, False, 20., 3.,
                                1.5)
        lsp = LSPGenerator(scenario_config)(params, config.stream(1), 3.,
                                            False)
        self.assertIsNone(lsp.k_factor)
        self.assertIsNone(lsp.ds)
        x = config.stream(1).normal([7])
        self.assertAlmostEqual(lsp.sf.numpy(), 3.*x[0].numpy(), places=5)

    def test_statistics(self):
        """The shadow fading and delay spread follow the log-normal
        statistics of the tables"""
        scenario_config = ScenarioConfig("InH")
        params = LinkParameters(scenario_config, 3.5e9, False, False, 20., 3.,
                                1.5)
        gen = LSPGenerator(scenario_config, precision="double")
        rng = config.stream(5)
        sf = []
        lg_ds = []
        for _ in range(1000):
            lsp = gen(params, rng, 8.03, True)
            sf.append(lsp.sf.numpy())
            lg_ds.append(np.log10(lsp.ds.numpy()))
        self.assertAlmostEqual(np.std(sf), 8.03, delta=0.8)
        self.assertAlmostEqual(np.mean(lg_ds), params.log_mean("DS"),
                               delta=0.05)
        self.assertAlmostEqual(np.std(lg_ds), params.log_std("DS"),
                               delta=0.05)


class TestClusterGenerator(unittest.TestCase):

    BS = np.array([0., 0., 3.])
    UE = np.array([15., 5., 1.5])

    def clusters(self, name="InH", los=True, seed=0):
        scenario_config = ScenarioConfig(name)
        d2d = float(np.linalg.norm(self.BS[:2] - self.UE[:2]))
        params = LinkParameters(scenario_config, 3.5e9, los, False, d2d,
                                self.BS[2], self.UE[2])
        lsp = LSPGenerator(scenario_config)(params, config.stream(seed), 3.,
                                            True)
        angles = los_angles(self.BS, self.UE)
        gen = ClusterGenerator(scenario_config)
        clusters = gen(params, lsp, angles, config.stream(seed + 1),
                       config.stream(seed + 2), los=los)
        return clusters, params, angles

    def test_powers(self):
        """Powers are normalized and no cluster is more than 25 dB weaker
        than the strongest one"""
        for name in ["InH", "InF-SH"]:
            for los in [True, False]:
                for seed in range(10):
                    c, _, _ = self.clusters(name, los, seed)
                    for p in [c.powers.numpy(), c.los_powers.numpy()]:
                        self.assertAlmostEqual(np.sum(p), 1., places=5)
                    p_db = 10.*np.log10(c.powers.numpy())
                    self.assertGreaterEqual(np.min(p_db), np.max(p_db)
                                            - CLUSTER_POWER_THRESHOLD_DB)

    def test_delays(self):
        for los in [True, False]:
            c, params, _ = self.clusters(los=los)
            d = c.delays.numpy()
            self.assertEqual(d[0], 0.)
            self.assertTrue(np.all(np.diff(d) >= 0.))
            self.assertLessEqual(c.num_clusters, params.num_clusters)
            self.assertEqual(c.path_delays.shape, c.delays.shape)
            self.assertEqual(c.powers.shape, c.delays.shape)

    def test_los_cluster(self):
        """The first cluster points in the LOS direction"""
        c, _, angles = self.clusters(los=True)
        self.assertTrue(c.has_los_cluster)
        self.assertTrue(np.isfinite(c.k_factor_first_cluster))
        self.assertGreater(c.los_powers[0].numpy(), c.powers[0].numpy())
        for name, i in [("aoa", 0), ("aod", 1), ("zoa", 2), ("zod", 3)]:
            self.assertAlmostEqual(getattr(c, name)[0].numpy(),
                                   angles[i].numpy(), places=3)

        c, _, _ = self.clusters(los=False)
        self.assertFalse(c.has_los_cluster)
        self.assertEqual(c.delay_scaling, 1.)
        self.assertEqual(c.k_factor_first_cluster, -np.inf)
        np.testing.assert_array_equal(c.powers.numpy(), c.los_powers.numpy())

    def test_rays(self):
        c, params, _ = self.clusters(los=False)
        n = c.num_clusters
        m = params.num_rays
        self.assertEqual(c.ray_coupling.shape, [n, m, 3])
        # Every coupling is a permutation of the rays
        coupling = np.sort(c.ray_coupling.numpy(), axis=1)
        np.testing.assert_array_equal(coupling,
                                      np.broadcast_to(np.arange(m)[:, None],
                                                      [n, m, 3]))
        self.assertEqual(c.xpr.shape, [n, m])
        self.assertEqual(c.initial_phases.shape, [n, m, 4])
        phases = c.initial_phases.numpy()
        self.assertTrue(np.all(phases >= -180.))
        self.assertTrue(np.all(phases <= 180.))

    def test_deterministic(self):
        a, _, _ = self.clusters(seed=3)
        b, _, _ = self.clusters(seed=3)
        for name in ["delays", "powers", "aoa", "aod", "zoa", "zod", "xpr",
                     "initial_phases", "ray_coupling"]:
            np.testing.assert_array_equal(getattr(a, name).numpy(),
                                          getattr(b, name).numpy())

    def test_spatial_consistency_requires_cache(self):
        scenario_config = ScenarioConfig("InH", spatial_consistency=True)
        params = LinkParameters(scenario_config, 3.5e9, False, False, 10., 3.,
                                1.5)
        lsp = LSPGenerator(scenario_config)(params, config.stream(0), 3.,
                                            True)
        gen = ClusterGenerator(scenario_config)
        with self.assertRaises(ValueError):
            gen(params, lsp, los_angles(self.BS, self.UE), config.stream(1),
                config.stream(2))
