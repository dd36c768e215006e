#
# SPDX-FileCopyrightText: Copyright (c) 2021-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0#

import unittest
import numpy as np
import tensorflow as tf
from linkgen.phy import config
from linkgen.phy.constants import SPEED_OF_LIGHT
from linkgen.phy.channel.tr38901 import ScenarioConfig, AutoCorrelationField, \
    los_probability, environment_height, o2i_loss, basic_pathloss, \
    bs_orientation, ue_mobility, los_angles, wraparound_offsets, \
    nearest_image, site_polygon, check_ue_position


class TestLOSProbability(unittest.TestCase):

    def test_short_distances(self):
        """Links shorter than the breakpoint are always in LOS"""
        for name, d in [("UMi", 18.), ("UMa", 18.), ("RMa", 10.),
                        ("InH", 1.), ("InH-Open", 4.)]:
            config = ScenarioConfig(name)
            p = los_probability(config, d, 10., 1.5)
            self.assertAlmostEqual(p.numpy(), 1.)

    def test_values(self):
        p = los_probability(ScenarioConfig("RMa"), 1010., 35., 1.5,
                            precision="double")
        self.assertAlmostEqual(p.numpy(), np.exp(-1.))
        p = los_probability(ScenarioConfig("UMi"), 36., 10., 1.5,
                            precision="double")
        self.assertAlmostEqual(p.numpy(), 0.5 + 0.5*np.exp(-1.))
        config = ScenarioConfig("InF-DL")
        p = los_probability(config, 10., 2., 1.5, precision="double")
        k = -2./np.log(1. - 0.6)
        self.assertAlmostEqual(p.numpy(), np.exp(-10./k))
        p = los_probability(ScenarioConfig("InF-HH"), 100., 8., 1.5)
        self.assertEqual(p.numpy(), 1.)

    def test_range(self):
        d = np.linspace(0., 2000., 101)
        for name in ["UMi", "UMa", "RMa", "InH", "InH-Open", "InF-SL",
                     "InF-SH"]:
            p = los_probability(ScenarioConfig(name), d, 8., 1.5).numpy()
            self.assertTrue(np.all(p >= 0.))
            self.assertTrue(np.all(p <= 1.))
            # Non-increasing with the distance
            self.assertTrue(np.all(np.diff(p) <= 1e-6))

    def test_warning(self):
        """A clutter lower than the user equipment yields a probability
        larger than one"""
        config = ScenarioConfig("InF-SH", clutter_height=1.)
        with self.assertWarns(UserWarning):
            los_probability(config, 20., 8., 1.5)


class TestPathloss(unittest.TestCase):

    def test_environment_height(self):
        rng = config.stream(1)
        self.assertEqual(environment_height(ScenarioConfig("UMi"), rng, 100.,
                                            1.5).numpy(), 1.)
        self.assertEqual(environment_height(ScenarioConfig("RMa"), rng, 100.,
                                            1.5).numpy(), 0.)
        self.assertEqual(environment_height(ScenarioConfig("UMa"), rng, 100.,
                                            1.5).numpy(), 1.)
        for _ in range(20):
            h_e = environment_height(ScenarioConfig("UMa"), rng, 100., 22.5)
            self.assertIn(h_e.numpy(), [1., 12., 15., 18., 21.])

    def test_o2i_loss(self):
        rng = config.stream(1)
        self.assertEqual(o2i_loss(ScenarioConfig("InH"), rng, 10.,
                                  3.5e9).numpy(), 0.)
        self.assertEqual(o2i_loss(ScenarioConfig("UMa"), rng, 0.,
                                  28e9).numpy(), 0.)
        pl = o2i_loss(ScenarioConfig("UMa"), rng, 10., 3.5e9)
        self.assertAlmostEqual(pl.numpy(), 25., places=5)
        pl = [o2i_loss(ScenarioConfig("UMa"), rng, 10., 28e9).numpy()
              for _ in range(200)]
        # Low loss buildings lose about 14 dB at 28 GHz, high loss
        # buildings about 35 dB, plus 5 dB indoor loss
        self.assertGreater(np.mean(pl), 15.)
        self.assertLess(np.mean(pl), 45.)

    def test_o2i_loss_field(self):
        """The O2I loss is a function of the position if a field is used"""
        field = AutoCorrelationField(config.stream(2), [0., 0.],
                                     [100., 100.], [50., 10., 10.])
        config_ = ScenarioConfig("UMa")
        a = o2i_loss(config_, config.stream(3), 10., 28e9, field=field,
                     ue_position=[20., 20., 1.5])
        b = o2i_loss(config_, config.stream(4), 10., 28e9, field=field,
                     ue_position=[21., 21., 1.5])
        self.assertEqual(a.numpy(), b.numpy())

    def test_basic_pathloss(self):
        bs = [0., 0., 25.]
        ue = [300., 100., 1.5]
        config_ = ScenarioConfig("UMa")
        pl_los, s_los = basic_pathloss(config_, True, 3.5e9, bs, ue)
        pl_nlos, s_nlos = basic_pathloss(config_, False, 3.5e9, bs, ue)
        self.assertEqual(s_los, 4.)
        self.assertEqual(s_nlos, 6.)
        self.assertGreaterEqual(pl_nlos.numpy(), pl_los.numpy())

        d3 = np.linalg.norm(np.array(bs) - np.array(ue))
        pl, s = basic_pathloss(ScenarioConfig("InH"), True, 3.5e9, bs, ue,
                               precision="double")
        self.assertEqual(s, 3.)
        self.assertAlmostEqual(pl.numpy(), 32.4 + 17.3*np.log10(d3)
                               + 20.*np.log10(3.5))

        for name, sigma in [("InF-SL", 5.7), ("InF-DL", 7.2),
                            ("InF-SH", 5.9), ("InF-DH", 4.0),
                            ("InF-HH", 4.3)]:
            _, s = basic_pathloss(ScenarioConfig(name), False, 3.5e9,
                                  [0., 0., 8.], [30., 10., 1.5])
            self.assertEqual(s, sigma)


class TestGeometry(unittest.TestCase):

    def test_bs_orientation(self):
        np.testing.assert_array_equal(bs_orientation(0, 3), [30., 0., 0.])
        np.testing.assert_array_equal(bs_orientation(1, 3), [150., 0., 0.])
        np.testing.assert_array_equal(bs_orientation(2, 3), [270., 0., 0.])

    def test_mobility(self):
        rng = config.stream(0)
        fc = 3.5e9
        fd, direction = ue_mobility(ScenarioConfig("RMa"), rng, fc, False,
                                    precision="double")
        self.assertAlmostEqual(fd.numpy(), 120./3.6/SPEED_OF_LIGHT*fc)
        self.assertEqual(direction.numpy()[1], 90.)
        self.assertTrue(-180. <= direction.numpy()[0] < 180.)
        fd, _ = ue_mobility(ScenarioConfig("RMa"), rng, fc, True,
                            precision="double")
        self.assertAlmostEqual(fd.numpy(), 3./3.6/SPEED_OF_LIGHT*fc)
        fd, _ = ue_mobility(ScenarioConfig("InF-DH"), rng, fc, False)
        self.assertEqual(fd.numpy(), 0.)

    def test_los_angles(self):
        aoa, aod, zoa, zod = los_angles([0., 0., 10.], [100., 0., 10.],
                                        precision="double")
        self.assertAlmostEqual(aod.numpy(), 0.)
        self.assertAlmostEqual(abs(aoa.numpy()), 180.)
        self.assertAlmostEqual(zod.numpy(), 90.)
        self.assertAlmostEqual(zoa.numpy(), 90.)
        aoa, aod, zoa, zod = los_angles([0., 0., 10.], [0., 100., 0.],
                                        precision="double")
        self.assertAlmostEqual(aod.numpy(), 90.)
        self.assertAlmostEqual(aoa.numpy(), -90.)
        self.assertGreater(zod.numpy(), 90.)
        self.assertAlmostEqual(zoa.numpy() + zod.numpy(), 180.)


class TestWrapAround(unittest.TestCase):

    def test_offsets(self):
        """The images form a hexagon around the layout"""
        isd = 500.
        for num_sites, num_sectors in [(3, 3), (7, 1), (7, 3), (19, 3)]:
            offsets = wraparound_offsets(isd, num_sites, num_sectors)
            self.assertEqual(offsets.shape, (7, 2))
            np.testing.assert_array_equal(offsets[0], [0., 0.])
            norms = np.linalg.norm(offsets[1:], axis=-1)
            np.testing.assert_allclose(norms, np.sqrt(num_sites)*isd)
            np.testing.assert_allclose(np.sum(offsets, axis=0), [0., 0.],
                                       atol=1e-9)

    def test_unsupported_layout(self):
        for num_sites, num_sectors in [(1, 3), (3, 1), (5, 3), (21, 3)]:
            with self.assertRaises(ValueError):
                wraparound_offsets(500., num_sites, num_sectors)

    def test_nearest_image(self):
        """The nearest image is never further away than the base station"""
        offsets = wraparound_offsets(200., 19, 3)
        rng = np.random.default_rng(0)
        for _ in range(200):
            bs = np.append(rng.uniform(-1000., 1000., 2), 10.)
            ue = np.append(rng.uniform(-1000., 1000., 2), 1.5)
            image, d = nearest_image(bs, ue, offsets)
            self.assertLessEqual(d, np.linalg.norm(bs - ue) + 1e-9)
            self.assertAlmostEqual(d, np.linalg.norm(image - ue))
            self.assertEqual(image[2], 10.)

    def test_nearest_image_without_offsets(self):
        image, d = nearest_image([0., 0., 10.], [30., 40., 10.],
                                 np.zeros([1, 2]))
        np.testing.assert_array_equal(image, [0., 0., 10.])
        self.assertEqual(d, 50.)

    def test_site_polygon(self):
        x, y = site_polygon(300.)
        self.assertEqual(x.shape, (7,))
        np.testing.assert_allclose(np.hypot(x, y), 300./np.sqrt(3.))
        self.assertAlmostEqual(x[0], x[-1])
        self.assertAlmostEqual(y[0], y[-1])

    def test_check_ue_position(self):
        extents = [-100., -50., 200., 100.]
        check_ue_position(extents, [0., 0., 1.5])
        check_ue_position(extents, [100., 50., 1.5])
        with self.assertRaises(ValueError):
            check_ue_position(extents, [101., 0., 1.5])
        with self.assertRaises(ValueError):
            check_ue_position(extents, [0., -51., 1.5])
