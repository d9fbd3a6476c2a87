import numpy as np
import pytest

from EzSelect import CandidatePool, ConditionalSpectrum
from EzSelect.directionality import RotD100Model, sb_2014_ratios, to_rotd100


class TestRatios:

    def test_table_values(self):
        ratio, sigma = sb_2014_ratios(np.array([0.01, 1.0, 10.0]))
        np.testing.assert_allclose(ratio, [1.192438059, 1.241102379, 1.294338819])
        np.testing.assert_allclose(sigma, 0.08)

    def test_interpolated_between_table_periods(self):
        ratio, _ = sb_2014_ratios(np.sqrt(0.5))
        assert 1.228753204 < ratio < 1.241102379

    def test_conversion(self):
        mu, sigma = to_rotd100(-1.0, 0.6, 0.5)
        assert mu == pytest.approx(-1.0 + np.log(1.228753204))
        assert sigma == pytest.approx(np.sqrt(0.6 ** 2 + 0.08 ** 2))


def test_rotd100_model(gmm, rupture):
    mu50, sigma50 = gmm.evaluate(rupture, 1.0)
    mu100, sigma100 = RotD100Model(gmm).evaluate(rupture, 1.0)
    assert mu100 == pytest.approx(mu50 + np.log(1.241102379))
    assert sigma100 > sigma50


def test_rotd100_pool_gets_rotd100_target(gmm, rupture, periods, pool, tmp_path):
    rotd100_pool = CandidatePool(periods=pool.periods, sa_ln=pool.sa_ln, record_ids=pool.record_ids,
                                 metadata=pool.metadata, spectrum_definition='RotD100')
    target50 = ConditionalSpectrum(pool, gmm, str(tmp_path)).create(rupture, periods, is_conditioned=False)
    target100 = ConditionalSpectrum(rotd100_pool, gmm, str(tmp_path)).create(rupture, periods, is_conditioned=False)
    ratio, _ = sb_2014_ratios(target50.periods)
    np.testing.assert_allclose(target100.mu_ln, target50.mu_ln + np.log(ratio))
    assert np.all(target100.sigma_ln > target50.sigma_ln)
