import numpy as np
import pytest

from EzSelect.database import CandidatePool
from EzSelect.simulation import random_multivariate_normal
from EzSelect.target import RuptureScenario, create_target_spectrum


class FakeGMM:
    """Deterministic ground motion model with a smooth spectral shape."""

    def __init__(self, sigma=None):
        self.sigma = sigma
        self.calls = 0

    def evaluate(self, rupture, period):
        self.calls += 1
        log_period = np.log(period)
        mu = -1.2 + 0.2 * (rupture.mag - 6.5) - 0.6 * log_period - 0.15 * log_period ** 2
        if self.sigma is not None:
            return float(mu), float(self.sigma)
        return float(mu), float(0.55 + 0.05 * np.log10(period))


@pytest.fixture
def gmm():
    return FakeGMM()


@pytest.fixture
def rupture():
    return RuptureScenario(mag=6.5, rjb=11, vs30=259, mechanism=1, region=1, Tstar=0.5, epsilon=1.9)


@pytest.fixture
def periods():
    return np.logspace(np.log10(0.1), np.log10(10), 30)


@pytest.fixture
def target(gmm, rupture, periods):
    return create_target_spectrum(gmm, rupture, periods)


@pytest.fixture
def unconditional_target(gmm, rupture, periods):
    return create_target_spectrum(gmm, rupture, periods, is_conditioned=False)


def make_pool(target, num_records=300, seed=42):
    """Records drawn around the target, shifted by a random amplitude between 0.5 and 2."""
    rng = np.random.default_rng(seed)
    sample = random_multivariate_normal(target.mu_ln, target.cov, num_records, 'MCS', rng)
    amplitude = rng.uniform(0.5, 2.0, size=(num_records, 1))
    sa = np.exp(sample) * amplitude
    num = np.arange(num_records)
    return CandidatePool.from_spectra(
        target.periods, sa, record_ids=1000 + num,
        magnitude=rng.uniform(5.0, 7.5, num_records), vs30=rng.uniform(150, 800, num_records),
        rjb=rng.uniform(0, 100, num_records), mechanism=num % 4,
        filename1=np.array([f'RSN{1000 + i}_H1.AT2' for i in num]),
        filename2=np.array([f'RSN{1000 + i}_H2.AT2' for i in num]))


@pytest.fixture
def pool(target):
    return make_pool(target)
