import warnings

import numpy as np
import pandas as pd
import pytest

from EzSelect import ConditionalSpectrum, PreconditionError
from EzSelect.exceptions import ConvergenceNotice
from EzSelect.settings import SelectionSettings

from conftest import make_pool


@pytest.fixture
def cs(gmm, target, tmp_path):
    return ConditionalSpectrum(make_pool(target), gmm, output_directory=str(tmp_path / 'Outputs'))


def select(cs, **kwargs):
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', ConvergenceNotice)
        return cs.select(**kwargs)


class TestConditionalSpectrum:

    def test_end_to_end(self, cs, rupture, periods):
        target = cs.create(rupture, periods)
        assert target.Tstar_index is not None

        selection = select(cs, num_records=30, seed_value=1)
        assert len(selection) == 30
        assert len({record_id for record_id, _ in selection}) == 30
        assert all(0.25 <= sf <= 4 for _, sf in selection)
        assert set(cs.rec_ids.tolist()) <= set(cs.pool.record_ids.tolist())
        assert cs.unmatched == []
        assert cs.report.median_error < 10
        assert cs.report.skipped or cs.report.error_history[-1] <= cs.report.error_history[0]

    def test_seeded_runs_repeat(self, cs, rupture, periods):
        cs.create(rupture, periods)
        first = select(cs, num_records=15, seed_value=3)
        second = select(cs, num_records=15, seed_value=3)
        assert first == second

    def test_unconditional_ks(self, cs, rupture, periods):
        cs.create(rupture, periods, is_conditioned=False)
        selection = select(cs, num_records=10, seed_value=2, metric='ks', tolerance=0)
        assert len(selection) == 10
        assert cs.report.passes >= 1

    def test_im_tstar(self, cs, gmm, rupture, periods):
        mu, sigma = gmm.evaluate(rupture, rupture.Tstar)
        target = cs.create(rupture, periods, im_Tstar=np.exp(mu + sigma))
        assert target.epsilon == pytest.approx(1.0)

    def test_select_before_create(self, cs):
        with pytest.raises(PreconditionError):
            cs.select()

    def test_not_enough_records(self, cs, rupture, periods):
        cs.create(rupture, periods)
        with pytest.raises(PreconditionError):
            cs.select(num_records=cs.pool.size + 1)

    def test_ks_without_variance(self, cs, rupture, periods):
        cs.create(rupture, periods, use_variance=0)
        with pytest.raises(PreconditionError):
            cs.select(metric='ks')

    def test_write(self, cs, rupture, periods):
        cs.create(rupture, periods)
        select(cs, num_records=10, seed_value=1)
        path = cs.write()
        table = pd.read_csv(path)
        assert list(table.columns) == ['Record Number', 'Record ID', 'Scale Factor', 'File Name H1', 'File Name H2']
        assert table['Record Number'].tolist() == list(range(1, 11))
        assert table['Record ID'].tolist() == cs.rec_ids.tolist()
        np.testing.assert_allclose(table['Scale Factor'], cs.rec_scale_factors, atol=1e-6)
        assert table['File Name H1'][0] == f"RSN{cs.rec_ids[0]}_H1.AT2"

    def test_write_before_select(self, cs):
        with pytest.raises(PreconditionError):
            cs.write()


class TestSelectionSettings:

    def test_defaults(self):
        settings = SelectionSettings()
        assert settings.num_records == 30
        assert settings.max_scale_factor == 4
        assert settings.error_weights == (1.0, 2.0, 0.3)
        assert settings.metric == 'sse'
        assert settings.sampling_type == 'LHS'
        assert 'max_run_time' in SelectionSettings.option_names()

    def test_unbounded_scale_factor(self):
        assert SelectionSettings(max_scale_factor=None).max_scale_factor == 10

    @pytest.mark.parametrize('options', [{'num_records': 0}, {'metric': 'mse'}, {'sampling_type': 'QMC'},
                                         {'error_weights': (1,)}, {'penalty': -1}, {'max_scale_factor': 0.5},
                                         {'max_run_time': 0}, {'num_simulations': 0}])
    def test_invalid(self, options):
        with pytest.raises(PreconditionError):
            SelectionSettings(**options)
