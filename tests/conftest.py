# -*- coding: utf-8 -*-
"""Shared fixtures: a configuration, a three-region stimulus table and an event builder."""

import numpy as np
import pandas as pd
import pytest

from eyesort import cfg, gen


@pytest.fixture
def config_record():
    return {
        'offset': 0,
        'px_per_char': 10,
        'region_names': 'Beginning, Target, End',
        'condition_col': 'cond',
        'item_col': 'item',
        'condition_label_cols': 'cond_label',
        'start_code': 'S254',
        'end_code': 'S255',
        'condition_triggers': 'S211:S214',
        'item_triggers': 'S1:S112',
        'fixation_type': 'R_fixation',
        'fixation_x_field': 'fix_avgpos_x',
        'saccade_type': 'R_saccade',
        'saccade_start_x_field': 'sac_startpos_x',
        'saccade_end_x_field': 'sac_endpos_x',
    }


@pytest.fixture
def config(config_record):
    return cfg.EyesortConfig.from_dict(config_record)


@pytest.fixture
def stim_df():
    return pd.DataFrame({
        'cond': ['211', '212'],
        'item': ['1', '1'],
        'cond_label': ['Low', 'High'],
        'Beginning': ['The cat', 'The dog'],
        'Target': [' sat quietly', ' ran'],
        'End': [' on the mat.', ' away fast.'],
    })


@pytest.fixture
def layouts(stim_df, config):
    return gen.compute_text_ia(stim_df, config.region_names, config.offset, config.px_per_char,
                               config.condition_col, config.item_col, config.condition_label_cols)


def _event(ev_type, fix_x=np.nan, sac_start=np.nan, sac_end=np.nan):
    return {'type': ev_type, 'fix_avgpos_x': fix_x,
            'sac_startpos_x': sac_start, 'sac_endpos_x': sac_end}


@pytest.fixture
def make_events():
    """
    Build an event stream from trials given as (condition, item, fixation x positions).

    Every fixation after the first is preceded by a saccade from the previous
    fixation position.
    """
    def _make(trials, sentence_codes=None):
        rows = []
        for cond, item, xs in trials:
            rows.append(_event('S254'))
            rows.append(_event(f'S{cond}'))
            rows.append(_event(f'S{item}'))
            if sentence_codes:
                rows.append(_event(sentence_codes[0]))
            for ind, x_pos in enumerate(xs):
                if ind > 0:
                    rows.append(_event('R_saccade', sac_start=xs[ind - 1], sac_end=x_pos))
                rows.append(_event('R_fixation', fix_x=x_pos))
            if sentence_codes:
                rows.append(_event(sentence_codes[1]))
            rows.append(_event('S255'))
        return pd.DataFrame(rows)
    return _make


@pytest.fixture
def fix_rows():
    """Fixation rows of an event stream (by original type), renumbered from 0."""
    def _rows(events):
        types = events['type']
        if 'original_type' in events.columns:
            types = events['original_type'].where(events['original_type'].fillna('') != '',
                                                    events['type'])
        return events[types == 'R_fixation'].reset_index(drop=True)
    return _rows
