# -*- coding: utf-8 -*-
"""Tests for eyesort.lab"""

import pandas as pd
import pytest

from eyesort import cfg, lab
from eyesort.lab import ConflictPolicy, FilterSpec, FixationType, PassType, SaccadeDirection


@pytest.fixture
def classified(config, stim_df, make_events):
    """Process a stream and return (events, state)."""
    def _make(trials):
        events = make_events(trials)
        _, state, _ = lab.process_events(events, stim_df, config)
        return events, state
    return _make


def _spec(**kwargs):
    kwargs.setdefault('regions', ('Target',))
    kwargs.setdefault('description', 'test label')
    return FilterSpec(**kwargs)


def test_target_first_pass_single(config, classified):
    events, state = classified([(211, 1, [15, 90, 205])])
    spec = FilterSpec.from_dict({'regions': 'Target', 'pass_options': '2', 'fixation_options': 3,
                                 'description': 'Target first-pass single'})
    result = lab.apply_filter(events, spec, state, config)

    assert result.label_number == 1
    assert len(result.labeled) == 1
    ind = result.labeled[0]
    assert events.type.iloc[ind] == '110201'
    assert events.encoded_label.iloc[ind] == '110201'
    assert events.condition_code.iloc[ind] == '11'
    assert events.region_code.iloc[ind] == state.region_code_map['Target'] == '02'
    assert events.label_code.iloc[ind] == '01'
    assert events.original_type.iloc[ind] == 'R_fixation'
    assert events.bdf_condition_description.iloc[ind] == 'Low'
    assert events.bdf_full_description.iloc[ind] == 'Low Target first-pass single'
    # nothing else is touched
    assert (events.encoded_label != '').sum() == 1


def test_region_codes_follow_declared_order():
    state = lab.DatasetLabelState.from_region_names(['Beginning', 'Target', 'End'])
    again = lab.DatasetLabelState.from_region_names(['Beginning', 'Target', 'End'])
    assert state.region_code_map == again.region_code_map == \
        {'Beginning': '01', 'Target': '02', 'End': '03'}


def test_compose_label():
    state = lab.DatasetLabelState.from_region_names(['Beginning', 'Target', 'End'])
    assert lab.compose_label(212, 'End', state, 7) == '120307'
    assert lab.compose_label(5, 'Nowhere', state, 12) == '050012'
    assert lab.compose_label(0, 'Target', state, 1) == '000201'
    assert lab.compose_label(None, 'Target', state, 1) == '000201'
    with pytest.raises(ValueError):
        lab.compose_label(1, 'Target', state, 100)


def test_label_numbers_stop_at_99():
    state = lab.DatasetLabelState.from_region_names(['Target'])
    assert state.next_label_number() == 1
    state.label_counter = 99
    with pytest.raises(ValueError):
        state.next_label_number()


def test_explicit_label_number_advances_counter(config, classified):
    events, state = classified([(211, 1, [15, 90, 205])])
    numbers = [lab.apply_filter(events, _spec(), state, config, label_number=2).label_number,
               lab.apply_filter(events, _spec(), state, config).label_number,
               lab.apply_filter(events, _spec(), state, config).label_number]
    assert numbers == [2, 3, 4]
    # a lower explicit number does not move the counter back
    assert lab.apply_filter(events, _spec(), state, config, label_number=1).label_number == 1
    assert state.next_label_number() == 5
    with pytest.raises(ValueError):
        lab.apply_filter(events, _spec(), state, config, label_number=100)


def test_save_read_filter(tmp_path):
    spec = FilterSpec.from_dict({'regions': 'Target', 'description': 'Target first-pass single',
                                 'pass_options': '2', 'fixation_options': 3,
                                 'saccade_in_options': '2, 4', 'prev_regions': 'Beginning',
                                 'conditions': '211, 212'})
    filename = str(tmp_path / 'label_filter.csv')
    lab.save_filter(filename, spec)
    assert lab.read_filter(filename, region_names=['Beginning', 'Target', 'End']) == spec
    with pytest.raises(cfg.ConfigError, match='Beginning'):
        lab.read_filter(filename, region_names=['Target', 'End'])


def test_conflicts_keep_existing_labels(config, classified):
    events, state = classified([(211, 1, [15, 90, 205])])
    lab.apply_filter(events, _spec(), state, config)
    result = lab.apply_filter(events, _spec(description='again'), state, config)

    assert result.label_number == 2
    assert len(result.matched) == 1
    assert result.labeled == []
    assert len(result.conflicts) == 1
    conflict = result.conflicts[0]
    assert (conflict.existing_code, conflict.new_code) == ('110201', '110202')
    assert events.type.iloc[conflict.event_index] == '110201'
    assert len(state.label_descriptions) == 2


def test_conflicts_overwrite(config, classified):
    events, state = classified([(211, 1, [15, 90, 205])])
    lab.apply_filter(events, _spec(), state, config)
    result = lab.apply_filter(events, _spec(description='again'), state, config,
                              policy=ConflictPolicy.OVERWRITE)

    ind = result.conflicts[0].event_index
    assert result.labeled == [ind]
    assert events.type.iloc[ind] == '110202'
    assert events.label_code.iloc[ind] == '02'
    assert events.original_type.iloc[ind] == 'R_fixation'
    assert events.bdf_label_description.iloc[ind] == 'again'


def test_pass_types(config, classified):
    events, state = classified([(211, 1, [15, 90, 205, 150])])
    first = lab.apply_filter(events, _spec(pass_types=(PassType.FIRST,)), state, config)
    second = lab.apply_filter(events, _spec(pass_types=(PassType.SECOND, PassType.THIRD_PLUS)),
                              state, config)
    assert len(first.matched) == 1
    assert len(second.matched) == 1
    assert events.region_pass_number.iloc[second.matched[0]] == 2


def test_fixation_types(config, classified):
    events, state = classified([(211, 1, [15, 90, 150, 205])])

    def matched(option):
        return lab.apply_filter(events, _spec(fixation_types=(option,)), state, config).matched

    first, second = matched(FixationType.FIRST_OF_MULTIPLE), matched(FixationType.SECOND)
    assert len(first) == 1 and len(second) == 1
    assert events.fixation_in_pass.iloc[first[0]] == 1
    assert events.fixation_in_pass.iloc[second[0]] == 2
    assert matched(FixationType.LAST_IN_PASS) == second
    assert matched(FixationType.SINGLE) == []
    assert matched(FixationType.SUBSEQUENT) == []
    assert len(matched(FixationType.ANY)) == 2


def test_previous_and_next_regions(config, classified):
    events, state = classified([(211, 1, [15, 90, 205, 150])])
    from_end = lab.apply_filter(events, _spec(prev_regions=('End',)), state, config)
    to_end = lab.apply_filter(events, _spec(next_regions=('end',)), state, config)
    assert len(from_end.matched) == 1
    assert events.fix_avgpos_x.iloc[from_end.matched[0]] == 150
    assert len(to_end.matched) == 1
    assert events.fix_avgpos_x.iloc[to_end.matched[0]] == 90


def test_saccade_directions(config, classified):
    events, state = classified([(211, 1, [15, 90, 205, 150])])
    backward_in = lab.apply_filter(events, _spec(saccade_in=(SaccadeDirection.BACKWARD,)),
                                   state, config)
    forward_out = lab.apply_filter(events, _spec(saccade_out=(SaccadeDirection.FORWARD,)),
                                   state, config)
    assert [events.fix_avgpos_x.iloc[ind] for ind in backward_in.matched] == [150]
    # the last fixation has no outgoing saccade
    assert [events.fix_avgpos_x.iloc[ind] for ind in forward_out.matched] == [90]


def test_saccade_directions_right_to_left(config_record, stim_df, make_events):
    config = cfg.EyesortConfig.from_dict(dict(config_record, rtl=True))
    events = make_events([(211, 1, [15, 90, 205, 150])])
    _, state, _ = lab.process_events(events, stim_df, config)
    result = lab.apply_filter(events, _spec(saccade_in=(SaccadeDirection.BACKWARD,)), state, config)
    assert [events.fix_avgpos_x.iloc[ind] for ind in result.matched] == [90]


def test_small_saccades_do_not_count(config, classified):
    events, state = classified([(211, 1, [15, 86, 90])])
    moved = lab.apply_filter(events, _spec(saccade_in=(SaccadeDirection.MOVED,)), state, config)
    any_in = lab.apply_filter(events, _spec(saccade_in=(SaccadeDirection.ANY,)), state, config)
    assert [events.fix_avgpos_x.iloc[ind] for ind in moved.matched] == [86]
    assert len(any_in.matched) == 2


def test_condition_and_item_lists(config, classified):
    events, state = classified([(211, 1, [15, 90]), (212, 1, [15, 90])])
    only_212 = lab.apply_filter(events, _spec(conditions=(212,)), state, config)
    no_items = lab.apply_filter(events, _spec(items=(2,)), state, config)
    assert len(only_212.matched) == 1
    assert events.condition_number.iloc[only_212.matched[0]] == 212
    assert events.type.iloc[only_212.matched[0]] == '120201'
    assert no_items.matched == []


def test_filter_spec_from_dict_reports_every_problem():
    with pytest.raises(cfg.ConfigError) as excinfo:
        FilterSpec.from_dict({'regions': '', 'description': ' ', 'pass_options': '2, 9',
                              'conditions': 'x'})
    assert len(excinfo.value.errors) == 4


def test_filter_spec_from_dict_checks_region_names():
    with pytest.raises(cfg.ConfigError, match='Middle'):
        FilterSpec.from_dict({'regions': 'Target, Middle', 'description': 'd'},
                             region_names=['Beginning', 'Target', 'End'])
    spec = FilterSpec.from_dict({'regions': 'target', 'description': 'd', 'saccade_in_options': [2, 4]},
                                region_names=['Beginning', 'Target', 'End'])
    assert spec.saccade_in == (SaccadeDirection.FORWARD, SaccadeDirection.MOVED)
    assert spec.pass_types == (PassType.ANY,)


def test_label_descriptions(config, classified):
    events, state = classified([(211, 1, [15, 90, 205])])
    lab.apply_filter(events, _spec(pass_types=(PassType.FIRST,)), state, config)
    record = state.label_descriptions[0]
    assert record['label_number'] == 1
    assert record['label_code'] == '01'
    assert record['regions'] == ['Target']
    assert record['pass_options'] == [2]
    assert record['matched'] == 1
    assert 'timestamp' in record


def test_bdf_groups(config, classified):
    events, state = classified([(211, 1, [15, 90, 205]), (212, 1, [15, 90, 205])])
    lab.label_events(events, [_spec(description='Target'),
                              _spec(regions=('End',), description='End')], state, config)
    groups = lab.bdf_groups(events)
    assert groups == {('Low', 'Target'): ['110201'], ('High', 'Target'): ['120201'],
                      ('Low', 'End'): ['110302'], ('High', 'End'): ['120302']}


def test_relabeling_after_reprocessing(config, stim_df, classified):
    events, state = classified([(211, 1, [15, 90, 205])])
    lab.apply_filter(events, _spec(), state, config)
    _, state, _ = lab.process_events(events, stim_df, config)
    result = lab.apply_filter(events, _spec(), state, config)
    # labeled fixations are still recognized and classified the same way
    assert len(result.matched) == 1
    assert len(result.conflicts) == 1


def test_unclassified_events_are_rejected(config):
    events = pd.DataFrame({'type': ['R_fixation']})
    state = lab.DatasetLabelState.from_region_names(config.region_names)
    with pytest.raises(ValueError, match='not classified'):
        lab.apply_filter(events, _spec(), state, config)


def test_label_write_events_b(tmp_path, config, stim_df, make_events):
    for subj_id in ['subj01', 'subj02']:
        (tmp_path / subj_id).mkdir()
        make_events([(211, 1, [15, 90, 205])]).to_csv(
            tmp_path / subj_id / f'{subj_id}_Events.csv', index=False)
    (tmp_path / 'subj03').mkdir()
    pd.DataFrame({'latency': [1, 2]}).to_csv(tmp_path / 'subj03' / 'subj03_Events.csv', index=False)

    outcomes = lab.label_write_events_b(str(tmp_path), stim_df, config, [_spec()])

    assert sorted(outcomes) == ['subj01', 'subj02', 'subj03']
    assert isinstance(outcomes['subj03'], ValueError)
    assert len(outcomes['subj01'][0].labeled) == 1
    labeled = pd.read_csv(tmp_path / 'subj02' / 'subj02_Labeled.csv', dtype={'type': str})
    assert list(labeled.type[labeled.type.str.len() == 6]) == ['110201']
    labels = pd.read_csv(tmp_path / 'subj02' / 'subj02_Labels.csv')
    assert list(labels.label_code) == [1]
