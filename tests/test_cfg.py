# -*- coding: utf-8 -*-
"""Tests for eyesort.cfg"""

import pytest

from eyesort import cfg


def test_expand_trigger_ranges():
    assert cfg.expand_trigger_ranges('S1:S3') == ['S1', 'S2', 'S3']
    assert cfg.expand_trigger_ranges('211, 213:214') == ['211', '213', '214']
    assert cfg.expand_trigger_ranges(['S9', 'S10:S11']) == ['S9', 'S10', 'S11']


def test_expand_trigger_ranges_keeps_invalid_range():
    with pytest.warns(UserWarning):
        assert cfg.expand_trigger_ranges('S5:S2') == ['S5:S2']


def test_split_list():
    assert cfg.split_list(' Beginning, Target ,End,') == ['Beginning', 'Target', 'End']
    assert cfg.split_list(None) == []


def test_from_dict(config_record):
    config = cfg.EyesortConfig.from_dict(config_record)
    assert config.region_names == ['Beginning', 'Target', 'End']
    assert config.num_regions == 3
    assert config.condition_triggers == ['S211', 'S212', 'S213', 'S214']
    assert len(config.item_triggers) == 112
    assert config.condition_label_cols == ['cond_label']
    assert not config.use_sentence_codes
    assert config.rtl is False


def test_from_dict_reports_every_problem(config_record):
    record = dict(config_record)
    del record['start_code']
    record['end_code'] = ' '
    record['px_per_char'] = 'ten'
    record['num_regions'] = 4
    with pytest.raises(cfg.ConfigError) as excinfo:
        cfg.EyesortConfig.from_dict(record)
    errors = excinfo.value.errors
    assert len(errors) == 4
    assert any('start_code' in err for err in errors)
    assert any('end_code' in err for err in errors)
    assert any('px_per_char' in err for err in errors)
    assert any('num_regions' in err for err in errors)
    assert isinstance(excinfo.value, ValueError)


def test_from_dict_rejects_duplicate_regions(config_record):
    record = dict(config_record, region_names='Target, Target')
    with pytest.raises(cfg.ConfigError, match='Duplicate region names'):
        cfg.EyesortConfig.from_dict(record)


def test_sentence_codes_and_rtl(config_record):
    record = dict(config_record, sentence_start_code='S250', sentence_end_code='S251', rtl='yes')
    config = cfg.EyesortConfig.from_dict(record)
    assert config.use_sentence_codes
    assert config.rtl is True


def test_save_read_config(tmp_path, config):
    filename = str(tmp_path / 'last_text_ia_config.csv')
    cfg.save_config(filename, config)
    assert cfg.read_config(filename) == config
