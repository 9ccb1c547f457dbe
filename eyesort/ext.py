# -*- coding: utf-8 -*-
"""
EyeSort - ext.py

This module provides functions for reading and writing a subject's event
stream, matching trigger codes, and assigning each event its stimulus
context (condition, item and region boundaries).

An event stream is a DataFrame in recording order. Its 'type' column holds
trigger codes (e.g. 'S1', 'S212') and event types (e.g. 'R_fixation',
'R_saccade'). Trials are delimited by a start and an end trigger, and the
condition and item of a trial are announced by triggers in between.

Usage:
    from eyesort import ext
    events = ext.read_events('/data', 'subj01')
    counts = ext.assign_event_context(events, layouts, config)
"""

__author__ = "EyeSort developers"
__copyright__ = "Copyright 2025, The EyeSort Project"
__license__ = "MIT"
__version__ = "1.0.0"
__status__ = "Production"

import os
import re
import warnings
from typing import List, Tuple, Dict, Optional, Any

import pandas as pd
import numpy as np

from .cfg import EyesortConfig
from .gen import StimulusLayout, parse_x_position


DIGIT_PATTERN = re.compile(r'\d+')
WHITESPACE_PATTERN = re.compile(r'\s+')

EVENT_FILE_END = '_Events'
LABELED_FILE_END = '_Labeled'

# Columns read as text so codes such as '010203' keep their leading zeros
CODE_COLUMNS = {col: str for col in ['type', 'original_type', 'encoded_label', 'condition_code',
                                     'region_code', 'label_code']}


# -----------------------------------------------------------------------------
# Trigger matching
# -----------------------------------------------------------------------------

def _clean_code(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (float, np.floating)) and np.isnan(value):
        return None
    if isinstance(value, (int, np.integer)):
        value = str(value)
    if not isinstance(value, str):
        return None
    return WHITESPACE_PATTERN.sub('', value)


def trigger_number(observed: Any) -> Optional[int]:
    """First run of digits in a trigger code, None if there is none."""
    code = _clean_code(observed)
    if code is None:
        return None
    m = DIGIT_PATTERN.search(code)
    return int(m.group(0)) if m is not None else None


def trigger_match(observed: Any, configured: Any) -> bool:
    """
    Check whether an observed trigger code matches a configured one.

    Whitespace is ignored and the exact comparison is case-insensitive.
    A purely numeric configured code matches any observed code with the
    same digits, whatever its prefix ('212' matches 'S212' and 'R212', but
    not 'S0212'); a prefixed configured code needs an exact match ('S212'
    does not match 'R212').

    Args:
        observed: Code from the event stream
        configured: Code from the configuration

    Returns:
        True if the codes match
    """
    obs = _clean_code(observed)
    conf = _clean_code(configured)
    if obs is None or conf is None or obs == '' or conf == '':
        return False
    if obs.lower() == conf.lower():
        return True
    if conf.isdigit():
        obs_num = DIGIT_PATTERN.search(obs)
        return obs_num is not None and obs_num.group(0) == conf
    return False


def match_any(observed: Any, configured_list: List[str]) -> Optional[str]:
    """Return the first configured code that matches observed, None if none does."""
    for configured in configured_list:
        if trigger_match(observed, configured):
            return configured
    return None


# -----------------------------------------------------------------------------
# Event identity
# -----------------------------------------------------------------------------

def get_event_types(events: pd.DataFrame) -> List[str]:
    """
    Effective type of each event.

    Labeled events carry their code in 'type' and their former type in
    'original_type'; the former type is used for those.
    """
    types = []
    has_original = 'original_type' in events.columns
    for ind in range(len(events)):
        ev_type = events['type'].iloc[ind]
        if has_original:
            orig = events['original_type'].iloc[ind]
            if isinstance(orig, str) and orig.strip() != '':
                ev_type = orig
        types.append('' if (ev_type is None or (isinstance(ev_type, float) and np.isnan(ev_type)))
                     else str(ev_type))
    return types


def is_fixation(ev_type: str, cfg: EyesortConfig) -> bool:
    return ev_type.strip().startswith(cfg.fixation_type)


def is_saccade(ev_type: str, cfg: EyesortConfig) -> bool:
    return ev_type.strip().startswith(cfg.saccade_type)


# -----------------------------------------------------------------------------
# Event file I/O
# -----------------------------------------------------------------------------

def _crt_csv_dic(sit: int, direct: str, subj_id: str, csv_filetype: str) -> Tuple[bool, Dict[str, str]]:
    """
    Create dictionary of event CSV files.

    Args:
        sit: Situation (0 for specific subject, 1 for all subjects)
        direct: Root directory
        subj_id: Subject ID (for sit=0)
        csv_filetype: File type suffix ('_Events', '_Labeled')

    Returns:
        Tuple of (file_exists, file_dictionary)
    """
    csv_file_exist = True
    csv_file_dic = {}
    target_file_end = f'{csv_filetype}.csv'

    if sit == 0:
        filename = os.path.join(direct, subj_id, f'{subj_id}{target_file_end}')
        if os.path.isfile(filename):
            csv_file_dic[subj_id] = filename
        else:
            print(f'{subj_id}{target_file_end} does not exist!')
            csv_file_exist = False
    elif sit == 1:
        for subj in sorted(os.listdir(direct)):
            filename = os.path.join(direct, subj, f'{subj}{target_file_end}')
            if os.path.isfile(filename):
                csv_file_dic[subj] = filename
        if not csv_file_dic:
            print('No csv files in subfolders!')
            csv_file_exist = False

    return csv_file_exist, csv_file_dic


def read_events(direct: str, subj_id: str, csv_filetype: str = EVENT_FILE_END) -> pd.DataFrame:
    """
    Read a subject's event stream.

    Args:
        direct: Root directory
        subj_id: Subject ID; the file is direct/subj_id/subj_id_Events.csv
        csv_filetype: File suffix

    Returns:
        Event DataFrame (type column as text)

    Raises:
        FileNotFoundError: If the file does not exist
    """
    file_exist, file_dic = _crt_csv_dic(0, direct, subj_id, csv_filetype)
    if not file_exist:
        raise FileNotFoundError(os.path.join(direct, subj_id, f'{subj_id}{csv_filetype}.csv'))
    print(f"Read Events: {file_dic[subj_id]}")
    events = pd.read_csv(file_dic[subj_id], sep=',', encoding='utf-8', dtype=CODE_COLUMNS)
    if 'type' not in events.columns:
        raise ValueError(f'{file_dic[subj_id]} has no "type" column')
    return events


def write_events(direct: str, subj_id: str, events: pd.DataFrame,
                 suffix: str = LABELED_FILE_END) -> str:
    """Write a subject's event stream to direct/subj_id/subj_id{suffix}.csv."""
    filename = os.path.join(direct, subj_id, f'{subj_id}{suffix}.csv')
    events.to_csv(filename, index=False, encoding='utf-8')
    return filename


# -----------------------------------------------------------------------------
# Event context
# -----------------------------------------------------------------------------

def _init_context_columns(events: pd.DataFrame, num_regions: int) -> None:
    events['stim_condition'] = np.nan
    events['stim_item'] = np.nan
    for reg_no in range(1, num_regions + 1):
        events[f'region{reg_no}_name'] = ''
        events[f'region{reg_no}_start'] = np.nan
        events[f'region{reg_no}_end'] = np.nan
    events['current_region'] = ''


def assign_event_context(events: pd.DataFrame, layouts: Dict[Tuple[int, int], StimulusLayout],
                         cfg: EyesortConfig) -> Dict[str, int]:
    """
    Attach stimulus context to every event of every trial.

    Walks the stream once. A start trigger enters a trial and forgets the
    condition and item; an end trigger leaves it. Inside a trial, condition
    and item triggers set the numbers. Once both are known and a layout
    exists for them, each event gets stim_condition, stim_item and the
    region boundary columns, and each fixation a first guess of its
    current_region. The events DataFrame is modified in place.

    Args:
        events: Event stream
        layouts: Layout dictionary (condition, item) -> StimulusLayout
        cfg: Configuration

    Returns:
        Counts: events, assigned_events, fixations, assigned_fixations, missing_keys
    """
    _init_context_columns(events, cfg.num_regions)
    types = get_event_types(events)
    col_ind = {col: events.columns.get_loc(col) for col in events.columns}

    counts = {'events': len(events), 'assigned_events': 0, 'fixations': 0,
              'assigned_fixations': 0, 'missing_keys': 0}
    missing = set()
    in_trial = False
    cond, item = None, None

    for ind, ev_type in enumerate(types):
        fixation = is_fixation(ev_type, cfg)
        if fixation:
            counts['fixations'] += 1

        if trigger_match(ev_type, cfg.start_code):
            in_trial = True
            cond, item = None, None
        elif trigger_match(ev_type, cfg.end_code):
            in_trial = False
        elif in_trial and match_any(ev_type, cfg.condition_triggers) is not None:
            cond = trigger_number(ev_type)
        elif in_trial and match_any(ev_type, cfg.item_triggers) is not None:
            item = trigger_number(ev_type)

        if not in_trial or cond is None or item is None:
            continue
        layout = layouts.get((cond, item))
        if layout is None:
            if (cond, item) not in missing:
                missing.add((cond, item))
                counts['missing_keys'] += 1
            continue

        events.iat[ind, col_ind['stim_condition']] = cond
        events.iat[ind, col_ind['stim_item']] = item
        for reg_no, reg in enumerate(layout.regions[:cfg.num_regions], 1):
            events.iat[ind, col_ind[f'region{reg_no}_name']] = reg.name
            events.iat[ind, col_ind[f'region{reg_no}_start']] = reg.x_start
            events.iat[ind, col_ind[f'region{reg_no}_end']] = reg.x_end
        counts['assigned_events'] += 1

        if fixation:
            counts['assigned_fixations'] += 1
            x_pos = parse_x_position(events[cfg.fixation_x_field].iloc[ind]) \
                if cfg.fixation_x_field in events.columns else np.nan
            if np.isnan(x_pos):
                warnings.warn(f'Event {ind + 1}: cannot parse fixation position; region left unset')
                continue
            reg = layout.region_at(x_pos)
            if reg is not None:
                events.iat[ind, col_ind['current_region']] = reg.name

    print(f"Assign: {counts['assigned_events']} of {counts['events']} events, "
          f"{counts['assigned_fixations']} of {counts['fixations']} fixations, "
          f"{counts['missing_keys']} condition/item pairs without layout")
    return counts
