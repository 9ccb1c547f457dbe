# -*- coding: utf-8 -*-
"""
EyeSort - lab.py

This module provides functions for labeling classified fixations with
6-digit event codes, so that fixation-related potentials can be binned by
condition, region and fixation properties.

A code is CCRRLL:
    CC  condition number mod 100 ('00' if unknown)
    RR  region code, from the declared region order ('01', '02', ...)
    LL  label number, one per applied filter (01..99)

A filter (FilterSpec) selects fixations by condition/item, region, pass,
previous/next region, position within the pass and the direction of the
incoming/outgoing saccades. Codes are allocated from a DatasetLabelState
that lives as long as one dataset and is passed explicitly.

Usage:
    from eyesort import lab
    layouts, state, counts = lab.process_events(events, stim_df, config)
    spec = lab.FilterSpec.from_dict({'regions': 'Target', 'pass_options': 2,
                                     'fixation_options': 3,
                                     'description': 'Target first-pass single'})
    result = lab.apply_filter(events, spec, state, config)

Or in batch:
    lab.label_write_events_b('/data', stim_df, config, [spec])
"""

__author__ = "EyeSort developers"
__copyright__ = "Copyright 2025, The EyeSort Project"
__license__ = "MIT"
__version__ = "1.0.0"
__status__ = "Production"

import ast
import csv
import os
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Tuple, Dict, Optional, Any

import pandas as pd
import numpy as np

from .cfg import ConfigError, EyesortConfig, split_list
from .gen import StimulusLayout, parse_x_position, compute_text_ia
from .ext import (get_event_types, is_fixation, is_saccade, assign_event_context,
                  read_events, write_events, _crt_csv_dic, EVENT_FILE_END)
from .cal import trial_labeling


# Minimum saccade amplitudes (pixels) for a direction to count
MIN_SACCADE_IN_PX = 5
MIN_SACCADE_OUT_PX = 10

MAX_LABEL_NUMBER = 99

LABEL_COLUMNS = ['original_type', 'encoded_label', 'condition_code', 'region_code',
                 'label_code', 'bdf_condition_description', 'bdf_label_description',
                 'bdf_full_description']

CLASSIFIED_COLUMNS = ['current_region', 'region_pass_number', 'fixation_in_pass',
                      'is_last_in_pass', 'last_region_visited', 'next_region_visited',
                      'trial_number', 'condition_number', 'item_number']


# -----------------------------------------------------------------------------
# Option codes and filters
# -----------------------------------------------------------------------------

class PassType(IntEnum):
    ANY = 1
    FIRST = 2
    SECOND = 3
    THIRD_PLUS = 4


class FixationType(IntEnum):
    ANY = 1
    FIRST_OF_MULTIPLE = 2
    SINGLE = 3
    SECOND = 4
    SUBSEQUENT = 5
    LAST_IN_PASS = 6


class SaccadeDirection(IntEnum):
    ANY = 1
    FORWARD = 2
    BACKWARD = 3
    MOVED = 4


class ConflictPolicy(Enum):
    KEEP_EXISTING = 'keep'
    OVERWRITE = 'overwrite'


def _parse_codes(key: str, value: Any, enum_cls: type, errors: List[str]) -> Tuple[Any, ...]:
    """Parse a code or code list into enum members; no value means ANY."""
    if value is None:
        return (enum_cls.ANY,)
    values = [value] if isinstance(value, (int, np.integer)) else split_list(value)
    codes = []
    for val in values:
        try:
            codes.append(enum_cls(int(val)))
        except (TypeError, ValueError):
            errors.append(f"Field {key}: unknown {enum_cls.__name__} code {val!r} "
                          f"(valid: {', '.join(str(int(mem)) for mem in enum_cls)})")
    return tuple(codes) if codes else (enum_cls.ANY,)


def _parse_numbers(key: str, value: Any, errors: List[str]) -> Tuple[int, ...]:
    if value is None:
        return ()
    values = [value] if isinstance(value, (int, np.integer)) else split_list(value)
    numbers = []
    for val in values:
        try:
            numbers.append(int(val))
        except (TypeError, ValueError):
            errors.append(f"Field {key}: {val!r} is not an integer")
    return tuple(numbers)


@dataclass(frozen=True)
class FilterSpec:
    """
    Selection criteria of one label.

    Attributes:
        regions: Time-locked regions; a fixation must be in one of them
        description: Label description used in reports and BDF text
        pass_types: Accepted passes (union)
        fixation_types: Accepted positions within the pass (union)
        saccade_in / saccade_out: Accepted incoming / outgoing saccade directions
        prev_regions / next_regions: Allowed last/next different regions (empty: any)
        conditions / items: Allowed condition / item numbers (empty: any)
    """
    regions: Tuple[str, ...]
    description: str
    pass_types: Tuple[PassType, ...] = (PassType.ANY,)
    fixation_types: Tuple[FixationType, ...] = (FixationType.ANY,)
    saccade_in: Tuple[SaccadeDirection, ...] = (SaccadeDirection.ANY,)
    saccade_out: Tuple[SaccadeDirection, ...] = (SaccadeDirection.ANY,)
    prev_regions: Tuple[str, ...] = ()
    next_regions: Tuple[str, ...] = ()
    conditions: Tuple[int, ...] = ()
    items: Tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, record: Dict[str, Any],
                  region_names: Optional[List[str]] = None) -> 'FilterSpec':
        """
        Build a filter from a flat key-value record.

        Keys: regions, description, pass_options, fixation_options,
        saccade_in_options, saccade_out_options, prev_regions, next_regions,
        conditions, items. Lists may be given as comma-separated strings.

        Args:
            record: Flat dictionary
            region_names: Declared regions; when given, every region named
                by the filter must be one of them

        Returns:
            FilterSpec

        Raises:
            ConfigError: Listing every problem found
        """
        errors = []
        regions = tuple(split_list(record.get('regions')))
        if not regions:
            errors.append("At least one time-locked region is required")
        description = str(record.get('description') or '').strip()
        if description == '':
            errors.append("A label description is required")

        prev_regions = tuple(split_list(record.get('prev_regions')))
        next_regions = tuple(split_list(record.get('next_regions')))
        if region_names is not None:
            known = {name.lower() for name in region_names}
            for key, names in [('regions', regions), ('prev_regions', prev_regions),
                               ('next_regions', next_regions)]:
                for name in names:
                    if name.lower() not in known:
                        errors.append(f"Field {key}: unknown region {name!r}")

        spec = dict(pass_types=_parse_codes('pass_options', record.get('pass_options'), PassType, errors),
                    fixation_types=_parse_codes('fixation_options', record.get('fixation_options'),
                                                FixationType, errors),
                    saccade_in=_parse_codes('saccade_in_options', record.get('saccade_in_options'),
                                            SaccadeDirection, errors),
                    saccade_out=_parse_codes('saccade_out_options', record.get('saccade_out_options'),
                                             SaccadeDirection, errors),
                    conditions=_parse_numbers('conditions', record.get('conditions'), errors),
                    items=_parse_numbers('items', record.get('items'), errors))
        if errors:
            raise ConfigError(errors)
        return cls(regions=regions, description=description, prev_regions=prev_regions,
                   next_regions=next_regions, **spec)

    def to_dict(self) -> Dict[str, Any]:
        """Flat record in the form from_dict reads."""
        return {
            'description': self.description,
            'regions': list(self.regions),
            'pass_options': [int(opt) for opt in self.pass_types],
            'prev_regions': list(self.prev_regions),
            'next_regions': list(self.next_regions),
            'fixation_options': [int(opt) for opt in self.fixation_types],
            'saccade_in_options': [int(opt) for opt in self.saccade_in],
            'saccade_out_options': [int(opt) for opt in self.saccade_out],
            'conditions': list(self.conditions),
            'items': list(self.items),
        }


def save_filter(filename: str, spec: FilterSpec) -> None:
    """
    Save a filter as a two-column CSV file (key, value), like cfg.save_config.

    Args:
        filename: Output file path
        spec: Filter to save
    """
    with open(filename, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        for key, val in spec.to_dict().items():
            writer.writerow([key, repr(val)])


def read_filter(filename: str, region_names: Optional[List[str]] = None) -> FilterSpec:
    """
    Read a filter saved by save_filter.

    Args:
        filename: Input file path
        region_names: Declared regions, checked as in FilterSpec.from_dict

    Returns:
        FilterSpec (validated)
    """
    record = {}
    with open(filename, 'r', encoding='utf-8') as f:
        for key, val in csv.reader(f):
            record[key] = ast.literal_eval(val)
    return FilterSpec.from_dict(record, region_names)


# -----------------------------------------------------------------------------
# Label state and codes
# -----------------------------------------------------------------------------

@dataclass
class DatasetLabelState:
    """
    Labeling state of one dataset.

    Attributes:
        region_code_map: Region name -> 2-digit code, from declared order
        label_counter: Last label number handed out
        label_descriptions: One record per applied filter
        condition_descriptions: (condition, item) -> condition description
    """
    region_code_map: Dict[str, str]
    label_counter: int = 0
    label_descriptions: List[Dict[str, Any]] = field(default_factory=list)
    condition_descriptions: Dict[Tuple[int, int], str] = field(default_factory=dict)

    @classmethod
    def from_region_names(cls, region_names: List[str]) -> 'DatasetLabelState':
        return cls(region_code_map={name: f'{ind:02d}' for ind, name in enumerate(region_names, 1)})

    def next_label_number(self) -> int:
        """
        Hand out the next label number.

        Raises:
            ValueError: When all 99 label numbers are used
        """
        if self.label_counter >= MAX_LABEL_NUMBER:
            raise ValueError(f"Label number limit reached ({MAX_LABEL_NUMBER}); "
                             f"codes have only two digits for the label")
        self.label_counter += 1
        return self.label_counter


def _condition_code(condition: Any) -> str:
    try:
        cond = int(condition)
    except (TypeError, ValueError):
        return '00'
    return f'{cond % 100:02d}' if cond > 0 else '00'


def compose_label(condition: Any, region: str, state: DatasetLabelState, label_number: int) -> str:
    """
    Compose the 6-digit code CCRRLL.

    Args:
        condition: Condition number (unknown or <= 0 gives '00')
        region: Region name (unknown gives '00')
        state: Dataset label state holding the region codes
        label_number: Label number, 1..99

    Returns:
        6-digit code string
    """
    if not 1 <= int(label_number) <= MAX_LABEL_NUMBER:
        raise ValueError(f"Label number must be between 1 and {MAX_LABEL_NUMBER}, got {label_number}")
    region_code = state.region_code_map.get(region, '00')
    return f'{_condition_code(condition)}{region_code}{int(label_number):02d}'


@dataclass
class LabelConflict:
    """An event matched by a filter that already carries a label."""
    event_index: int
    existing_code: str
    new_code: str
    condition: int
    region: str


@dataclass
class LabelResult:
    label_number: int
    label_code: str
    matched: List[int] = field(default_factory=list)
    labeled: List[int] = field(default_factory=list)
    conflicts: List[LabelConflict] = field(default_factory=list)


# -----------------------------------------------------------------------------
# Helper functions for filtering
# -----------------------------------------------------------------------------

def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ''
    return str(value)


def _init_label_columns(events: pd.DataFrame) -> None:
    for col in LABEL_COLUMNS:
        if col not in events.columns:
            events[col] = ''
        else:
            events[col] = events[col].map(_text).astype(object)


def _chk_classified(events: pd.DataFrame) -> None:
    missing = [col for col in CLASSIFIED_COLUMNS if col not in events.columns]
    if missing:
        raise ValueError(f"Events are not classified (missing {', '.join(missing)}); "
                         f"run cal.trial_labeling first")


def _get_group_sizes(events: pd.DataFrame, fix_indices: List[int]) -> Dict[Tuple[int, str, int], int]:
    """Number of fixations per (trial, region, pass)."""
    sizes = {}
    for ind in fix_indices:
        trial = int(events['trial_number'].iloc[ind])
        region = _text(events['current_region'].iloc[ind])
        pass_no = int(events['region_pass_number'].iloc[ind])
        if trial == 0 or region == '' or pass_no == 0:
            continue
        key = (trial, region, pass_no)
        sizes[key] = sizes.get(key, 0) + 1
    return sizes


def _passes_pass_type(pass_no: int, options: Tuple[PassType, ...]) -> bool:
    for opt in options:
        if opt == PassType.ANY or \
                (opt == PassType.FIRST and pass_no == 1) or \
                (opt == PassType.SECOND and pass_no == 2) or \
                (opt == PassType.THIRD_PLUS and pass_no >= 3):
            return True
    return False


def _passes_fixation_type(fix_in_pass: int, group_size: int, is_last: bool,
                          options: Tuple[FixationType, ...]) -> bool:
    for opt in options:
        if opt == FixationType.ANY or \
                (opt == FixationType.SINGLE and group_size == 1) or \
                (opt == FixationType.FIRST_OF_MULTIPLE and fix_in_pass == 1 and group_size > 1) or \
                (opt == FixationType.SECOND and fix_in_pass == 2) or \
                (opt == FixationType.SUBSEQUENT and fix_in_pass > 2) or \
                (opt == FixationType.LAST_IN_PASS and is_last):
            return True
    return False


def _passes_saccade(x_change: float, options: Tuple[SaccadeDirection, ...],
                    min_px: float, rtl: bool) -> bool:
    """
    Check a saccade against direction options.

    A missing saccade (x_change NaN) only passes ANY; a saccade needs more
    than min_px pixels of horizontal movement to count as directed.
    """
    if SaccadeDirection.ANY in options:
        return True
    if np.isnan(x_change) or abs(x_change) <= min_px:
        return False
    forward = (x_change > 0) != rtl
    for opt in options:
        if opt == SaccadeDirection.MOVED or \
                (opt == SaccadeDirection.FORWARD and forward) or \
                (opt == SaccadeDirection.BACKWARD and not forward):
            return True
    return False


def _get_x_change(events: pd.DataFrame, sac_ind: Optional[int], cfg: EyesortConfig) -> float:
    if sac_ind is None or cfg.saccade_start_x_field not in events.columns or \
            cfg.saccade_end_x_field not in events.columns:
        return np.nan
    x_start = parse_x_position(events[cfg.saccade_start_x_field].iloc[sac_ind])
    x_end = parse_x_position(events[cfg.saccade_end_x_field].iloc[sac_ind])
    return x_end - x_start


def _get_neighbor_saccades(sac_indices: List[int], ind: int) -> Tuple[Optional[int], Optional[int]]:
    """Nearest saccade before and after an event, by stream position."""
    pos = bisect_left(sac_indices, ind)
    prev_sac = sac_indices[pos - 1] if pos > 0 else None
    pos = bisect_right(sac_indices, ind)
    next_sac = sac_indices[pos] if pos < len(sac_indices) else None
    return prev_sac, next_sac


def _in_list(name: str, names: Tuple[str, ...]) -> bool:
    return name != '' and name.lower() in (val.lower() for val in names)


def _full_description(cond_desc: str, label_desc: str) -> str:
    return ' '.join(part for part in [cond_desc, label_desc] if part != '')


def _write_label(events: pd.DataFrame, ind: int, code: str, label_desc: str,
                 state: DatasetLabelState, col_ind: Dict[str, int]) -> None:
    """Write a code and its descriptions onto one event."""
    if _text(events.iat[ind, col_ind['original_type']]) == '':
        events.iat[ind, col_ind['original_type']] = _text(events.iat[ind, col_ind['type']])
    events.iat[ind, col_ind['type']] = code
    events.iat[ind, col_ind['encoded_label']] = code
    events.iat[ind, col_ind['condition_code']] = code[0:2]
    events.iat[ind, col_ind['region_code']] = code[2:4]
    events.iat[ind, col_ind['label_code']] = code[4:6]

    cond, item = events['condition_number'].iloc[ind], events['item_number'].iloc[ind]
    cond_desc = ''
    if not (pd.isna(cond) or pd.isna(item)):
        cond_desc = state.condition_descriptions.get((int(cond), int(item)), '')
    events.iat[ind, col_ind['bdf_condition_description']] = cond_desc
    events.iat[ind, col_ind['bdf_label_description']] = label_desc
    events.iat[ind, col_ind['bdf_full_description']] = _full_description(cond_desc, label_desc)


# -----------------------------------------------------------------------------
# User functions for labeling
# -----------------------------------------------------------------------------

def apply_filter(events: pd.DataFrame, spec: FilterSpec, state: DatasetLabelState,
                 cfg: EyesortConfig, policy: ConflictPolicy = ConflictPolicy.KEEP_EXISTING,
                 label_number: Optional[int] = None) -> LabelResult:
    """
    Label every classified fixation matching a filter.

    Matching events get the code CCRRLL in 'type' and 'encoded_label', the
    code parts, their former type in 'original_type' (kept from the first
    labeling) and the BDF description columns. Events that already carry a
    label are reported as conflicts and relabeled only under
    ConflictPolicy.OVERWRITE. A label description record is appended to
    the state.

    Args:
        events: Classified event stream (modified in place)
        spec: Filter
        state: Dataset label state
        cfg: Configuration (event types, saccade fields, rtl)
        policy: What to do with events that already carry a label
        label_number: Label number to use; by default the next one from state.
            Later automatic numbers continue above it.

    Returns:
        LabelResult

    Raises:
        ValueError: Events not classified, or label number outside 1..99
    """
    _chk_classified(events)
    _init_label_columns(events)
    if label_number is None:
        label_number = state.next_label_number()
    else:
        label_number = int(label_number)
        if not 1 <= label_number <= MAX_LABEL_NUMBER:
            raise ValueError(f"Label number must be between 1 and {MAX_LABEL_NUMBER}, got {label_number}")
        state.label_counter = max(state.label_counter, label_number)
    label_code = f'{int(label_number):02d}'
    result = LabelResult(label_number=int(label_number), label_code=label_code)

    types = get_event_types(events)
    fix_indices = [ind for ind, ev_type in enumerate(types) if is_fixation(ev_type, cfg)]
    sac_indices = [ind for ind, ev_type in enumerate(types) if is_saccade(ev_type, cfg)]
    group_sizes = _get_group_sizes(events, fix_indices)
    col_ind = {col: events.columns.get_loc(col) for col in events.columns}

    for ind in fix_indices:
        cond = int(events['condition_number'].iloc[ind])
        item = int(events['item_number'].iloc[ind])
        if spec.conditions and (cond <= 0 or cond not in spec.conditions):
            continue
        if spec.items and (item <= 0 or item not in spec.items):
            continue

        region = _text(events['current_region'].iloc[ind])
        if not _in_list(region, spec.regions):
            continue

        pass_no = int(events['region_pass_number'].iloc[ind])
        if not _passes_pass_type(pass_no, spec.pass_types):
            continue

        if spec.prev_regions and not _in_list(_text(events['last_region_visited'].iloc[ind]),
                                              spec.prev_regions):
            continue
        if spec.next_regions and not _in_list(_text(events['next_region_visited'].iloc[ind]),
                                              spec.next_regions):
            continue

        group_size = group_sizes.get((int(events['trial_number'].iloc[ind]), region, pass_no), 0)
        if not _passes_fixation_type(int(events['fixation_in_pass'].iloc[ind]), group_size,
                                     bool(events['is_last_in_pass'].iloc[ind]), spec.fixation_types):
            continue

        prev_sac, next_sac = _get_neighbor_saccades(sac_indices, ind)
        if not _passes_saccade(_get_x_change(events, prev_sac, cfg), spec.saccade_in,
                               MIN_SACCADE_IN_PX, cfg.rtl):
            continue
        if not _passes_saccade(_get_x_change(events, next_sac, cfg), spec.saccade_out,
                               MIN_SACCADE_OUT_PX, cfg.rtl):
            continue

        result.matched.append(ind)
        code = compose_label(cond, region, state, label_number)
        existing = _text(events.iat[ind, col_ind['encoded_label']])
        if existing != '':
            result.conflicts.append(LabelConflict(ind, existing, code, cond, region))
            if policy != ConflictPolicy.OVERWRITE:
                continue
        _write_label(events, ind, code, spec.description, state, col_ind)
        result.labeled.append(ind)

    state.label_descriptions.append({
        'label_number': int(label_number),
        'label_code': label_code,
        **spec.to_dict(),
        'matched': len(result.matched),
        'labeled': len(result.labeled),
        'conflicts': len(result.conflicts),
        'timestamp': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
    })

    print(f"Label {label_code}: {len(result.matched)} matched, {len(result.labeled)} labeled, "
          f"{len(result.conflicts)} already labeled ({policy.value})")
    if result.conflicts and policy == ConflictPolicy.KEEP_EXISTING:
        print(f"Warning! {len(result.conflicts)} events kept their earlier labels")
    return result


def bdf_groups(events: pd.DataFrame) -> Dict[Tuple[str, str], List[str]]:
    """
    Distinct codes grouped by (condition description, label description).

    Args:
        events: Labeled event stream

    Returns:
        Dictionary (condition description, label description) -> sorted codes
    """
    groups = {}
    if 'encoded_label' not in events.columns:
        return groups
    for ind in range(len(events)):
        code = _text(events['encoded_label'].iloc[ind])
        if code == '':
            continue
        key = (_text(events['bdf_condition_description'].iloc[ind]),
               _text(events['bdf_label_description'].iloc[ind]))
        groups.setdefault(key, set()).add(code)
    return {key: sorted(codes) for key, codes in groups.items()}


def process_events(events: pd.DataFrame, stim_df: pd.DataFrame,
                   cfg: EyesortConfig) -> Tuple[Dict[Tuple[int, int], StimulusLayout],
                                                DatasetLabelState, Dict[str, Dict[str, int]]]:
    """
    Build layouts, assign event context and classify fixations of one dataset.

    Args:
        events: Event stream (modified in place)
        stim_df: Stimulus table
        cfg: Configuration

    Returns:
        Tuple of (layouts, fresh label state, counts by step)
    """
    layouts = compute_text_ia(stim_df, cfg.region_names, cfg.offset, cfg.px_per_char,
                              cfg.condition_col, cfg.item_col, cfg.condition_label_cols)
    counts = {'assign': assign_event_context(events, layouts, cfg),
              'classify': trial_labeling(events, layouts, cfg)}
    state = DatasetLabelState.from_region_names(cfg.region_names)
    state.condition_descriptions = {key: layout.condition_description
                                    for key, layout in layouts.items()}
    return layouts, state, counts


def label_events(events: pd.DataFrame, specs: List[FilterSpec], state: DatasetLabelState,
                 cfg: EyesortConfig,
                 policy: ConflictPolicy = ConflictPolicy.KEEP_EXISTING) -> List[LabelResult]:
    """Apply filters in order, one label number each."""
    return [apply_filter(events, spec, state, cfg, policy) for spec in specs]


def label_write_events(direct: str, subj_id: str, stim_df: pd.DataFrame, cfg: EyesortConfig,
                       specs: List[FilterSpec],
                       policy: ConflictPolicy = ConflictPolicy.KEEP_EXISTING) -> List[LabelResult]:
    """
    Process and label one subject, then write the results.

    Reads direct/subj_id/subj_id_Events.csv and writes
    subj_id_Labeled.csv (events) and subj_id_Labels.csv (label records)
    next to it.

    Args:
        direct: Root directory
        subj_id: Subject ID
        stim_df: Stimulus table
        cfg: Configuration
        specs: Filters, applied in order
        policy: What to do with events that already carry a label

    Returns:
        One LabelResult per filter
    """
    print(f"Subj: {subj_id}")
    events = read_events(direct, subj_id)
    _, state, _ = process_events(events, stim_df, cfg)
    results = label_events(events, specs, state, cfg, policy)
    write_events(direct, subj_id, events)
    pd.DataFrame(state.label_descriptions).to_csv(
        os.path.join(direct, subj_id, f'{subj_id}_Labels.csv'), index=False, encoding='utf-8')
    return results


def label_write_events_b(direct: str, stim_df: pd.DataFrame, cfg: EyesortConfig,
                         specs: List[FilterSpec],
                         policy: ConflictPolicy = ConflictPolicy.KEEP_EXISTING) -> Dict[str, Any]:
    """
    Batch process and label every subject folder under direct.

    Subjects are processed one at a time; a subject that fails is reported
    and skipped.

    Args:
        direct: Root directory with one folder per subject
        stim_df: Stimulus table
        cfg: Configuration
        specs: Filters, applied in order to every subject
        policy: What to do with events that already carry a label

    Returns:
        Dictionary subj_id -> list of LabelResult, or the error for failed subjects
    """
    outcomes = {}
    file_exist, file_dic = _crt_csv_dic(1, direct, '', EVENT_FILE_END)
    if not file_exist:
        return outcomes
    for subj_id in file_dic:
        try:
            outcomes[subj_id] = label_write_events(direct, subj_id, stim_df, cfg, specs, policy)
        except (ValueError, KeyError, OSError) as err:
            print(f"Warning! Subj {subj_id} skipped: {err}")
            outcomes[subj_id] = err
    failed = sum(isinstance(val, Exception) for val in outcomes.values())
    print(f"Batch: {len(outcomes) - failed} of {len(outcomes)} subjects labeled")
    return outcomes
