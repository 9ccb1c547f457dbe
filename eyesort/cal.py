# -*- coding: utf-8 -*-
"""
EyeSort - cal module
====================

This module classifies every fixation of a context-annotated event stream
in reading terms: which word and region it lands on, which pass through
the region it belongs to, whether it is a first-pass fixation, and whether
it or its trial contains a regression.

Classification runs in two ordered passes:

First pass (stream order, state reset at every trial start):
    - current_word / previous_word
    - is_first_pass_word, is_first_pass_region
    - region_pass_number, fixation_in_pass
    - is_region_regression, is_word_regression, is_regression_trial
    - total_fixations_in_word, total_fixations_in_region
    - trial_number, condition_number, item_number

Second pass (per trial, over the finished first-pass results):
    - previous_fixation_region, next_fixation_region
    - last_region_visited, next_region_visited
    - is_last_in_pass

Usage
-----
    from eyesort import cal
    counts = cal.trial_labeling(events, layouts, config)
"""

__author__ = "EyeSort developers"
__copyright__ = "Copyright 2025, The EyeSort Project"
__license__ = "MIT"
__version__ = "1.0.0"
__status__ = "Production"

import re
import warnings
from typing import Dict, List, Tuple, Optional, Any

import pandas as pd
import numpy as np

from .cfg import EyesortConfig
from .gen import StimulusLayout, parse_x_position
from .ext import get_event_types, is_fixation, match_any, trigger_match, trigger_number


WORD_KEY_PATTERNS = [re.compile(r'^(\d+)\.(\d+)$'), re.compile(r'^x?(\d+)_(\d+)$')]

# Classifier columns and their reset values
CLASSIFIER_COLUMNS = {
    'current_region': '',
    'current_word': '',
    'previous_word': '',
    'previous_fixation_region': '',
    'next_fixation_region': '',
    'last_region_visited': '',
    'next_region_visited': '',
    'region_pass_number': 0,
    'fixation_in_pass': 0,
    'is_last_in_pass': False,
    'is_first_pass_region': False,
    'is_first_pass_word': False,
    'is_region_regression': False,
    'is_word_regression': False,
    'is_regression_trial': False,
    'total_fixations_in_word': 0,
    'total_fixations_in_region': 0,
    'trial_number': 0,
    'item_number': 0,
    'condition_number': 0,
}


# =============================================================================
# Helper Functions
# =============================================================================

def parse_word_key(word_key: str) -> Tuple[int, int]:
    """
    Split a word key into region and word numbers.

    Parameters
    ----------
    word_key : str
        Either "R.W" (e.g. "2.3") or "xR_W" (e.g. "x2_3").

    Returns
    -------
    tuple
        (region_number, word_number)

    Raises
    ------
    ValueError
        If the key has neither shape.
    """
    for pattern in WORD_KEY_PATTERNS:
        m = pattern.match(str(word_key).strip())
        if m is not None:
            return int(m.group(1)), int(m.group(2))
    raise ValueError(f'Unknown word region format: {word_key!r}')


def _get_layout(events: pd.DataFrame, ind: int,
                layouts: Dict[Tuple[int, int], StimulusLayout]) -> Optional[StimulusLayout]:
    """Layout attached to an event by the context assigner, None if there is none."""
    cond = events['stim_condition'].iloc[ind]
    item = events['stim_item'].iloc[ind]
    if pd.isna(cond) or pd.isna(item):
        return None
    return layouts.get((int(cond), int(item)))


class _TrialState:
    """Per-trial bookkeeping of the first pass."""

    def __init__(self):
        self.visited_words = set()
        self.word_fixation_counts = {}
        self.visited_regions = set()
        self.region_fixation_counts = {}
        self.region_pass_number = {}
        self.fixations_in_current_pass = {}
        self.last_region_visited = ''
        self.previous_word = ''
        self.has_regression_been_found = False
        self.in_end_region = False
        self.end_region_fixation_count = 0

    def has_visited_later_region(self, region_no: int) -> bool:
        return any(reg > region_no for reg in self.visited_regions)

    def has_visited_later_word(self, region_no: int, word_no: int) -> bool:
        for word_key in self.visited_words:
            reg, word = parse_word_key(word_key)
            if reg == region_no and word > word_no:
                return True
        return False

    def leave_end_region(self) -> None:
        self.in_end_region = False
        self.end_region_fixation_count = 0


def _classify_fixation(out: Dict[str, List[Any]], ind: int, word_key: str,
                       layout: StimulusLayout, state: _TrialState,
                       end_region_name: str) -> None:
    """
    First-pass classification of one fixation that landed on a word.

    Parameters
    ----------
    out : dict
        Column name -> list of values, written at position ind.
    ind : int
        Event index.
    word_key : str
        Word the fixation landed on.
    layout : StimulusLayout
        Layout of the trial's stimulus.
    state : _TrialState
        Per-trial state, updated in place.
    end_region_name : str
        Name of the last declared region.
    """
    region_no, word_no = parse_word_key(word_key)
    region_name = layout.regions[region_no - 1].name

    out['current_word'][ind] = word_key
    out['previous_word'][ind] = state.previous_word
    state.word_fixation_counts[word_key] = state.word_fixation_counts.get(word_key, 0) + 1

    # first-pass word
    later_region = state.has_visited_later_region(region_no)
    if not later_region:
        first_visit_word = word_key not in state.visited_words
        out['is_first_pass_word'][ind] = first_visit_word and \
            not state.has_visited_later_word(region_no, word_no)
    state.visited_words.add(word_key)

    out['current_region'][ind] = region_name
    state.region_fixation_counts[region_no] = state.region_fixation_counts.get(region_no, 0) + 1

    # regressions against the previous fixation
    if state.previous_word != '':
        prev_region_no, prev_word_no = parse_word_key(state.previous_word)
        region_regression = region_no < prev_region_no
        out['is_region_regression'][ind] = region_regression
        out['is_word_regression'][ind] = region_no == prev_region_no and word_no < prev_word_no
        if region_regression:
            state.has_regression_been_found = True

    # pass bookkeeping; a first entry after a later region was seen is pass 2
    if state.last_region_visited == '' or region_name.lower() != state.last_region_visited.lower():
        if region_name in state.region_pass_number:
            state.region_pass_number[region_name] += 1
        else:
            state.region_pass_number[region_name] = 1 + int(later_region)
        state.fixations_in_current_pass[region_name] = 1
        state.last_region_visited = region_name
    else:
        state.fixations_in_current_pass[region_name] += 1
    out['region_pass_number'][ind] = state.region_pass_number[region_name]
    out['fixation_in_pass'][ind] = state.fixations_in_current_pass[region_name]

    out['is_first_pass_region'][ind] = region_no not in state.visited_regions and not later_region
    state.visited_regions.add(region_no)

    out['total_fixations_in_word'][ind] = state.word_fixation_counts[word_key]
    out['total_fixations_in_region'][ind] = state.region_fixation_counts[region_no]

    # regressions out of, or inside, the terminal region
    if end_region_name != '' and region_name.lower() == end_region_name.lower():
        if not state.in_end_region:
            state.in_end_region = True
            state.end_region_fixation_count = 0
        state.end_region_fixation_count += 1
        # word numbers are compared across the region boundary too
        if state.previous_word != '' and not state.has_regression_been_found:
            if word_no < parse_word_key(state.previous_word)[1]:
                state.has_regression_been_found = True
    elif state.in_end_region:
        if not state.has_regression_been_found:
            state.has_regression_been_found = True
        state.leave_end_region()

    state.previous_word = word_key


def _get_neighbor_regions(out: Dict[str, List[Any]], trial_fix: List[int]) -> None:
    """
    Second-pass fields of one trial's fixations.

    Parameters
    ----------
    out : dict
        Column name -> list of values.
    trial_fix : list
        Event indices of the trial's fixations, in stream order.
    """
    regions = [out['current_region'][ind] for ind in trial_fix]
    num_fix = len(trial_fix)
    for pos, ind in enumerate(trial_fix):
        cur_region = regions[pos]
        out['previous_fixation_region'][ind] = regions[pos - 1] if pos > 0 else ''
        out['next_fixation_region'][ind] = regions[pos + 1] if pos < num_fix - 1 else ''

        # nearest different, non-empty region in each direction
        next_region = ''
        for reg in regions[pos + 1:]:
            if reg != '' and reg.lower() != cur_region.lower():
                next_region = reg
                break
        last_region = ''
        for reg in reversed(regions[:pos]):
            if reg != '' and reg.lower() != cur_region.lower():
                last_region = reg
                break
        out['next_region_visited'][ind] = next_region
        out['last_region_visited'][ind] = last_region

        next_fix_region = out['next_fixation_region'][ind]
        out['is_last_in_pass'][ind] = next_fix_region == '' or \
            cur_region.lower() != next_fix_region.lower()


# =============================================================================
# Main Function
# =============================================================================

def trial_labeling(events: pd.DataFrame, layouts: Dict[Tuple[int, int], StimulusLayout],
                   cfg: EyesortConfig) -> Dict[str, int]:
    """
    Classify every fixation of a context-annotated event stream.

    Every classifier column is reset first, so running this twice over the
    same events gives the same result. The events DataFrame is modified in
    place.

    Parameters
    ----------
    events : pd.DataFrame
        Event stream after ext.assign_event_context.
    layouts : dict
        (condition, item) -> StimulusLayout.
    cfg : EyesortConfig
        Configuration (triggers, fixation type, x field, sentence codes).

    Returns
    -------
    dict
        Counts: fixations, with_boundaries, processed, assigned,
        regression_trials, trials.
    """
    num_events = len(events)
    out = {col: [default] * num_events for col, default in CLASSIFIER_COLUMNS.items()}
    types = get_event_types(events)
    has_context = 'stim_condition' in events.columns and 'stim_item' in events.columns
    has_x_field = cfg.fixation_x_field in events.columns
    end_region_name = cfg.region_names[-1] if cfg.region_names else ''

    counts = {'fixations': 0, 'with_boundaries': 0, 'processed': 0, 'assigned': 0,
              'regression_trials': 0, 'trials': 0}
    trial_fix = {}
    regression_trials = set()
    cur_trial = 0
    cond, item = None, None
    sentence_active = not cfg.use_sentence_codes
    state = _TrialState()

    # first pass
    for ind, ev_type in enumerate(types):
        if trigger_match(ev_type, cfg.start_code):
            cur_trial += 1
            state = _TrialState()
            sentence_active = not cfg.use_sentence_codes
            trial_fix[cur_trial] = []
        elif trigger_match(ev_type, cfg.end_code):
            state.leave_end_region()
            cond, item = None, None
            sentence_active = not cfg.use_sentence_codes
        elif match_any(ev_type, cfg.condition_triggers) is not None:
            cond = trigger_number(ev_type)
            out['condition_number'][ind] = cond
        elif match_any(ev_type, cfg.item_triggers) is not None:
            item = trigger_number(ev_type)
            out['item_number'][ind] = item
        elif cfg.use_sentence_codes:
            if trigger_match(ev_type, cfg.sentence_start_code):
                sentence_active = True
            elif trigger_match(ev_type, cfg.sentence_end_code):
                sentence_active = False

        if not (is_fixation(ev_type, cfg) and sentence_active):
            continue
        counts['fixations'] += 1

        layout = _get_layout(events, ind, layouts) if has_context else None
        if layout is None:
            continue
        counts['with_boundaries'] += 1
        if cond is None or item is None:
            continue
        counts['processed'] += 1

        x_pos = parse_x_position(events[cfg.fixation_x_field].iloc[ind]) if has_x_field else np.nan
        if np.isnan(x_pos):
            warnings.warn(f'Event {ind + 1}: cannot parse fixation position; fixation skipped')
            continue
        word_key = layout.word_at(x_pos)
        if word_key == '':
            # off the text: terminal-region tracking restarts
            if state.in_end_region:
                state.leave_end_region()
            continue

        _classify_fixation(out, ind, word_key, layout, state, end_region_name)
        if state.has_regression_been_found:
            regression_trials.add(cur_trial)
        if out['current_region'][ind] != '':
            out['trial_number'][ind] = cur_trial
            out['item_number'][ind] = item
            out['condition_number'][ind] = cond
            trial_fix.setdefault(cur_trial, []).append(ind)
            counts['assigned'] += 1

    # regression trials, marked on every event of the trial
    for ind in range(num_events):
        if out['trial_number'][ind] in regression_trials:
            out['is_regression_trial'][ind] = True

    # second pass
    for trial_id in sorted(trial_fix.keys()):
        if trial_fix[trial_id]:
            _get_neighbor_regions(out, trial_fix[trial_id])

    for col in CLASSIFIER_COLUMNS:
        events[col] = out[col]

    counts['trials'] = cur_trial
    counts['regression_trials'] = len(regression_trials)
    print(f"Classify: {counts['fixations']} fixations, {counts['with_boundaries']} with boundaries, "
          f"{counts['processed']} processed, {counts['assigned']} assigned to regions, "
          f"{counts['regression_trials']} of {counts['trials']} trials with regressions")
    return counts
