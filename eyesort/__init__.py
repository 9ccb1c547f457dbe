# -*- coding: utf-8 -*-
"""
EyeSort: A Python package for labeling fixation events of co-registered
eye-tracking and EEG reading experiments

This package provides tools for:
1. Computing region and word interest areas of single-line reading stimuli
2. Assigning stimulus context to the events of a recording
3. Classifying fixations by word, region, pass and regression behavior
4. Labeling fixations with 6-digit codes for binning fixation-related potentials

Version: 1.0.0
License: MIT

Modules:
    cfg - Configuration record, validation and persistence
    gen - Interest-area layouts, region files and trial drawings
    ext - Trigger matching, event file I/O and event context
    cal - Fixation classification
    lab - Filters, label codes and the labeling pipeline

Example usage:
    import eyesort as es

    config = es.cfg.read_config('last_text_ia_config.csv')
    stim_df = es.gen.read_text_ia('stimuli.txt')
    spec = es.lab.FilterSpec.from_dict({'regions': 'Target', 'pass_options': 2,
                                        'description': 'Target first pass'})
    es.lab.label_write_events_b(direct, stim_df, config, [spec])
"""

__all__ = ["cfg", "gen", "ext", "cal", "lab"]
__version__ = "1.0.0"
__author__ = "EyeSort developers"
__license__ = "MIT"

from . import cfg
from . import gen
from . import ext
from . import cal
from . import lab
