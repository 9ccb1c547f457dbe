# -*- coding: utf-8 -*-
"""
EyeSort - cfg.py

This module holds the configuration record shared by the layout builder,
the event context assigner, the fixation classifier and the label engine,
together with its validation and key-value persistence.

A configuration is a flat record, usually typed into a dialog or kept in a
small CSV file:

    offset, px_per_char, region_names, condition_col, item_col,
    condition_label_cols, start_code, end_code, condition_triggers,
    item_triggers, sentence_start_code, sentence_end_code,
    fixation_type, fixation_x_field, saccade_type,
    saccade_start_x_field, saccade_end_x_field, rtl

Usage:
    from eyesort import cfg
    config = cfg.EyesortConfig.from_dict(record)
    cfg.save_config('last_text_ia_config.csv', config)
"""

__author__ = "EyeSort developers"
__copyright__ = "Copyright 2025, The EyeSort Project"
__license__ = "MIT"
__version__ = "1.0.0"
__status__ = "Production"

import ast
import csv
import re
import warnings
from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any


REQUIRED_KEYS = ['offset', 'px_per_char', 'region_names', 'condition_col',
                 'item_col', 'start_code', 'end_code', 'condition_triggers',
                 'item_triggers', 'fixation_type', 'fixation_x_field',
                 'saccade_type', 'saccade_start_x_field', 'saccade_end_x_field']

LIST_KEYS = ['region_names', 'condition_label_cols', 'condition_triggers',
             'item_triggers']


class ConfigError(ValueError):
    """
    Raised when a configuration, a stimulus table or a filter record is
    unusable. Carries every problem found, not only the first one.
    """
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        msg = f"{len(self.errors)} configuration error(s):\n" + \
              '\n'.join(f"  {ind}. {err}" for ind, err in enumerate(self.errors, 1))
        super(ConfigError, self).__init__(msg)


def split_list(value: Any) -> List[str]:
    """
    Turn a comma-separated string (or list) into a list of stripped strings.

    Args:
        value: 'Beginning, Target, End' or ['Beginning', 'Target', 'End']

    Returns:
        List of non-empty strings
    """
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(',')
    else:
        parts = list(value)
    return [str(part).strip() for part in parts if str(part).strip() != '']


def expand_trigger_ranges(trigger_input: Any) -> List[str]:
    """
    Expand trigger ranges such as "S1:S112" into individual trigger codes.

    Args:
        trigger_input: String like "S1:S5, S9" or a list of such strings

    Returns:
        List of individual trigger strings, e.g. ['S1', 'S2', 'S3', 'S4', 'S5', 'S9']

    Examples:
        >>> expand_trigger_ranges('S1:S3')
        ['S1', 'S2', 'S3']
        >>> expand_trigger_ranges('211, 213:214')
        ['211', '213', '214']
    """
    expanded = []
    for part in split_list(trigger_input):
        if ':' not in part:
            expanded.append(part)
            continue
        range_parts = part.split(':')
        if len(range_parts) != 2:
            expanded.append(part)
            continue
        prefix = re.match(r'^[^0-9]*', range_parts[0].strip()).group(0)
        start_num = re.search(r'[0-9]+', range_parts[0])
        end_num = re.search(r'[0-9]+', range_parts[1])
        if start_num is None or end_num is None or int(start_num.group(0)) > int(end_num.group(0)):
            warnings.warn(f"Invalid trigger range: {part}. Keeping as-is.")
            expanded.append(part)
            continue
        for num in range(int(start_num.group(0)), int(end_num.group(0)) + 1):
            expanded.append(f'{prefix}{num}')
    return expanded


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


@dataclass
class EyesortConfig:
    """
    Settings for one dataset.

    Layout settings:
        offset: Pixel x position where the first character starts
        px_per_char: Width of one character in pixels (monospaced font)
        region_names: Region column names, in reading order
        condition_col / item_col: Stimulus table columns with the numbers
        condition_label_cols: Columns joined into the condition description

    Event settings:
        start_code / end_code: Trial start and end triggers
        condition_triggers / item_triggers: Trigger codes carrying numbers
        sentence_start_code / sentence_end_code: Optional sentence window
        fixation_type / saccade_type: Event type prefixes
        fixation_x_field, saccade_start_x_field, saccade_end_x_field:
            Event columns holding the horizontal positions
        rtl: Right-to-left reading (flips saccade direction)
    """
    offset: float
    px_per_char: float
    region_names: List[str]
    condition_col: str
    item_col: str
    start_code: str
    end_code: str
    condition_triggers: List[str]
    item_triggers: List[str]
    fixation_type: str
    fixation_x_field: str
    saccade_type: str
    saccade_start_x_field: str
    saccade_end_x_field: str
    condition_label_cols: List[str] = field(default_factory=list)
    sentence_start_code: str = ''
    sentence_end_code: str = ''
    rtl: bool = False

    @property
    def num_regions(self) -> int:
        return len(self.region_names)

    @property
    def use_sentence_codes(self) -> bool:
        return self.sentence_start_code.strip() != '' and self.sentence_end_code.strip() != ''

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> 'EyesortConfig':
        """
        Build a configuration from a flat key-value record.

        Every problem (missing keys, non-numeric layout values, a region
        count that disagrees with num_regions) is collected and raised at
        once as ConfigError.

        Args:
            record: Flat dictionary, values may be strings as typed by a user

        Returns:
            EyesortConfig
        """
        errors = []
        for key in REQUIRED_KEYS:
            value = record.get(key)
            if value is None or (isinstance(value, str) and value.strip() == '') or \
                    (isinstance(value, (list, tuple)) and len(value) == 0):
                errors.append(f"Missing required field: {key}")

        numbers = {}
        for key in ['offset', 'px_per_char']:
            if record.get(key) is None or str(record.get(key)).strip() == '':
                continue
            try:
                numbers[key] = float(record[key])
            except (TypeError, ValueError):
                errors.append(f"Field {key} must be numeric, got {record[key]!r}")
        if numbers.get('px_per_char', 1.0) <= 0:
            errors.append(f"Field px_per_char must be positive, got {numbers['px_per_char']}")

        region_names = split_list(record.get('region_names'))
        if record.get('num_regions') not in (None, ''):
            try:
                num_regions = int(record['num_regions'])
                if num_regions != len(region_names):
                    errors.append(f"Number of region_names ({len(region_names)}) does not match "
                                  f"num_regions ({num_regions})")
            except (TypeError, ValueError):
                errors.append(f"Field num_regions must be an integer, got {record['num_regions']!r}")
        if len(set(region_names)) != len(region_names):
            errors.append(f"Duplicate region names: {', '.join(region_names)}")

        if errors:
            raise ConfigError(errors)

        return cls(offset=numbers['offset'],
                   px_per_char=numbers['px_per_char'],
                   region_names=region_names,
                   condition_col=str(record['condition_col']).strip(),
                   item_col=str(record['item_col']).strip(),
                   start_code=str(record['start_code']).strip(),
                   end_code=str(record['end_code']).strip(),
                   condition_triggers=expand_trigger_ranges(record['condition_triggers']),
                   item_triggers=expand_trigger_ranges(record['item_triggers']),
                   fixation_type=str(record['fixation_type']).strip(),
                   fixation_x_field=str(record['fixation_x_field']).strip(),
                   saccade_type=str(record['saccade_type']).strip(),
                   saccade_start_x_field=str(record['saccade_start_x_field']).strip(),
                   saccade_end_x_field=str(record['saccade_end_x_field']).strip(),
                   condition_label_cols=split_list(record.get('condition_label_cols')),
                   sentence_start_code=str(record.get('sentence_start_code') or '').strip(),
                   sentence_end_code=str(record.get('sentence_end_code') or '').strip(),
                   rtl=_to_bool(record.get('rtl', False)))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def save_config(filename: str, config: EyesortConfig) -> None:
    """
    Save a configuration as a two-column CSV file (key, value).

    Args:
        filename: Output file path
        config: Configuration to save
    """
    with open(filename, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        for key, val in config.to_dict().items():
            writer.writerow([key, repr(val)])


def read_config(filename: str) -> EyesortConfig:
    """
    Read a configuration saved by save_config.

    Args:
        filename: Input file path

    Returns:
        EyesortConfig (validated)
    """
    record = {}
    with open(filename, 'r', encoding='utf-8') as f:
        for key, val in csv.reader(f):
            record[key] = ast.literal_eval(val)
    return EyesortConfig.from_dict(record)
