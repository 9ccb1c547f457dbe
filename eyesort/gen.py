# -*- coding: utf-8 -*-
"""
EyeSort - gen.py

This module provides functions for generating interest-area layouts
(pixel boundaries of regions and words) of single-line reading stimuli,
writing them as region files, and drawing a trial's fixations on top of
them.

Text-based layouts assume a monospaced font: each character takes
px_per_char pixels and the passage starts at a fixed pixel offset. Each
stimulus row holds one text cell per region; regions after the first must
start with exactly one space, which belongs to the first word of that
region.

Example:
    With offset=0, px_per_char=10 and the regions
    ["The cat", " sat quietly", " on the mat."]:
        region 1 spans [0, 70], region 2 [70, 190], region 3 [190, 310]
        word "2.1" (" sat") spans [70, 110]

Usage:
    from eyesort import gen
    stim_df = gen.read_text_ia('stimuli.txt')
    layouts = gen.compute_text_ia(stim_df, ['Beginning', 'Target', 'End'],
                                  offset=281, px_per_char=14,
                                  condition_col='cond', item_col='item')
"""

__author__ = "EyeSort developers"
__copyright__ = "Copyright 2025, The EyeSort Project"
__license__ = "MIT"
__version__ = "1.0.0"
__status__ = "Production"

import csv
import re
import warnings
from dataclasses import dataclass, field
from typing import List, Tuple, Dict, Optional, Any

import pandas as pd
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .cfg import ConfigError, EyesortConfig


# Word token: leading whitespace plus a run of non-whitespace, so the gap
# before a word is charged to that word
WORD_PATTERN = re.compile(r'\s*\S+')
NUMBER_PATTERN = re.compile(r'[-+]?\d*\.?\d+')


class LayoutValidationError(ValueError):
    """
    Raised when stimulus texts break the region spacing convention.
    Lists every offending row and region.
    """
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        msg = (f"Found {len(self.errors)} spacing error(s) in the interest area text file:\n" +
               '\n'.join(f"  {ind}. {err}" for ind, err in enumerate(self.errors, 1)) +
               "\nREQUIREMENT: the first region should NOT start with a space; "
               "all other regions should start with exactly one space.")
        super(LayoutValidationError, self).__init__(msg)


@dataclass
class RegionBoundary:
    """Pixel span of one region."""
    name: str
    x_start: float
    x_end: float

    def contains(self, x: float) -> bool:
        return self.x_start <= x <= self.x_end


@dataclass
class StimulusLayout:
    """
    Region and word boundaries of one (condition, item) stimulus.

    Attributes:
        condition: Condition number
        item: Item number
        regions: Region boundaries in declared (reading) order
        word_boundaries: "region.word" -> (x_start, x_end), in reading order
        region_words: region number -> word tokens (with leading spaces)
        condition_description: Human-readable condition label
    """
    condition: int
    item: int
    regions: List[RegionBoundary]
    word_boundaries: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    region_words: Dict[int, List[str]] = field(default_factory=dict)
    condition_description: str = ''

    @property
    def key(self) -> Tuple[int, int]:
        return (self.condition, self.item)

    @property
    def region_names(self) -> List[str]:
        return [reg.name for reg in self.regions]

    def region_at(self, x: float) -> Optional[RegionBoundary]:
        """First region (in declared order) whose span contains x."""
        for reg in self.regions:
            if reg.contains(x):
                return reg
        return None

    def word_at(self, x: float) -> str:
        """First word key (in reading order) whose span contains x, '' if none."""
        for word_key, (x_start, x_end) in self.word_boundaries.items():
            if x_start <= x <= x_end:
                return word_key
        return ''


# -----------------------------------------------------------------------------
# Helper functions for reading stimulus tables
# -----------------------------------------------------------------------------

def parse_x_position(value: Any) -> float:
    """
    Get a horizontal pixel position from a numeric or formatted field.

    Args:
        value: Number, numeric string, or coordinate string like "(512.30, 380.00)"

    Returns:
        x position as float, or NaN if nothing numeric is found
    """
    if value is None or isinstance(value, bool):
        return np.nan
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    if isinstance(value, (list, tuple)):
        return parse_x_position(value[0]) if len(value) > 0 else np.nan
    m = NUMBER_PATTERN.search(str(value))
    if m is None:
        return np.nan
    try:
        return float(m.group(0))
    except ValueError:
        return np.nan


def _to_int(value: Any) -> Optional[int]:
    """Parse a stimulus-table cell as an integer number, None if impossible."""
    try:
        num = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if np.isnan(num) or num != int(num):
        return None
    return int(num)


def _cell_text(value: Any) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ''
    return str(value)


def find_column(columns: List[str], requested: str) -> Optional[str]:
    """
    Find the best match for a column name.

    Tries the exact name, then the name with/without a leading '$', then a
    case-insensitive match.

    Args:
        columns: Available column names
        requested: Requested column name

    Returns:
        Matching column name, or None
    """
    columns = [str(col) for col in columns]
    if requested in columns:
        return requested
    alt = requested[1:] if requested.startswith('$') else '$' + requested
    if alt in columns:
        return alt
    for col in columns:
        if col.lower() == requested.lower():
            return col
    return None


def match_columns(columns: List[str], requested: List[str]) -> Dict[str, str]:
    """
    Resolve every requested column name against the available ones.

    Args:
        columns: Available column names
        requested: Requested column names

    Returns:
        Dictionary mapping requested name -> actual column name

    Raises:
        ConfigError: Listing every column that cannot be found
    """
    resolved = {}
    errors = []
    for name in requested:
        actual = find_column(columns, name)
        if actual is None:
            errors.append(f'Column "{name}" not found. Available columns: {", ".join(map(str, columns))}')
        else:
            resolved[name] = actual
    if errors:
        raise ConfigError(errors)
    return resolved


def read_text_ia(filename: str, encoding: str = 'utf-8') -> pd.DataFrame:
    """
    Read a tab-delimited stimulus table, keeping every cell as text.

    Leading spaces and quote characters in region cells are preserved,
    since they take screen space.

    Args:
        filename: Path of the tab-delimited text file
        encoding: File encoding

    Returns:
        DataFrame with one row per stimulus
    """
    print(f"Read Text IA: {filename}")
    return pd.read_csv(filename, sep='\t', dtype=str, keep_default_na=False,
                       quoting=csv.QUOTE_NONE, encoding=encoding)


# -----------------------------------------------------------------------------
# Helper functions for computing boundaries
# -----------------------------------------------------------------------------

def _chk_region_spacing(stim_df: pd.DataFrame, region_cols: List[str],
                        region_names: List[str]) -> List[str]:
    """
    Check the single-space convention for every row and region.

    Returns:
        List of error messages (empty when every row is fine)
    """
    errors = []
    for row in range(len(stim_df)):
        for reg_ind, col in enumerate(region_cols):
            text = _cell_text(stim_df[col].iloc[row])
            if text == '':
                continue
            if reg_ind == 0 and text.startswith(' '):
                errors.append(f'Row {row + 1}, Region 1 ({region_names[0]}): '
                              f'First region should not start with a space')
            elif reg_ind > 0 and not text.startswith(' '):
                errors.append(f'Row {row + 1}, Region {reg_ind + 1} ({region_names[reg_ind]}): '
                              f'Missing leading space. Text starts with "{text[:10]}"')
            elif reg_ind > 0 and text.startswith('  '):
                errors.append(f'Row {row + 1}, Region {reg_ind + 1} ({region_names[reg_ind]}): '
                              f'More than one leading space')
    return errors


def _get_word_boundaries(reg_no: int, text: str, region_start: float,
                         px_per_char: float) -> Tuple[Dict[str, Tuple[float, float]], List[str]]:
    """
    Get pixel spans of the words of one region.

    Args:
        reg_no: Region number (1-based)
        text: Region text
        region_start: Pixel position where the region starts
        px_per_char: Pixels per character

    Returns:
        Tuple of (word_boundaries, words)
    """
    word_bounds = {}
    words = []
    for word_no, m in enumerate(WORD_PATTERN.finditer(text), 1):
        word_bounds[f'{reg_no}.{word_no}'] = (region_start + m.start() * px_per_char,
                                              region_start + m.end() * px_per_char)
        words.append(m.group(0))
    return word_bounds, words


def _get_condition_description(stim_df: pd.DataFrame, row: int, label_cols: List[str]) -> str:
    parts = [_cell_text(stim_df[col].iloc[row]).strip() for col in label_cols]
    return ' '.join(part for part in parts if part != '')


def compute_text_ia(stim_df: pd.DataFrame, region_names: List[str],
                    offset: float, px_per_char: float,
                    condition_col: str, item_col: str,
                    condition_label_cols: Optional[List[str]] = None) -> Dict[Tuple[int, int], StimulusLayout]:
    """
    Compute text-based interest areas for every stimulus row.

    Each region spans px_per_char pixels per character of its text, starting
    where the previous region ended (the first one at offset). Words are
    runs of non-whitespace together with the whitespace in front of them.

    Args:
        stim_df: Stimulus table, one row per (condition, item)
        region_names: Region column names, in reading order
        offset: Pixel position of the first character
        px_per_char: Pixels per character
        condition_col: Column with condition numbers
        item_col: Column with item numbers
        condition_label_cols: Columns joined into the condition description

    Returns:
        Dictionary (condition, item) -> StimulusLayout

    Raises:
        ConfigError: If columns are missing
        LayoutValidationError: If any region breaks the spacing convention
    """
    condition_label_cols = condition_label_cols or []
    cols = match_columns(list(stim_df.columns),
                         list(region_names) + [condition_col, item_col] + list(condition_label_cols))
    region_cols = [cols[name] for name in region_names]
    label_cols = [cols[name] for name in condition_label_cols]

    errors = _chk_region_spacing(stim_df, region_cols, region_names)
    if errors:
        raise LayoutValidationError(errors)

    layouts = {}
    skipped = 0
    for row in range(len(stim_df)):
        cond = _to_int(stim_df[cols[condition_col]].iloc[row])
        item = _to_int(stim_df[cols[item_col]].iloc[row])
        if cond is None or item is None:
            warnings.warn(f'Row {row + 1}: condition/item is not a number '
                          f'({stim_df[cols[condition_col]].iloc[row]!r}, '
                          f'{stim_df[cols[item_col]].iloc[row]!r}). Skipping row.')
            skipped += 1
            continue

        cur_pos = offset
        regions = []
        word_bounds = {}
        region_words = {}
        for reg_no, (name, col) in enumerate(zip(region_names, region_cols), 1):
            text = _cell_text(stim_df[col].iloc[row])
            region_start = cur_pos
            cur_pos = region_start + px_per_char * len(text)
            regions.append(RegionBoundary(name, region_start, cur_pos))
            bounds, words = _get_word_boundaries(reg_no, text, region_start, px_per_char)
            word_bounds.update(bounds)
            region_words[reg_no] = words

        if (cond, item) in layouts:
            warnings.warn(f'Row {row + 1}: duplicate condition {cond}, item {item}; later row kept.')
        layouts[(cond, item)] = StimulusLayout(cond, item, regions, word_bounds, region_words,
                                               _get_condition_description(stim_df, row, label_cols))

    print(f"Text IA: processed {len(stim_df)} rows, {len(layouts)} layouts, {skipped} skipped")
    return layouts


def compute_pixel_ia(stim_df: pd.DataFrame, region_names: List[str],
                     start_cols: List[str], width_cols: List[str],
                     condition_col: str, item_col: str,
                     px_per_char: float = 14,
                     condition_label_cols: Optional[List[str]] = None) -> Dict[Tuple[int, int], StimulusLayout]:
    """
    Compute interest areas from explicit pixel geometry.

    Region starts may be plain numbers or coordinate strings such as
    "(281.00, 514.00)". Words are split on whitespace and word w is
    px_per_char * (len(word) + (w > 1)) pixels wide, the extra character
    being the space in front of it.

    Args:
        stim_df: Stimulus table with region texts and geometry columns
        region_names: Region text columns, in reading order
        start_cols: Columns with each region's x start
        width_cols: Columns with each region's width in pixels
        condition_col: Column with condition numbers
        item_col: Column with item numbers
        px_per_char: Pixels per character for word widths
        condition_label_cols: Columns joined into the condition description

    Returns:
        Dictionary (condition, item) -> StimulusLayout
    """
    if not (len(region_names) == len(start_cols) == len(width_cols)):
        raise ConfigError([f'Expected one start and one width column per region '
                           f'({len(region_names)} regions, {len(start_cols)} start, '
                           f'{len(width_cols)} width columns)'])
    condition_label_cols = condition_label_cols or []
    cols = match_columns(list(stim_df.columns),
                         list(region_names) + list(start_cols) + list(width_cols) +
                         [condition_col, item_col] + list(condition_label_cols))
    label_cols = [cols[name] for name in condition_label_cols]

    layouts = {}
    for row in range(len(stim_df)):
        cond = _to_int(stim_df[cols[condition_col]].iloc[row])
        item = _to_int(stim_df[cols[item_col]].iloc[row])
        if cond is None or item is None:
            warnings.warn(f'Row {row + 1}: condition/item is not a number. Skipping row.')
            continue

        regions = []
        word_bounds = {}
        region_words = {}
        for reg_no, name in enumerate(region_names, 1):
            x_start = parse_x_position(stim_df[cols[start_cols[reg_no - 1]]].iloc[row])
            width = parse_x_position(stim_df[cols[width_cols[reg_no - 1]]].iloc[row])
            if np.isnan(x_start) or np.isnan(width):
                warnings.warn(f'Invalid numeric data in row {row + 1}, region {reg_no}')
                continue
            regions.append(RegionBoundary(name, x_start, x_start + width))

            words = _cell_text(stim_df[cols[name]].iloc[row]).split()
            word_start = x_start
            for word_no, word in enumerate(words, 1):
                word_width = px_per_char * (len(word) + (word_no > 1))
                word_bounds[f'{reg_no}.{word_no}'] = (word_start, word_start + word_width)
                word_start += word_width
            region_words[reg_no] = words

        layouts[(cond, item)] = StimulusLayout(cond, item, regions, word_bounds, region_words,
                                               _get_condition_description(stim_df, row, label_cols))

    print(f"Pixel IA: processed {len(stim_df)} rows, {len(layouts)} layouts")
    return layouts


# -----------------------------------------------------------------------------
# User functions for region files and drawing
# -----------------------------------------------------------------------------

def write_region_file(layouts: Dict[Tuple[int, int], StimulusLayout], filename: str,
                      code_method: str = 'utf-8') -> pd.DataFrame:
    """
    Write word boundaries of all layouts to a region CSV file.

    Output columns: condition, item, region_no, region_name, WordID, Word,
    length, x1_pos, x2_pos

    Args:
        layouts: Layout dictionary from compute_text_ia / compute_pixel_ia
        filename: Output CSV path
        code_method: File encoding

    Returns:
        The written DataFrame
    """
    col = ['condition', 'item', 'region_no', 'region_name', 'WordID', 'Word',
           'length', 'x1_pos', 'x2_pos']
    data = []
    for key in sorted(layouts.keys()):
        layout = layouts[key]
        for word_key, (x1_pos, x2_pos) in layout.word_boundaries.items():
            reg_no, word_no = (int(part) for part in word_key.split('.'))
            words = layout.region_words.get(reg_no, [])
            word = words[word_no - 1] if word_no <= len(words) else ''
            data.append({'condition': layout.condition,
                         'item': layout.item,
                         'region_no': reg_no,
                         'region_name': layout.regions[reg_no - 1].name if reg_no <= len(layout.regions) else '',
                         'WordID': word_key,
                         'Word': word.strip(),
                         'length': len(word),
                         'x1_pos': x1_pos,
                         'x2_pos': x2_pos})
    reg_df = pd.DataFrame(data, columns=col)
    reg_df.to_csv(filename, index=False, encoding=code_method)
    return reg_df


def draw_trial_fix(events: pd.DataFrame, layouts: Dict[Tuple[int, int], StimulusLayout],
                   trial_number: int, filename: str, cfg: EyesortConfig,
                   row_height: int = 16, margin: int = 20) -> bool:
    """
    Draw region/word boundaries of a trial's stimulus and its fixations.

    Fixations are drawn one per row, top to bottom in reading order, with
    their ordinal number, so regressions show up as leftward jumps.

    Args:
        events: Classified event DataFrame (needs trial_number, condition_number, item_number)
        layouts: Layout dictionary
        trial_number: Trial to draw
        filename: Output PNG path
        cfg: Configuration (fixation_x_field names the x column)
        row_height: Pixels per fixation row
        margin: Border in pixels

    Returns:
        True if a figure was written
    """
    trial = events[events.trial_number == trial_number]
    if len(trial) == 0:
        print(f"Warning! No classified fixations in trial {trial_number}")
        return False
    key = (int(trial.condition_number.iloc[0]), int(trial.item_number.iloc[0]))
    if key not in layouts:
        print(f"Warning! No layout for condition {key[0]}, item {key[1]}")
        return False
    layout = layouts[key]

    width = int(max(reg.x_end for reg in layout.regions)) + 2 * margin
    height = (len(trial) + 3) * row_height + 2 * margin
    img = Image.new('RGB', (width, height), (232, 232, 232))
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    top, bottom = margin, height - margin
    for reg in layout.regions:
        draw.rectangle([reg.x_start, top, reg.x_end, bottom], outline=(0, 0, 160))
        draw.text((reg.x_start + 2, top + 2), reg.name, font=font, fill=(0, 0, 160))
    for x_start, _ in layout.word_boundaries.values():
        draw.line([x_start, top + row_height, x_start, top + 2 * row_height], fill=(120, 120, 120))

    for ind, value in enumerate(trial[cfg.fixation_x_field]):
        x_pos = parse_x_position(value)
        if np.isnan(x_pos):
            continue
        y_pos = top + (ind + 3) * row_height
        radius = row_height // 3
        fill = (200, 0, 0) if trial.is_region_regression.iloc[ind] else (0, 140, 0)
        draw.ellipse([x_pos - radius, y_pos - radius, x_pos + radius, y_pos + radius], fill=fill)
        draw.text((x_pos + radius + 2, y_pos - radius), str(ind + 1), font=font, fill=(0, 0, 0))

    img.save(filename, 'PNG')
    return True
