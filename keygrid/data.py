# keygrid/data.py
"""
Keyboard layout data loading and export.
Implements the Key record and the KeyboardLayout container which handles:
  - Loading layouts from QMK-style info.json, ZMK devicetree physical
    layouts and CSV files
  - Validating key geometry and warning about overlapping keys
  - Deriving or keeping the logical row/col assignment
  - Exporting to info.json, CSV and pandas DataFrames
"""
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging
import re

import numpy as np
import pandas as pd

from keygrid.utils.config import LayoutParseError, ThresholdsConfig
from keygrid.geometry import find_overlapping_keys
from keygrid.grid import ensure_logical_layout, physical_to_logical

logger = logging.getLogger(__name__)

@dataclass
class Key:
    """One physical key; row/col of -1 means not assigned yet."""
    x: float
    y: float
    w: float = 1.0
    h: float = 1.0
    r: float = 0.0
    rx: Optional[float] = None
    ry: Optional[float] = None
    row: int = -1
    col: int = -1
    part: int = 0
    label: Optional[str] = None

    def __str__(self) -> str:
        return f"Key({self.row},{self.col} @ {self.x:g},{self.y:g})"


#------------------------------------------------
# devicetree parsing
#------------------------------------------------
DTS_LAYOUT_PATTERN = re.compile(r'\{[^}]*?compatible *?= *?"zmk,physical-layout";.+?\}', re.S)
DTS_KEY_PATTERN = re.compile(
    r'&key_physical_attrs\s*' + r'\s*'.join([r'\(?(-?\d+)\)?'] * 7)
)

JSON_SUFFIXES = {'.json'}
DTS_SUFFIXES = {'.dts', '.dtsi', '.overlay', '.keymap'}
CSV_SUFFIXES = {'.csv'}

CSV_COLUMNS = ['x', 'y', 'w', 'h', 'r', 'rx', 'ry', 'row', 'col']


def _number(item: Dict[str, Any], name: str, default: Optional[float]) -> Optional[float]:
    value = item.get(name, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _keys_from_dts(text: str) -> List[Key]:
    keys = []
    for match in DTS_KEY_PATTERN.finditer(text):
        w, h, x, y, r, rx, ry = (int(v) / 100 for v in match.groups())
        keys.append(Key(x=x, y=y, w=w, h=h, r=r, rx=rx, ry=ry))
    return keys


class KeyboardLayout:

    def __init__(self, keys: Optional[List[Key]] = None, name: str = "layout"):
        self.keys: List[Key] = list(keys) if keys else []
        self.name = name

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self):
        return iter(self.keys)

    def __repr__(self) -> str:
        return f"KeyboardLayout('{self.name}', {len(self.keys)} keys, {self.n_rows} rows x {self.n_cols} cols)"

    @property
    def n_rows(self) -> int:
        return max((k.row for k in self.keys), default=-1) + 1

    @property
    def n_cols(self) -> int:
        return max((k.col for k in self.keys), default=-1) + 1

    #------------------------------------------------
    # Logical layout
    #------------------------------------------------
    def physical_to_logical(self, thresholds: Optional[ThresholdsConfig] = None) -> 'KeyboardLayout':
        """Derive row/col from geometry and reorder keys."""
        physical_to_logical(self.keys, thresholds)
        return self

    def ensure_logical_layout(self, thresholds: Optional[ThresholdsConfig] = None) -> bool:
        """Derive row/col only if the stored assignment is unusable."""
        return ensure_logical_layout(self.keys, thresholds)

    def check_overlaps(self, tolerance: float = 0.05) -> List[tuple]:
        """Log a warning for every pair of physically overlapping keys."""
        overlaps = find_overlapping_keys(self.keys, tolerance)
        for i, j in overlaps:
            logger.warning(f"Keys overlap: {self.keys[i]} and {self.keys[j]}")
        return overlaps

    #------------------------------------------------
    # Loading
    #------------------------------------------------
    @classmethod
    def from_file(cls,
                  file_path: Union[str, Path],
                  thresholds: Optional[ThresholdsConfig] = None,
                  repair: bool = True) -> 'KeyboardLayout':
        """Load a layout, choosing the format from the file suffix."""
        file_path = Path(file_path)
        suffix = file_path.suffix.lower()
        logger.info(f"Loading layout from {file_path}")
        try:
            if suffix in JSON_SUFFIXES:
                layout = cls.from_info_json(file_path.read_text(encoding='utf-8'), thresholds, repair)
            elif suffix in DTS_SUFFIXES:
                layout = cls.from_dts(file_path.read_text(encoding='utf-8'), thresholds)
            elif suffix in CSV_SUFFIXES:
                layout = cls.from_csv(file_path, thresholds, repair)
            else:
                raise LayoutParseError(f"Unsupported layout file type: {suffix}")
        except OSError as e:
            raise LayoutParseError(f"Cannot read {file_path}: {e}") from e

        layout.name = file_path.stem
        logger.info(f"Loaded {len(layout)} keys ({layout.n_rows} rows x {layout.n_cols} cols)")
        return layout

    @classmethod
    def from_info_json(cls,
                       text: str,
                       thresholds: Optional[ThresholdsConfig] = None,
                       repair: bool = True) -> 'KeyboardLayout':
        """
        Parse the first layout of a QMK-style info.json.

        Row/col come from the item itself or from its "matrix" pair; if any
        key lacks them, or the keys are out of order, they are derived.
        """
        try:
            root = json.loads(text)
        except json.JSONDecodeError as e:
            raise LayoutParseError(f"Invalid JSON: {e}") from e

        if not isinstance(root, dict) or not isinstance(root.get('layouts'), dict) or not root['layouts']:
            raise LayoutParseError("No 'layouts' found")
        layout_name, first_layout = next(iter(root['layouts'].items()))
        items = first_layout.get('layout') if isinstance(first_layout, dict) else None
        if not isinstance(items, list) or not items:
            raise LayoutParseError(f"Layout '{layout_name}' has no keys")

        keys = []
        for n, item in enumerate(items):
            if not isinstance(item, dict):
                raise LayoutParseError(f"Key {n} is not an object")
            x, y = _number(item, 'x', None), _number(item, 'y', None)
            if x is None or y is None:
                raise LayoutParseError(f"Key {n} has missing or invalid x/y")
            key = Key(
                x=x, y=y,
                w=_number(item, 'w', 1),
                h=_number(item, 'h', 1),
                r=_number(item, 'r', 0),
                rx=_number(item, 'rx', None),
                ry=_number(item, 'ry', None),
                row=int(_number(item, 'row', -1)),
                col=int(_number(item, 'col', -1)),
                label=item.get('label'),
            )
            if key.w <= 0 or key.h <= 0:
                raise LayoutParseError(f"Key {n} has invalid size {key.w}x{key.h}")

            matrix = item.get('matrix')
            if (key.row < 0 or key.col < 0) and isinstance(matrix, list) and len(matrix) == 2 \
                    and all(isinstance(v, int) for v in matrix):
                key.row, key.col = matrix
            keys.append(key)

        layout = cls(keys, name=layout_name)
        layout.check_overlaps()
        if repair:
            layout.ensure_logical_layout(thresholds)
        return layout

    @classmethod
    def from_dts(cls,
                 text: str,
                 thresholds: Optional[ThresholdsConfig] = None) -> 'KeyboardLayout':
        """
        Parse a ZMK devicetree physical layout.

        Values of &key_physical_attrs are in hundredths of a unit. The logical
        layout is always derived.
        """
        if 'zmk,physical-layout' not in text:
            raise LayoutParseError("No zmk,physical-layout node found")

        block = DTS_LAYOUT_PATTERN.search(text)
        keys = _keys_from_dts(block.group(0)) if block else []
        if not keys:
            keys = _keys_from_dts(text)
        if not keys:
            raise LayoutParseError("No &key_physical_attrs entries found")

        layout = cls(keys)
        layout.check_overlaps()
        layout.physical_to_logical(thresholds)
        return layout

    @classmethod
    def from_csv(cls,
                 file_path: Union[str, Path],
                 thresholds: Optional[ThresholdsConfig] = None,
                 repair: bool = True) -> 'KeyboardLayout':
        """Load keys from a CSV with columns x, y and optional w, h, r, rx, ry, row, col."""
        try:
            df = pd.read_csv(file_path)
        except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
            raise LayoutParseError(f"Invalid CSV: {e}") from e
        missing = {'x', 'y'} - set(df.columns)
        if missing:
            raise LayoutParseError(f"Missing required columns: {sorted(missing)}")
        if df[['x', 'y']].isna().any().any():
            raise LayoutParseError("Every key needs x and y")

        defaults = {'w': 1.0, 'h': 1.0, 'r': 0.0, 'row': -1, 'col': -1}
        keys = []
        for n, record in enumerate(df.to_dict('records')):
            values = {}
            for name, default in defaults.items():
                value = record.get(name, default)
                values[name] = default if pd.isna(value) else value
            try:
                key = Key(
                    x=float(record['x']), y=float(record['y']),
                    w=float(values['w']), h=float(values['h']), r=float(values['r']),
                    rx=None if pd.isna(record.get('rx', np.nan)) else float(record['rx']),
                    ry=None if pd.isna(record.get('ry', np.nan)) else float(record['ry']),
                    row=int(values['row']), col=int(values['col']),
                )
            except (TypeError, ValueError) as e:
                raise LayoutParseError(f"Key {n} has a non-numeric value: {e}") from e
            if key.w <= 0 or key.h <= 0:
                raise LayoutParseError(f"Key {n} has invalid size {key.w}x{key.h}")
            keys.append(key)

        layout = cls(keys)
        layout.check_overlaps()
        if repair:
            layout.ensure_logical_layout(thresholds)
        return layout

    #------------------------------------------------
    # Export
    #------------------------------------------------
    def to_dataframe(self) -> pd.DataFrame:
        """One row per key, in key order."""
        return pd.DataFrame([asdict(k) for k in self.keys],
                            columns=CSV_COLUMNS + ['part', 'label'])

    def to_csv(self, file_path: Union[str, Path]) -> None:
        self.to_dataframe()[CSV_COLUMNS].to_csv(file_path, index=False)

    def to_info_json(self) -> Dict[str, Any]:
        """QMK-style info.json structure with one layout."""
        items = []
        for key in self.keys:
            item = {'matrix': [key.row, key.col], 'x': key.x, 'y': key.y}
            if key.w != 1:
                item['w'] = key.w
            if key.h != 1:
                item['h'] = key.h
            if key.r:
                item['r'] = key.r
                if key.rx is not None:
                    item['rx'] = key.rx
                if key.ry is not None:
                    item['ry'] = key.ry
            if key.label:
                item['label'] = key.label
            items.append(item)
        return {'layouts': {self.name: {'layout': items}}}

    def save(self, file_path: Union[str, Path]) -> None:
        """Write the layout as info.json or CSV depending on suffix."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if file_path.suffix.lower() in CSV_SUFFIXES:
            self.to_csv(file_path)
        else:
            file_path.write_text(json.dumps(self.to_info_json(), indent=2), encoding='utf-8')
        logger.info(f"Saved {len(self)} keys to {file_path}")
